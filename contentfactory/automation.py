"""Automated, staggered content creation without step tracking."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from .collaborators import Collaborators
from .contracts import AutomatedRun, ContentItem, ContentPlan, WorkflowConfig, utcnow
from .selection import build_content_plans, select_niches

logger = logging.getLogger(__name__)


async def create_content(collaborators: Collaborators, plan: ContentPlan) -> ContentItem:
    """Generate, assemble and publish one piece of content."""
    item = ContentItem(plan=plan)
    item.lyrics = await collaborators.lyrics.generate(
        {"theme": plan.theme, "mood": plan.mood, "niche": plan.niche}
    )
    item.music_url = await collaborators.music.generate(
        {"lyrics": item.lyrics, "mood": plan.mood}
    )
    item.avatar_url = await collaborators.avatar.generate(dict(plan.avatar_properties))
    item.video_url = await collaborators.video.generate(
        {"music_url": item.music_url, "avatar_url": item.avatar_url}
    )
    await collaborators.publisher.publish(item, plan.platforms)
    item.published = True
    return item


class AutomatedRunner:
    """Schedule one content attempt per selected niche on a fixed stagger.

    Attempt ``i`` starts ``i * stagger_seconds`` after scheduling. Attempts
    are fire-and-forget: failures are logged and counted on the
    :class:`AutomatedRun` record, never raised.
    """

    def __init__(
        self,
        collaborators: Collaborators,
        config: WorkflowConfig,
        stagger_seconds: float = 30.0,
    ) -> None:
        self._collaborators = collaborators
        self._config = config
        self._stagger_seconds = stagger_seconds
        self._tasks: Set[asyncio.Task] = set()
        self.record = AutomatedRun(config=config)

    @property
    def run_id(self) -> str:
        return self.record.run_id

    async def start(self) -> AutomatedRun:
        """Select niches and schedule the attempts. Returns immediately."""
        candidates = await self._collaborators.niche_source.list_niches()
        niches = select_niches(
            candidates,
            self._config.niche_selection,
            self._config.content_per_day,
            self._config.custom_niches,
        )
        plans = build_content_plans(niches, self._config)
        self.record.niches = [plan.niche for plan in plans]
        self.record.scheduled = len(plans)

        for index, plan in enumerate(plans):
            delay = index * self._stagger_seconds
            task = asyncio.create_task(
                self._attempt(plan, delay), name=f"automated-{self.run_id}-{index}"
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        logger.info(
            f"Automated run {self.run_id} scheduled {len(plans)} attempts "
            f"every {self._stagger_seconds}s for platforms {self._config.platforms}"
        )
        self._finish_if_done()
        return self.record

    async def _attempt(self, plan: ContentPlan, delay: float) -> Optional[ContentItem]:
        if delay:
            await asyncio.sleep(delay)
        try:
            item = await create_content(self._collaborators, plan)
        except Exception:
            self.record.failed += 1
            logger.exception(
                f"Automated run {self.run_id}: content creation failed for {plan.niche}"
            )
            item = None
        else:
            self.record.succeeded += 1
            logger.info(
                f"Automated run {self.run_id}: published {plan.niche} to {plan.platforms}"
            )
        self._finish_if_done()
        return item

    def _finish_if_done(self) -> None:
        if self.record.status == "scheduled" and self.record.outstanding == 0:
            self.record.status = "completed"
            self.record.finished_at = utcnow()
            logger.info(
                f"Automated run {self.run_id} finished: "
                f"{self.record.succeeded} succeeded, {self.record.failed} failed"
            )

    def stop(self) -> None:
        """Cancel every attempt that has not finished yet."""
        for task in list(self._tasks):
            task.cancel()
        if self.record.status == "scheduled":
            self.record.status = "stopped"
            self.record.finished_at = utcnow()
        logger.info(f"Automated run {self.run_id} stopped")

    async def wait(self) -> AutomatedRun:
        """Wait for all outstanding attempts (or their cancellation)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self.record
