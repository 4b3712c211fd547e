"""Interactive runner that walks a workflow through every step."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from .collaborators import Collaborators
from .contracts import (
    ContentItem,
    ContentPlan,
    Niche,
    WorkflowConfig,
    WorkflowProgress,
)
from .errors import InvalidTransition, StepExecutionError, WorkflowCancelled
from .selection import build_content_plans, select_niches
from .store import WorkflowStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRODUCTION_STEPS = (
    "lyric-generation",
    "music-generation",
    "avatar-creation",
    "video-assembly",
    "publishing",
    "analytics-tracking",
)


class RunToken:
    """Cancellation and pause signal shared by a runner and its dispatcher.

    ``checkpoint`` is awaited before every collaborator call and at every
    step boundary. It raises once the run was cancelled or the workflow was
    stopped or deleted, and blocks while the workflow is paused.
    """

    def __init__(
        self, workflow_id: str, store: WorkflowStore, poll_interval: float = 0.5
    ) -> None:
        self.workflow_id = workflow_id
        self._store = store
        self._poll_interval = poll_interval
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    async def checkpoint(self) -> None:
        waiting = False
        while True:
            if self.cancelled:
                raise WorkflowCancelled(self.workflow_id)
            workflow = await self._store.get_workflow_progress(self.workflow_id)
            if workflow is None or workflow.is_terminal:
                self.cancel()
                raise WorkflowCancelled(self.workflow_id)
            if workflow.status != "paused":
                if waiting:
                    logger.info(f"Workflow {self.workflow_id} resumed, runner continuing")
                return
            if not waiting:
                logger.info(f"Workflow {self.workflow_id} paused, runner waiting")
                waiting = True
            try:
                await asyncio.wait_for(self._cancelled.wait(), self._poll_interval)
            except asyncio.TimeoutError:
                pass


class InteractiveRunner:
    """Drive one guided pass through the nine pipeline steps."""

    def __init__(
        self,
        store: WorkflowStore,
        collaborators: Collaborators,
        config: WorkflowConfig,
        token: RunToken,
    ) -> None:
        self._store = store
        self._collaborators = collaborators
        self._config = config
        self._token = token
        self.workflow_id = token.workflow_id
        self.items: List[ContentItem] = []

    async def run(self) -> Optional[WorkflowProgress]:
        """Execute all steps.

        Any failure other than cancellation fails the workflow's current step,
        so a finished runner never leaves its workflow ``running``.
        """
        try:
            await self._market_analysis()
            niches = await self._niche_selection()
            plans = await self._content_planning(niches)
            await self._produce(plans)
        except WorkflowCancelled:
            logger.info(f"Runner for workflow {self.workflow_id} cancelled")
        except InvalidTransition as exc:
            logger.warning(f"Runner for workflow {self.workflow_id} halted: {exc}")
        except StepExecutionError as exc:
            await self._fail(exc)
        except Exception as exc:
            logger.exception(f"Runner for workflow {self.workflow_id} crashed")
            workflow = await self._store.get_workflow_progress(self.workflow_id)
            step_id = (
                workflow.active_step.id
                if workflow is not None and workflow.active_step is not None
                else "unknown"
            )
            await self._fail(StepExecutionError(step_id, str(exc) or type(exc).__name__))
        return await self._store.get_workflow_progress(self.workflow_id)

    # -- steps ---------------------------------------------------------
    async def _market_analysis(self) -> None:
        step = "market-analysis"
        await self._token.checkpoint()
        await self._progress(step, 10)
        trends = await self._call(step, self._collaborators.trend_scanner.scan)
        await self._progress(step, 50)
        refreshed = await self._call(step, self._collaborators.niche_refresher.scan)
        await self._progress(step, 80)
        await self._complete(
            step,
            {
                "trendsFound": trends.trends_found,
                "nichesAnalyzed": refreshed.niches_analyzed,
            },
        )

    async def _niche_selection(self) -> List[Niche]:
        step = "niche-selection"
        await self._token.checkpoint()
        candidates = await self._call(step, self._collaborators.niche_source.list_niches)
        await self._progress(step, 50)
        selected = select_niches(
            candidates,
            self._config.niche_selection,
            self._config.content_per_day,
            self._config.custom_niches,
        )
        await self._complete(
            step,
            {"nichesSelected": len(selected), "niches": [n.name for n in selected]},
        )
        return selected

    async def _content_planning(self, niches: List[Niche]) -> List[ContentPlan]:
        step = "content-planning"
        await self._token.checkpoint()
        await self._progress(step, 50)
        plans = build_content_plans(niches, self._config)
        await self._complete(step, {"plansCreated": len(plans)})
        return plans

    async def _produce(self, plans: List[ContentPlan]) -> None:
        plans = plans[: min(self._config.content_per_day, len(plans))]
        total = len(plans)
        c = self._collaborators
        for index, plan in enumerate(plans):
            share = (index + 1) * 100 // total
            item = ContentItem(plan=plan)
            logger.info(
                f"Workflow {self.workflow_id}: producing item {index + 1}/{total} "
                f"for niche {plan.niche}"
            )

            item.lyrics = await self._call(
                "lyric-generation",
                c.lyrics.generate,
                {"theme": plan.theme, "mood": plan.mood, "niche": plan.niche},
            )
            await self._progress("lyric-generation", share)

            item.music_url = await self._call(
                "music-generation",
                c.music.generate,
                {"lyrics": item.lyrics, "mood": plan.mood},
            )
            await self._progress("music-generation", share)

            item.avatar_url = await self._call(
                "avatar-creation", c.avatar.generate, dict(plan.avatar_properties)
            )
            await self._progress("avatar-creation", share)

            item.video_url = await self._call(
                "video-assembly",
                c.video.generate,
                {"music_url": item.music_url, "avatar_url": item.avatar_url},
            )
            await self._progress("video-assembly", share)

            await self._call("publishing", c.publisher.publish, item, plan.platforms)
            item.published = True
            await self._progress("publishing", share)

            await self._call("analytics-tracking", c.analytics.setup, item)
            await self._progress("analytics-tracking", share)
            self.items.append(item)

        for step in PRODUCTION_STEPS:
            await self._token.checkpoint()
            data: Dict[str, Any] = {"itemsProcessed": total}
            if step == "video-assembly":
                data["videos"] = [item.video_url for item in self.items]
            elif step == "publishing":
                data["platforms"] = list(self._config.platforms)
            await self._complete(step, data)

    # -- helpers -------------------------------------------------------
    async def _call(
        self, step_id: str, fn: Callable[..., Awaitable[T]], *args: Any
    ) -> T:
        await self._token.checkpoint()
        try:
            return await fn(*args)
        except Exception as exc:
            raise StepExecutionError(step_id, str(exc) or type(exc).__name__) from exc

    async def _progress(self, step_id: str, progress: int) -> None:
        if await self._store.update_step_progress(self.workflow_id, step_id, progress) is None:
            raise WorkflowCancelled(self.workflow_id)

    async def _complete(self, step_id: str, data: Dict[str, Any]) -> None:
        if await self._store.complete_step(self.workflow_id, step_id, data) is None:
            raise WorkflowCancelled(self.workflow_id)

    async def _fail(self, exc: StepExecutionError) -> None:
        """Fail whichever step the workflow currently points at."""
        logger.error(
            f"Workflow {self.workflow_id}: {exc.step_id} collaborator failed: {exc.message}"
        )
        workflow = await self._store.get_workflow_progress(self.workflow_id)
        if workflow is None or workflow.active_step is None:
            return
        try:
            await self._store.fail_step(
                self.workflow_id, workflow.active_step.id, exc.message
            )
        except InvalidTransition as transition:
            logger.warning(
                f"Could not record failure for workflow {self.workflow_id}: {transition}"
            )
