"""In-process collaborators for local runs and tests."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, List, Optional, Sequence

from ..contracts import ContentItem, Niche, ScanResult
from .base import Collaborators

STAGES = (
    "trend-scan",
    "niche-refresh",
    "lyrics",
    "music",
    "avatar",
    "video",
    "publish",
    "analytics",
)

DEFAULT_NICHES = [
    Niche(
        name="lofi study beats",
        trend_score=82,
        growth=12,
        competition_level=70,
        keywords=["lofi", "study"],
    ),
    Niche(
        name="synthwave workouts",
        trend_score=64,
        growth=41,
        competition_level=35,
        keywords=["synthwave", "fitness"],
    ),
    Niche(
        name="cozy folk covers",
        trend_score=55,
        growth=8,
        competition_level=20,
        keywords=["folk", "acoustic"],
    ),
    Niche(
        name="hyperpop memes",
        trend_score=71,
        growth=58,
        competition_level=60,
        keywords=["hyperpop", "memes"],
    ),
]


class SimulatedFailure(RuntimeError):
    """Injected collaborator failure."""


class CallLog:
    """Shared record of simulated calls, in call order."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def count(self, stage: str) -> int:
        return sum(1 for call in self.calls if call == stage)


class _SimulatedService:
    def __init__(
        self,
        stage: str,
        log: CallLog,
        latency: float = 0.0,
        fail: bool = False,
    ) -> None:
        self.stage = stage
        self.log = log
        self.latency = latency
        self.fail = fail

    async def _call(self) -> None:
        self.log.calls.append(self.stage)
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.fail:
            raise SimulatedFailure(f"{self.stage} service unavailable")


class SimulatedScanner(_SimulatedService):
    def __init__(self, *args: Any, result: Optional[ScanResult] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.result = result or ScanResult(trends_found=24, niches_analyzed=4)

    async def scan(self) -> ScanResult:
        await self._call()
        return self.result


class SimulatedNicheSource:
    def __init__(self, niches: Sequence[Niche]) -> None:
        self.niches = list(niches)

    async def list_niches(self) -> List[Niche]:
        return list(self.niches)


class SimulatedGenerator(_SimulatedService):
    async def generate(self, input: Dict[str, Any]) -> str:
        await self._call()
        if self.stage == "lyrics":
            theme = input.get("theme", "untitled")
            return f"[verse]\nA song about {theme}\n[chorus]\n{theme}, {theme}"
        return f"https://content.local/{self.stage}/{uuid.uuid4().hex[:12]}"


class SimulatedPublisher(_SimulatedService):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.published: List[ContentItem] = []

    async def publish(self, content: ContentItem, platforms: List[str]) -> None:
        await self._call()
        self.published.append(content)


class SimulatedAnalytics(_SimulatedService):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.tracked: List[ContentItem] = []

    async def setup(self, content: ContentItem) -> None:
        await self._call()
        self.tracked.append(content)


def simulated_collaborators(
    latency: float = 0.0,
    fail_at: Optional[str] = None,
    niches: Optional[Sequence[Niche]] = None,
    log: Optional[CallLog] = None,
) -> Collaborators:
    """Build a full set of simulated collaborators.

    Args:
        latency: Seconds each simulated call sleeps before answering.
        fail_at: Stage name from ``STAGES`` whose service always fails.
        niches: Candidate niches; defaults to ``DEFAULT_NICHES``.
        log: Optional shared call log to inspect afterwards.
    """
    if fail_at is not None and fail_at not in STAGES:
        raise ValueError(f"Unknown stage {fail_at!r}; expected one of {STAGES}")
    log = log or CallLog()

    def opts(stage: str) -> Dict[str, Any]:
        return {"latency": latency, "fail": stage == fail_at}

    return Collaborators(
        trend_scanner=SimulatedScanner("trend-scan", log, **opts("trend-scan")),
        niche_refresher=SimulatedScanner(
            "niche-refresh", log, **opts("niche-refresh")
        ),
        niche_source=SimulatedNicheSource(
            DEFAULT_NICHES if niches is None else niches
        ),
        lyrics=SimulatedGenerator("lyrics", log, **opts("lyrics")),
        music=SimulatedGenerator("music", log, **opts("music")),
        avatar=SimulatedGenerator("avatar", log, **opts("avatar")),
        video=SimulatedGenerator("video", log, **opts("video")),
        publisher=SimulatedPublisher("publish", log, **opts("publish")),
        analytics=SimulatedAnalytics("analytics", log, **opts("analytics")),
    )
