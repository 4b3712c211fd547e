"""Niche selection strategies and content planning."""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Tuple

from .contracts import ContentPlan, Niche, NicheStrategy, WorkflowConfig

_SORT_KEYS: Dict[str, Callable[[Niche], Tuple[float, ...]]] = {
    "trending": lambda n: (-n.trend_score,),
    "emerging": lambda n: (-n.growth, -n.trend_score),
    "stable": lambda n: (n.competition_level, -n.trend_score),
}


def select_niches(
    candidates: Sequence[Niche],
    strategy: NicheStrategy,
    limit: int,
    custom_niches: Sequence[str] = (),
) -> List[Niche]:
    """Pick up to ``limit`` niches according to ``strategy``.

    ``custom`` keeps the caller's order; names that are not among the
    candidates become bare niches so explicit requests are never dropped.
    """
    if limit <= 0:
        return []
    if strategy == "custom":
        by_name = {n.name.lower(): n for n in candidates}
        chosen = [by_name.get(name.lower(), Niche(name=name)) for name in custom_niches]
        return chosen[:limit]
    return sorted(candidates, key=_SORT_KEYS[strategy])[:limit]


def _mood_for(niche: Niche) -> str:
    if niche.growth >= 30:
        return "energetic"
    if niche.competition_level <= 30:
        return "warm"
    return "uplifting"


def build_content_plans(niches: Sequence[Niche], config: WorkflowConfig) -> List[ContentPlan]:
    """One plan per niche, cycling through the configured content types."""
    plans = []
    for index, niche in enumerate(niches):
        content_type = config.content_types[index % len(config.content_types)]
        plans.append(
            ContentPlan(
                niche=niche.name,
                theme=niche.keywords[0] if niche.keywords else niche.name,
                mood=_mood_for(niche),
                platforms=list(config.platforms),
                content_type=content_type,
                avatar_properties={
                    "style": "animated",
                    "niche": niche.name,
                    "audience": config.target_audience or "general",
                },
            )
        )
    return plans
