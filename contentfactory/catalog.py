"""Fixed step template shared by every content workflow."""

from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict

from .contracts import Step


class StepDefinition(BaseModel):
    """Display metadata for one pipeline stage."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str


STEP_CATALOG: Tuple[StepDefinition, ...] = (
    StepDefinition(
        id="market-analysis",
        name="Market Analysis",
        description="Scanning trends and analyzing market opportunities",
    ),
    StepDefinition(
        id="niche-selection",
        name="Niche Selection",
        description="Selecting optimal niches based on analysis",
    ),
    StepDefinition(
        id="content-planning",
        name="Content Planning",
        description="Planning content themes and structure",
    ),
    StepDefinition(
        id="lyric-generation",
        name="Lyric Generation",
        description="Generating AI-powered lyrics",
    ),
    StepDefinition(
        id="music-generation",
        name="Music Generation",
        description="Creating background music with AI",
    ),
    StepDefinition(
        id="avatar-creation",
        name="Avatar Creation",
        description="Generating AI avatar",
    ),
    StepDefinition(
        id="video-assembly",
        name="Video Assembly",
        description="Combining all elements into final video",
    ),
    StepDefinition(
        id="publishing",
        name="Publishing",
        description="Publishing to selected platforms",
    ),
    StepDefinition(
        id="analytics-tracking",
        name="Analytics Setup",
        description="Setting up performance tracking",
    ),
)

STEP_IDS: Tuple[str, ...] = tuple(definition.id for definition in STEP_CATALOG)


def build_steps() -> List[Step]:
    """Return a fresh list of pending steps in catalog order."""
    return [
        Step(id=d.id, name=d.name, description=d.description) for d in STEP_CATALOG
    ]


def step_index(step_id: str) -> int:
    """Position of ``step_id`` in the catalog.

    Raises:
        KeyError: If the id is not part of the catalog.
    """
    try:
        return STEP_IDS.index(step_id)
    except ValueError:
        raise KeyError(step_id) from None
