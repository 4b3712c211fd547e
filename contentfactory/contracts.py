"""Core data contracts for contentfactory workflows."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

StepStatus = Literal["pending", "running", "completed", "failed", "paused"]
WorkflowStatus = Literal["initializing", "running", "paused", "completed", "failed"]
NicheStrategy = Literal["trending", "emerging", "stable", "custom"]

TERMINAL_STATUSES = ("completed", "failed")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Snake-case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Step(CamelModel):
    """One stage of a workflow."""

    id: str
    name: str
    description: str
    status: StepStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class WorkflowProgress(CamelModel):
    """Snapshot of a workflow and its steps."""

    workflow_id: str
    steps: List[Step]
    current_step_index: int = 0
    status: WorkflowStatus = "initializing"
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    can_pause: bool = True
    can_resume: bool = False
    allow_step_navigation: bool = True

    @field_validator("steps")
    @classmethod
    def _ensure_catalog_steps(cls, v: List[Step]) -> List[Step]:
        from .catalog import STEP_IDS  # catalog imports Step from this module

        if tuple(step.id for step in v) != STEP_IDS:
            raise ValueError(f"steps must be exactly {list(STEP_IDS)} in order")
        return v

    @computed_field(alias="overallProgress")  # type: ignore[misc]
    @property
    def overall_progress(self) -> float:
        """Mean progress across all steps."""
        if not self.steps:
            return 0.0
        return sum(step.progress for step in self.steps) / len(self.steps)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def active_step(self) -> Optional[Step]:
        """Step at ``current_step_index``, if the index is in range."""
        if 0 <= self.current_step_index < len(self.steps):
            return self.steps[self.current_step_index]
        return None

    def find_step(self, step_id: str) -> Optional[int]:
        """Index of ``step_id`` in this workflow or ``None``."""
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return None


class PauseRequest(CamelModel):
    action: Literal["pause"] = "pause"


class ResumeRequest(CamelModel):
    action: Literal["resume"] = "resume"


class GotoRequest(CamelModel):
    action: Literal["goto"] = "goto"
    step_index: int


class RestartRequest(CamelModel):
    action: Literal["restart"] = "restart"


class StopRequest(CamelModel):
    action: Literal["stop"] = "stop"


ControlRequest = Annotated[
    Union[PauseRequest, ResumeRequest, GotoRequest, RestartRequest, StopRequest],
    Field(discriminator="action"),
]

_control_adapter: TypeAdapter[ControlRequest] = TypeAdapter(ControlRequest)


def parse_control_request(data: Union[Dict[str, Any], BaseModel]) -> ControlRequest:
    """Validate a control request payload such as ``{"action": "goto", "stepIndex": 2}``."""
    if isinstance(data, BaseModel):
        return data  # type: ignore[return-value]
    return _control_adapter.validate_python(data)


class WorkflowConfig(CamelModel):
    """Caller-supplied configuration for a content workflow."""

    platforms: List[str] = Field(min_length=1)
    content_per_day: int = Field(default=1, ge=1)
    niche_selection: NicheStrategy = "trending"
    custom_niches: List[str] = Field(default_factory=list)
    content_types: List[str] = Field(
        default_factory=lambda: ["music-video"], min_length=1
    )
    target_audience: Optional[str] = None
    schedule: Optional[str] = None

    @field_validator("platforms")
    @classmethod
    def _ensure_platform_names(cls, v: List[str]) -> List[str]:
        cleaned = [p.strip().lower() for p in v]
        if any(not p for p in cleaned):
            raise ValueError("platform names must be non-empty")
        return cleaned

    @model_validator(mode="after")
    def _ensure_custom_niches(self) -> "WorkflowConfig":
        if self.niche_selection == "custom" and not self.custom_niches:
            raise ValueError("custom niche selection requires custom_niches")
        return self


class Niche(CamelModel):
    """Candidate niche as reported by the niche source."""

    name: str
    category: str = "music"
    trend_score: float = 0.0
    growth: float = 0.0
    competition_level: float = 0.0
    keywords: List[str] = Field(default_factory=list)


class ScanResult(CamelModel):
    trends_found: int = 0
    niches_analyzed: int = 0


class ContentPlan(CamelModel):
    """What to produce for one selected niche."""

    niche: str
    theme: str
    mood: str
    platforms: List[str]
    content_type: str = "music-video"
    avatar_properties: Dict[str, Any] = Field(default_factory=dict)


class ContentItem(CamelModel):
    """Artifacts produced for one plan as it moves through generation."""

    plan: ContentPlan
    lyrics: Optional[str] = None
    music_url: Optional[str] = None
    avatar_url: Optional[str] = None
    video_url: Optional[str] = None
    published: bool = False


class AutomatedRun(CamelModel):
    """Bookkeeping for one automated, staggered content cycle."""

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    config: WorkflowConfig
    status: Literal["scheduled", "completed", "stopped"] = "scheduled"
    niches: List[str] = Field(default_factory=list)
    scheduled: int = 0
    succeeded: int = 0
    failed: int = 0
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    @property
    def outstanding(self) -> int:
        return self.scheduled - self.succeeded - self.failed
