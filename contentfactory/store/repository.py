"""Store abstraction for workflow progress state."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional, Protocol, Union

from ..contracts import ControlRequest, WorkflowProgress


class WorkflowStore(Protocol):
    """Protocol for workflow progress registries.

    Every method keyed by ``workflow_id`` returns ``None`` when the workflow
    is unknown. Mutations that the current state does not allow raise
    :class:`~contentfactory.errors.InvalidTransition`.
    """

    async def initialize_workflow(
        self, workflow_id: Optional[str] = None
    ) -> WorkflowProgress:
        """Create a fresh workflow record from the step catalog."""

    async def start_workflow(self, workflow_id: str) -> WorkflowProgress | None:
        """Mark the workflow running and activate its first step."""

    async def update_step_progress(
        self,
        workflow_id: str,
        step_id: str,
        progress: int,
        data: Optional[Dict[str, Any]] = None,
    ) -> WorkflowProgress | None:
        """Record partial progress for a step."""

    async def complete_step(
        self, workflow_id: str, step_id: str, data: Optional[Dict[str, Any]] = None
    ) -> WorkflowProgress | None:
        """Complete a step and activate the next one."""

    async def fail_step(
        self, workflow_id: str, step_id: str, error: str
    ) -> WorkflowProgress | None:
        """Fail a step, which fails the whole workflow."""

    async def control_workflow(
        self, workflow_id: str, request: Union[ControlRequest, Dict[str, Any]]
    ) -> WorkflowProgress | None:
        """Apply a pause, resume, goto, restart or stop action."""

    async def get_workflow_progress(self, workflow_id: str) -> WorkflowProgress | None:
        """Return a snapshot of the workflow."""

    async def get_all_workflows(self) -> list[WorkflowProgress]:
        """Return snapshots of every known workflow."""

    async def delete_workflow(self, workflow_id: str) -> bool:
        """Forget a workflow. Returns ``True`` if it existed."""

    async def purge_expired(self, retention: timedelta) -> list[str]:
        """Delete terminal workflows that ended longer than ``retention`` ago."""
