"""Error taxonomy for contentfactory workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .contracts import WorkflowProgress


class ContentFactoryError(Exception):
    """Base class for all contentfactory errors."""


class WorkflowValidationError(ContentFactoryError, ValueError):
    """Workflow configuration rejected before the workflow was created."""


class InvalidTransition(ContentFactoryError):
    """A control action or mutation is not allowed in the current state.

    The stored record is left untouched; ``workflow`` holds a copy of it so
    callers can report the state that caused the rejection.
    """

    def __init__(
        self,
        workflow_id: str,
        action: str,
        reason: str,
        workflow: Optional["WorkflowProgress"] = None,
    ) -> None:
        super().__init__(f"Cannot {action} workflow {workflow_id}: {reason}")
        self.workflow_id = workflow_id
        self.action = action
        self.reason = reason
        self.workflow = workflow


class StepExecutionError(ContentFactoryError):
    """A collaborator call failed while a runner was executing a step."""

    def __init__(self, step_id: str, message: str) -> None:
        super().__init__(message)
        self.step_id = step_id
        self.message = message


class WorkflowCancelled(ContentFactoryError):
    """Raised inside a runner once its workflow has been stopped."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow {workflow_id} was cancelled")
        self.workflow_id = workflow_id
