"""In-memory implementation of the workflow store."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Union

from pydantic import ValidationError

from ..catalog import build_steps
from ..contracts import (
    ControlRequest,
    GotoRequest,
    PauseRequest,
    RestartRequest,
    ResumeRequest,
    StopRequest,
    WorkflowProgress,
    parse_control_request,
    utcnow,
)
from ..errors import InvalidTransition, WorkflowValidationError
from .repository import WorkflowStore

logger = logging.getLogger(__name__)

STOPPED_MESSAGE = "Workflow stopped"


class InMemoryWorkflowStore(WorkflowStore):
    """Keep workflow progress in local memory.

    Mutations for one workflow id are serialized by a per-id lock. Each
    mutation edits a private copy and then swaps it into the registry, so a
    reader only ever sees a complete record. Data is lost on process exit.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowProgress] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, workflow_id: str) -> asyncio.Lock:
        lock = self._locks.get(workflow_id)
        if lock is None:
            lock = self._locks[workflow_id] = asyncio.Lock()
        return lock

    async def _mutate(
        self,
        workflow_id: str,
        action: str,
        apply: Callable[[WorkflowProgress], bool],
    ) -> WorkflowProgress | None:
        """Run ``apply`` against a copy of the record and publish it.

        ``apply`` returns ``False`` to leave the stored record untouched.
        """
        async with self._lock_for(workflow_id):
            current = self._workflows.get(workflow_id)
            if current is None:
                return None
            draft = current.model_copy(deep=True)
            try:
                if current.is_terminal and action != "restart":
                    raise InvalidTransition(
                        workflow_id, action, f"workflow is {current.status}"
                    )
                changed = apply(draft)
            except InvalidTransition as exc:
                exc.workflow = current.model_copy(deep=True)
                logger.warning(str(exc))
                raise
            if not changed:
                return current.model_copy(deep=True)
            self._workflows[workflow_id] = draft
            return draft.model_copy(deep=True)

    @staticmethod
    def _activate(workflow: WorkflowProgress, index: int) -> None:
        """Make ``index`` the current step; any other running step is paused."""
        for position, step in enumerate(workflow.steps):
            if position != index and step.status == "running":
                step.status = "paused"
        target = workflow.steps[index]
        target.status = "paused" if workflow.status == "paused" else "running"
        target.start_time = utcnow()
        workflow.current_step_index = index

    # ------------------------------------------------------------------
    async def initialize_workflow(
        self, workflow_id: Optional[str] = None
    ) -> WorkflowProgress:
        workflow_id = workflow_id or str(uuid.uuid4())
        async with self._lock_for(workflow_id):
            if workflow_id in self._workflows:
                logger.warning(f"Overwriting existing workflow {workflow_id}")
            workflow = WorkflowProgress(workflow_id=workflow_id, steps=build_steps())
            self._workflows[workflow_id] = workflow
        logger.info(
            f"Workflow {workflow_id} initialized with {len(workflow.steps)} steps"
        )
        return workflow.model_copy(deep=True)

    async def start_workflow(self, workflow_id: str) -> WorkflowProgress | None:
        def apply(wf: WorkflowProgress) -> bool:
            if wf.status != "initializing":
                raise InvalidTransition(workflow_id, "start", f"workflow is {wf.status}")
            wf.status = "running"
            wf.start_time = utcnow()
            wf.can_pause, wf.can_resume = True, False
            self._activate(wf, 0)
            return True

        workflow = await self._mutate(workflow_id, "start", apply)
        if workflow is not None:
            logger.info(f"Workflow {workflow_id} started")
        return workflow

    async def update_step_progress(
        self,
        workflow_id: str,
        step_id: str,
        progress: int,
        data: Optional[Dict[str, Any]] = None,
    ) -> WorkflowProgress | None:
        def apply(wf: WorkflowProgress) -> bool:
            index = wf.find_step(step_id)
            if index is None:
                logger.warning(f"Unknown step {step_id} for workflow {workflow_id}")
                return False
            step = wf.steps[index]
            step.progress = int(max(0, min(100, progress)))
            if data is not None:
                step.data = data
            return True

        return await self._mutate(workflow_id, "update", apply)

    async def complete_step(
        self, workflow_id: str, step_id: str, data: Optional[Dict[str, Any]] = None
    ) -> WorkflowProgress | None:
        def apply(wf: WorkflowProgress) -> bool:
            index = wf.find_step(step_id)
            if index is None:
                logger.warning(f"Unknown step {step_id} for workflow {workflow_id}")
                return False
            step = wf.steps[index]
            step.status = "completed"
            step.progress = 100
            step.end_time = utcnow()
            if data is not None:
                step.data = data

            if index + 1 < len(wf.steps):
                self._activate(wf, index + 1)
            else:
                wf.status = "completed"
                wf.end_time = utcnow()
                wf.can_pause = False
                wf.can_resume = False
            return True

        workflow = await self._mutate(workflow_id, "complete", apply)
        if workflow is not None:
            logger.info(f"Step {step_id} completed for workflow {workflow_id}")
            if workflow.status == "completed":
                logger.info(f"Workflow {workflow_id} completed")
        return workflow

    async def fail_step(
        self, workflow_id: str, step_id: str, error: str
    ) -> WorkflowProgress | None:
        def apply(wf: WorkflowProgress) -> bool:
            index = wf.find_step(step_id)
            if index is None:
                logger.warning(f"Unknown step {step_id} for workflow {workflow_id}")
                return False
            step = wf.steps[index]
            step.status = "failed"
            step.error = error
            step.end_time = utcnow()
            wf.status = "failed"
            wf.end_time = utcnow()
            wf.can_pause = False
            wf.can_resume = False
            return True

        workflow = await self._mutate(workflow_id, "fail", apply)
        if workflow is not None and workflow.status == "failed":
            logger.error(f"Step {step_id} failed for workflow {workflow_id}: {error}")
        return workflow

    async def control_workflow(
        self, workflow_id: str, request: Union[ControlRequest, Dict[str, Any]]
    ) -> WorkflowProgress | None:
        try:
            request = parse_control_request(request)
        except ValidationError as exc:
            raise WorkflowValidationError(f"Invalid control request: {exc}") from exc

        def apply(wf: WorkflowProgress) -> bool:
            if isinstance(request, PauseRequest):
                self._pause(wf)
            elif isinstance(request, ResumeRequest):
                self._resume(wf)
            elif isinstance(request, GotoRequest):
                self._goto(wf, request.step_index)
            elif isinstance(request, RestartRequest):
                self._restart(wf)
            elif isinstance(request, StopRequest):
                self._stop(wf)
            return True

        workflow = await self._mutate(workflow_id, request.action, apply)
        if workflow is not None:
            logger.info(f"Workflow {workflow_id} control action: {request.action}")
        return workflow

    # -- control transitions -------------------------------------------
    @staticmethod
    def _pause(wf: WorkflowProgress) -> None:
        if not (wf.can_pause and wf.status == "running"):
            raise InvalidTransition(wf.workflow_id, "pause", f"workflow is {wf.status}")
        wf.status = "paused"
        wf.can_pause, wf.can_resume = False, True
        step = wf.active_step
        if step is not None and step.status == "running":
            step.status = "paused"

    @staticmethod
    def _resume(wf: WorkflowProgress) -> None:
        if not (wf.can_resume and wf.status == "paused"):
            raise InvalidTransition(
                wf.workflow_id, "resume", f"workflow is {wf.status}"
            )
        wf.status = "running"
        wf.can_pause, wf.can_resume = True, False
        step = wf.active_step
        if step is not None and step.status == "paused":
            step.status = "running"

    def _goto(self, wf: WorkflowProgress, index: int) -> None:
        if not wf.allow_step_navigation:
            raise InvalidTransition(
                wf.workflow_id, "goto", "step navigation is disabled"
            )
        if not 0 <= index < len(wf.steps):
            raise InvalidTransition(
                wf.workflow_id, "goto", f"step index {index} is out of range"
            )
        step = wf.active_step
        if step is not None and step.status == "running":
            step.status = "paused"
        wf.status = "running"
        wf.can_pause, wf.can_resume = True, False
        self._activate(wf, index)

    def _restart(self, wf: WorkflowProgress) -> None:
        wf.steps = build_steps()
        wf.status = "running"
        wf.start_time = utcnow()
        wf.end_time = None
        wf.can_pause, wf.can_resume = True, False
        self._activate(wf, 0)

    @staticmethod
    def _stop(wf: WorkflowProgress) -> None:
        now = utcnow()
        step = wf.active_step
        if step is not None and step.status in ("running", "paused"):
            step.status = "failed"
            step.error = STOPPED_MESSAGE
            step.end_time = now
        wf.status = "failed"
        wf.end_time = now
        wf.can_pause, wf.can_resume = False, False

    # ------------------------------------------------------------------
    async def get_workflow_progress(self, workflow_id: str) -> WorkflowProgress | None:
        workflow = self._workflows.get(workflow_id)
        return workflow.model_copy(deep=True) if workflow is not None else None

    async def get_all_workflows(self) -> list[WorkflowProgress]:
        return [wf.model_copy(deep=True) for wf in self._workflows.values()]

    async def delete_workflow(self, workflow_id: str) -> bool:
        async with self._lock_for(workflow_id):
            existed = self._workflows.pop(workflow_id, None) is not None
            self._locks.pop(workflow_id, None)
        if existed:
            logger.info(f"Workflow {workflow_id} deleted")
        return existed

    async def purge_expired(self, retention: timedelta) -> list[str]:
        cutoff = utcnow() - retention
        expired = [
            wf.workflow_id
            for wf in list(self._workflows.values())
            if wf.is_terminal and wf.end_time is not None and wf.end_time <= cutoff
        ]
        for workflow_id in expired:
            await self.delete_workflow(workflow_id)
        if expired:
            logger.info(f"Purged {len(expired)} expired workflows")
        return expired
