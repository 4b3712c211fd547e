"""Workflow dispatcher: validation, runner supervision and control routing."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .automation import AutomatedRunner
from .collaborators import Collaborators
from .config import ContentFactoryConfig, load_config
from .contracts import (
    AutomatedRun,
    ControlRequest,
    WorkflowConfig,
    WorkflowProgress,
    parse_control_request,
    utcnow,
)
from .errors import WorkflowValidationError
from .execute import InteractiveRunner, RunToken
from .store import WorkflowStore, get_store

logger = logging.getLogger(__name__)

ConfigInput = Union[WorkflowConfig, Dict[str, Any]]


@dataclass
class ActiveRun:
    """A supervised interactive runner."""

    runner: InteractiveRunner
    token: RunToken
    task: asyncio.Task


class WorkflowDispatcher:
    """Service responsible for starting and controlling content workflows.

    Interactive workflows are registered in the store and advanced by a
    background :class:`InteractiveRunner` task; callers get the started
    record back immediately and observe progress by polling the store.
    """

    def __init__(
        self,
        collaborators: Collaborators,
        store: Optional[WorkflowStore] = None,
        config: Optional[ContentFactoryConfig] = None,
    ) -> None:
        self._collaborators = collaborators
        self._config = config or load_config()
        self._store = store or get_store()
        self._runs: Dict[str, ActiveRun] = {}
        self._workflow_configs: Dict[str, WorkflowConfig] = {}
        self._automated: Dict[str, AutomatedRunner] = {}

    @property
    def store(self) -> WorkflowStore:
        return self._store

    def validate_config(self, config: ConfigInput) -> WorkflowConfig:
        """Validate caller configuration.

        Raises:
            WorkflowValidationError: If required fields are missing or invalid.
        """
        if isinstance(config, WorkflowConfig):
            return config
        data = dict(config or {})
        if "content_per_day" not in data and "contentPerDay" not in data:
            data["content_per_day"] = self._config.runner.content_per_day
        try:
            return WorkflowConfig.model_validate(data)
        except ValidationError as exc:
            raise WorkflowValidationError(
                f"Invalid workflow configuration: {exc}"
            ) from exc

    # -- interactive workflows -----------------------------------------
    async def start_interactive(
        self, config: ConfigInput, workflow_id: Optional[str] = None
    ) -> WorkflowProgress:
        """Create, start and hand a workflow to a background runner.

        Returns as soon as the workflow record exists.
        """
        config = self.validate_config(config)
        await self._purge_expired()
        if workflow_id is not None:
            self._cancel_run(workflow_id)

        workflow = await self._store.initialize_workflow(workflow_id)
        workflow_id = workflow.workflow_id
        self._workflow_configs[workflow_id] = config
        workflow = await self._store.start_workflow(workflow_id)
        self._spawn(workflow_id, config)
        return workflow

    async def control(
        self, workflow_id: str, request: Union[ControlRequest, Dict[str, Any]]
    ) -> WorkflowProgress | None:
        """Apply a control action and keep the runner in step with it.

        ``stop`` cancels the runner; ``restart`` replaces it with a fresh one.
        """
        try:
            request = parse_control_request(request)
        except ValidationError as exc:
            raise WorkflowValidationError(f"Invalid control request: {exc}") from exc

        if request.action == "restart":
            self._cancel_run(workflow_id)
        workflow = await self._store.control_workflow(workflow_id, request)
        if workflow is None:
            return None

        if request.action == "stop":
            self._cancel_run(workflow_id)
        elif request.action == "restart":
            config = self._workflow_configs.get(workflow_id)
            if config is not None:
                self._spawn(workflow_id, config)
        return workflow

    async def stop_workflow(self, workflow_id: str) -> WorkflowProgress | None:
        return await self.control(workflow_id, {"action": "stop"})

    async def get_progress(self, workflow_id: str) -> WorkflowProgress | None:
        return await self._store.get_workflow_progress(workflow_id)

    async def delete_workflow(self, workflow_id: str) -> bool:
        self._cancel_run(workflow_id)
        self._workflow_configs.pop(workflow_id, None)
        return await self._store.delete_workflow(workflow_id)

    async def wait(self, workflow_id: str) -> WorkflowProgress | None:
        """Wait for the workflow's runner to finish, then return its record."""
        run = self._runs.get(workflow_id)
        if run is not None:
            await asyncio.gather(run.task, return_exceptions=True)
        return await self._store.get_workflow_progress(workflow_id)

    def is_running(self, workflow_id: str) -> bool:
        run = self._runs.get(workflow_id)
        return run is not None and not run.task.done()

    def _spawn(self, workflow_id: str, config: WorkflowConfig) -> None:
        token = RunToken(
            workflow_id, self._store, self._config.runner.pause_poll_interval
        )
        runner = InteractiveRunner(self._store, self._collaborators, config, token)
        task = asyncio.create_task(runner.run(), name=f"workflow-{workflow_id}")
        run = ActiveRun(runner=runner, token=token, task=task)
        self._runs[workflow_id] = run
        task.add_done_callback(lambda t: self._on_run_done(workflow_id, run))
        logger.info(f"Runner spawned for workflow {workflow_id}")

    def _on_run_done(self, workflow_id: str, run: ActiveRun) -> None:
        if self._runs.get(workflow_id) is run:
            del self._runs[workflow_id]
        if run.task.cancelled():
            logger.info(f"Runner for workflow {workflow_id} was cancelled")
            return
        exc = run.task.exception()
        if exc is not None:
            logger.error(
                f"Runner for workflow {workflow_id} crashed: {exc!r}", exc_info=exc
            )

    def _cancel_run(self, workflow_id: str) -> None:
        run = self._runs.pop(workflow_id, None)
        if run is None:
            return
        run.token.cancel()
        if not run.task.done():
            run.task.cancel()
        logger.info(f"Runner for workflow {workflow_id} cancellation requested")

    async def _purge_expired(self) -> None:
        retention = self._config.store.retention_seconds
        if retention is None:
            return
        for workflow_id in await self._store.purge_expired(
            timedelta(seconds=retention)
        ):
            self._workflow_configs.pop(workflow_id, None)

        cutoff = utcnow() - timedelta(seconds=retention)
        expired = [
            run_id
            for run_id, runner in self._automated.items()
            if runner.record.finished_at is not None
            and runner.record.finished_at <= cutoff
        ]
        for run_id in expired:
            del self._automated[run_id]
        if expired:
            logger.info(f"Purged {len(expired)} expired automated runs")

    # -- automated runs ------------------------------------------------
    async def start_automated(self, config: ConfigInput) -> AutomatedRun:
        """Schedule a staggered, unmonitored content cycle."""
        config = self.validate_config(config)
        await self._purge_expired()
        runner = AutomatedRunner(
            self._collaborators, config, self._config.runner.stagger_seconds
        )
        record = await runner.start()
        self._automated[record.run_id] = runner
        return record.model_copy(deep=True)

    def get_automated_run(self, run_id: str) -> AutomatedRun | None:
        runner = self._automated.get(run_id)
        return runner.record.model_copy(deep=True) if runner is not None else None

    def stop_automated(self, run_id: str) -> bool:
        runner = self._automated.get(run_id)
        if runner is None:
            return False
        runner.stop()
        return True

    async def wait_automated(self, run_id: str) -> AutomatedRun | None:
        runner = self._automated.get(run_id)
        if runner is None:
            return None
        return (await runner.wait()).model_copy(deep=True)

    async def shutdown(self) -> None:
        """Cancel all runners and wait for them to unwind."""
        tasks = [run.task for run in self._runs.values()]
        for workflow_id in list(self._runs):
            self._cancel_run(workflow_id)
        for runner in self._automated.values():
            runner.stop()
        waits = [runner.wait() for runner in self._automated.values()]
        await asyncio.gather(*tasks, *waits, return_exceptions=True)
        logger.info("Dispatcher shut down")
