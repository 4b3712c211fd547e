"""Command line interface for running content workflows locally."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import typer

from contentfactory.catalog import STEP_CATALOG
from contentfactory.collaborators import simulated_collaborators
from contentfactory.config import load_config
from contentfactory.contracts import AutomatedRun, WorkflowProgress
from contentfactory.dispatch import WorkflowDispatcher
from contentfactory.errors import WorkflowValidationError
from contentfactory.store import InMemoryWorkflowStore

app = typer.Typer(help="CLI for contentfactory workflows")

workflow_app = typer.Typer(help="Commands for running workflows")

app.add_typer(workflow_app, name="workflow")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, help="Logging level; defaults to the configured log_level"
    ),
) -> None:
    """contentfactory CLI entry point."""
    config = load_config()
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("steps")
def steps() -> None:
    """List the pipeline steps every workflow goes through."""
    for index, definition in enumerate(STEP_CATALOG):
        typer.echo(f"{index}\t{definition.id}\t{definition.name}")


def _config_data(
    platform: Optional[List[str]],
    content_per_day: int,
    strategy: str,
    custom_niche: Optional[List[str]],
) -> Dict[str, Any]:
    return {
        "platforms": platform or [],
        "content_per_day": content_per_day,
        "niche_selection": strategy,
        "custom_niches": custom_niche or [],
    }


def _print_workflow(workflow: WorkflowProgress) -> None:
    typer.echo(
        f"Workflow {workflow.workflow_id}: {workflow.status} "
        f"({workflow.overall_progress:.1f}%)"
    )
    for step in workflow.steps:
        line = f"- {step.id}: {step.status} ({step.progress}%)"
        if step.error:
            line += f" error: {step.error}"
        typer.echo(line)


async def _run_interactive(
    dispatcher: WorkflowDispatcher,
    config: Dict[str, Any],
    workflow_id: Optional[str],
) -> WorkflowProgress:
    workflow = await dispatcher.start_interactive(config, workflow_id)
    typer.echo(f"Workflow {workflow.workflow_id} started")
    last_seen = None
    while dispatcher.is_running(workflow.workflow_id):
        snapshot = await dispatcher.get_progress(workflow.workflow_id)
        if snapshot is not None:
            marker = (snapshot.current_step_index, round(snapshot.overall_progress))
            if marker != last_seen:
                step = snapshot.steps[snapshot.current_step_index]
                typer.echo(f"  [{marker[1]:>3}%] {step.name}")
                last_seen = marker
        await asyncio.sleep(0.05)
    return await dispatcher.wait(workflow.workflow_id)


@workflow_app.command("run")
def workflow_run(
    platform: Optional[List[str]] = typer.Option(
        None, "--platform", "-p", help="Target platform (repeatable)"
    ),
    content_per_day: int = typer.Option(1, help="Number of pieces to produce"),
    strategy: str = typer.Option(
        "trending", help="Niche selection: trending, emerging, stable or custom"
    ),
    custom_niche: Optional[List[str]] = typer.Option(
        None, help="Niche name for the custom strategy (repeatable)"
    ),
    workflow_id: Optional[str] = typer.Option(None, help="Explicit workflow id"),
    fail_at: Optional[str] = typer.Option(
        None, help="Make one simulated service fail, e.g. 'video'"
    ),
    latency: float = typer.Option(0.0, help="Seconds each simulated call takes"),
    as_json: bool = typer.Option(False, "--json", help="Print the final record as JSON"),
) -> None:
    """
    Run one interactive workflow against simulated services.

    Progress is printed while the runner advances; the final state of every
    step is shown at the end. Exits with code 1 if the workflow failed.

    Example:
        contentfactory workflow run -p youtube -p tiktok --content-per-day 2
        contentfactory workflow run -p youtube --fail-at video
    """
    settings = load_config()
    try:
        collaborators = simulated_collaborators(latency=latency, fail_at=fail_at)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    dispatcher = WorkflowDispatcher(
        collaborators, store=InMemoryWorkflowStore(), config=settings
    )
    config = _config_data(platform, content_per_day, strategy, custom_niche)
    try:
        workflow = asyncio.run(_run_interactive(dispatcher, config, workflow_id))
    except WorkflowValidationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(workflow.model_dump_json(by_alias=True, indent=2))
    else:
        _print_workflow(workflow)
    if workflow.status == "failed":
        raise typer.Exit(code=1)


async def _run_automated(
    dispatcher: WorkflowDispatcher, config: Dict[str, Any]
) -> AutomatedRun:
    record = await dispatcher.start_automated(config)
    typer.echo(
        f"Automated run {record.run_id} scheduled {record.scheduled} attempts: "
        f"{', '.join(record.niches) or '(none)'}"
    )
    return await dispatcher.wait_automated(record.run_id)


@workflow_app.command("automate")
def workflow_automate(
    platform: Optional[List[str]] = typer.Option(
        None, "--platform", "-p", help="Target platform (repeatable)"
    ),
    content_per_day: int = typer.Option(1, help="Number of attempts to schedule"),
    strategy: str = typer.Option("trending", help="Niche selection strategy"),
    custom_niche: Optional[List[str]] = typer.Option(None, help="Custom niche name"),
    stagger: Optional[float] = typer.Option(
        None, help="Seconds between attempts; defaults to the configured value"
    ),
    fail_at: Optional[str] = typer.Option(None, help="Make one simulated service fail"),
) -> None:
    """
    Run an automated content cycle against simulated services.

    Attempts are staggered and unmonitored; the command waits for all of
    them and reports how many succeeded and failed.
    """
    settings = load_config()
    if stagger is not None:
        settings.runner.stagger_seconds = stagger
    try:
        collaborators = simulated_collaborators(fail_at=fail_at)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    dispatcher = WorkflowDispatcher(
        collaborators, store=InMemoryWorkflowStore(), config=settings
    )
    config = _config_data(platform, content_per_day, strategy, custom_niche)
    try:
        record = asyncio.run(_run_automated(dispatcher, config))
    except WorkflowValidationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(
        f"Automated run {record.run_id}: {record.status}, "
        f"{record.succeeded} succeeded, {record.failed} failed"
    )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
