"""Workflow store state machine tests."""

import asyncio
from datetime import timedelta

import pytest

from contentfactory.catalog import STEP_IDS
from contentfactory.contracts import utcnow
from contentfactory.errors import InvalidTransition
from contentfactory.store import InMemoryWorkflowStore


def _running(workflow):
    return [step for step in workflow.steps if step.status == "running"]


def _mean(workflow):
    return sum(step.progress for step in workflow.steps) / len(workflow.steps)


async def _started(store, workflow_id="w1"):
    await store.initialize_workflow(workflow_id)
    return await store.start_workflow(workflow_id)


@pytest.mark.asyncio
async def test_initialize_workflow(store):
    wf = await store.initialize_workflow("w1")

    assert wf.workflow_id == "w1"
    assert len(wf.steps) == 9
    assert [s.id for s in wf.steps] == list(STEP_IDS)
    assert wf.status == "initializing"
    assert wf.overall_progress == 0
    assert all(s.status == "pending" and s.progress == 0 for s in wf.steps)
    assert wf.can_pause and not wf.can_resume
    assert wf.allow_step_navigation


@pytest.mark.asyncio
async def test_initialize_generates_id_and_overwrites(store):
    generated = await store.initialize_workflow()
    assert generated.workflow_id

    await _started(store, "w1")
    await store.update_step_progress("w1", "market-analysis", 40)
    fresh = await store.initialize_workflow("w1")

    assert fresh.status == "initializing"
    assert fresh.overall_progress == 0
    assert len(await store.get_all_workflows()) == 2


@pytest.mark.asyncio
async def test_start_workflow_activates_first_step(store):
    wf = await _started(store)

    assert wf.status == "running"
    assert wf.steps[0].status == "running"
    assert wf.steps[0].start_time is not None
    assert wf.current_step_index == 0
    assert len(_running(wf)) == 1


@pytest.mark.asyncio
async def test_start_twice_is_rejected(store):
    await _started(store)
    with pytest.raises(InvalidTransition):
        await store.start_workflow("w1")


@pytest.mark.asyncio
async def test_update_step_progress_recomputes_overall(store):
    await _started(store)
    wf = await store.update_step_progress(
        "w1", "market-analysis", 50, data={"note": "halfway"}
    )

    assert wf.steps[0].progress == 50
    assert wf.steps[0].status == "running"
    assert wf.steps[0].data == {"note": "halfway"}
    assert wf.overall_progress == pytest.approx(50 / 9)
    assert round(wf.overall_progress, 2) == 5.56


@pytest.mark.asyncio
async def test_update_step_progress_clamps(store):
    await _started(store)
    high = await store.update_step_progress("w1", "market-analysis", 250)
    assert high.steps[0].progress == 100
    low = await store.update_step_progress("w1", "market-analysis", -20)
    assert low.steps[0].progress == 0


@pytest.mark.asyncio
async def test_update_unknown_step_returns_unchanged_record(store):
    before = await _started(store)
    after = await store.update_step_progress("w1", "no-such-step", 70)

    assert after is not None
    assert after.model_dump() == before.model_dump()


@pytest.mark.asyncio
async def test_complete_step_advances(store):
    await _started(store)
    wf = await store.complete_step("w1", "market-analysis", {"trendsFound": 3})

    assert wf.steps[0].status == "completed"
    assert wf.steps[0].progress == 100
    assert wf.steps[0].end_time is not None
    assert wf.steps[0].data == {"trendsFound": 3}
    assert wf.steps[1].status == "running"
    assert wf.current_step_index == 1
    assert wf.overall_progress == pytest.approx(100 / 9)
    assert round(wf.overall_progress, 2) == 11.11


@pytest.mark.asyncio
async def test_completing_last_step_completes_workflow(store):
    await _started(store)
    for step_id in STEP_IDS:
        wf = await store.complete_step("w1", step_id)
        assert wf.overall_progress == pytest.approx(_mean(wf))

    assert wf.status == "completed"
    assert wf.end_time is not None
    assert wf.can_pause is False
    assert wf.can_resume is False
    assert wf.overall_progress == 100
    assert _running(wf) == []


@pytest.mark.asyncio
async def test_fail_step_is_terminal(store):
    await _started(store)
    wf = await store.fail_step("w1", "video-assembly", "timeout")

    assert wf.steps[6].status == "failed"
    assert wf.steps[6].error == "timeout"
    assert wf.steps[6].end_time is not None
    assert wf.status == "failed"
    assert wf.steps[7].status == "pending"

    with pytest.raises(InvalidTransition) as excinfo:
        await store.complete_step("w1", "market-analysis")
    assert excinfo.value.workflow.status == "failed"

    still = await store.get_workflow_progress("w1")
    assert still.status == "failed"
    assert still.steps[0].status == "running"


@pytest.mark.asyncio
async def test_terminal_workflow_rejects_every_mutation(store):
    await _started(store)
    for step_id in STEP_IDS:
        await store.complete_step("w1", step_id)

    with pytest.raises(InvalidTransition):
        await store.update_step_progress("w1", "publishing", 10)
    with pytest.raises(InvalidTransition):
        await store.fail_step("w1", "publishing", "late")
    with pytest.raises(InvalidTransition):
        await store.control_workflow("w1", {"action": "goto", "stepIndex": 2})

    assert (await store.get_workflow_progress("w1")).status == "completed"


@pytest.mark.asyncio
async def test_unknown_workflow_returns_none(store):
    assert await store.start_workflow("missing") is None
    assert await store.update_step_progress("missing", "market-analysis", 1) is None
    assert await store.complete_step("missing", "market-analysis") is None
    assert await store.fail_step("missing", "market-analysis", "x") is None
    assert await store.control_workflow("missing", {"action": "pause"}) is None
    assert await store.get_workflow_progress("missing") is None
    assert await store.delete_workflow("missing") is False


@pytest.mark.asyncio
async def test_reads_are_snapshots(store):
    await _started(store)
    snapshot = await store.get_workflow_progress("w1")
    snapshot.steps[0].progress = 99
    snapshot.status = "completed"

    stored = await store.get_workflow_progress("w1")
    assert stored.steps[0].progress == 0
    assert stored.status == "running"


@pytest.mark.asyncio
async def test_concurrent_updates_do_not_lose_writes(store):
    await _started(store)
    await asyncio.gather(
        *(
            store.update_step_progress("w1", step_id, 30)
            for step_id in STEP_IDS
        ),
        store.control_workflow("w1", {"action": "pause"}),
    )
    wf = await store.get_workflow_progress("w1")
    assert all(step.progress == 30 for step in wf.steps)
    assert wf.overall_progress == pytest.approx(30)
    assert wf.status == "paused"


@pytest.mark.asyncio
async def test_delete_and_list(store):
    await store.initialize_workflow("a")
    await store.initialize_workflow("b")

    assert {wf.workflow_id for wf in await store.get_all_workflows()} == {"a", "b"}
    assert await store.delete_workflow("a") is True
    assert await store.get_workflow_progress("a") is None
    assert [wf.workflow_id for wf in await store.get_all_workflows()] == ["b"]


@pytest.mark.asyncio
async def test_mutation_queued_behind_delete_sees_missing_workflow(store):
    await _started(store)
    lock = store._lock_for("w1")
    await lock.acquire()

    deleting = asyncio.create_task(store.delete_workflow("w1"))
    updating = asyncio.create_task(
        store.update_step_progress("w1", "market-analysis", 40)
    )
    await asyncio.sleep(0)
    lock.release()

    assert await deleting is True
    assert await updating is None
    assert "w1" not in store._locks
    assert await store.get_workflow_progress("w1") is None


@pytest.mark.asyncio
async def test_purge_expired_only_removes_old_terminal_workflows(store):
    await _started(store, "old-failed")
    await store.fail_step("old-failed", "market-analysis", "boom")
    await _started(store, "fresh-failed")
    await store.fail_step("fresh-failed", "market-analysis", "boom")
    await _started(store, "running")

    store._workflows["old-failed"].end_time = utcnow() - timedelta(hours=2)

    purged = await store.purge_expired(timedelta(hours=1))

    assert purged == ["old-failed"]
    remaining = {wf.workflow_id for wf in await store.get_all_workflows()}
    assert remaining == {"fresh-failed", "running"}


@pytest.mark.asyncio
async def test_wire_format_uses_camel_case(store):
    await _started(store)
    await store.update_step_progress("w1", "market-analysis", 45)
    payload = (await store.get_workflow_progress("w1")).model_dump(
        by_alias=True, mode="json"
    )

    assert payload["workflowId"] == "w1"
    assert payload["currentStepIndex"] == 0
    assert payload["overallProgress"] == pytest.approx(5)
    assert payload["canPause"] is True
    assert payload["allowStepNavigation"] is True
    assert payload["steps"][0]["startTime"] is not None
    assert payload["steps"][0]["progress"] == 45


def test_store_instances_are_isolated():
    first = InMemoryWorkflowStore()
    second = InMemoryWorkflowStore()
    asyncio.run(first.initialize_workflow("x"))
    assert asyncio.run(second.get_workflow_progress("x")) is None
