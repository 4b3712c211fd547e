"""Run an interactive workflow, pause it halfway and resume it."""

import asyncio

from contentfactory import WorkflowDispatcher, simulated_collaborators
from contentfactory.store import InMemoryWorkflowStore


async def main():
    dispatcher = WorkflowDispatcher(
        simulated_collaborators(latency=0.2), store=InMemoryWorkflowStore()
    )
    workflow = await dispatcher.start_interactive(
        {"platforms": ["youtube", "tiktok"], "contentPerDay": 2}
    )
    workflow_id = workflow.workflow_id
    print(f"Started {workflow_id}")

    await asyncio.sleep(0.5)
    paused = await dispatcher.control(workflow_id, {"action": "pause"})
    print(f"Paused at {paused.steps[paused.current_step_index].name}")

    await asyncio.sleep(1)
    await dispatcher.control(workflow_id, {"action": "resume"})

    final = await dispatcher.wait(workflow_id)
    print(final.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
