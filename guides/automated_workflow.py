"""Schedule a staggered automated run and wait for every attempt."""

import asyncio

from contentfactory import WorkflowDispatcher, simulated_collaborators
from contentfactory.config import load_config
from contentfactory.store import InMemoryWorkflowStore


async def main():
    config = load_config()
    config.runner.stagger_seconds = 2

    dispatcher = WorkflowDispatcher(
        simulated_collaborators(latency=0.1),
        store=InMemoryWorkflowStore(),
        config=config,
    )
    record = await dispatcher.start_automated(
        {"platforms": ["youtube"], "contentPerDay": 3, "nicheSelection": "emerging"}
    )
    print(f"Scheduled {record.scheduled} attempts for {record.niches}")

    final = await dispatcher.wait_automated(record.run_id)
    print(f"{final.succeeded} succeeded, {final.failed} failed")


if __name__ == "__main__":
    asyncio.run(main())
