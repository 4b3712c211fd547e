import asyncio

import pytest

from contentfactory.collaborators import CallLog, simulated_collaborators
from contentfactory.config import ContentFactoryConfig, RunnerConfig, StoreConfig
from contentfactory.contracts import ScanResult
from contentfactory.store import InMemoryWorkflowStore


class GatedScanner:
    """Scanner that blocks until the test releases it."""

    def __init__(self, log: CallLog, stage: str = "trend-scan") -> None:
        self.log = log
        self.stage = stage
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def scan(self) -> ScanResult:
        self.log.calls.append(self.stage)
        self.entered.set()
        await self.release.wait()
        return ScanResult(trends_found=3, niches_analyzed=2)


@pytest.fixture
def store():
    return InMemoryWorkflowStore()


@pytest.fixture
def fast_config():
    return ContentFactoryConfig(
        store=StoreConfig(retention_seconds=None),
        runner=RunnerConfig(stagger_seconds=0, pause_poll_interval=0.01),
    )


@pytest.fixture
def call_log():
    return CallLog()


@pytest.fixture
def collaborators(call_log):
    return simulated_collaborators(log=call_log)


@pytest.fixture
def gated_collaborators(call_log):
    """Collaborators whose trend scan waits on ``collabs.trend_scanner.release``."""
    collabs = simulated_collaborators(log=call_log)
    collabs.trend_scanner = GatedScanner(call_log)
    return collabs
