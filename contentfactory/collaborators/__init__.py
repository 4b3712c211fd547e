"""External services consumed by content workflow runners."""

from __future__ import annotations

from .base import (
    AnalyticsService,
    Collaborators,
    ContentGenerator,
    MarketScanner,
    NicheSource,
    Publisher,
)
from .simulated import CallLog, SimulatedFailure, simulated_collaborators

__all__ = [
    "AnalyticsService",
    "CallLog",
    "Collaborators",
    "ContentGenerator",
    "MarketScanner",
    "NicheSource",
    "Publisher",
    "SimulatedFailure",
    "simulated_collaborators",
]
