"""Interfaces of the external services a content workflow drives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from ..contracts import ContentItem, Niche, ScanResult


class MarketScanner(Protocol):
    """Trend scan or niche refresh service."""

    async def scan(self) -> ScanResult:
        """Scan the market and report how much was found."""


class NicheSource(Protocol):
    """Read access to stored niche records."""

    async def list_niches(self) -> List[Niche]:
        """Return candidate niches."""


class ContentGenerator(Protocol):
    """AI generation service for lyrics, music, avatars or videos."""

    async def generate(self, input: Dict[str, Any]) -> str:
        """Return generated text or the URL of a generated asset."""


class Publisher(Protocol):
    async def publish(self, content: ContentItem, platforms: List[str]) -> None:
        """Publish finished content to the given platforms."""


class AnalyticsService(Protocol):
    async def setup(self, content: ContentItem) -> None:
        """Start performance tracking for published content."""


@dataclass
class Collaborators:
    """Everything a runner needs to produce content."""

    trend_scanner: MarketScanner
    niche_refresher: MarketScanner
    niche_source: NicheSource
    lyrics: ContentGenerator
    music: ContentGenerator
    avatar: ContentGenerator
    video: ContentGenerator
    publisher: Publisher
    analytics: AnalyticsService
