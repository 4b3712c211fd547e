"""Workflow progress stores."""

from __future__ import annotations

import os
from typing import Optional

from ..config import ContentFactoryConfig, load_config
from .inmemory import InMemoryWorkflowStore
from .repository import WorkflowStore

_store_instance: WorkflowStore | None = None


def get_store(
    backend: Optional[str] = None, config: Optional[ContentFactoryConfig] = None
) -> WorkflowStore:
    """Factory function to obtain the process-wide workflow store.

    The backend is taken from ``backend``, the ``CONTENTFACTORY_STORE``
    environment variable or the loaded configuration. The instance is cached
    so API handlers and runners in one process share a registry.
    """

    global _store_instance
    if _store_instance is not None and backend is None and config is None:
        return _store_instance

    config = config or load_config()
    backend = (
        backend or os.getenv("CONTENTFACTORY_STORE") or config.store.backend
    ).lower()

    if backend == "inmemory":
        _store_instance = InMemoryWorkflowStore()
    else:
        raise ValueError(f"Unsupported store backend: {backend}")
    return _store_instance


__all__ = ["WorkflowStore", "InMemoryWorkflowStore", "get_store"]
