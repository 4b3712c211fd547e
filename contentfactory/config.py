from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """Workflow store settings."""

    backend: Literal["inmemory"] = "inmemory"
    retention_seconds: Optional[float] = Field(default=3600, ge=0)


class RunnerConfig(BaseModel):
    """Runner timing and volume settings."""

    content_per_day: int = Field(default=1, ge=1)
    stagger_seconds: float = Field(default=30, ge=0)
    pause_poll_interval: float = Field(default=0.5, gt=0)


class ContentFactoryConfig(BaseModel):
    """Top-level configuration model."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> ContentFactoryConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to CONTENTFACTORY_CONFIG
            env variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("CONTENTFACTORY_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ContentFactoryConfig(**data)
    else:
        config = ContentFactoryConfig()

    env_level = os.getenv("CONTENTFACTORY_LOG_LEVEL")
    if env_level:
        config.log_level = env_level.upper()
    return config
