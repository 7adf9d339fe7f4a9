"""Configuration package."""

from finance_tracker.config.settings import (
    EngineSettings,
    StorageBackend,
    get_settings,
)

__all__ = [
    "EngineSettings",
    "StorageBackend",
    "get_settings",
]
