"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Process configuration (where data lives, how logs look)
is kept separate from the user's display preferences (AppSettings).
Display preferences are user data and live in storage next to the ledger.
Everything here comes from the environment or a .env file.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackend(str, Enum):
    """Available key/value storage backends."""
    MEMORY = "memory"
    FILE = "file"


class EngineSettings(BaseSettings):
    """
    Main engine settings.

    Loads configuration from FINANCE_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Storage
    storage_backend: StorageBackend = Field(
        default=StorageBackend.FILE,
        description="Where the ledger state is persisted"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the JSON file backend"
    )
    key_prefix: str = Field(
        default="financial_dashboard_",
        min_length=1,
        description="Namespace prefix for every storage key"
    )

    # Display
    default_currency: str = Field(
        default="USD",
        description="Currency used when stored settings do not name one"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False = human readable console output)"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        """Currency codes are stored upper case."""
        return v.strip().upper()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> EngineSettings:
    """
    Get engine settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return EngineSettings()
