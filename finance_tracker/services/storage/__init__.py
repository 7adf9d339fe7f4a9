"""
Storage Services Package

Provides the key/value storage interface and its implementations.
In-memory for tests, JSON files for local persistence.
"""

from finance_tracker.services.storage.interface import (
    CorruptValueError,
    KeyValueStorage,
    QuotaExceededError,
    StorageError,
)
from finance_tracker.services.storage.json_file import JsonFileStorage
from finance_tracker.services.storage.memory import InMemoryStorage

__all__ = [
    # Interface
    "KeyValueStorage",
    # Exceptions
    "CorruptValueError",
    "QuotaExceededError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
