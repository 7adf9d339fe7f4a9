"""
Services Package

External collaborators of the ledger. Currently only storage.
"""

from finance_tracker.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
    QuotaExceededError,
    StorageError,
)

__all__ = [
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "QuotaExceededError",
    "StorageError",
]
