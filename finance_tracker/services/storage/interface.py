"""
Abstract Storage Interface

DESIGN DECISION: The ledger talks to storage through a minimal key/value
contract: get(key) and set(key, value). This allows us to:
1. Use in-memory storage for tests and throwaway sessions
2. Persist to JSON files on disk
3. Swap in any other backend without touching ledger logic

Values are JSON text. Serialization is the caller's job; a backend only
stores and returns strings.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorage(ABC):
    """
    Abstract interface for key/value storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Returns:
            The stored text, or None if the key was never set

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            StorageError: If the write fails (quota, I/O, ...)
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class QuotaExceededError(StorageError):
    """The backend refused a write because it is full."""
    pass


class CorruptValueError(StorageError):
    """A stored value exists but cannot be decoded as text."""
    pass
