"""In-memory storage backend, for tests and ephemeral sessions."""

from typing import Optional

from finance_tracker.services.storage.interface import (
    KeyValueStorage,
    QuotaExceededError,
)


class InMemoryStorage(KeyValueStorage):
    """
    Dict-backed key/value storage.

    An optional quota (total UTF-8 bytes of all values) mimics the size
    limit of browser local storage, so write failures can be exercised.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            used = sum(
                len(v.encode("utf-8")) for k, v in self._data.items() if k != key
            )
            if used + len(value.encode("utf-8")) > self._quota_bytes:
                raise QuotaExceededError(
                    f"Writing {key} would exceed the {self._quota_bytes} byte quota"
                )
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data)
