"""
JSON File Storage Implementation

DESIGN DECISION: One file per key inside a data directory.
1. Users can open and read their data directly
2. No database setup required
3. Each collection is written independently, exactly like the browser
   storage the dashboard was built on

TRADEOFFS:
- No multi-key transactions (the ledger handles this with careful
  ordering and rollback)
- Whole-collection rewrites (fine for personal-scale data)

Writes go to a temporary file first and are moved into place with
os.replace, so a crash never leaves a half-written file behind.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from finance_tracker.services.storage.interface import (
    CorruptValueError,
    KeyValueStorage,
    StorageError,
)


logger = structlog.get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")
_SUFFIX = ".json"


class JsonFileStorage(KeyValueStorage):
    """File-per-key storage rooted at a directory."""

    def __init__(self, directory: Path):
        self._directory = Path(directory)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._directory}: {e}")

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}{_SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptValueError(f"{key} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except (OSError, UnicodeEncodeError) as e:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            raise StorageError(f"Failed to write {key}: {e}") from e
        logger.debug("storage_write", key=key, bytes=len(value))

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}")

    def keys(self) -> list[str]:
        return sorted(
            p.name[: -len(_SUFFIX)]
            for p in self._directory.glob(f"*{_SUFFIX}")
            if not p.name.startswith(".")
        )
