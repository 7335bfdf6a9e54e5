"""File-backed local cache for tracked collections.

Each cache key is one JSON array file in ``.storefront/cache/``, the
device-scoped equivalent of a browser's local storage.  Writes go through
``atomic_write()`` under a per-key file lock.

Failures never propagate: a value that cannot be read is treated as
absent, and a value that cannot be written is logged and dropped.  The
in-memory collection stays authoritative for the running session.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from storefront.storage.fs import atomic_write
from storefront.storage.locks import LockTimeout, store_lock

logger = logging.getLogger(__name__)


class LocalCache:
    """Load and persist JSON arrays keyed by collection name."""

    def __init__(self, store_dir: Path) -> None:
        self.cache_dir = store_dir / "cache"
        self.locks_dir = store_dir / "locks"
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.locks_dir.mkdir(parents=True, exist_ok=True)

    def has(self, key: str) -> bool:
        return self._path(key).exists()

    def read(self, key: str) -> list[dict]:
        """Return the stored array for *key*, or ``[]``.

        A corrupt or non-array value is discarded (the file is removed) so
        the next write starts clean.
        """
        path = self._path(key)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.error("discarding corrupt cache entry '%s': %s", key, exc)
            self.remove(key)
            return []
        except OSError as exc:
            logger.error("could not read cache entry '%s': %s", key, exc)
            return []
        if not isinstance(data, list):
            logger.error("discarding cache entry '%s': expected a list", key)
            self.remove(key)
            return []
        return [row for row in data if isinstance(row, dict)]

    def write(self, key: str, rows: list[dict]) -> bool:
        """Persist *rows* under *key*.  Returns ``False`` on failure."""
        try:
            payload = json.dumps(rows, sort_keys=True, indent=2) + "\n"
            with store_lock(self.locks_dir, key):
                atomic_write(self._path(key), payload)
        except (OSError, LockTimeout, TypeError, ValueError) as exc:
            logger.error("could not write cache entry '%s': %s", key, exc)
            return False
        return True

    def remove(self, key: str) -> None:
        """Delete the stored value for *key*, if any."""
        try:
            with store_lock(self.locks_dir, key):
                self._path(key).unlink(missing_ok=True)
        except (OSError, LockTimeout) as exc:
            logger.error("could not remove cache entry '%s': %s", key, exc)

    def keys(self) -> list[str]:
        """Return all stored cache keys."""
        if not self.cache_dir.exists():
            return []
        return sorted(path.stem for path in self.cache_dir.glob("*.json"))

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"
