"""Key/value blob stores for the persisted analytics snapshot.

The engine only needs ``load(key)`` and ``save(key, data)``.  Two stores
ship here: an in-process ``MemoryStore`` (tests, ephemeral sessions) and a
``JsonFileStore`` that keeps one JSON file per key in a directory.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
DEFAULT_STORE_DIR = Path(os.environ.get("CHAT_ANALYTICS_DIR", "chat_analytics"))

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class StoreError(Exception):
    """Raised when a store cannot read or write a blob."""


class SnapshotStore(Protocol):
    def load(self, key: str) -> bytes | None: ...

    def save(self, key: str, data: bytes) -> None: ...


class MemoryStore:
    """Dict-backed store; contents live as long as the instance."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._blobs: dict[str, bytes] = dict(initial or {})

    def load(self, key: str) -> bytes | None:
        return self._blobs.get(key)

    def save(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)


class JsonFileStore:
    """Store each key as ``<directory>/<key>.json``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crash never leaves a half-written blob.
    """

    def __init__(self, directory: str | Path = DEFAULT_STORE_DIR) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StoreError(f"Invalid store key: {key!r}")
        return self.directory / f"{key}.json"

    def load(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"Cannot read {path}: {exc}") from exc

    def save(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{key}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreError(f"Cannot write {path}: {exc}") from exc
        logger.debug("Saved %d bytes to %s", len(data), path)
