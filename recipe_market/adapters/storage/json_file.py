"""File-backed key-value store.

All keys live in one JSON document, the way a browser keeps one storage area
per origin, so the quota applies to the whole store rather than per key.

- a missing or unparsable file reads as an empty store
- writes go to a temporary file that atomically replaces the original
- writes are serialized with an asyncio lock; blocking I/O runs in a thread
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from recipe_market.adapters.storage.base import (
    AbstractKeyValueStore,
    JSONValue,
    ensure_within_quota,
)
from recipe_market.core.errors import StorageAppError

logger = logging.getLogger(__name__)


class JsonFileKeyValueStore(AbstractKeyValueStore):
    """Persist every key in a single JSON file."""

    def __init__(self, path: str | Path, max_bytes: int | None = None) -> None:
        self._path = Path(path)
        self._max_bytes = max_bytes
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"JsonFileKeyValueStore(path={str(self._path)!r}, max_bytes={self._max_bytes})"

    def _read_snapshot(self) -> dict[str, Any]:
        """Load the whole document, treating missing or corrupt data as empty."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path, encoding="utf-8") as handle:
                raw = json.load(handle)
        except json.JSONDecodeError:
            logger.warning("store.corrupt_file", extra={"store_path": str(self._path)})
            return {}
        except OSError as exc:
            raise StorageAppError(
                code="storage_read_failed",
                message=f"Could not read {self._path.name}",
            ) from exc

        if not isinstance(raw, dict):
            logger.warning("store.corrupt_file", extra={"store_path": str(self._path)})
            return {}
        return raw

    def _write_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(snapshot, handle, ensure_ascii=False, separators=(",", ":"))
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _set_sync(self, key: str, value: JSONValue) -> None:
        snapshot = self._read_snapshot()
        snapshot[key] = value
        try:
            ensure_within_quota(snapshot, key, self._max_bytes)
            self._write_snapshot(snapshot)
        except (TypeError, ValueError) as exc:
            raise StorageAppError(
                code="storage_unserializable",
                message=f"Value for '{key}' is not JSON serializable",
            ) from exc
        except OSError as exc:
            raise StorageAppError(
                code="storage_write_failed",
                message=f"Could not write {self._path.name}",
            ) from exc

    def _delete_sync(self, key: str) -> None:
        snapshot = self._read_snapshot()
        if key not in snapshot:
            return
        del snapshot[key]
        try:
            self._write_snapshot(snapshot)
        except OSError as exc:
            raise StorageAppError(
                code="storage_write_failed",
                message=f"Could not write {self._path.name}",
            ) from exc

    async def get(self, key: str) -> JSONValue | None:
        async with self._lock:
            snapshot = await asyncio.to_thread(self._read_snapshot)
        return snapshot.get(key)

    async def set(self, key: str, value: JSONValue) -> None:
        async with self._lock:
            await asyncio.to_thread(self._set_sync, key, value)
        logger.debug("store.set", extra={"store_key": key, "backend": "file"})

    async def delete(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._delete_sync, key)
