"""In-memory key-value store for tests and ephemeral runs."""

from __future__ import annotations

import copy
import json
import logging

from recipe_market.adapters.storage.base import (
    AbstractKeyValueStore,
    JSONValue,
    ensure_within_quota,
)
from recipe_market.core.errors import StorageAppError

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dictionary-backed store with the same quota semantics as the file store.

    Values round-trip through JSON on the way in and are copied on the way out,
    so callers can never mutate persisted state by holding a reference.
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self._max_bytes = max_bytes
        self._data: dict[str, JSONValue] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueStore(keys={len(self._data)}, max_bytes={self._max_bytes})"

    async def get(self, key: str) -> JSONValue | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: JSONValue) -> None:
        try:
            encoded = json.loads(json.dumps(value))
        except (TypeError, ValueError) as exc:
            raise StorageAppError(
                code="storage_unserializable",
                message=f"Value for '{key}' is not JSON serializable",
            ) from exc

        candidate = dict(self._data)
        candidate[key] = encoded
        ensure_within_quota(candidate, key, self._max_bytes)

        self._data[key] = encoded
        logger.debug("store.set", extra={"store_key": key, "backend": "memory"})

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)
