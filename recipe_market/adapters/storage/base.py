"""Key-value store interface used by the listing cache and history service.

Values are JSON-compatible Python objects. Stores enforce an optional byte
quota over the serialized size of all keys together, raising
``QuotaExceededError`` so callers can tell "no room" apart from other
failures.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Mapping

from recipe_market.core.errors import QuotaExceededError

JSONValue = Any


def serialized_size(snapshot: Mapping[str, JSONValue]) -> int:
    """Return the UTF-8 size of the JSON rendering of a store snapshot."""
    return len(json.dumps(snapshot, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))


def ensure_within_quota(
    snapshot: Mapping[str, JSONValue], key: str, max_bytes: int | None
) -> None:
    """Raise QuotaExceededError if ``snapshot`` does not fit in ``max_bytes``.

    Args:
        snapshot: Complete store contents as they would be after the write.
        key: Key being written (reported in the error details).
        max_bytes: Quota in bytes, or None for unlimited.
    """
    if max_bytes is None:
        return

    size = serialized_size(snapshot)
    if size > max_bytes:
        raise QuotaExceededError(
            code="storage_quota_exceeded",
            message=f"Writing '{key}' would exceed the storage quota",
            details={"key": key, "size_bytes": size, "max_bytes": max_bytes},
        )


class AbstractKeyValueStore(ABC):
    """Async persistent key-value store."""

    @abstractmethod
    async def get(self, key: str) -> JSONValue | None:
        """Return the value stored under ``key`` or None if absent.

        Raises:
            StorageAppError: If the backend cannot be read.
        """
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: JSONValue) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            QuotaExceededError: If the write does not fit in the quota.
            StorageAppError: For any other backend failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        raise NotImplementedError
