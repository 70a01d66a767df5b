"""Bounded local history of generated artifacts.

The history is a single newest-first list stored under one key. It is capped
at a fixed number of records and images are compacted before they are
persisted, because the underlying store has a hard size quota.

Losing history is never fatal to the caller:

- unreadable or corrupt data reads as an empty history
- a write rejected for quota is retried once with a much shorter list
- any write failure that survives the retry yields an empty result instead
  of an exception
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any, Callable

from pydantic import ValidationError

from recipe_market.adapters.imaging.base import AbstractImageCompactor
from recipe_market.adapters.storage.base import AbstractKeyValueStore
from recipe_market.core.errors import QuotaExceededError, StorageAppError
from recipe_market.schemas.history import HistoryRecord, HistoryRecordInput
from recipe_market.utils.timing import epoch_ms, iso_from_epoch_ms

logger = logging.getLogger(__name__)

MAX_HISTORY_ITEMS = 20
QUOTA_RETRY_ITEMS = 5


def build_history_id(now_ms: int) -> str:
    """Build an opaque id such as ``history_1700000000000_k3j9x2m1q``."""
    return f"history_{now_ms}_{secrets.token_hex(5)}"


class HistoryService:
    """Rolling, quota-safe log of recently generated artifacts."""

    def __init__(
        self,
        store: AbstractKeyValueStore,
        compactor: AbstractImageCompactor,
        *,
        history_key: str = "history_v1",
        max_items: int = MAX_HISTORY_ITEMS,
        quota_retry_items: int = QUOTA_RETRY_ITEMS,
        artifact_max_width: int = 800,
        artifact_quality: float = 0.7,
        preview_max_width: int = 200,
        preview_quality: float = 0.5,
        clock: Callable[[], int] = epoch_ms,
        id_factory: Callable[[int], str] = build_history_id,
    ) -> None:
        if max_items < 1:
            raise ValueError("max_items must be >= 1")
        if not 1 <= quota_retry_items <= max_items:
            raise ValueError("quota_retry_items must be between 1 and max_items")

        self._store = store
        self._compactor = compactor
        self._key = history_key
        self._max_items = max_items
        self._quota_retry_items = quota_retry_items
        self._artifact_max_width = artifact_max_width
        self._artifact_quality = artifact_quality
        self._preview_max_width = preview_max_width
        self._preview_quality = preview_quality
        self._clock = clock
        self._id_factory = id_factory
        # Serializes read-modify-write cycles on the history key.
        self._write_lock = asyncio.Lock()

    async def list_records(self) -> list[HistoryRecord]:
        """Return all records newest-first; never raises."""
        try:
            raw = await self._store.get(self._key)
        except StorageAppError as exc:
            logger.error(
                "history.load_failed",
                extra={"history_key": self._key, "error_code": exc.code},
            )
            return []

        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("history.corrupt", extra={"history_key": self._key})
            return []

        records: list[HistoryRecord] = []
        for item in raw:
            try:
                records.append(HistoryRecord.model_validate(item))
            except ValidationError:
                logger.warning("history.invalid_record_skipped", extra={"history_key": self._key})
        return records

    async def count(self) -> int:
        return len(await self.list_records())

    async def _compact(self, image_data: str, max_width: int, quality: float) -> str:
        # The compactor contract is to never raise; fall back to the original anyway.
        try:
            return await self._compactor.compact(image_data, max_width, quality)
        except Exception as exc:
            logger.warning(
                "history.compaction_failed",
                extra={"error_type": type(exc).__name__},
            )
            return image_data

    async def _build_record(self, record_input: HistoryRecordInput) -> HistoryRecord:
        artifact = await self._compact(
            record_input.artifact_data, self._artifact_max_width, self._artifact_quality
        )
        preview = None
        if record_input.input_preview:
            preview = await self._compact(
                record_input.input_preview, self._preview_max_width, self._preview_quality
            )

        now = self._clock()
        return HistoryRecord(
            id=self._id_factory(now),
            created_at=iso_from_epoch_ms(now),
            source_id=record_input.source_id,
            display_name=record_input.display_name,
            display_glyph=record_input.display_glyph,
            artifact_data=artifact,
            input_preview=preview,
        )

    async def _persist(self, records: list[HistoryRecord]) -> None:
        payload: list[dict[str, Any]] = [
            record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in records
        ]
        await self._store.set(self._key, payload)

    async def add(self, record_input: HistoryRecordInput) -> list[HistoryRecord]:
        """Compact, prepend and persist a new record.

        Args:
            record_input: Artifact to record (id and timestamp are generated).

        Returns:
            list[HistoryRecord]: The persisted list, newest-first. Shorter than
                usual after a quota retry, and empty if persisting failed.
        """
        record = await self._build_record(record_input)
        async with self._write_lock:
            return await self._prepend_unlocked(record)

    async def _prepend_unlocked(self, record: HistoryRecord) -> list[HistoryRecord]:
        current = await self.list_records()
        updated = [record, *current][: self._max_items]

        try:
            await self._persist(updated)
        except QuotaExceededError as exc:
            logger.warning(
                "history.quota_exceeded",
                extra={
                    "history_key": self._key,
                    "attempted_items": len(updated),
                    "retry_items": self._quota_retry_items,
                    "details": exc.details,
                },
            )
            trimmed = updated[: self._quota_retry_items]
            try:
                await self._persist(trimmed)
            except StorageAppError as retry_exc:
                logger.error(
                    "history.save_failed",
                    extra={"history_key": self._key, "error_code": retry_exc.code, "retried": True},
                )
                return []
            logger.info(
                "history.saved",
                extra={"history_key": self._key, "items": len(trimmed), "trimmed": True},
            )
            return trimmed
        except StorageAppError as exc:
            logger.error(
                "history.save_failed",
                extra={"history_key": self._key, "error_code": exc.code, "retried": False},
            )
            return []

        logger.info("history.saved", extra={"history_key": self._key, "items": len(updated)})
        return updated

    async def remove(self, record_id: str) -> list[HistoryRecord]:
        """Drop the record with ``record_id``; unknown ids are a no-op."""
        async with self._write_lock:
            return await self._remove_unlocked(record_id)

    async def _remove_unlocked(self, record_id: str) -> list[HistoryRecord]:
        current = await self.list_records()
        updated = [record for record in current if record.id != record_id]
        if len(updated) == len(current):
            return current

        try:
            await self._persist(updated)
        except StorageAppError as exc:
            logger.error(
                "history.remove_failed",
                extra={"history_key": self._key, "error_code": exc.code},
            )
            return []
        return updated

    async def clear(self) -> None:
        """Remove the whole persisted history."""
        try:
            async with self._write_lock:
                await self._store.delete(self._key)
        except StorageAppError as exc:
            logger.error(
                "history.clear_failed",
                extra={"history_key": self._key, "error_code": exc.code},
            )
