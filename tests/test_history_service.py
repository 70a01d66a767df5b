"""Unit tests for HistoryService."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from recipe_market.adapters.storage.in_memory import InMemoryKeyValueStore
from recipe_market.adapters.storage.json_file import JsonFileKeyValueStore
from recipe_market.core.errors import QuotaExceededError, StorageAppError
from recipe_market.schemas.history import HistoryRecordInput
from recipe_market.services.history_service import HistoryService, build_history_id
from tests.fakes import FakeClock, TruncatingCompactor

KEY = "history_v1"


def _input(n: int = 0, **overrides) -> HistoryRecordInput:
    base = {
        "source_id": f"app{n}",
        "display_name": f"Recipe {n}",
        "display_glyph": "🍌",
        "artifact_data": f"data:image/png;base64,{'A' * 200}{n}",
    }
    base.update(overrides)
    return HistoryRecordInput(**base)


def _service(store, compactor, clock, **kwargs) -> HistoryService:
    return HistoryService(store, compactor, history_key=KEY, clock=clock, **kwargs)


class QuotaOnceStore(InMemoryKeyValueStore):
    """Rejects the first N writes for quota, then behaves normally."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self.failures = failures
        self.attempts: list[int] = []

    async def set(self, key, value) -> None:
        self.attempts.append(len(value))
        if self.failures > 0:
            self.failures -= 1
            raise QuotaExceededError(code="storage_quota_exceeded", message="full")
        await super().set(key, value)


class TestListAndCount:
    @pytest.mark.asyncio
    async def test_empty_store_lists_nothing(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)

        assert await service.list_records() == []
        assert await service.count() == 0

    @pytest.mark.asyncio
    async def test_corrupt_value_reads_as_empty(self, store, compactor, clock) -> None:
        await store.set(KEY, {"not": "a list"})
        service = _service(store, compactor, clock)

        assert await service.list_records() == []

    @pytest.mark.asyncio
    async def test_invalid_rows_are_skipped(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)
        await service.add(_input(1))
        rows = await store.get(KEY)
        await store.set(KEY, [{"garbage": True}, *rows])

        records = await service.list_records()

        assert [r.source_id for r in records] == ["app1"]

    @pytest.mark.asyncio
    async def test_read_failure_reads_as_empty(self, compactor, clock) -> None:
        store = InMemoryKeyValueStore()
        store.get = AsyncMock(side_effect=StorageAppError(code="storage_read_failed", message="x"))
        service = _service(store, compactor, clock)

        assert await service.list_records() == []


class TestAdd:
    @pytest.mark.asyncio
    async def test_add_compacts_and_populates_metadata(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)
        record_input = _input(1, input_preview="data:image/png;base64," + "B" * 100)

        result = await service.add(record_input)

        assert len(result) == 1
        record = result[0]
        assert record.id.startswith(f"history_{clock.current}_")
        assert record.created_at == "2023-11-14T22:13:20.000Z"
        assert len(record.artifact_data) < len(record_input.artifact_data)
        assert record.input_preview is not None
        assert compactor.calls == [
            (len(record_input.artifact_data), 800, 0.7),
            (len(record_input.input_preview), 200, 0.5),
        ]

    @pytest.mark.asyncio
    async def test_preview_is_optional(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)

        result = await service.add(_input(1))

        assert result[0].input_preview is None
        assert len(compactor.calls) == 1
        assert "inputPreview" not in (await store.get(KEY))[0]

    @pytest.mark.asyncio
    async def test_persisted_shape_uses_camel_case(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)
        await service.add(_input(1))

        row = (await store.get(KEY))[0]

        assert set(row) == {
            "id",
            "sourceId",
            "displayName",
            "displayGlyph",
            "artifactData",
            "createdAt",
        }

    @pytest.mark.asyncio
    async def test_caps_at_twenty_newest_first(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)

        for n in range(25):
            clock.advance(1)
            await service.add(_input(n))

        records = await service.list_records()
        assert len(records) == 20
        assert [r.source_id for r in records] == [f"app{n}" for n in range(24, 4, -1)]

    @pytest.mark.asyncio
    async def test_compactor_exception_falls_back_to_original(self, store, clock) -> None:
        compactor = AsyncMock()
        compactor.compact.side_effect = RuntimeError("decoder crashed")
        service = _service(store, compactor, clock)
        record_input = _input(1)

        result = await service.add(record_input)

        assert result[0].artifact_data == record_input.artifact_data

    @pytest.mark.asyncio
    async def test_quota_exceeded_retries_with_trimmed_list(self, compactor, clock) -> None:
        store = QuotaOnceStore(failures=0)
        service = _service(store, compactor, clock)
        for n in range(12):
            clock.advance(1)
            await service.add(_input(n))

        store.failures = 1
        result = await service.add(_input(99))

        assert 1 <= len(result) <= 10
        assert result[0].source_id == "app99"
        assert store.attempts[-2:] == [13, 5]
        assert [r.id for r in await service.list_records()] == [r.id for r in result]

    @pytest.mark.asyncio
    async def test_quota_exceeded_twice_returns_empty_without_raising(
        self, compactor, clock
    ) -> None:
        store = QuotaOnceStore(failures=2)
        service = _service(store, compactor, clock)

        result = await service.add(_input(1))

        assert result == []
        assert len(store.attempts) == 2

    @pytest.mark.asyncio
    async def test_other_storage_failure_returns_empty(self, compactor, clock) -> None:
        store = InMemoryKeyValueStore()
        store.set = AsyncMock(side_effect=StorageAppError(code="storage_write_failed", message="x"))
        service = _service(store, compactor, clock)

        assert await service.add(_input(1)) == []
        store.set.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_real_quota_store_degrades(self, clock) -> None:
        # Room for five records, not twenty.
        store = InMemoryKeyValueStore(max_bytes=5 * 1200)
        service = _service(store, TruncatingCompactor(keep_chars=1000), clock)

        for n in range(20):
            clock.advance(1)
            result = await service.add(_input(n, artifact_data="X" * 1500))
            assert isinstance(result, list)

        records = await service.list_records()
        assert 1 <= len(records) <= 5
        assert records[0].source_id == "app19"


    @pytest.mark.asyncio
    async def test_concurrent_adds_keep_every_record(self, tmp_path, compactor, clock) -> None:
        service = _service(JsonFileKeyValueStore(tmp_path / "store.json"), compactor, clock)

        await asyncio.gather(*(service.add(_input(n)) for n in range(4)))

        records = await service.list_records()
        assert sorted(r.source_id for r in records) == ["app0", "app1", "app2", "app3"]


class TestRemoveAndClear:
    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)
        for n in range(3):
            clock.advance(1)
            await service.add(_input(n))
        target = (await service.list_records())[1].id

        first = await service.remove(target)
        second = await service.remove(target)

        assert [r.id for r in first] == [r.id for r in second]
        assert target not in {r.id for r in second}
        assert len(second) == 2

    @pytest.mark.asyncio
    async def test_remove_unknown_id_is_noop(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)
        await service.add(_input(1))

        result = await service.remove("history_missing")

        assert len(result) == 1

    @pytest.mark.asyncio
    async def test_concurrent_add_and_remove_both_apply(self, tmp_path, compactor, clock) -> None:
        service = _service(JsonFileKeyValueStore(tmp_path / "store.json"), compactor, clock)
        first = (await service.add(_input(1)))[0]

        await asyncio.gather(service.remove(first.id), service.add(_input(2)))

        assert [r.source_id for r in await service.list_records()] == ["app2"]

    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, store, compactor, clock) -> None:
        service = _service(store, compactor, clock)
        await service.add(_input(1))

        await service.clear()

        assert await store.get(KEY) is None
        assert await service.count() == 0


def test_history_ids_are_unique() -> None:
    ids = {build_history_id(1) for _ in range(200)}
    assert len(ids) == 200


def test_invalid_limits_rejected(store, compactor) -> None:
    with pytest.raises(ValueError):
        HistoryService(store, compactor, max_items=0)
    with pytest.raises(ValueError):
        HistoryService(store, compactor, max_items=5, quota_retry_items=6)
