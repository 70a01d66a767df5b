"""Read-through cache with background refresh for slow remote listings.

The cache keeps one envelope (payload + fetch time) per logical resource in
the shared key-value store:

- a fresh envelope is returned immediately; under the ``"always"`` refresh
  policy a detached background fetch also replaces it for the next reader
- a stale or missing envelope forces a synchronous fetch whose errors
  propagate to the caller
- background refresh failures are logged and never reach the caller
- ``invalidate()`` writes a null sentinel so the next read goes remote, and
  background refreshes started before it never overwrite the sentinel
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Literal, TypeVar

from pydantic import ValidationError

from recipe_market.adapters.storage.base import AbstractKeyValueStore
from recipe_market.core.errors import StorageAppError
from recipe_market.schemas.cache import CacheEnvelope
from recipe_market.utils.timing import epoch_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")

RefreshPolicy = Literal["always", "stale_only"]


class ReadThroughCache(Generic[T]):
    """Serve a remote resource from the local store, refreshing it lazily."""

    def __init__(
        self,
        store: AbstractKeyValueStore,
        remote_fetch: Callable[[], Awaitable[T]],
        *,
        cache_key: str,
        freshness_window_ms: int = 5 * 60 * 1000,
        refresh_policy: RefreshPolicy = "always",
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Persistent key-value store shared with other components.
            remote_fetch: Coroutine function performing the slow remote call.
            cache_key: Store key holding this resource's envelope.
            freshness_window_ms: Maximum age served without a synchronous fetch.
            refresh_policy: ``"always"`` schedules a background refresh on every
                fresh hit; ``"stale_only"`` never refreshes fresh data.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If the window is negative or the policy is unknown.
        """
        if freshness_window_ms < 0:
            raise ValueError("freshness_window_ms must be >= 0")
        if refresh_policy not in ("always", "stale_only"):
            raise ValueError(f"unknown refresh_policy: {refresh_policy!r}")

        self._store = store
        self._remote_fetch = remote_fetch
        self._cache_key = cache_key
        self._freshness_window_ms = freshness_window_ms
        self._refresh_policy = refresh_policy
        self._clock = clock
        self._background: set[asyncio.Task[None]] = set()
        # Bumped by invalidate(); refreshes started under an older value never write.
        self._generation = 0

    @property
    def cache_key(self) -> str:
        return self._cache_key

    async def _read_envelope(self) -> CacheEnvelope | None:
        try:
            raw = await self._store.get(self._cache_key)
        except StorageAppError as exc:
            logger.warning(
                "cache.read_failed",
                extra={"cache_key": self._cache_key, "error_code": exc.code},
            )
            return None

        if raw is None:
            return None

        try:
            return CacheEnvelope.model_validate(raw)
        except ValidationError:
            logger.warning("cache.corrupt_envelope", extra={"cache_key": self._cache_key})
            return None

    async def _write_envelope(self, payload: T) -> None:
        envelope = CacheEnvelope(payload=payload, fetched_at_ms=self._clock())
        await self._store.set(self._cache_key, envelope.model_dump(mode="json", by_alias=True))

    async def fetch_with_cache(self) -> T:
        """Return the cached payload, fetching remotely when stale or missing.

        Returns:
            The cached or freshly fetched payload.

        Raises:
            Exception: Whatever ``remote_fetch`` raises on the synchronous path.
        """
        envelope = await self._read_envelope()
        now = self._clock()

        if envelope is not None and envelope.is_fresh(now, self._freshness_window_ms):
            logger.debug(
                "cache.hit",
                extra={"cache_key": self._cache_key, "age_ms": now - envelope.fetched_at_ms},
            )
            if self._refresh_policy == "always":
                self._schedule_refresh()
            return envelope.payload

        logger.info(
            "cache.miss",
            extra={
                "cache_key": self._cache_key,
                "reason": "stale" if envelope is not None else "absent",
            },
        )
        payload = await self._remote_fetch()

        try:
            await self._write_envelope(payload)
        except StorageAppError as exc:
            logger.warning(
                "cache.write_failed",
                extra={"cache_key": self._cache_key, "error_code": exc.code},
            )
        return payload

    async def invalidate(self) -> None:
        """Force the next ``fetch_with_cache`` onto the synchronous remote path.

        In-flight background refreshes are cancelled, and any that still
        complete discard their result instead of overwriting the sentinel.
        """
        self._generation += 1
        await self._cancel_background()
        await self._store.set(self._cache_key, None)
        logger.info("cache.invalidated", extra={"cache_key": self._cache_key})

    def _schedule_refresh(self) -> None:
        # One background refresh per cache at a time.
        if self._background:
            return
        task = asyncio.create_task(self._refresh_in_background())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh_in_background(self) -> None:
        generation = self._generation
        try:
            payload = await self._remote_fetch()
            if generation != self._generation:
                logger.debug(
                    "cache.background_refresh_discarded",
                    extra={"cache_key": self._cache_key},
                )
                return
            # Shielded so a cancelled refresh never leaves a half-done write
            # queued behind the invalidation sentinel.
            await asyncio.shield(self._write_envelope(payload))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(
                "cache.background_refresh_failed",
                extra={"cache_key": self._cache_key, "error_type": type(exc).__name__},
            )
            return
        logger.debug("cache.background_refreshed", extra={"cache_key": self._cache_key})

    async def wait_for_background(self) -> None:
        """Wait until any in-flight background refresh has finished."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel in-flight background refreshes."""
        await self._cancel_background()

    async def _cancel_background(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
