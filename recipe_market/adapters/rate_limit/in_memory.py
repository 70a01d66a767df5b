"""In-memory cooldown rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective rate.
- Thread-safe: check-then-set is atomic per key; distinct keys use distinct
  locks so they never wait on each other.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

from recipe_market.adapters.rate_limit.base import (
    DEFAULT_COOLDOWNS_MS,
    AbstractRateLimiter,
    RateLimitOperation,
    RateLimitResult,
)
from recipe_market.utils.timing import epoch_ms


@dataclass
class _CooldownEntry:
    last_invocation_ms: int
    cooldown_ms: int


class InMemoryCooldownRateLimiter(AbstractRateLimiter):
    """Rate limiter enforcing a minimum delay between admitted actions.

    Each ``(operation, discriminator)`` pair has its own entry. A call is
    admitted when no entry exists or its cooldown has elapsed; admission
    stamps the entry with the current time. Denied calls leave the entry
    untouched.

    Admission is optimistic: the caller is assumed to perform the action once
    allowed, and the timestamp is not rolled back if that action fails.
    """

    def __init__(
        self,
        *,
        cooldowns_ms: Mapping[RateLimitOperation, int] | None = None,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            cooldowns_ms: Cooldown per operation in milliseconds. Frozen after
                construction.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If any cooldown is negative.
        """
        resolved = dict(DEFAULT_COOLDOWNS_MS if cooldowns_ms is None else cooldowns_ms)
        for operation, cooldown in resolved.items():
            if cooldown < 0:
                raise ValueError(f"cooldown for {operation.value} must be >= 0")

        self._cooldowns: Mapping[RateLimitOperation, int] = MappingProxyType(resolved)
        self._clock = clock
        self._registry_lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}
        self._entries: dict[str, _CooldownEntry] = {}

    @property
    def cooldowns_ms(self) -> Mapping[RateLimitOperation, int]:
        return self._cooldowns

    def _cooldown_for(self, operation: RateLimitOperation) -> int:
        try:
            return self._cooldowns[operation]
        except KeyError:
            raise ValueError(f"no cooldown configured for operation {operation!r}") from None

    @staticmethod
    def _entry_key(operation: RateLimitOperation, discriminator: str) -> str:
        return f"{operation.value}:{discriminator}"

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    @staticmethod
    def _remaining(entry: _CooldownEntry | None, now: int) -> int:
        if entry is None:
            return 0
        return max(0, entry.cooldown_ms - (now - entry.last_invocation_ms))

    def check_and_record(
        self, operation: RateLimitOperation, discriminator: str = ""
    ) -> RateLimitResult:
        """Admit the call if the cooldown has elapsed and record it.

        Args:
            operation: Guarded operation label.
            discriminator: Sub-key (e.g. recipe id); empty for a global limit.

        Returns:
            RateLimitResult with ``wait_ms == 0`` when allowed, or the
            positive remaining wait when denied.

        Raises:
            ValueError: If the operation has no configured cooldown.
        """
        cooldown = self._cooldown_for(operation)
        key = self._entry_key(operation, discriminator)

        with self._lock_for(key):
            now = self._clock()
            remaining = self._remaining(self._entries.get(key), now)
            if remaining > 0:
                return RateLimitResult(allowed=False, wait_ms=remaining)

            self._entries[key] = _CooldownEntry(last_invocation_ms=now, cooldown_ms=cooldown)
            return RateLimitResult(allowed=True, wait_ms=0)

    def peek_remaining(self, operation: RateLimitOperation, discriminator: str = "") -> int:
        self._cooldown_for(operation)
        key = self._entry_key(operation, discriminator)
        # Read-only; avoids allocating a key lock for callers that never act.
        with self._registry_lock:
            entry = self._entries.get(key)
        return self._remaining(entry, self._clock())

    def record(self, operation: RateLimitOperation, discriminator: str = "") -> None:
        cooldown = self._cooldown_for(operation)
        key = self._entry_key(operation, discriminator)
        with self._lock_for(key):
            self._entries[key] = _CooldownEntry(
                last_invocation_ms=self._clock(), cooldown_ms=cooldown
            )

    def clear(self, operation: RateLimitOperation, discriminator: str = "") -> None:
        key = self._entry_key(operation, discriminator)
        with self._lock_for(key):
            self._entries.pop(key, None)
        with self._registry_lock:
            self._key_locks.pop(key, None)

    def clear_all(self) -> None:
        with self._registry_lock:
            self._entries.clear()
            self._key_locks.clear()
