"""Rate limiter interfaces.

Callers should depend on this abstraction (not the concrete implementation)
so the cooldown bookkeeping can move to a shared store later with minimal
changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class RateLimitOperation(str, Enum):
    """Operations guarded by a cooldown."""

    INCREMENT_USAGE = "INCREMENT_USAGE"
    TOGGLE_FAVORITE = "TOGGLE_FAVORITE"
    PUBLISH_RECIPE = "PUBLISH_RECIPE"
    SET_USERNAME = "SET_USERNAME"
    UPLOAD_IMAGE = "UPLOAD_IMAGE"


DEFAULT_COOLDOWNS_MS: dict[RateLimitOperation, int] = {
    RateLimitOperation.INCREMENT_USAGE: 5000,
    RateLimitOperation.TOGGLE_FAVORITE: 2000,
    RateLimitOperation.PUBLISH_RECIPE: 30000,
    RateLimitOperation.SET_USERNAME: 60000,
    RateLimitOperation.UPLOAD_IMAGE: 10000,
}


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a cooldown check.

    Attributes:
        allowed: Whether the action may proceed.
        wait_ms: Milliseconds until the next admission (0 when allowed).
    """

    allowed: bool
    wait_ms: int


class AbstractRateLimiter(ABC):
    """Interface for cooldown rate limiters."""

    @abstractmethod
    def check_and_record(
        self, operation: RateLimitOperation, discriminator: str = ""
    ) -> RateLimitResult:
        """Admit or deny an action, recording the admission.

        Args:
            operation: Guarded operation label.
            discriminator: Caller-supplied sub-key (e.g. a recipe id).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def peek_remaining(self, operation: RateLimitOperation, discriminator: str = "") -> int:
        """Return the remaining wait in ms without recording anything."""
        raise NotImplementedError

    @abstractmethod
    def record(self, operation: RateLimitOperation, discriminator: str = "") -> None:
        """Unconditionally mark the operation as performed now."""
        raise NotImplementedError

    @abstractmethod
    def clear(self, operation: RateLimitOperation, discriminator: str = "") -> None:
        """Forget the entry for a single key."""
        raise NotImplementedError

    @abstractmethod
    def clear_all(self) -> None:
        """Forget every entry."""
        raise NotImplementedError
