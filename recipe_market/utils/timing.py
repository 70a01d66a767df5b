"""Clock and wait-time helpers shared by the rate limiter, cache and history."""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone


def epoch_ms() -> int:
    """Return the current UNIX time in whole milliseconds."""
    return int(time.time() * 1000)


def iso_from_epoch_ms(value_ms: int) -> str:
    """Render an epoch-millisecond timestamp as an ISO-8601 UTC string."""
    moment = datetime.fromtimestamp(value_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_wait_time(wait_ms: int) -> str:
    """Format a remaining cooldown for display.

    Seconds are rounded up, so 1ms of remaining wait reads as ``"1s"``.

    Examples:
        >>> format_wait_time(0)
        ''
        >>> format_wait_time(1500)
        '2s'
        >>> format_wait_time(90_000)
        '1m 30s'
        >>> format_wait_time(120_000)
        '2m'
    """
    if wait_ms <= 0:
        return ""

    seconds = math.ceil(wait_ms / 1000)
    if seconds < 60:
        return f"{seconds}s"

    minutes, remaining_seconds = divmod(seconds, 60)
    return f"{minutes}m {remaining_seconds}s" if remaining_seconds else f"{minutes}m"
