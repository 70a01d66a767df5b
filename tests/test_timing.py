"""Tests for clock and wait-time helpers."""

import pytest

from recipe_market.utils.timing import format_wait_time, iso_from_epoch_ms


@pytest.mark.parametrize(
    ("wait_ms", "expected"),
    [
        (0, ""),
        (-5, ""),
        (1, "1s"),
        (1999, "2s"),
        (59_000, "59s"),
        (60_000, "1m"),
        (90_000, "1m 30s"),
        (125_500, "2m 6s"),
    ],
)
def test_format_wait_time(wait_ms: int, expected: str) -> None:
    assert format_wait_time(wait_ms) == expected


def test_iso_from_epoch_ms_is_utc() -> None:
    assert iso_from_epoch_ms(0) == "1970-01-01T00:00:00.000Z"
    assert iso_from_epoch_ms(1_700_000_000_123) == "2023-11-14T22:13:20.123Z"
