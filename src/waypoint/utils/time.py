"""Time utilities for Waypoint.

All engine timestamps are integer epoch milliseconds. Components accept a
``Clock`` so tests can pin or advance time without patching.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], int]
"""Zero-argument callable returning the current time in epoch milliseconds."""


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(utc_now().timestamp() * 1000)


def iso_date(timestamp_ms: int) -> str:
    """Format an epoch-millisecond timestamp as a UTC ISO date (YYYY-MM-DD)."""
    return datetime.fromtimestamp(timestamp_ms / 1000, UTC).date().isoformat()
