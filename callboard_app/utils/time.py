"""
Time helpers for wall-clock markers and persistence expiry.

Indicator-supplied event times are opaque to the board and stored as given.
Everything the board stamps itself (observed_at, first_seen_at) is wall-clock
epoch milliseconds so viewers can compare it against their own clock.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

# Clock signature used by the engine: returns epoch milliseconds.
Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_wall_time(ts: Optional[datetime] = None) -> str:
    """
    Format a wall-clock timestamp for persistence and logging.

    Args:
        ts: Timestamp to format, defaults to now

    Returns:
        ISO8601 formatted string
    """
    return (ts or utc_now()).isoformat()


def expiry_epoch(ttl_days: int, now: Optional[datetime] = None) -> int:
    """
    Compute a sliding expiry marker.

    Args:
        ttl_days: Days until the row may be reclaimed
        now: Reference time, defaults to wall-clock now

    Returns:
        Expiry as epoch seconds
    """
    base = now or utc_now()
    return int((base + timedelta(days=ttl_days)).timestamp())


def epoch_seconds(now: Optional[datetime] = None) -> int:
    """Epoch seconds for ``now`` (defaults to wall-clock now)."""
    return int((now or utc_now()).timestamp())
