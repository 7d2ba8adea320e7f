"""Time source used by every time-dependent scheduling rule."""

from collections.abc import Callable
from datetime import datetime

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now().replace(microsecond=0)


def get_clock() -> Clock:
    """FastAPI dependency; tests override it with a fixed clock."""
    return system_clock


def to_local_naive(value: datetime) -> datetime:
    """Drop tz info after converting to server wall-clock time, truncated to the minute."""
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)
