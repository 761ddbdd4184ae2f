"""Time helpers.

All timestamps are stored as naive UTC datetimes.
"""
import math
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_z(value: Optional[datetime]) -> Optional[str]:
    """Render a naive UTC datetime as ISO-8601 with a trailing Z."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded half-up and never negative."""
    seconds = (end - start).total_seconds()
    return max(0, int(math.floor(seconds / 60 + 0.5)))
