"""UTC time helpers; timestamps are stored as naive UTC"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive input is assumed to already be UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def time_ago(value: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    """Human readable age, e.g. '5 minutes ago'"""
    if value is None:
        return None
    seconds = int(((now or utcnow()) - to_naive_utc(value)).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"
