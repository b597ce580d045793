"""
Core Utilities

Shared helpers used across the application.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to aware UTC.

    Naive values are taken to be UTC already (SQLite and ISO strings without
    an offset come back that way); aware values are converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
