from datetime import datetime, timedelta, timezone
from typing import Optional


def get_current_utc_time() -> datetime:
    """
    Current UTC time as a naive datetime.

    MongoDB stores datetimes as UTC and hands them back naive, so every
    timestamp written by the app follows the same convention.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a possibly timezone-aware datetime to naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def minutes_ago(minutes: int) -> datetime:
    return get_current_utc_time() - timedelta(minutes=minutes)
