from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_expiry(expire: datetime | timedelta, now: datetime) -> datetime:
    """Turn a relative lifetime or absolute instant into an absolute UTC instant."""
    if isinstance(expire, timedelta):
        return now + expire
    return ensure_utc(expire)


def to_unix(value: datetime) -> int:
    return int(ensure_utc(value).timestamp())
