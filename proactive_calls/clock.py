"""Time helpers.

The store keeps naive UTC timestamps; milestone policy is expressed in the
hotel's local wall-clock time.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(now: Optional[datetime]) -> datetime:
    """Return ``now`` as an aware datetime, defaulting to the current UTC time.

    Naive values are taken to be UTC, matching what the store holds.
    """
    if now is None:
        return utc_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def to_db(dt: datetime) -> datetime:
    """Convert an aware datetime to the naive UTC form stored in the database."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def hotel_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)
