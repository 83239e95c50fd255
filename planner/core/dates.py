"""Timestamp normalisation helpers.

SQLite drops tzinfo on the way in, so every timestamp that reaches the
store or the recurrence engine is normalised to naive UTC first.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
