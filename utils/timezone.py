"""UTC-everywhere time handling for tokens, OTP expiry and stored documents."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def seconds_until(dt: datetime) -> int:
    """Whole seconds from now until dt, never negative."""
    remaining = (to_utc(dt) - now_utc()).total_seconds()
    return max(int(remaining), 0)
