"""Timestamp helpers shared by the store and the state layer."""
from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes (as read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Union[datetime, date, str, None]) -> Optional[str]:
    """Normalize a stored timestamp or date into an ISO-8601 string."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    return value.isoformat()


def parse_iso(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (a trailing 'Z' is accepted) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def epoch_ms(value: Optional[datetime] = None) -> int:
    """Milliseconds since the epoch for the given (or current) time."""
    return int((value or utcnow()).timestamp() * 1000)
