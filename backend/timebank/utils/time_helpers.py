from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_slot_start(value: Optional[datetime]) -> Optional[str]:
    """Render a session start the way notifications show it: 2025-01-31 14:00 UTC."""
    if value is None:
        return None
    return ensure_utc(value).strftime("%Y-%m-%d %H:%M UTC")


def format_slot_end(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).strftime("%H:%M UTC")
