from __future__ import annotations

from datetime import datetime, timezone, timedelta
from zoneinfo import ZoneInfo
from typing import Optional, Union

from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LOCAL_TZ = "UTC"

# Process-wide config; set once from app config at startup.
GLOBAL_CONFIG = {
    "local_timezone": DEFAULT_LOCAL_TZ
}


def get_local_timezone() -> ZoneInfo:
    """
    Returns the configured local timezone.
    Falls back to UTC if misconfigured.
    """
    tz_name = GLOBAL_CONFIG.get("local_timezone") or DEFAULT_LOCAL_TZ
    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.error(f"Invalid timezone '{tz_name}', falling back to UTC: {e}")
        return ZoneInfo("UTC")


def update_local_timezone(new_timezone: str) -> None:
    """
    Updates the local timezone used by helpers.

    Raises if the timezone is invalid.
    """
    try:
        ZoneInfo(new_timezone)
    except Exception as e:
        raise ValueError(f"Invalid timezone: {new_timezone}") from e

    GLOBAL_CONFIG["local_timezone"] = new_timezone
    logger.info(f"Local timezone updated to {new_timezone}")


def _parse_iso_like(value: str) -> datetime:
    """
    Parses an ISO 8601 like string into a datetime.

    Supports:
    - Full timestamps with offset.
    - Naive timestamps.
    - 'Z' suffix for UTC.
    - '24:00' (midnight of next day)
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    if "T24:00" in text:
        date_part = text.split("T")[0]
        try:
            base_date = datetime.fromisoformat(date_part)
            next_day = base_date + timedelta(days=1)
            text = next_day.strftime("%Y-%m-%dT00:00:00")
        except ValueError as e:
            logger.debug(f"Failed to normalize 24:00 timestamp date_part='{date_part}': {e}")

    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {value}") from e


def parse_time_string(value: Union[str, datetime]) -> datetime:
    """
    Parses a time input and returns a UTC-aware datetime.

    - If naive, assume local timezone, then convert to UTC.
    - If aware, convert to UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = _parse_iso_like(value)
    else:
        raise TypeError(f"Expected str or datetime, got {type(value)}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=get_local_timezone())

    return dt.astimezone(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (as read back from SQLite) and normalize aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_to_local(utc_time: Union[str, datetime]) -> datetime:
    """
    Converts a UTC time (string or datetime) to an aware local datetime.
    Naive input is assumed to be UTC.
    """
    local_tz = get_local_timezone()

    if isinstance(utc_time, datetime):
        dt = utc_time
    elif isinstance(utc_time, str):
        dt = _parse_iso_like(utc_time)
    else:
        raise TypeError(f"Unsupported type for utc_to_local: {type(utc_time)}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(local_tz)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours from start to end; negative when end precedes start."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
