"""
Time Utilities

Timestamp conversion helpers for rate samples.

The backend reports timestamps as whole seconds since epoch. Chart labels are
rendered as 24-hour HH:MM in the display zone, which is the system local zone
unless one is configured.
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional, Union


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp in seconds since epoch to a UTC datetime.

    Args:
        timestamp: Unix timestamp in seconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or outside the datetime range

    Examples:
        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def to_display_datetime(timestamp: Union[int, float], tz: Optional[tzinfo] = None) -> datetime:
    """
    Convert a timestamp to an aware datetime in the display zone.

    Args:
        timestamp: Unix timestamp in seconds
        tz: Target zone; None means the system local zone

    Returns:
        datetime: Timezone-aware datetime
    """
    dt = to_utc_datetime(timestamp)
    return dt.astimezone(tz) if tz is not None else dt.astimezone()


def format_hour_minute(timestamp: Union[int, float], tz: Optional[tzinfo] = None) -> str:
    """
    Render a timestamp as a 24-hour HH:MM label.

    Examples:
        >>> format_hour_minute(1704110400, timezone.utc)
        '12:00'

        >>> format_hour_minute(1704153600, timezone.utc)
        '00:00'
    """
    return to_display_datetime(timestamp, tz).strftime("%H:%M")
