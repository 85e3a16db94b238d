"""
Time Utilities

Binance returns every timestamp as milliseconds since the Unix epoch
(e.g., 1704110400000), and its history endpoints take a `startTime`
query parameter in the same unit. These helpers convert between those
values and timezone-aware UTC datetimes, and compute lookback windows
for the enrichment steps.
"""

from datetime import datetime, timezone
from typing import Optional, Union

HOUR_MS = 60 * 60 * 1000


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Detection Logic:
        - If timestamp > 1e12 (1 trillion): Assumed to be milliseconds
        - Otherwise: Assumed to be seconds

    Args:
        timestamp: Unix timestamp in seconds or milliseconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def datetime_to_timestamp(dt: datetime, milliseconds: bool = False) -> int:
    """
    Convert a datetime object to Unix timestamp.

    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    timestamp = int(dt.timestamp())
    if milliseconds:
        timestamp *= 1000
    return timestamp


def current_utc_timestamp(milliseconds: bool = False) -> int:
    """Get current UTC timestamp in seconds (or milliseconds)."""
    return datetime_to_timestamp(datetime.now(timezone.utc), milliseconds)


def current_utc_datetime() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def window_start_ms(hours: int, now_ms: Optional[int] = None) -> int:
    """
    Start of a lookback window, in epoch milliseconds.

    Args:
        hours: Window length in hours
        now_ms: Reference time in milliseconds (defaults to now)

    Returns:
        now_ms - hours * 1h

    Example:
        >>> window_start_ms(4, now_ms=1704110400000)
        1704096000000
    """
    if now_ms is None:
        now_ms = current_utc_timestamp(milliseconds=True)
    return now_ms - hours * HOUR_MS


def period_ms(period: str) -> int:
    """
    Length of a Binance period string ("5m", "1h", "1d") in milliseconds.

    Raises:
        ValueError: If the unit is not m, h or d
    """
    units = {"m": 60 * 1000, "h": HOUR_MS, "d": 24 * HOUR_MS}
    amount, unit = period[:-1], period[-1:]
    if unit not in units or not amount.isdigit():
        raise ValueError(f"Invalid period: '{period}'")
    return int(amount) * units[unit]
