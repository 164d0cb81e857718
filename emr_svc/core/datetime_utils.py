"""
Date and time helpers for the EMR service.

Conventions used throughout the service:
- Timestamps (created_at, last_login_at, token expiry) are UTC and stored
  as ISO 8601 strings with a 'Z' suffix.
- Calendar dates are 'YYYY-MM-DD' strings.
- Times of day are 'HH:MM' 24-hour strings. Schedule arithmetic converts
  them to minutes after midnight.
- Weekdays are numbered 0=Sunday .. 6=Saturday.

Usage:
    from core.datetime_utils import parse_time, minutes_to_time, weekday_index

    parse_time("09:30")          # 570
    minutes_to_time(570)         # "09:30"
    weekday_index("2024-01-15")  # 1 (Monday)
"""
import re
from datetime import date, datetime, timezone
from typing import Union

DATE_FORMAT = "%Y-%m-%d"
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

WEEKDAY_NAMES = (
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
)


# =============================================================================
# TIMESTAMPS
# =============================================================================

def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 UTC with a 'Z' suffix.

    Example:
        >>> format_iso(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
        '2024-01-15T10:30:00Z'
    """
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO 8601 timestamp into a UTC datetime.

    Args:
        value: ISO string (with 'Z', an offset, or naive) or a datetime.

    Returns:
        datetime: Timezone-aware datetime in UTC.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"Expected datetime or string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def now_iso() -> str:
    return format_iso(utc_now())


# =============================================================================
# CALENDAR DATES
# =============================================================================

def today_iso() -> str:
    """Today's UTC date as 'YYYY-MM-DD'."""
    return utc_now().date().isoformat()


def parse_date(value: str) -> date:
    """
    Parse a strict 'YYYY-MM-DD' date.

    Raises:
        ValueError: If the value is not in that exact format or is not a real date.
    """
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValueError(f"Invalid date '{value}'. Use YYYY-MM-DD format")
    return datetime.strptime(value, DATE_FORMAT).date()


def is_valid_date(value: str) -> bool:
    try:
        parse_date(value)
    except ValueError:
        return False
    return True


def weekday_index(value: Union[str, date]) -> int:
    """
    Day of week for a date, numbered 0=Sunday .. 6=Saturday.

    Python's date.weekday() is 0=Monday, so it is shifted by one.
    """
    d = parse_date(value) if isinstance(value, str) else value
    return (d.weekday() + 1) % 7


def weekday_name(value: Union[str, date]) -> str:
    """Lowercase weekday name for a date ('sunday' .. 'saturday')."""
    return WEEKDAY_NAMES[weekday_index(value)]


# =============================================================================
# TIMES OF DAY
# =============================================================================

def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def parse_time(value: str) -> int:
    """
    Convert 'HH:MM' into minutes after midnight.

    Raises:
        ValueError: If the value is not a valid 24-hour 'HH:MM' time.
    """
    match = TIME_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time '{value}'. Use HH:MM format")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    """Convert minutes after midnight back into 'HH:MM'."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """True when half-open ranges [start_a, end_a) and [start_b, end_b) intersect."""
    return start_a < end_b and start_b < end_a
