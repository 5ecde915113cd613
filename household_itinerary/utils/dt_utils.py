# File: utils/dt_utils.py
"""Date and time utilities for the itinerary engine.

Pure Python date/time functions; no engine or manager imports.
Uses standard library datetime/zoneinfo plus dateutil.

Functions:
    - set_default_timezone: Configure local timezone
    - dt_now_local: Current time helper
    - as_utc / as_local: Timezone conversion
    - dt_parse_date / dt_parse / dt_to_local_date / dt_iso: Parsing
    - dt_same_local_day / dt_days_between: Calendar-day comparisons
    - day_index / parse_day_value: Sunday-based weekday indices
    - is_valid_time_string: "HH:MM" validation
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
import logging
import re
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

# Module-level logger (kept local so utils never import the package const)
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# These mirror const.py values but are defined locally for purity.
# ==============================================================================

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# 24-hour "HH:MM"
_TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

_WEEKDAY_NAMES = {
    "sun": 0,
    "sunday": 0,
    "mon": 1,
    "monday": 1,
    "tue": 2,
    "tues": 2,
    "tuesday": 2,
    "wed": 3,
    "wednesday": 3,
    "thu": 4,
    "thur": 4,
    "thurs": 4,
    "thursday": 4,
    "fri": 5,
    "friday": 5,
    "sat": 6,
    "saturday": 6,
}


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo | str) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this once during application setup to configure the household's timezone.

    Args:
        tz: ZoneInfo object or IANA zone name (e.g. "America/Chicago")
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = ZoneInfo(tz) if isinstance(tz, str) else tz


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware).

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.
    """
    return datetime.now(tz or DEFAULT_TIME_ZONE)


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC, assuming the default timezone when naive."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone, assuming UTC when naive.

    Args:
        dt_obj: Datetime object
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz or DEFAULT_TIME_ZONE)


# ==============================================================================
# Date/Time Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts ISO dates ("2026-04-07") first, then anything dateutil can read
    ("Apr 7 2026", "04/07/2026"). Full datetimes are truncated to their date.

    Args:
        date_str: Date string to parse, or None

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    try:
        return dateutil_parser.parse(date_str).date()
    except (ValueError, OverflowError):
        _LOGGER.debug("dt_parse_date: Could not parse date string: %s", date_str)
        return None


def dt_parse(
    dt_input: str | date | datetime | None,
    default_tzinfo: ZoneInfo | None = None,
) -> datetime | None:
    """Normalize string, date or datetime input to an aware datetime.

    Naive values are interpreted in `default_tzinfo` (or DEFAULT_TIME_ZONE).
    Bare dates become local midnight.

    Args:
        dt_input: Value to normalize, or None
        default_tzinfo: Timezone applied to naive values

    Returns:
        Timezone-aware datetime, or None if the input could not be parsed.

    Example:
        >>> dt_parse("2026-04-15")
        datetime.datetime(2026, 4, 15, 0, 0, tzinfo=ZoneInfo('UTC'))
    """
    if not dt_input:
        return None

    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime | None = None

    if isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, time.min)
    elif isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input)
        except ValueError:
            parsed_date = dt_parse_date(dt_input)
            if parsed_date is None:
                return None
            result = datetime.combine(parsed_date, time.min)
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)
    return result


def dt_to_local_date(dt_input: str | date | datetime | None) -> date | None:
    """Return the local calendar day of a stored timestamp or date.

    Bare dates (and ISO date strings) are returned as-is; datetimes are
    converted to local time first so a late-evening UTC timestamp lands on
    the household's calendar day.
    """
    if dt_input is None:
        return None
    if isinstance(dt_input, date) and not isinstance(dt_input, datetime):
        return dt_input
    if isinstance(dt_input, str) and len(dt_input) == 10:
        return dt_parse_date(dt_input)
    parsed = dt_parse(dt_input)
    return as_local(parsed).date() if parsed else None


def dt_iso(value: datetime) -> str:
    """Serialize an aware datetime as an ISO 8601 string in UTC."""
    return as_utc(value).isoformat()


# ==============================================================================
# Calendar-Day Comparisons
# ==============================================================================


def dt_same_local_day(
    first: str | date | datetime | None, second: str | date | datetime | None
) -> bool:
    """Return True when both values fall on the same local calendar day."""
    first_day = dt_to_local_date(first)
    second_day = dt_to_local_date(second)
    if first_day is None or second_day is None:
        return False
    return first_day == second_day


def dt_days_between(
    earlier: str | date | datetime | None, later: str | date | datetime | None
) -> int | None:
    """Return whole local calendar days from `earlier` to `later`.

    Returns:
        Day difference (negative if `earlier` is after `later`), or None if
        either value cannot be parsed.
    """
    earlier_day = dt_to_local_date(earlier)
    later_day = dt_to_local_date(later)
    if earlier_day is None or later_day is None:
        return None
    return (later_day - earlier_day).days


# ==============================================================================
# Weekdays (0 = Sunday)
# ==============================================================================


def day_index(value: date | datetime) -> int:
    """Return the Sunday-based weekday index (0=Sun ... 6=Sat) of a date.

    Python's date.weekday() is Monday-based; the web application's day
    pickers are Sunday-based.
    """
    return (value.weekday() + 1) % 7


def parse_day_value(value: int | str | None) -> int | None:
    """Normalize a weekday index or name to a Sunday-based index.

    Args:
        value: Integer index 0-6, digit string, or day name ("Mon", "monday")

    Returns:
        Index 0-6, or None when the value is out of range or unrecognized.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if 0 <= value <= 6 else None
    if isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            return parse_day_value(int(text))
        return _WEEKDAY_NAMES.get(text)
    return None


# ==============================================================================
# Time of Day
# ==============================================================================


def is_valid_time_string(value: object) -> bool:
    """Return True for a 24-hour "HH:MM" string."""
    return isinstance(value, str) and bool(_TIME_OF_DAY_PATTERN.match(value))
