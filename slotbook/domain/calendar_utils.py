"""
Calendar helpers: weekday numbering, week boundaries and clock-time conversion.

Weekdays are numbered 0=Sunday..6=Saturday throughout the application. All
helpers work on local wall-clock dates; a date key is always derived from the
local calendar date of a value, never from its UTC instant.
"""

import math
import re

import pendulum
from pendulum import DateTime

from .exceptions import FormatError

MINUTES_PER_DAY = 24 * 60

_CLOCK_PATTERN = re.compile(r"^([0-9]{2}):([0-9]{2})\Z")
_DATE_KEY_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}\Z")


def weekday(day: DateTime) -> int:
    """Return the weekday of ``day`` with 0=Sunday..6=Saturday."""
    return day.isoweekday() % 7


def monday_of_week(day: DateTime) -> DateTime:
    """Return local midnight of the Monday of the week containing ``day``."""
    offset = (weekday(day) + 6) % 7
    return day.start_of("day").subtract(days=offset)


def add_days(day: DateTime, days: int) -> DateTime:
    return day.add(days=days)


def date_key(day: DateTime) -> str:
    """Stable ``YYYY-MM-DD`` identity of the local calendar date."""
    return day.format("YYYY-MM-DD")


def parse_date_key(key: str, tz: str) -> DateTime:
    """
    Parse a ``YYYY-MM-DD`` key back into local midnight of that date.

    Raises:
        FormatError: If the key is not a valid calendar date
    """
    if not isinstance(key, str) or not _DATE_KEY_PATTERN.match(key):
        raise FormatError(f"Invalid date '{key}', expected YYYY-MM-DD")

    year, month, day = (int(part) for part in key.split("-"))
    try:
        return pendulum.datetime(year, month, day, tz=tz)
    except ValueError as exc:
        raise FormatError(f"Invalid date '{key}': {exc}") from exc


def clock_to_minutes(value: str) -> int:
    """
    Convert an ``HH:MM`` clock string to minutes since midnight.

    Raises:
        FormatError: If the string is malformed or out of range
    """
    match = _CLOCK_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise FormatError(f"Invalid clock time '{value}', expected HH:MM")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise FormatError(f"Clock time '{value}' is out of range")

    return hour * 60 + minute


def minutes_to_clock(minutes: int) -> str:
    """Convert minutes since midnight to an ``HH:MM`` string."""
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise FormatError(f"Minutes must be an integer, got {minutes!r}")
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise FormatError(f"Minutes {minutes} outside of a day")

    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def at_minutes(day: DateTime, minutes: int) -> DateTime:
    """Return the instant on ``day`` at the given minute of the day."""
    return day.set(
        hour=minutes // 60,
        minute=minutes % 60,
        second=0,
        microsecond=0
    )


def minute_of_day(instant: DateTime) -> int:
    return instant.hour * 60 + instant.minute


def minutes_between(start: DateTime, end: DateTime) -> int:
    """Whole minutes from ``start`` to ``end``, floored (negative when past)."""
    return math.floor((end - start).total_seconds() / 60)
