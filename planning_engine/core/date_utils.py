"""Calendar arithmetic for the planning engine.

Pure helpers over ``date`` and ``datetime`` values: day/week/month boundaries,
calendar-aware addition and the predicates the calendar grid needs.

Two rules hold regardless of the underlying library defaults:

- Month and year addition clamp to the last valid day of the target month
  (Jan 31 + 1 month is Feb 28/29, never Mar 2/3). The clamped value is the new
  starting point for any further chained addition.
- Weeks start on Monday unless a different ``week_start`` (ISO index, Monday
  = 0) is given.

Datetimes keep whatever tzinfo they carry; nothing here converts between
offsets.
"""

from __future__ import annotations

import math
from datetime import UTC, date, datetime, time, timedelta
from typing import TypeVar

from dateutil.relativedelta import relativedelta

MONDAY = 0
SATURDAY = 5
SUNDAY = 6

DateLike = TypeVar("DateLike", date, datetime)


def as_date(value: date | datetime) -> date:
    """Return the calendar date of a date or datetime (in its own offset)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to make timezone-aware

    Returns:
        Timezone-aware datetime (UTC if originally naive)
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ---------------------------------------------------------------------------
# Boundaries
# ---------------------------------------------------------------------------


def start_of_day(value: DateLike) -> DateLike:
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return value


def end_of_day(value: date | datetime) -> datetime:
    """Last representable instant of the day (23:59:59.999999)."""
    if isinstance(value, datetime):
        return value.replace(hour=23, minute=59, second=59, microsecond=999999)
    return datetime.combine(value, time.max)


def start_of_week(value: DateLike, week_start: int = MONDAY) -> DateLike:
    """Return the first day of the week containing ``value``.

    Args:
        value: Date or datetime
        week_start: ISO weekday index the week starts on (Monday = 0)

    Returns:
        Same type as ``value``; datetimes are truncated to midnight
    """
    offset = (value.weekday() - week_start) % 7
    return start_of_day(value) - timedelta(days=offset)


def end_of_week(value: DateLike, week_start: int = MONDAY) -> DateLike:
    """Return the last day of the week containing ``value`` (time zeroed)."""
    return start_of_week(value, week_start) + timedelta(days=6)


def start_of_month(value: DateLike) -> DateLike:
    """First calendar day of the month containing ``value``, time zeroed."""
    return start_of_day(value).replace(day=1)


def end_of_month(value: DateLike) -> DateLike:
    """Last calendar day of the month containing ``value``, time zeroed."""
    return start_of_month(value) + relativedelta(months=1, days=-1)


def days_in_month(value: date | datetime) -> int:
    return end_of_month(as_date(value)).day


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


def get_week_days(value: date | datetime, week_start: int = MONDAY) -> list[date]:
    """Return the 7 dates of the week containing ``value``."""
    first = start_of_week(as_date(value), week_start)
    return [first + timedelta(days=i) for i in range(7)]


def get_month_days(value: date | datetime, week_start: int = MONDAY) -> list[date]:
    """Return the dates forming the month grid for the month of ``value``.

    The grid runs from the week-start day on/before the first of the month to
    the last day of the week containing the last of the month, so its length
    is always a multiple of 7 and consecutive entries are one day apart.

    Examples:
        >>> days = get_month_days(date(2024, 2, 14))
        >>> days[0], days[-1], len(days)
        (datetime.date(2024, 1, 29), datetime.date(2024, 3, 3), 35)
    """
    day = as_date(value)
    first = start_of_week(start_of_month(day), week_start)
    last = end_of_week(end_of_month(day), week_start)
    span = (last - first).days + 1
    return [first + timedelta(days=i) for i in range(span)]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_same_day(a: date | datetime, b: date | datetime) -> bool:
    """Compare calendar dates only, each in the offset it is stored with."""
    return as_date(a) == as_date(b)


def is_today(value: date | datetime, now: date | datetime) -> bool:
    return is_same_day(value, now)


def is_weekend(value: date | datetime) -> bool:
    return value.weekday() in (SATURDAY, SUNDAY)


def is_past(value: datetime, now: datetime) -> bool:
    return value < now


def is_future(value: datetime, now: datetime) -> bool:
    return value > now


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def add_days(value: DateLike, days: int) -> DateLike:
    return value + timedelta(days=days)


def add_weeks(value: DateLike, weeks: int) -> DateLike:
    return value + timedelta(weeks=weeks)


def add_months(value: DateLike, months: int) -> DateLike:
    """Add calendar months, clamping to the last day of the target month.

    Examples:
        >>> add_months(date(2024, 1, 31), 1)
        datetime.date(2024, 2, 29)
        >>> add_months(add_months(date(2023, 1, 31), 1), 1)
        datetime.date(2023, 3, 28)
    """
    return value + relativedelta(months=months)


def add_years(value: DateLike, years: int) -> DateLike:
    """Add calendar years; Feb 29 clamps to Feb 28 in non-leap years."""
    return value + relativedelta(years=years)


def months_between(a: date | datetime, b: date | datetime) -> int:
    """Whole calendar-month index difference ``b - a`` (ignores day of month)."""
    return (b.year - a.year) * 12 + (b.month - a.month)


def days_between(a: date | datetime, b: date | datetime) -> int:
    """Absolute distance in days, rounded up for partial days."""
    if isinstance(a, datetime) and isinstance(b, datetime):
        return math.ceil(abs((b - a).total_seconds()) / 86400)
    return abs((as_date(b) - as_date(a)).days)


def hours_between(a: datetime, b: datetime) -> int:
    """Absolute distance in whole hours, rounded down."""
    return math.floor(abs((b - a).total_seconds()) / 3600)
