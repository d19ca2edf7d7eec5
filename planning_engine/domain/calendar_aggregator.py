"""Calendar grid projection.

Buckets a flat occurrence list onto day, week, month and agenda structures.
Timed occurrences land on the date of their start; all-day occurrences land on
every date they span.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from ..calendar.models import (
    CalendarDay,
    CalendarMonth,
    CalendarWeek,
    EventOccurrence,
    Weekday,
)
from ..core.date_utils import (
    MONDAY,
    as_date,
    get_month_days,
    get_week_days,
    is_today,
    is_weekend,
)

logger = logging.getLogger(__name__)


def _day_sort_key(occ: EventOccurrence) -> tuple[datetime, float, str]:
    # Longer occurrences first when two start together
    return (occ.occurrence_start, -occ.duration.total_seconds(), occ.source_event_id)


def occurrence_dates(occurrence: EventOccurrence) -> list[date]:
    """Dates an occurrence is shown on.

    All-day occurrences cover their start date through their end date; an end
    exactly at midnight does not reach into that day.
    """
    first = occurrence.occurrence_start.date()
    if not occurrence.all_day:
        return [first]

    end = occurrence.occurrence_end
    last = end.date()
    if end.time() == datetime.min.time() and last > first:
        last -= timedelta(days=1)
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


class CalendarAggregator:
    """Builds calendar structures from projected occurrences.

    Args:
        week_start: ISO weekday index (Monday = 0) or Weekday code the grid
                    weeks start on
    """

    def __init__(self, week_start: int | Weekday | str = MONDAY):
        if isinstance(week_start, str):
            week_start = Weekday.from_code(week_start)
        if isinstance(week_start, Weekday):
            week_start = week_start.iso_index
        self.week_start = week_start

    def bucket(self, occurrences: Iterable[EventOccurrence]) -> dict[date, list[EventOccurrence]]:
        """Group occurrences by display date, each day sorted for display."""
        buckets: dict[date, list[EventOccurrence]] = defaultdict(list)
        for occ in occurrences:
            for day in occurrence_dates(occ):
                buckets[day].append(occ)
        for items in buckets.values():
            items.sort(key=_day_sort_key)
        return dict(buckets)

    def build_day(
        self,
        day: date | datetime,
        occurrences: Iterable[EventOccurrence],
        today: date | datetime,
        month: int | None = None,
    ) -> CalendarDay:
        """Build one grid cell.

        Args:
            day: Cell date
            occurrences: Candidate occurrences; only those shown on ``day`` are kept
            today: Caller's notion of the current date
            month: Month the grid belongs to, used for the outside-month flag
        """
        day = as_date(day)
        return self._make_day(day, self.bucket(occurrences).get(day, []), today, month)

    def build_week(
        self,
        week_anchor: date | datetime,
        occurrences: Iterable[EventOccurrence],
        today: date | datetime,
    ) -> CalendarWeek:
        """Build the 7-day week containing ``week_anchor``."""
        buckets = self.bucket(occurrences)
        days = get_week_days(week_anchor, self.week_start)
        return self._make_week(days, buckets, today, month=None)

    def build_month(
        self,
        month_anchor: date | datetime,
        occurrences: Iterable[EventOccurrence],
        today: date | datetime,
    ) -> CalendarMonth:
        """Build the grid of full weeks covering the month of ``month_anchor``.

        Leading and trailing days from neighbouring months are included and
        flagged with ``is_outside_current_month``.
        """
        anchor = as_date(month_anchor)
        buckets = self.bucket(occurrences)
        grid = get_month_days(anchor, self.week_start)
        weeks = [
            self._make_week(grid[i:i + 7], buckets, today, month=anchor.month)
            for i in range(0, len(grid), 7)
        ]
        logger.debug(
            "Built month %04d-%02d: %d weeks, %d busy days",
            anchor.year,
            anchor.month,
            len(weeks),
            sum(1 for d in grid if d in buckets),
        )
        return CalendarMonth(year=anchor.year, month=anchor.month, weeks=weeks)

    def build_agenda(
        self,
        occurrences: Iterable[EventOccurrence],
        today: date | datetime,
    ) -> list[CalendarDay]:
        """Days that hold at least one occurrence, in chronological order."""
        buckets = self.bucket(occurrences)
        return [self._make_day(day, buckets[day], today, None) for day in sorted(buckets)]

    def _make_week(
        self,
        days: list[date],
        buckets: dict[date, list[EventOccurrence]],
        today: date | datetime,
        month: int | None,
    ) -> CalendarWeek:
        return CalendarWeek(
            week_number=days[0].isocalendar().week,
            days=[self._make_day(d, buckets.get(d, []), today, month) for d in days],
        )

    @staticmethod
    def _make_day(
        day: date,
        occurrences: list[EventOccurrence],
        today: date | datetime,
        month: int | None,
    ) -> CalendarDay:
        return CalendarDay(
            date=day,
            is_today=is_today(day, today),
            is_weekend=is_weekend(day),
            is_outside_current_month=month is not None and day.month != month,
            occurrences=list(occurrences),
        )
