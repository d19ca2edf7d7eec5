"""Recurrence expansion for the planning engine.

Turns an anchor Event plus its RecurrenceRule into the ordered occurrences that
intersect a half-open window ``[window_start, window_end)``.

Period ``k`` of a rule starts at ``anchor + k * interval`` units, always
computed from the anchor. Month-end clamping therefore applies per period and
never accumulates: a monthly rule anchored on Jan 31 yields Jan 31, Feb 29,
Mar 31, Apr 30, ...

COUNT is counted from the anchor, not from the window, so
``EventOccurrence.occurrence_index`` is the same whichever window a caller
pages through.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from dateutil.rrule import DAILY, MO, WEEKLY, rrule
from dateutil.rrule import weekdays as rrule_weekdays

from ..core.date_utils import (
    add_days,
    add_months,
    add_weeks,
    add_years,
    ensure_timezone_aware,
    months_between,
    start_of_week,
)
from ..exceptions import ExpansionLimitError, InvalidRecurrenceRuleError
from .models import Event, EventOccurrence, Frequency, RecurrenceRule, Weekday, parse_event
from .rrule_parser import parse_rrule, validate_recurrence_rule

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10_000


@dataclass
class ExpanderConfig:
    """Configuration for recurrence expansion.

    Attributes:
        max_iterations: Most periods a single expansion may step through
                        before failing with ExpansionLimitError
    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS

    @classmethod
    def from_settings(cls, settings: Any) -> ExpanderConfig:
        """Extract expansion configuration from a settings object.

        Args:
            settings: Object or mapping with ``max_expansion_iterations``

        Returns:
            ExpanderConfig with values from settings or defaults
        """
        if isinstance(settings, Mapping):
            value = settings.get("max_expansion_iterations", DEFAULT_MAX_ITERATIONS)
        else:
            value = getattr(settings, "max_expansion_iterations", DEFAULT_MAX_ITERATIONS)
        return cls(max_iterations=int(value))


def _intersects(
    start: datetime,
    end: datetime,
    window_start: Optional[datetime],
    window_end: Optional[datetime],
) -> bool:
    if window_start is not None and end <= window_start:
        return False
    if window_end is not None and start >= window_end:
        return False
    return True


class RecurrenceExpander:
    """Expands events into dated occurrences.

    The expander holds no state between calls; one instance can serve any
    number of threads.
    """

    def __init__(self, config: Optional[ExpanderConfig] = None):
        self.config = config or ExpanderConfig()
        logger.debug(
            "RecurrenceExpander initialized: max_iterations=%d", self.config.max_iterations
        )

    def expand(
        self,
        event: Event | Mapping[str, Any],
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[EventOccurrence]:
        """Expand one event into occurrences intersecting the window.

        Args:
            event: Anchor event (or raw event mapping)
            window_start: Inclusive window start; None means unbounded
            window_end: Exclusive window end; None means bounded only by the
                        rule's own COUNT/UNTIL

        Returns:
            Occurrences in non-decreasing start order, each keeping the
            anchor's duration

        Raises:
            InvalidEventError: If raw event data is invalid
            InvalidRecurrenceRuleError: If the rule cannot be expanded
            ExpansionLimitError: If expansion exceeds the iteration cap
        """
        event = parse_event(event)
        if window_start is not None:
            window_start = ensure_timezone_aware(window_start)
        if window_end is not None:
            window_end = ensure_timezone_aware(window_end)
        if window_start is not None and window_end is not None and window_end <= window_start:
            logger.debug("Empty window %s..%s for event %s", window_start, window_end, event.id)
            return []

        rule = event.recurrence_rule
        if rule is None:
            if _intersects(event.start_time, event.end_time, window_start, window_end):
                return [self._build_occurrence(event, event.start_time, 0)]
            return []

        self._check_rule(event, rule, window_end)
        if not self._can_fire(event, rule):
            logger.debug("Rule for event %s never matches its BYDAY filter", event.id)
            return []

        until = rule.until
        if until is not None and until.tzinfo is None:
            until = until.replace(tzinfo=event.start_time.tzinfo)

        duration = event.duration
        first_period = 0
        if window_start is not None:
            first_period = self._first_relevant_period(event, rule, window_start - duration)
        index = self._occurrences_before_period(event, rule, first_period)
        if rule.count is not None and index >= rule.count:
            logger.debug(
                "COUNT=%d of event %s exhausted before %s", rule.count, event.id, window_start
            )
            return []

        occurrences: list[EventOccurrence] = []
        last_period = first_period
        for period, start in self._iter_candidates(event, rule, first_period):
            last_period = period
            if until is not None and start > until:
                break
            if window_end is not None and start >= window_end:
                break
            if _intersects(start, start + duration, window_start, window_end):
                occurrences.append(self._build_occurrence(event, start, index))
            index += 1
            if rule.count is not None and index >= rule.count:
                break

        logger.debug(
            "Expanded event %s (%s): %d occurrences in window, periods %d..%d",
            event.id,
            rule.frequency.value,
            len(occurrences),
            first_period,
            last_period,
        )
        return occurrences

    def expand_rrule(
        self,
        event: Event,
        rrule_string: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[EventOccurrence]:
        """Expand ``event`` with a rule given as RRULE text."""
        rule = parse_rrule(rrule_string)
        anchored = event.model_copy(update={"recurrence_rule": rule})
        return self.expand(anchored, window_start, window_end)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_rule(
        self, event: Event, rule: RecurrenceRule, window_end: Optional[datetime]
    ) -> None:
        errors = validate_recurrence_rule(rule)
        if errors:
            raise InvalidRecurrenceRuleError(
                f"Invalid recurrence rule for event {event.id!r}: {'; '.join(errors)}"
            )
        if rule.count is None and rule.until is None and window_end is None:
            raise InvalidRecurrenceRuleError(
                f"Recurrence rule for event {event.id!r} has no COUNT or UNTIL "
                f"and no window end was given"
            )

    # ------------------------------------------------------------------
    # Candidate generation
    # ------------------------------------------------------------------

    def _iter_candidates(
        self, event: Event, rule: RecurrenceRule, first_period: int
    ) -> Iterator[tuple[int, datetime]]:
        """Yield ``(period, start)`` pairs in chronological order.

        Raises:
            ExpansionLimitError: When about to step past ``max_iterations``
                periods from ``first_period``
        """
        if rule.frequency in (Frequency.DAILY, Frequency.WEEKLY):
            candidates = self._iter_rrule_candidates(event, rule, first_period)
        else:
            candidates = self._iter_clamped_candidates(event, rule, first_period)

        for period, start in candidates:
            if period - first_period >= self.config.max_iterations:
                raise ExpansionLimitError(
                    f"Expansion of event {event.id!r} exceeds {self.config.max_iterations} "
                    f"iterations; narrow the window or raise max_expansion_iterations",
                    limit=self.config.max_iterations,
                )
            yield period, start

    @staticmethod
    def _iter_rrule_candidates(
        event: Event, rule: RecurrenceRule, first_period: int
    ) -> Iterator[tuple[int, datetime]]:
        """DAILY and WEEKLY starts from dateutil, beginning at ``first_period``.

        Weekly periods are Monday-based weeks; the anchor's own week may list
        days before the anchor, which are dropped.
        """
        anchor = event.start_time
        interval = rule.interval
        if rule.frequency == Frequency.WEEKLY:
            week_days = rule.sorted_weekdays or [Weekday.from_date(anchor)]
            origin = add_weeks(start_of_week(anchor), first_period * interval).replace(
                hour=anchor.hour, minute=anchor.minute, second=anchor.second
            )
            series = rrule(
                WEEKLY,
                dtstart=origin,
                interval=interval,
                wkst=MO,
                byweekday=[rrule_weekdays[d.iso_index] for d in week_days],
            )
            days_per_period = 7 * interval
        else:
            # dateutil drops microseconds from dtstart; they are restored below
            origin = add_days(anchor, first_period * interval).replace(microsecond=0)
            byweekday = [rrule_weekdays[d.iso_index] for d in rule.sorted_weekdays]
            series = rrule(DAILY, dtstart=origin, interval=interval, byweekday=byweekday or None)
            days_per_period = interval

        for start in series:
            start = start.replace(microsecond=anchor.microsecond)
            if start < anchor:
                continue
            yield first_period + (start - origin).days // days_per_period, start

    @staticmethod
    def _iter_clamped_candidates(
        event: Event, rule: RecurrenceRule, first_period: int
    ) -> Iterator[tuple[int, datetime]]:
        """MONTHLY and YEARLY starts, clamped to the last day of short months.

        dateutil.rrule skips months lacking the anchor's day instead, so these
        periods are stepped with relativedelta from the anchor.
        """
        anchor = event.start_time
        period = first_period
        while True:
            if rule.frequency == Frequency.MONTHLY:
                yield period, add_months(anchor, period * rule.interval)
            else:
                yield period, add_years(anchor, period * rule.interval)
            period += 1

    @staticmethod
    def _can_fire(event: Event, rule: RecurrenceRule) -> bool:
        """False for DAILY rules whose interval never lands on a BYDAY weekday."""
        if rule.frequency != Frequency.DAILY or not rule.by_weekday:
            return True
        anchor_index = event.start_time.weekday()
        return any(
            Weekday.from_index(anchor_index + j * rule.interval) in rule.by_weekday
            for j in range(7)
        )

    def _first_relevant_period(
        self, event: Event, rule: RecurrenceRule, target: datetime
    ) -> int:
        """Lowest period that can hold an occurrence starting after ``target``.

        Every period before the returned one ends before ``target``. The
        running count up to that period comes from
        ``_occurrences_before_period``.
        """
        anchor = event.start_time
        if target <= anchor:
            return 0
        interval = rule.interval
        if rule.frequency == Frequency.DAILY:
            units = (target - anchor).days
        elif rule.frequency == Frequency.WEEKLY:
            units = (target - start_of_week(anchor)).days // 7
        elif rule.frequency == Frequency.MONTHLY:
            units = months_between(anchor, target)
        else:
            units = target.year - anchor.year
        return max(0, units // interval - 1)

    def _occurrences_before_period(
        self, event: Event, rule: RecurrenceRule, period: int
    ) -> int:
        """Number of series occurrences generated by periods ``0..period-1``."""
        if period <= 0:
            return 0
        anchor = event.start_time
        if rule.frequency == Frequency.WEEKLY:
            days = rule.sorted_weekdays or [Weekday.from_date(anchor)]
            first_week = sum(1 for d in days if d.iso_index >= anchor.weekday())
            return first_week + (period - 1) * len(days)
        if rule.frequency == Frequency.DAILY and rule.by_weekday:
            # Weekdays of successive periods repeat every 7 periods.
            matches = [
                Weekday.from_index(anchor.weekday() + j * rule.interval) in rule.by_weekday
                for j in range(7)
            ]
            full_cycles, remainder = divmod(period, 7)
            return full_cycles * sum(matches) + sum(matches[:remainder])
        return period

    @staticmethod
    def _build_occurrence(event: Event, start: datetime, index: int) -> EventOccurrence:
        return EventOccurrence(
            source_event_id=event.id,
            occurrence_start=start,
            occurrence_end=start + event.duration,
            is_exception=False,
            effective_status=event.status,
            occurrence_index=index,
            original_start=start,
            title=event.title,
            description=event.description,
            location=event.location,
            all_day=event.all_day,
            target_roles=event.target_roles,
            participant_ids=event.participant_ids,
        )


def expand_event(
    event: Event | Mapping[str, Any],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    config: Optional[ExpanderConfig] = None,
) -> list[EventOccurrence]:
    """Convenience wrapper around RecurrenceExpander.expand."""
    return RecurrenceExpander(config).expand(event, window_start, window_end)


