"""Event projection for the planning engine.

Expands every event in a window, merges per-occurrence exceptions (moved or
cancelled instances), filters, attaches display metadata and returns a flat,
time-sorted occurrence list.

One bad event never aborts the projection: its failure is reported in
``ProjectionResult.skipped`` and the remaining events are projected normally.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import ValidationError

from ..calendar.models import (
    Event,
    EventOccurrence,
    EventStatus,
    OccurrenceException,
    ProjectionResult,
    SkippedEvent,
    parse_event,
)
from ..calendar.recurrence_expander import RecurrenceExpander
from ..core.date_utils import ensure_timezone_aware
from ..exceptions import PlanningEngineError
from .event_display import with_display_metadata
from .event_filter import EventFilter, FilterCriteria

logger = logging.getLogger(__name__)

RawEvent = Event | Mapping[str, Any]
RawException = OccurrenceException | Mapping[str, Any]


@dataclass
class ProjectorConfig:
    """Configuration for event projection.

    Attributes:
        include_cancelled: Project events whose own status is cancelled (their
                           occurrences carry ``effective_status=cancelled``)
                           instead of suppressing them
    """

    include_cancelled: bool = False

    @classmethod
    def from_settings(cls, settings: Any) -> ProjectorConfig:
        if isinstance(settings, Mapping):
            value = settings.get("include_cancelled", False)
        else:
            value = getattr(settings, "include_cancelled", False)
        return cls(include_cancelled=bool(value))


def _occurrence_sort_key(occ: EventOccurrence) -> tuple[datetime, str, int]:
    return (occ.occurrence_start, occ.source_event_id, occ.occurrence_index)


def _intersects(occ: EventOccurrence, window_start: datetime, window_end: datetime) -> bool:
    return occ.occurrence_end > window_start and occ.occurrence_start < window_end


class EventProjector:
    """Flattens events into a merged, sorted occurrence list."""

    def __init__(
        self,
        expander: Optional[RecurrenceExpander] = None,
        event_filter: Optional[EventFilter] = None,
        config: Optional[ProjectorConfig] = None,
    ):
        self.expander = expander or RecurrenceExpander()
        self.event_filter = event_filter or EventFilter()
        self.config = config or ProjectorConfig()

    def project(
        self,
        events: Iterable[RawEvent],
        window_start: datetime,
        window_end: datetime,
        exceptions: Iterable[RawException] = (),
        criteria: Optional[FilterCriteria] = None,
    ) -> ProjectionResult:
        """Project events onto the window ``[window_start, window_end)``.

        Args:
            events: Events (or raw event mappings) from the event store
            window_start: Inclusive window start
            window_end: Exclusive window end
            exceptions: Per-occurrence overrides and cancellations
            criteria: Optional filter applied before sorting is returned

        Returns:
            ProjectionResult with occurrences ordered by start, then source
            event id, plus one SkippedEvent per event that failed
        """
        window_start = ensure_timezone_aware(window_start)
        window_end = ensure_timezone_aware(window_end)

        exceptions_by_event = self._collect_exceptions(exceptions)
        merged: dict[tuple[str, datetime], EventOccurrence] = {}
        skipped: list[SkippedEvent] = []
        event_count = 0

        for raw in events:
            event_count += 1
            try:
                event = parse_event(raw)
                if event.status == EventStatus.CANCELLED and not self.config.include_cancelled:
                    logger.debug("Suppressing cancelled event %s", event.id)
                    continue
                for occ in self._project_event(
                    event,
                    window_start,
                    window_end,
                    exceptions_by_event.get(event.id, {}),
                ):
                    self._merge(merged, occ)
            except PlanningEngineError as e:
                event_id = getattr(e, "event_id", None) or self._raw_id(raw)
                logger.warning("Skipping event %s: %s", event_id, e)
                skipped.append(SkippedEvent(event_id=event_id, reason=str(e)))

        ordered = sorted(merged.values(), key=_occurrence_sort_key)
        filtered = self.event_filter.filter(ordered, criteria)
        occurrences = [with_display_metadata(occ) for occ in filtered]

        logger.info(
            "Projected %d events into %d occurrences (%d skipped) for %s..%s",
            event_count,
            len(occurrences),
            len(skipped),
            window_start.isoformat(),
            window_end.isoformat(),
        )
        return ProjectionResult(occurrences=occurrences, skipped=skipped)

    # ------------------------------------------------------------------
    # Per-event work
    # ------------------------------------------------------------------

    def _project_event(
        self,
        event: Event,
        window_start: datetime,
        window_end: datetime,
        event_exceptions: dict[datetime, OccurrenceException],
    ) -> list[EventOccurrence]:
        generated = self.expander.expand(event, window_start, window_end)
        if not event_exceptions:
            return generated

        result: list[EventOccurrence] = []
        consumed: set[datetime] = set()

        for occ in generated:
            exception = event_exceptions.get(occ.original_start)
            if exception is None:
                result.append(occ)
                continue
            consumed.add(occ.original_start)
            replaced = self._apply_exception(occ, exception)
            if replaced is not None and _intersects(replaced, window_start, window_end):
                result.append(replaced)

        for original_start, exception in event_exceptions.items():
            if original_start in consumed or exception.is_cancellation:
                continue
            moved_in = self._recover_moved_occurrence(event, exception, window_start, window_end)
            if moved_in is not None:
                result.append(moved_in)

        return result

    def _apply_exception(
        self, occ: EventOccurrence, exception: OccurrenceException
    ) -> Optional[EventOccurrence]:
        """Apply one exception; None means the occurrence is cancelled."""
        if exception.is_cancellation:
            logger.debug(
                "Cancelled occurrence %s at %s", occ.source_event_id, occ.original_start
            )
            return None

        override = exception.override
        assert override is not None  # is_cancellation covers None
        start = override.start_time or occ.occurrence_start
        end = override.end_time or (start + occ.duration)
        if end <= start:
            logger.warning(
                "Ignoring override for %s at %s: end %s is not after start %s",
                occ.source_event_id,
                occ.original_start,
                end,
                start,
            )
            return occ

        updates: dict[str, Any] = {
            "occurrence_start": start,
            "occurrence_end": end,
            "is_exception": True,
        }
        for field in ("title", "description", "location", "all_day", "target_roles", "participant_ids"):
            value = getattr(override, field)
            if value is not None:
                updates[field] = value
        if override.status is not None:
            updates["effective_status"] = override.status
        return occ.model_copy(update=updates)

    def _recover_moved_occurrence(
        self,
        event: Event,
        exception: OccurrenceException,
        window_start: datetime,
        window_end: datetime,
    ) -> Optional[EventOccurrence]:
        """Bring in an instance moved into the window from outside it.

        The exception only counts when its original start is a real
        occurrence of the series.
        """
        original_start = exception.original_start
        try:
            matches = [
                occ
                for occ in self.expander.expand(
                    event, original_start, original_start + timedelta(microseconds=1)
                )
                if occ.original_start == original_start
            ]
        except PlanningEngineError as e:
            logger.warning(
                "Could not verify exception for %s at %s: %s", event.id, original_start, e
            )
            return None

        if not matches:
            logger.info(
                "Ignoring exception for %s: %s is not an occurrence of the series",
                event.id,
                original_start.isoformat(),
            )
            return None

        replaced = self._apply_exception(matches[0], exception)
        if replaced is None or not _intersects(replaced, window_start, window_end):
            return None
        return replaced

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _merge(
        merged: dict[tuple[str, datetime], EventOccurrence], occ: EventOccurrence
    ) -> None:
        """Deduplicate by (source_event_id, occurrence_start); exceptions win."""
        existing = merged.get(occ.key)
        if existing is None or (occ.is_exception and not existing.is_exception):
            merged[occ.key] = occ
        else:
            logger.debug("Dropping duplicate occurrence %s at %s", *occ.key)

    @staticmethod
    def _collect_exceptions(
        exceptions: Iterable[RawException],
    ) -> dict[str, dict[datetime, OccurrenceException]]:
        by_event: dict[str, dict[datetime, OccurrenceException]] = {}
        for raw in exceptions:
            try:
                exception = (
                    raw
                    if isinstance(raw, OccurrenceException)
                    else OccurrenceException.model_validate(raw)
                )
            except ValidationError as e:
                logger.warning("Ignoring malformed occurrence exception %r: %s", raw, e)
                continue
            per_event = by_event.setdefault(exception.source_event_id, {})
            if exception.original_start in per_event:
                logger.warning(
                    "Duplicate exception for %s at %s; last one wins",
                    exception.source_event_id,
                    exception.original_start.isoformat(),
                )
            per_event[exception.original_start] = exception
        return by_event

    @staticmethod
    def _raw_id(raw: RawEvent) -> Optional[str]:
        if isinstance(raw, Event):
            return raw.id
        if isinstance(raw, Mapping):
            value = raw.get("id")
            return str(value) if value is not None else None
        return None


def project_events(
    events: Iterable[RawEvent],
    window_start: datetime,
    window_end: datetime,
    exceptions: Iterable[RawException] = (),
    criteria: Optional[FilterCriteria] = None,
) -> ProjectionResult:
    """Convenience wrapper using default expander, filter and config."""
    return EventProjector().project(events, window_start, window_end, exceptions, criteria)
