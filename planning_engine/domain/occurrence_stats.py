"""Duration, overlap and status helpers for projected occurrences."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from ..calendar.models import EventOccurrence, EventStatus


def duration_minutes(occurrence: EventOccurrence) -> int:
    """Whole minutes between start and end, rounded down."""
    return int(occurrence.duration.total_seconds() // 60)


def format_duration(occurrence: EventOccurrence) -> str:
    """Short duration text.

    Examples:
        "45 min", "2h", "2h 30min"
    """
    hours, minutes = divmod(duration_minutes(occurrence), 60)
    if hours == 0:
        return f"{minutes} min"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}min"


def occurrences_overlap(first: EventOccurrence, second: EventOccurrence) -> bool:
    """True when the two half-open intervals share any instant."""
    return (
        first.occurrence_start < second.occurrence_end
        and second.occurrence_start < first.occurrence_end
    )


def is_ongoing(occurrence: EventOccurrence, now: datetime) -> bool:
    # Both bounds inclusive
    return occurrence.occurrence_start <= now <= occurrence.occurrence_end


def is_finished(occurrence: EventOccurrence, now: datetime) -> bool:
    return occurrence.occurrence_end < now


def is_upcoming(occurrence: EventOccurrence, now: datetime) -> bool:
    return occurrence.occurrence_start > now


def count_by_status(occurrences: Iterable[EventOccurrence]) -> dict[EventStatus, int]:
    """Number of occurrences per effective status; absent statuses are omitted."""
    return dict(Counter(occ.effective_status for occ in occurrences))


def total_duration_hours(occurrences: Iterable[EventOccurrence]) -> float:
    """Sum of whole-minute durations, expressed in hours."""
    return sum(duration_minutes(occ) for occ in occurrences) / 60
