"""Unit tests for planning_engine.domain.occurrence_stats."""

from datetime import UTC, datetime, timedelta

import pytest

from planning_engine.calendar.models import EventStatus
from planning_engine.domain.occurrence_stats import (
    count_by_status,
    duration_minutes,
    format_duration,
    is_finished,
    is_ongoing,
    is_upcoming,
    occurrences_overlap,
    total_duration_hours,
)

pytestmark = pytest.mark.unit

START = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


class TestDurations:
    """Tests for duration helpers."""

    @pytest.mark.parametrize(
        "duration,expected",
        [
            (timedelta(minutes=45), "45 min"),
            (timedelta(hours=2), "2h"),
            (timedelta(hours=2, minutes=30), "2h 30min"),
            (timedelta(minutes=59, seconds=59), "59 min"),
        ],
    )
    def test_format_duration(self, make_occurrence, duration: timedelta, expected: str) -> None:
        """Test short duration text."""
        assert format_duration(make_occurrence(start=START, duration=duration)) == expected

    def test_duration_minutes_when_seconds_then_rounded_down(self, make_occurrence) -> None:
        """Test partial minutes are dropped."""
        occ = make_occurrence(start=START, duration=timedelta(minutes=10, seconds=50))

        assert duration_minutes(occ) == 10

    def test_total_duration_hours(self, make_occurrence) -> None:
        """Test durations are summed in hours."""
        occurrences = [
            make_occurrence("a", start=START, duration=timedelta(minutes=90)),
            make_occurrence("b", start=START, duration=timedelta(minutes=30)),
        ]

        assert total_duration_hours(occurrences) == 2.0
        assert total_duration_hours([]) == 0


class TestTimePredicates:
    """Tests for overlap and time-relative predicates."""

    def test_occurrences_overlap_when_sharing_time_then_true(self, make_occurrence) -> None:
        """Test overlapping intervals."""
        a = make_occurrence("a", start=START, duration=timedelta(hours=2))
        b = make_occurrence("b", start=START + timedelta(hours=1))

        assert occurrences_overlap(a, b)
        assert occurrences_overlap(b, a)

    def test_occurrences_overlap_when_touching_then_false(self, make_occurrence) -> None:
        """Test back-to-back intervals do not overlap."""
        a = make_occurrence("a", start=START)
        b = make_occurrence("b", start=START + timedelta(hours=1))

        assert not occurrences_overlap(a, b)

    @pytest.mark.parametrize(
        "offset,ongoing,finished,upcoming",
        [
            (timedelta(minutes=-1), False, False, True),
            (timedelta(0), True, False, False),
            (timedelta(minutes=30), True, False, False),
            (timedelta(hours=1), True, False, False),
            (timedelta(hours=1, minutes=1), False, True, False),
        ],
    )
    def test_relative_predicates(
        self, make_occurrence, offset: timedelta, ongoing: bool, finished: bool, upcoming: bool
    ) -> None:
        """Test ongoing, finished and upcoming against now."""
        occ = make_occurrence(start=START)
        now = START + offset

        assert is_ongoing(occ, now) is ongoing
        assert is_finished(occ, now) is finished
        assert is_upcoming(occ, now) is upcoming


class TestCountByStatus:
    """Tests for count_by_status."""

    def test_count_by_status_when_mixed_then_counts_present_statuses(self, make_occurrence) -> None:
        """Test status counting omits absent statuses."""
        occurrences = [
            make_occurrence("a", status=EventStatus.CONFIRMED),
            make_occurrence("b", status=EventStatus.CONFIRMED),
            make_occurrence("c", status=EventStatus.PENDING),
        ]

        assert count_by_status(occurrences) == {
            EventStatus.CONFIRMED: 2,
            EventStatus.PENDING: 1,
        }
