"""Unit tests for planning_engine.domain.event_filter."""

from datetime import UTC, datetime, timedelta

import pytest

from planning_engine.calendar.models import EventStatus, TargetRole
from planning_engine.domain.event_filter import (
    EventFilter,
    FilterCriteria,
    filter_occurrences,
    normalize_text,
)

pytestmark = pytest.mark.unit

BASE = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


class TestNormalizeText:
    """Tests for normalize_text."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Réunion", "reunion"),
            ("  ÉQUIPE  ", "equipe"),
            ("Straße", "strasse"),
            ("plain", "plain"),
        ],
    )
    def test_normalize_text(self, text: str, expected: str) -> None:
        """Test case and diacritic folding."""
        assert normalize_text(text) == expected


class TestFilterCriteria:
    """Tests for FilterCriteria."""

    def test_is_empty_when_defaults_then_true(self) -> None:
        """Test default criteria restrict nothing."""
        assert FilterCriteria().is_empty

    def test_is_empty_when_blank_search_then_true(self) -> None:
        """Test whitespace-only search text is no restriction."""
        assert FilterCriteria(search_text="   ").is_empty

    def test_when_strings_given_then_enums_coerced(self) -> None:
        """Test role and status strings are coerced."""
        criteria = FilterCriteria(roles=["director"], statuses=["pending"])

        assert criteria.roles == frozenset({TargetRole.DIRECTOR})
        assert criteria.statuses == frozenset({EventStatus.PENDING})
        assert not criteria.is_empty


class TestEventFilter:
    """Tests for EventFilter.filter."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.event_filter = EventFilter()

    @pytest.fixture
    def occurrences(self, make_occurrence):
        """Four occurrences on consecutive days with varied attributes."""
        return [
            make_occurrence(
                "animation",
                start=BASE,
                title="Atelier peinture",
                location="Salle Énée",
                target_roles=frozenset({TargetRole.ANIMATOR}),
                participant_ids=("u1", "u2"),
            ),
            make_occurrence(
                "coordination",
                start=BASE + timedelta(days=1),
                title="Réunion d'équipe",
                target_roles=frozenset({TargetRole.COORDINATOR, TargetRole.DIRECTOR}),
                status=EventStatus.PENDING,
                participant_ids=("u2",),
            ),
            make_occurrence(
                "direction",
                start=BASE + timedelta(days=2),
                title="Budget",
                description="Préparer le bilan annuel",
                target_roles=frozenset({TargetRole.DIRECTOR}),
                status=EventStatus.CANCELLED,
            ),
            make_occurrence(
                "open",
                start=BASE + timedelta(days=3),
                title="Portes ouvertes",
                target_roles=frozenset(TargetRole),
                participant_ids=("u3",),
            ),
        ]

    @staticmethod
    def _ids(occurrences) -> list[str]:
        return [occ.source_event_id for occ in occurrences]

    def test_filter_when_no_criteria_then_everything_in_order(self, occurrences) -> None:
        """Test None and empty criteria keep all occurrences."""
        assert self.event_filter.filter(occurrences) == occurrences
        assert self.event_filter.filter(occurrences, FilterCriteria()) == occurrences

    def test_filter_when_role_then_intersection_kept(self, occurrences) -> None:
        """Test role filter keeps any occurrence targeting the role."""
        result = self.event_filter.filter(occurrences, FilterCriteria(roles={TargetRole.DIRECTOR}))

        assert self._ids(result) == ["coordination", "direction", "open"]

    def test_filter_when_statuses_then_effective_status_checked(self, occurrences) -> None:
        """Test status filter."""
        criteria = FilterCriteria(statuses={EventStatus.CONFIRMED, EventStatus.PENDING})

        assert self._ids(self.event_filter.filter(occurrences, criteria)) == [
            "animation",
            "coordination",
            "open",
        ]

    def test_filter_when_participant_then_membership_checked(self, occurrences) -> None:
        """Test participant filter."""
        result = self.event_filter.filter(occurrences, FilterCriteria(participant_id="u2"))

        assert self._ids(result) == ["animation", "coordination"]

    @pytest.mark.parametrize(
        "search,expected",
        [
            ("reunion", ["coordination"]),
            ("EQUIPE", ["coordination"]),
            ("enee", ["animation"]),
            ("bilan", ["direction"]),
            ("zzz", []),
        ],
    )
    def test_filter_when_search_then_case_and_accent_insensitive(
        self, occurrences, search: str, expected: list[str]
    ) -> None:
        """Test text search over title, location and description."""
        result = self.event_filter.filter(occurrences, FilterCriteria(search_text=search))

        assert self._ids(result) == expected

    def test_filter_when_date_range_then_intersection_kept(self, occurrences) -> None:
        """Test the half-open date range."""
        criteria = FilterCriteria(
            start_date=BASE + timedelta(days=1),
            end_date=BASE + timedelta(days=3),
        )

        assert self._ids(self.event_filter.filter(occurrences, criteria)) == [
            "coordination",
            "direction",
        ]

    def test_filter_when_naive_date_range_then_read_as_utc(self, occurrences) -> None:
        """Test naive range bounds are made aware."""
        criteria = FilterCriteria(start_date=datetime(2024, 1, 4))

        assert self._ids(self.event_filter.filter(occurrences, criteria)) == ["open"]

    def test_filter_when_combined_then_all_must_match(self, occurrences) -> None:
        """Test criteria combine with AND."""
        criteria = FilterCriteria(roles={TargetRole.DIRECTOR}, participant_id="u3")

        assert self._ids(self.event_filter.filter(occurrences, criteria)) == ["open"]

    def test_filter_occurrences_shortcut(self, occurrences) -> None:
        """Test the module-level shortcut."""
        result = filter_occurrences(occurrences, FilterCriteria(search_text="budget"))

        assert self._ids(result) == ["direction"]
