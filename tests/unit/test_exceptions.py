"""Unit tests for planning_engine.exceptions."""

import pytest

from planning_engine.exceptions import (
    ConfigError,
    ExpansionLimitError,
    InvalidEventError,
    InvalidRecurrenceRuleError,
    PlanningEngineError,
    RecurrenceRuleParseError,
)

pytestmark = pytest.mark.unit


class TestExceptionHierarchy:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize(
        "exc_class",
        [RecurrenceRuleParseError, InvalidRecurrenceRuleError, ConfigError],
    )
    def test_exception_when_raised_then_caught_as_base(self, exc_class) -> None:
        """Test every engine error is a PlanningEngineError."""
        with pytest.raises(PlanningEngineError, match="boom"):
            raise exc_class("boom")

    def test_invalid_event_error_when_created_then_keeps_event_id(self) -> None:
        """Test the failing event id travels with the error."""
        error = InvalidEventError("end before start", event_id="evt-9")

        assert isinstance(error, PlanningEngineError)
        assert error.event_id == "evt-9"
        assert str(error) == "end before start"

    def test_invalid_event_error_when_no_id_then_none(self) -> None:
        """Test event_id defaults to None."""
        assert InvalidEventError("unreadable").event_id is None

    def test_expansion_limit_error_when_created_then_keeps_limit(self) -> None:
        """Test the cap is exposed on the error."""
        error = ExpansionLimitError("too many periods", limit=500)

        assert error.limit == 500
        assert "too many" in str(error)

    def test_parse_error_when_raised_then_not_value_error(self) -> None:
        """Test engine errors do not masquerade as builtin errors."""
        assert not issubclass(RecurrenceRuleParseError, ValueError)
