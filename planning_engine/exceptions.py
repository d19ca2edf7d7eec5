"""Custom exception hierarchy for the planning engine.

Every failure raised by the engine derives from PlanningEngineError so callers
can catch engine problems without swallowing unrelated errors. Each failure is
local to a single event or rule; the projector turns them into skipped-event
reports instead of aborting the whole projection.
"""


class PlanningEngineError(Exception):
    """Base exception for all planning engine errors."""


class RecurrenceRuleParseError(PlanningEngineError):
    """RRULE text could not be parsed.

    Raised when:
    - The text is empty or has no FREQ part
    - A part is not KEY=VALUE or a key is repeated
    - INTERVAL/COUNT are not positive integers
    - BYDAY contains codes outside MO..SU or ordinal prefixes
    - UNTIL is not an ISO 8601 date or date-time
    - An unsupported RRULE part is present
    """


class InvalidRecurrenceRuleError(PlanningEngineError):
    """A structurally parsed rule cannot be expanded.

    Raised before expansion starts, so the caller never sees a partial
    occurrence list.
    """


class InvalidEventError(PlanningEngineError):
    """Event input failed validation (e.g. end_time <= start_time)."""

    def __init__(self, message: str, event_id: str | None = None):
        super().__init__(message)
        self.event_id = event_id


class ExpansionLimitError(PlanningEngineError):
    """Expansion would step through more periods than the configured cap."""

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class ConfigError(PlanningEngineError):
    """Configuration file exists but cannot be used."""
