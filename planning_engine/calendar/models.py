"""Value objects for the planning engine.

Events and recurrence rules come in from the external event store; occurrences
and calendar structures go out to the presentation layer. Everything here is
plain, serializable data (``model_dump()`` / ``model_dump_json()``).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from ..core.date_utils import ensure_timezone_aware
from ..exceptions import InvalidEventError, RecurrenceRuleParseError

DateType = date


class Weekday(str, Enum):
    """Weekday codes in ISO order (Monday first)."""

    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"

    @property
    def iso_index(self) -> int:
        """0 for Monday through 6 for Sunday (matches ``date.weekday()``)."""
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def from_index(cls, index: int) -> Weekday:
        return _WEEKDAY_ORDER[index % 7]

    @classmethod
    def from_date(cls, value: date) -> Weekday:
        return _WEEKDAY_ORDER[value.weekday()]

    @classmethod
    def from_code(cls, code: str) -> Weekday:
        """Parse a two-letter code, case-insensitive.

        Raises:
            ValueError: If the code is not one of MO..SU
        """
        return cls(code.strip().upper())


_WEEKDAY_ORDER: tuple[Weekday, ...] = tuple(Weekday)


class Frequency(str, Enum):
    """Supported RRULE frequencies."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class EventStatus(str, Enum):
    """Event status values."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class TargetRole(str, Enum):
    """Roles an event can be addressed to."""

    ANIMATOR = "animator"
    COORDINATOR = "coordinator"
    DIRECTOR = "director"


class RecurrenceRule(BaseModel):
    """Recurrence rule (RFC 5545 RRULE subset).

    ``count`` and ``until`` may both be set; whichever bound is reached first
    stops the series. A naive ``until`` is read as wall-clock time in the
    anchor event's offset.
    """

    frequency: Frequency = Field(..., description="Recurrence frequency")
    interval: int = Field(default=1, ge=1, description="Step between periods")
    by_weekday: frozenset[Weekday] = Field(
        default_factory=frozenset, description="Weekdays the rule fires on"
    )
    count: Optional[int] = Field(default=None, ge=1, description="Total occurrences")
    until: Optional[datetime] = Field(default=None, description="Inclusive last start")

    model_config = ConfigDict(frozen=True)

    @field_validator("frequency", mode="before")
    @classmethod
    def _upper_frequency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("by_weekday", mode="before")
    @classmethod
    def _coerce_weekdays(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(
            Weekday.from_code(v) if isinstance(v, str) else v for v in value
        )

    @property
    def sorted_weekdays(self) -> list[Weekday]:
        """BYDAY values in ISO order."""
        return sorted(self.by_weekday, key=lambda w: w.iso_index)

    @field_serializer("by_weekday")
    def serialize_weekdays(self, value: frozenset[Weekday]) -> list[str]:
        return [w.value for w in sorted(value, key=lambda w: w.iso_index)]


class Event(BaseModel):
    """Base event as returned by the external event store."""

    id: str = Field(..., min_length=1, description="Event ID")
    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")
    location: Optional[str] = Field(default=None, description="Event location")

    start_time: datetime = Field(..., description="Anchor start")
    end_time: datetime = Field(..., description="Anchor end (exclusive)")
    all_day: bool = Field(default=False, description="All-day event flag")

    target_roles: frozenset[TargetRole] = Field(default_factory=frozenset)
    status: EventStatus = Field(default=EventStatus.CONFIRMED)
    recurrence_rule: Optional[RecurrenceRule] = Field(default=None)
    participant_ids: tuple[str, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)

    @field_validator("recurrence_rule", mode="before")
    @classmethod
    def _parse_rrule_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            # Imported here: the parser module depends on these models.
            from .rrule_parser import parse_rrule

            try:
                return parse_rrule(value)
            except RecurrenceRuleParseError as e:
                raise ValueError(str(e)) from e
        return value

    @model_validator(mode="after")
    def _check_time_order(self) -> Event:
        if self.end_time <= self.start_time:
            raise ValueError(
                f"end_time {self.end_time.isoformat()} must be after "
                f"start_time {self.start_time.isoformat()}"
            )
        return self

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule is not None

    @field_serializer("start_time", "end_time")
    def serialize_datetime(self, dt: datetime) -> str:
        return dt.isoformat()

    @field_serializer("target_roles")
    def serialize_roles(self, value: frozenset[TargetRole]) -> list[str]:
        return sorted(r.value for r in value)


class EventOverride(BaseModel):
    """Replacement fields for one moved/modified occurrence."""

    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    all_day: Optional[bool] = None
    status: Optional[EventStatus] = None
    target_roles: Optional[frozenset[TargetRole]] = None
    participant_ids: Optional[tuple[str, ...]] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_timezone_aware(value) if value is not None else None


class OccurrenceException(BaseModel):
    """Stored override or cancellation for one occurrence of an event.

    The occurrence is identified by its source event id and its generated
    (original) start. ``override=None`` cancels the occurrence.
    """

    source_event_id: str
    original_start: datetime
    override: Optional[EventOverride] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("original_start")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)

    @property
    def key(self) -> tuple[str, datetime]:
        return (self.source_event_id, self.original_start)

    @property
    def is_cancellation(self) -> bool:
        return self.override is None or self.override.status == EventStatus.CANCELLED


class EventOccurrence(BaseModel):
    """One concrete dated instance of a (possibly recurring) event."""

    source_event_id: str
    occurrence_start: datetime
    occurrence_end: datetime
    is_exception: bool = False
    effective_status: EventStatus = EventStatus.CONFIRMED

    # Position in the series counted from the anchor, independent of window
    occurrence_index: int = 0
    original_start: datetime

    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    all_day: bool = False
    target_roles: frozenset[TargetRole] = Field(default_factory=frozenset)
    participant_ids: tuple[str, ...] = Field(default_factory=tuple)

    # Display metadata, filled in by the projector
    color: Optional[str] = None
    role_label: Optional[str] = None
    participant_summary: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def duration(self) -> timedelta:
        return self.occurrence_end - self.occurrence_start

    @property
    def key(self) -> tuple[str, datetime]:
        return (self.source_event_id, self.occurrence_start)

    @field_serializer("occurrence_start", "occurrence_end", "original_start")
    def serialize_datetime(self, dt: datetime) -> str:
        return dt.isoformat()

    @field_serializer("target_roles")
    def serialize_roles(self, value: frozenset[TargetRole]) -> list[str]:
        return sorted(r.value for r in value)


class CalendarDay(BaseModel):
    """One grid cell."""

    date: DateType
    is_today: bool = False
    is_weekend: bool = False
    is_outside_current_month: bool = False
    occurrences: list[EventOccurrence] = Field(default_factory=list)


class CalendarWeek(BaseModel):
    """Seven consecutive days."""

    week_number: int = Field(..., description="ISO week number of the first day")
    days: list[CalendarDay] = Field(..., min_length=7, max_length=7)


class CalendarMonth(BaseModel):
    """Full weeks covering one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    weeks: list[CalendarWeek] = Field(default_factory=list)

    @property
    def days(self) -> list[CalendarDay]:
        return [day for week in self.weeks for day in week.days]


class SkippedEvent(BaseModel):
    """An event the projector could not expand, with the reason."""

    event_id: Optional[str] = None
    reason: str


class ProjectionResult(BaseModel):
    """Projector output: occurrences plus the events that were skipped."""

    occurrences: list[EventOccurrence] = Field(default_factory=list)
    skipped: list[SkippedEvent] = Field(default_factory=list)


def parse_event(raw: Event | Mapping[str, Any]) -> Event:
    """Validate raw event data at the engine boundary.

    Args:
        raw: Event instance (returned unchanged) or mapping of event fields

    Returns:
        Validated Event

    Raises:
        InvalidEventError: If the data violates the Event contract
    """
    if isinstance(raw, Event):
        return raw
    event_id = raw.get("id") if isinstance(raw, Mapping) else None
    try:
        return Event.model_validate(raw)
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'event'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidEventError(
            f"Invalid event {event_id!r}: {messages}", event_id=event_id
        ) from e
