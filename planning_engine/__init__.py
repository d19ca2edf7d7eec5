"""planning_engine - recurrence expansion and calendar projection for planning tools.

Turns stored events and recurrence rules into dated occurrences, merges
per-occurrence exceptions, filters them and lays them out on day, week, month
and agenda structures. The engine performs no I/O.
"""

__version__ = "0.1.0"

from typing import Optional

from .calendar.models import (
    CalendarDay,
    CalendarMonth,
    CalendarWeek,
    Event,
    EventOccurrence,
    EventOverride,
    EventStatus,
    Frequency,
    OccurrenceException,
    ProjectionResult,
    RecurrenceRule,
    SkippedEvent,
    TargetRole,
    Weekday,
    parse_event,
)
from .calendar.recurrence_expander import ExpanderConfig, RecurrenceExpander, expand_event
from .calendar.rrule_parser import describe_rule, format_rrule, parse_rrule
from .domain.calendar_aggregator import CalendarAggregator
from .domain.event_filter import EventFilter, FilterCriteria, filter_occurrences
from .domain.event_projector import EventProjector, ProjectorConfig, project_events
from .exceptions import (
    ConfigError,
    ExpansionLimitError,
    InvalidEventError,
    InvalidRecurrenceRuleError,
    PlanningEngineError,
    RecurrenceRuleParseError,
)

__all__ = [
    "CalendarAggregator",
    "CalendarDay",
    "CalendarMonth",
    "CalendarWeek",
    "ConfigError",
    "Event",
    "EventFilter",
    "EventOccurrence",
    "EventOverride",
    "EventProjector",
    "EventStatus",
    "ExpanderConfig",
    "ExpansionLimitError",
    "FilterCriteria",
    "Frequency",
    "InvalidEventError",
    "InvalidRecurrenceRuleError",
    "OccurrenceException",
    "PlanningEngineError",
    "ProjectionResult",
    "ProjectorConfig",
    "RecurrenceExpander",
    "RecurrenceRule",
    "RecurrenceRuleParseError",
    "SkippedEvent",
    "TargetRole",
    "Weekday",
    "describe_rule",
    "expand_event",
    "filter_occurrences",
    "format_rrule",
    "parse_event",
    "parse_rrule",
    "project_events",
]


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs a colorized stderr handler when the root logger has none and sets
    the root level. The PLANNING_DEBUG environment variable (truthy values:
    "1", "true", "yes", "on") forces DEBUG verbosity.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("PLANNING_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        candidate = getattr(logging, level_name.strip().upper(), None)
        if isinstance(candidate, int):
            level = candidate
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
