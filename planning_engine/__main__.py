"""Command-line entry for planning_engine.

Expands a single RRULE or lays out an events file as a month grid, a week or
an agenda. Structures are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path
from typing import Any, NoReturn, Optional

from dateutil.parser import isoparse

from . import _init_logging
from .calendar.models import EventStatus, TargetRole, parse_event
from .calendar.recurrence_expander import ExpanderConfig, RecurrenceExpander
from .config_loader import Config, load_config, read_document
from .core.date_utils import add_days, get_month_days, get_week_days
from .domain.calendar_aggregator import CalendarAggregator
from .domain.event_filter import FilterCriteria
from .domain.event_projector import EventProjector, ProjectorConfig
from .engine_logging import configure_engine_logging
from .exceptions import PlanningEngineError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_ERROR = 2


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the planning_engine CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="planning-engine",
        description="Planning Engine - recurrence expansion and calendar projection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  planning-engine expand --rrule "FREQ=WEEKLY;BYDAY=MO,WE;COUNT=4" \\
      --start 2024-01-01T09:00:00Z --end 2024-01-01T10:00:00Z
  planning-engine month --events events.yaml --date 2024-02-01
  planning-engine agenda --events events.json --role director --search atelier
        """,
    )
    parser.add_argument("--config", metavar="FILE", help="YAML or JSON configuration file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    expand = subparsers.add_parser("expand", help="Expand one recurrence rule")
    expand.add_argument("--rrule", required=True, help="RRULE text")
    expand.add_argument("--start", required=True, help="Anchor start (ISO 8601)")
    expand.add_argument("--end", required=True, help="Anchor end (ISO 8601)")
    expand.add_argument("--from", dest="window_start", help="Window start (ISO 8601)")
    expand.add_argument("--to", dest="window_end", help="Window end, exclusive (ISO 8601)")

    for name, help_text in (
        ("month", "Print the month grid"),
        ("week", "Print one week"),
        ("agenda", "Print the days holding occurrences"),
    ):
        view = subparsers.add_parser(name, help=help_text)
        view.add_argument("--events", required=True, metavar="FILE", help="YAML or JSON events file")
        view.add_argument("--date", help="Anchor date YYYY-MM-DD (default: today)")
        view.add_argument(
            "--role",
            action="append",
            choices=[r.value for r in TargetRole],
            help="Keep occurrences targeting this role (repeatable)",
        )
        view.add_argument(
            "--status",
            action="append",
            choices=[s.value for s in EventStatus],
            help="Keep occurrences with this status (repeatable)",
        )
        view.add_argument("--search", help="Text to look for in title, location or description")
        view.add_argument("--participant", help="Keep occurrences including this participant id")

    return parser


def _parse_datetime(value: str) -> datetime:
    try:
        parsed = isoparse(value)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO 8601 datetime {value!r}") from exc
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def _load_events_file(path: str) -> tuple[list[Any], list[Any]]:
    """Read events and exceptions from a document.

    The document is either a list of events or a mapping with ``events`` and
    optional ``exceptions`` lists.
    """
    document = read_document(Path(path))
    if isinstance(document, list):
        return document, []
    if isinstance(document, dict):
        events = document.get("events") or []
        exceptions = document.get("exceptions") or []
        if isinstance(events, list) and isinstance(exceptions, list):
            return events, exceptions
    raise ValueError(f"{path}: expected a list of events or a mapping with an 'events' list")


def _run_expand(args: argparse.Namespace, cfg: Config) -> int:
    start = _parse_datetime(args.start)
    event = parse_event(
        {
            "id": "cli",
            "title": "cli",
            "start_time": start,
            "end_time": _parse_datetime(args.end),
            "recurrence_rule": args.rrule,
        }
    )
    window_start = _parse_datetime(args.window_start) if args.window_start else None
    window_end = _parse_datetime(args.window_end) if args.window_end else None

    rule = event.recurrence_rule
    if window_end is None and rule is not None and rule.count is None and rule.until is None:
        window_end = add_days(window_start or start, cfg.default_window_days)
        logger.info("No --to given for an unbounded rule; expanding until %s", window_end.isoformat())

    expander = RecurrenceExpander(ExpanderConfig.from_settings(cfg))
    for occ in expander.expand(event, window_start, window_end):
        print(
            f"{occ.occurrence_index:>4}  "
            f"{occ.occurrence_start.isoformat()} -> {occ.occurrence_end.isoformat()}"
        )
    return EXIT_OK


def _run_view(args: argparse.Namespace, cfg: Config) -> int:
    anchor = date.fromisoformat(args.date) if args.date else date.today()
    aggregator = CalendarAggregator(cfg.week_start_index)

    if args.command == "month":
        days = get_month_days(anchor, aggregator.week_start)
    elif args.command == "week":
        days = get_week_days(anchor, aggregator.week_start)
    else:
        days = [anchor, add_days(anchor, cfg.default_window_days - 1)]
    window_start = _day_start(days[0])
    window_end = _day_start(days[-1] + timedelta(days=1))

    events, exceptions = _load_events_file(args.events)
    criteria = FilterCriteria(
        roles=frozenset(args.role or ()),
        statuses=frozenset(args.status or ()),
        participant_id=args.participant,
        search_text=args.search,
    )
    projector = EventProjector(
        expander=RecurrenceExpander(ExpanderConfig.from_settings(cfg)),
        config=ProjectorConfig.from_settings(cfg),
    )
    result = projector.project(events, window_start, window_end, exceptions, criteria)

    today = date.today()
    if args.command == "month":
        payload: Any = aggregator.build_month(anchor, result.occurrences, today).model_dump(mode="json")
    elif args.command == "week":
        payload = aggregator.build_week(anchor, result.occurrences, today).model_dump(mode="json")
    else:
        payload = [
            day.model_dump(mode="json")
            for day in aggregator.build_agenda(result.occurrences, today)
        ]

    output = {
        "view": args.command,
        "window": {"start": window_start.isoformat(), "end": window_end.isoformat()},
        "calendar": payload,
        "skipped": [s.model_dump(mode="json") for s in result.skipped],
    }
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the planning_engine CLI.

    Exits with 0 on success and 2 when the input (rule, dates, files or
    configuration) is unusable.
    """
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except PlanningEngineError as exc:
        print(f"planning-engine: {exc}", file=sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    _init_logging("DEBUG" if args.debug else cfg.log_level)
    configure_engine_logging(debug_mode=args.debug, default_level=cfg.log_level)

    try:
        if args.command == "expand":
            code = _run_expand(args, cfg)
        else:
            code = _run_view(args, cfg)
    except (PlanningEngineError, ValueError, OSError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"planning-engine: {exc}", file=sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    sys.exit(code)


if __name__ == "__main__":
    main()
