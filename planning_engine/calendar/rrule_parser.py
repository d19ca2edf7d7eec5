"""RRULE text handling for the planning engine.

Converts between the RFC 5545 RRULE subset the engine supports and
RecurrenceRule objects:

    FREQ=<DAILY|WEEKLY|MONTHLY|YEARLY>;INTERVAL=<n>;BYDAY=<MO,WE,...>;
    COUNT=<n>|UNTIL=<ISO 8601>

Parsing is a pure function with its own error type, kept apart from
expansion-time validation (see validate_recurrence_rule).
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta

from dateutil.parser import isoparse

from ..exceptions import RecurrenceRuleParseError
from .models import Frequency, RecurrenceRule, Weekday

logger = logging.getLogger(__name__)

_DATE_ONLY_RE = re.compile(r"^\d{4}-?\d{2}-?\d{2}$")
_ORDINAL_BYDAY_RE = re.compile(r"^[+-]?\d+[A-Za-z]{2}$")

_WEEKDAY_NAMES = {
    Weekday.MO: "Monday",
    Weekday.TU: "Tuesday",
    Weekday.WE: "Wednesday",
    Weekday.TH: "Thursday",
    Weekday.FR: "Friday",
    Weekday.SA: "Saturday",
    Weekday.SU: "Sunday",
}

_UNIT_NAMES = {
    Frequency.DAILY: ("day", "days"),
    Frequency.WEEKLY: ("week", "weeks"),
    Frequency.MONTHLY: ("month", "months"),
    Frequency.YEARLY: ("year", "years"),
}


def _parse_positive_int(key: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise RecurrenceRuleParseError(f"{key} must be an integer, got {value!r}") from e
    if number < 1:
        raise RecurrenceRuleParseError(f"{key} must be >= 1, got {number}")
    return number


def _parse_byday(value: str) -> frozenset[Weekday]:
    days = set()
    for raw in value.split(","):
        code = raw.strip().upper()
        if not code:
            raise RecurrenceRuleParseError(f"Empty BYDAY entry in {value!r}")
        if _ORDINAL_BYDAY_RE.match(code):
            raise RecurrenceRuleParseError(
                f"Ordinal BYDAY value {code!r} is not supported"
            )
        try:
            days.add(Weekday.from_code(code))
        except ValueError as e:
            raise RecurrenceRuleParseError(
                f"Unknown BYDAY code {code!r} (expected MO, TU, WE, TH, FR, SA or SU)"
            ) from e
    return frozenset(days)


def parse_until(value: str) -> datetime:
    """Parse an UNTIL value.

    Accepts basic (``20240131T090000Z``) and extended (``2024-01-31T09:00:00Z``)
    ISO 8601 forms. A date-only value means the whole of that day, so it is
    returned as the last instant of the date.

    Raises:
        RecurrenceRuleParseError: If the value is not ISO 8601
    """
    text = value.strip()
    try:
        parsed = isoparse(text)
    except (ValueError, OverflowError) as e:
        raise RecurrenceRuleParseError(f"Invalid UNTIL value {value!r}") from e
    if _DATE_ONLY_RE.match(text):
        parsed = parsed + timedelta(days=1, microseconds=-1)
    return parsed


def parse_rrule(rrule_string: str) -> RecurrenceRule:
    """Parse RRULE text into a RecurrenceRule.

    Args:
        rrule_string: RRULE text, optionally prefixed with ``RRULE:``
                      (e.g. "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,WE;COUNT=4")

    Returns:
        RecurrenceRule

    Raises:
        RecurrenceRuleParseError: If the text is malformed or uses parts
            outside the supported subset
    """
    if not rrule_string or not rrule_string.strip():
        raise RecurrenceRuleParseError("Empty RRULE string")

    text = rrule_string.strip()
    if text.upper().startswith("RRULE:"):
        text = text[len("RRULE:"):]

    seen: set[str] = set()
    fields: dict[str, object] = {}

    for part in text.split(";"):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise RecurrenceRuleParseError(f"Malformed RRULE part {part!r}")
        key, value = part.split("=", 1)
        key = key.strip().upper()
        value = value.strip()

        if key in seen:
            raise RecurrenceRuleParseError(f"Duplicate RRULE part {key}")
        seen.add(key)

        if key == "FREQ":
            try:
                fields["frequency"] = Frequency(value.upper())
            except ValueError as e:
                raise RecurrenceRuleParseError(f"Unsupported FREQ {value!r}") from e
        elif key == "INTERVAL":
            fields["interval"] = _parse_positive_int(key, value)
        elif key == "COUNT":
            fields["count"] = _parse_positive_int(key, value)
        elif key == "UNTIL":
            fields["until"] = parse_until(value)
        elif key == "BYDAY":
            fields["by_weekday"] = _parse_byday(value)
        elif key == "WKST":
            # Weeks always start on Monday for expansion.
            if value.upper() != Weekday.MO.value:
                raise RecurrenceRuleParseError(f"Unsupported WKST {value!r} (only MO)")
        else:
            raise RecurrenceRuleParseError(f"Unsupported RRULE part {key}")

    if "frequency" not in fields:
        raise RecurrenceRuleParseError("RRULE missing required FREQ parameter")

    rule = RecurrenceRule(**fields)  # type: ignore[arg-type]
    logger.debug("Parsed RRULE %r -> %r", rrule_string, rule)
    return rule


def format_until(until: datetime) -> str:
    """Format UNTIL in iCalendar basic form; aware values are written as UTC."""
    if until.tzinfo is not None:
        return until.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")
    return until.strftime("%Y%m%dT%H%M%S")


def format_rrule(rule: RecurrenceRule) -> str:
    """Render a RecurrenceRule as canonical RRULE text.

    Example:
        "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,WE;COUNT=4"
    """
    parts = [f"FREQ={rule.frequency.value}", f"INTERVAL={rule.interval}"]
    if rule.by_weekday:
        parts.append("BYDAY=" + ",".join(w.value for w in rule.sorted_weekdays))
    if rule.count is not None:
        parts.append(f"COUNT={rule.count}")
    if rule.until is not None:
        parts.append(f"UNTIL={format_until(rule.until)}")
    return ";".join(parts)


def validate_recurrence_rule(rule: RecurrenceRule) -> list[str]:
    """Check a rule against what the expander supports.

    RecurrenceRule already enforces field constraints on construction; this
    re-checks them for rules built without validation and adds the
    cross-field checks.

    Returns:
        List of problems; empty when the rule can be expanded
    """
    errors: list[str] = []

    if not isinstance(rule.frequency, Frequency):
        errors.append(f"Unknown frequency {rule.frequency!r}")
    if rule.interval is None or rule.interval < 1:
        errors.append(f"INTERVAL must be >= 1, got {rule.interval}")
    if rule.count is not None and rule.count < 1:
        errors.append(f"COUNT must be >= 1, got {rule.count}")
    for day in rule.by_weekday or ():
        if not isinstance(day, Weekday):
            errors.append(f"Unknown BYDAY code {day!r}")
    if rule.by_weekday and rule.frequency in (Frequency.MONTHLY, Frequency.YEARLY):
        errors.append("BYDAY is only supported with DAILY or WEEKLY frequency")

    return errors


def describe_rule(rule: RecurrenceRule) -> str:
    """Human-readable summary of a rule.

    Examples:
        "Every day", "Every 2 weeks on Monday, Wednesday (4 times)",
        "Every month until 2024-06-30"
    """
    singular, plural = _UNIT_NAMES[rule.frequency]
    if rule.interval == 1:
        text = f"Every {singular}"
    else:
        text = f"Every {rule.interval} {plural}"

    if rule.by_weekday:
        text += " on " + ", ".join(_WEEKDAY_NAMES[w] for w in rule.sorted_weekdays)

    if rule.count is not None:
        text += " (1 time)" if rule.count == 1 else f" ({rule.count} times)"
    elif rule.until is not None:
        text += f" until {rule.until.date().isoformat()}"

    return text
