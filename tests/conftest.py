"""Shared fixtures for planning_engine tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

import pytest

from planning_engine.calendar.models import Event, EventOccurrence, EventStatus, TargetRole
from planning_engine.engine_logging import ENGINE_LOGGERS


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for events with sensible defaults.

    Defaults to a one-hour confirmed event on Monday 2024-01-01 09:00 UTC
    targeting animators.
    """

    def _make(
        event_id: str = "evt-1",
        start: datetime | None = None,
        duration: timedelta = timedelta(hours=1),
        **fields: Any,
    ) -> Event:
        start = start or datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
        data: dict[str, Any] = {
            "id": event_id,
            "title": fields.pop("title", f"Event {event_id}"),
            "start_time": start,
            "end_time": fields.pop("end_time", start + duration),
            "target_roles": fields.pop("target_roles", frozenset({TargetRole.ANIMATOR})),
        }
        data.update(fields)
        return Event(**data)

    return _make


@pytest.fixture
def make_occurrence() -> Callable[..., EventOccurrence]:
    """Factory for occurrences without going through expansion."""

    def _make(
        source_event_id: str = "evt-1",
        start: datetime | None = None,
        duration: timedelta = timedelta(hours=1),
        **fields: Any,
    ) -> EventOccurrence:
        start = start or datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
        data: dict[str, Any] = {
            "source_event_id": source_event_id,
            "occurrence_start": start,
            "occurrence_end": fields.pop("end", start + duration),
            "original_start": start,
            "title": fields.pop("title", f"Event {source_event_id}"),
            "effective_status": fields.pop("status", EventStatus.CONFIRMED),
        }
        data.update(fields)
        return EventOccurrence(**data)

    return _make


@pytest.fixture(autouse=True)
def clean_planning_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Keep PLANNING_* variables from the host out of every test."""
    for key in (
        "PLANNING_DEBUG",
        "PLANNING_LOG_LEVEL",
        "PLANNING_MAX_EXPANSION_ITERATIONS",
        "PLANNING_WEEK_START",
        "PLANNING_INCLUDE_CANCELLED",
    ):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
def restore_logger_levels() -> Generator[None, Any, None]:
    """Undo level changes made by logging configuration under test."""
    names = ["", *ENGINE_LOGGERS]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)
