"""Occurrence filtering for the planning engine.

Filtering is a pure, order-preserving predicate pass: it drops occurrences and
never reorders the ones it keeps.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..calendar.models import EventOccurrence, EventStatus, TargetRole
from ..core.date_utils import ensure_timezone_aware

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Fold case and strip diacritics ("Réunion" -> "reunion")."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold().strip()


class FilterCriteria(BaseModel):
    """Recognized filter options.

    Empty sets and ``None`` values mean "no restriction" for that option.
    """

    roles: frozenset[TargetRole] = Field(default_factory=frozenset)
    statuses: frozenset[EventStatus] = Field(default_factory=frozenset)
    participant_id: Optional[str] = None
    search_text: Optional[str] = None
    start_date: Optional[datetime] = Field(default=None, description="Inclusive range start")
    end_date: Optional[datetime] = Field(default=None, description="Exclusive range end")

    model_config = ConfigDict(frozen=True)

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_timezone_aware(value) if value is not None else None

    @property
    def is_empty(self) -> bool:
        return not (
            self.roles
            or self.statuses
            or self.participant_id
            or (self.search_text and self.search_text.strip())
            or self.start_date
            or self.end_date
        )


class EventFilter:
    """Filters occurrences by role, status, participant, text and date range."""

    def filter(
        self,
        occurrences: Iterable[EventOccurrence],
        criteria: Optional[FilterCriteria] = None,
    ) -> list[EventOccurrence]:
        """Keep the occurrences matching every active criterion.

        Args:
            occurrences: Occurrences in display order
            criteria: Filter options; None keeps everything

        Returns:
            Matching occurrences in their original order
        """
        items = list(occurrences)
        if criteria is None or criteria.is_empty:
            return items

        needle = normalize_text(criteria.search_text) if criteria.search_text else ""
        kept = [occ for occ in items if self.matches(occ, criteria, needle)]

        logger.debug("EventFilter kept %d of %d occurrences", len(kept), len(items))
        return kept

    def matches(
        self,
        occurrence: EventOccurrence,
        criteria: FilterCriteria,
        normalized_search: Optional[str] = None,
    ) -> bool:
        """Check one occurrence against the criteria."""
        if criteria.roles and not (criteria.roles & occurrence.target_roles):
            return False

        if criteria.statuses and occurrence.effective_status not in criteria.statuses:
            return False

        if criteria.participant_id and criteria.participant_id not in occurrence.participant_ids:
            return False

        if normalized_search is None:
            normalized_search = normalize_text(criteria.search_text or "")
        if normalized_search and not self._matches_text(occurrence, normalized_search):
            return False

        if criteria.start_date is not None and occurrence.occurrence_end <= criteria.start_date:
            return False
        if criteria.end_date is not None and occurrence.occurrence_start >= criteria.end_date:
            return False

        return True

    @staticmethod
    def _matches_text(occurrence: EventOccurrence, needle: str) -> bool:
        for field in (occurrence.title, occurrence.location, occurrence.description):
            if field and needle in normalize_text(field):
                return True
        return False


def filter_occurrences(
    occurrences: Iterable[EventOccurrence],
    criteria: Optional[FilterCriteria] = None,
) -> list[EventOccurrence]:
    """Module-level shortcut for ``EventFilter().filter``."""
    return EventFilter().filter(occurrences, criteria)
