"""Display metadata for occurrences.

Single source of truth for the colour, role label and participant summary
attached to every projected occurrence.
"""

from __future__ import annotations

from collections.abc import Collection

from ..calendar.models import EventOccurrence, TargetRole

ROLE_COLORS: dict[TargetRole, str] = {
    TargetRole.ANIMATOR: "#3b82f6",
    TargetRole.COORDINATOR: "#22c55e",
    TargetRole.DIRECTOR: "#f97316",
}

ROLE_LABELS: dict[TargetRole, str] = {
    TargetRole.ANIMATOR: "Animator",
    TargetRole.COORDINATOR: "Coordinator",
    TargetRole.DIRECTOR: "Director",
}

# Highest priority first
_COLOR_PRIORITY = (TargetRole.DIRECTOR, TargetRole.COORDINATOR, TargetRole.ANIMATOR)
_LABEL_ORDER = (TargetRole.ANIMATOR, TargetRole.COORDINATOR, TargetRole.DIRECTOR)


def get_event_color(target_roles: Collection[TargetRole]) -> str:
    """Colour for a set of target roles.

    With several roles the most senior wins: director > coordinator >
    animator. Events without roles use the animator colour.
    """
    for role in _COLOR_PRIORITY:
        if role in target_roles:
            return ROLE_COLORS[role]
    return ROLE_COLORS[TargetRole.ANIMATOR]


def get_role_label(target_roles: Collection[TargetRole]) -> str:
    """Return "All" when every role is targeted, else the labels in role order."""
    if len(set(target_roles)) == len(TargetRole):
        return "All"
    return ", ".join(ROLE_LABELS[r] for r in _LABEL_ORDER if r in target_roles)


def get_participant_summary(participant_ids: Collection[str]) -> str:
    count = len(participant_ids)
    if count == 0:
        return "No participants"
    if count == 1:
        return "1 participant"
    return f"{count} participants"


def with_display_metadata(occurrence: EventOccurrence) -> EventOccurrence:
    """Return a copy of ``occurrence`` with colour, role label and summary set."""
    return occurrence.model_copy(
        update={
            "color": get_event_color(occurrence.target_roles),
            "role_label": get_role_label(occurrence.target_roles),
            "participant_summary": get_participant_summary(occurrence.participant_ids),
        }
    )
