"""Shared match-status and match-format definitions.

This module is the single source of truth for the status values written to
match records, the status groups reused by queries and aggregations, and the
allowed lifecycle moves.
"""

from __future__ import annotations

from typing import Iterable

# Individual statuses. Values are part of the record contract.
SCHEDULED = "scheduled"
IN_PROGRESS = "inProgress"
COMPLETED = "completed"

ALL_MATCH_STATUSES: tuple[str, ...] = (SCHEDULED, IN_PROGRESS, COMPLETED)

# Match formats
SINGLE_SET = "singleSet"
BEST_OF_THREE = "bestOfThree"

ALL_MATCH_FORMATS: tuple[str, ...] = (SINGLE_SET, BEST_OF_THREE)

# Canonical status groups.
MATCH_STATUS_GROUPS: dict[str, tuple[str, ...]] = {
    # Matches still awaiting a result.
    "pending": (SCHEDULED, IN_PROGRESS),
    # Matches that feed ratings, standings and bracket progression.
    "final": (COMPLETED,),
    # Matches whose live score may be shown.
    "live": (IN_PROGRESS,),
    "all": ALL_MATCH_STATUSES,
}

# Lifecycle moves: (from_status, to_status). Completion is additionally
# gated by score validation; see courtside.lifecycle.
ALLOWED_TRANSITIONS: frozenset[tuple[str, str]] = frozenset(
    {
        (SCHEDULED, IN_PROGRESS),
        (IN_PROGRESS, SCHEDULED),
        (SCHEDULED, COMPLETED),
        (IN_PROGRESS, COMPLETED),
        (COMPLETED, SCHEDULED),  # admin "clear result"
    }
)


def is_transition_allowed(from_status: str, to_status: str) -> bool:
    """Return True if the lifecycle allows moving between the two statuses."""
    return (from_status, to_status) in ALLOWED_TRANSITIONS


def get_status_group(group_name: str) -> tuple[str, ...]:
    """Return a named status group, raising KeyError for unknown names."""
    return MATCH_STATUS_GROUPS[group_name]


def normalize_status_filter(
    raw_statuses: Iterable[str] | None,
    *,
    default_group: str = "final",
) -> list[str]:
    """Normalize requested statuses against known values.

    - If no statuses are provided, returns the statuses from ``default_group``.
    - Unknown statuses are ignored.
    - Order is preserved and duplicates are removed.
    """
    if raw_statuses is None:
        return list(get_status_group(default_group))

    seen: set[str] = set()
    normalized: list[str] = []

    for raw in raw_statuses:
        status = raw.strip()
        if not status or status in seen or status not in ALL_MATCH_STATUSES:
            continue
        seen.add(status)
        normalized.append(status)

    if normalized:
        return normalized

    return list(get_status_group(default_group))
