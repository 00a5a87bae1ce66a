"""Service for detecting overlapping occupancies on a unit."""

from __future__ import annotations

from datetime import date
from itertools import combinations
from typing import Iterable

from timeline_alloc.domain.models import DateRange, Occupancy


def find_conflicts(
    candidate: Occupancy,
    existing: Iterable[Occupancy],
    exclude_id: str | None = None,
) -> list[Occupancy]:
    """Return active occupancies on the candidate's unit that overlap it.

    Overlap rule: conflict if candidate.start < existing.end AND existing.start < candidate.end.
    Exact boundary touches (end == start) are NOT considered conflicts.
    """
    return [
        occ
        for occ in existing
        if occ.id != exclude_id
        and occ.is_active
        and occ.unit_id == candidate.unit_id
        and candidate.range.overlaps(occ.range)
    ]


def has_conflict(
    candidate: Occupancy,
    existing: Iterable[Occupancy],
    exclude_id: str | None = None,
) -> bool:
    return bool(find_conflicts(candidate, existing, exclude_id))


def find_conflicts_in_window(
    occupancies: Iterable[Occupancy],
    unit_ids: Iterable[str],
    window: DateRange,
    exclude_id: str | None = None,
) -> list[Occupancy]:
    """Return active occupancies on any of *unit_ids* overlapping *window*."""
    wanted = set(unit_ids)
    return [
        occ
        for occ in occupancies
        if occ.unit_id in wanted
        and occ.id != exclude_id
        and occ.is_active
        and window.overlaps(occ.range)
    ]


def is_unit_available(
    unit_id: str,
    window: DateRange,
    occupancies: Iterable[Occupancy],
    exclude_id: str | None = None,
) -> bool:
    return not find_conflicts_in_window(occupancies, [unit_id], window, exclude_id)


def free_nights(
    unit_id: str,
    window: DateRange,
    occupancies: Iterable[Occupancy],
    exclude_id: str | None = None,
) -> list[date]:
    """Return the nights of *window* on which *unit_id* has no active occupancy."""
    taken = find_conflicts_in_window(occupancies, [unit_id], window, exclude_id)
    return [day for day in window.days() if not any(o.range.contains(day) for o in taken)]


def find_overlaps(occupancies: Iterable[Occupancy]) -> list[tuple[Occupancy, Occupancy]]:
    """Return every pair of active occupancies sharing a unit and a night."""
    by_unit: dict[str, list[Occupancy]] = {}
    for occ in occupancies:
        if occ.is_active:
            by_unit.setdefault(occ.unit_id, []).append(occ)

    pairs = []
    for unit_occupancies in by_unit.values():
        for first, second in combinations(unit_occupancies, 2):
            if first.range.overlaps(second.range):
                pairs.append((first, second))
    return pairs
