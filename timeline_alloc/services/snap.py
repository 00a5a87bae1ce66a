"""Service for snapping a date to nearby occupancy edges on a unit."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from timeline_alloc.domain.models import Occupancy, SnapEdge

DEFAULT_TOLERANCE_DAYS = 1


def find_nearby_edges(
    target_date: date,
    unit_id: str,
    occupancies: Iterable[Occupancy],
    tolerance_days: int = DEFAULT_TOLERANCE_DAYS,
    exclude_id: str | None = None,
) -> list[SnapEdge]:
    """Return edges within *tolerance_days* of *target_date*, closest first.

    Ties are broken by the earlier edge date.
    """
    edges: list[SnapEdge] = []
    for occ in occupancies:
        if occ.unit_id != unit_id or occ.id == exclude_id or not occ.is_active:
            continue
        for kind, edge_date in (("start", occ.start_date), ("end", occ.end_date)):
            distance = abs((edge_date - target_date).days)
            if distance <= tolerance_days:
                edges.append(
                    SnapEdge(
                        edge_date=edge_date,
                        edge=kind,
                        distance=distance,
                        occupancy_id=occ.id,
                    )
                )
    return sorted(edges, key=lambda e: (e.distance, e.edge_date))


def snap_to_nearest_edge(
    target_date: date,
    unit_id: str,
    occupancies: Iterable[Occupancy],
    tolerance_days: int = DEFAULT_TOLERANCE_DAYS,
    exclude_id: str | None = None,
) -> date:
    """Return the closest edge date, or *target_date* when nothing is in range."""
    edges = find_nearby_edges(target_date, unit_id, occupancies, tolerance_days, exclude_id)
    if edges:
        return edges[0].edge_date
    return target_date
