"""Allocation engine: the single entry point for timeline edits.

The engine is stateless. Every call takes a ``Snapshot`` of the units and
occupancies it should be evaluated against and returns ``Applied``,
``Proposed`` or ``Rejected``; it never mutates the snapshot and never touches
storage. Business-rule violations are returned, programming errors (unknown
ids, inactive subjects, malformed requests) are raised.
"""

from __future__ import annotations

import logging
from datetime import date

from timeline_alloc.domain.errors import MalformedRequestError
from timeline_alloc.domain.models import (
    Applied,
    DateRange,
    Edge,
    Occupancy,
    Proposed,
    Rejected,
    ResizeBounds,
    Snapshot,
    SnapEdge,
    StayRequest,
    SwapProposal,
)
from timeline_alloc.domain.settings import DEFAULT_SETTINGS, EngineSettings
from timeline_alloc.services import conflicts, gapfill, move, resize, snap, split, swap

log = logging.getLogger(__name__)


class AllocationEngine:
    def __init__(self, settings: EngineSettings = DEFAULT_SETTINGS) -> None:
        self.settings = settings

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def move(
        self, occupancy: Occupancy, target_unit_id: str, snapshot: Snapshot
    ) -> Applied | Rejected:
        self._require_active(occupancy)
        snapshot.unit(target_unit_id)
        return move.resolve_move(occupancy, target_unit_id, snapshot.occupancies)

    def resize_start(
        self,
        occupancy: Occupancy,
        target_date: date,
        snapshot: Snapshot,
        end_date: date | None = None,
        clamp: bool = True,
        snap_to_edges: bool = False,
    ) -> Applied | Rejected:
        """Move the check-in date; *end_date*, if given, must equal the current one."""
        self._require_active(occupancy)
        if end_date is not None and end_date <= occupancy.start_date:
            raise MalformedRequestError(
                f"end_date {end_date} is not after {occupancy.id}'s start {occupancy.start_date}"
            )
        return self._resize(occupancy, target_date, Edge.START, snapshot, end_date, clamp, snap_to_edges)

    def resize_end(
        self,
        occupancy: Occupancy,
        target_date: date,
        snapshot: Snapshot,
        start_date: date | None = None,
        clamp: bool = True,
        snap_to_edges: bool = False,
    ) -> Applied | Rejected:
        """Move the check-out date; *start_date*, if given, must equal the current one."""
        self._require_active(occupancy)
        if start_date is not None and start_date >= occupancy.end_date:
            raise MalformedRequestError(
                f"start_date {start_date} is not before {occupancy.id}'s end {occupancy.end_date}"
            )
        return self._resize(occupancy, target_date, Edge.END, snapshot, start_date, clamp, snap_to_edges)

    def split(
        self,
        occupancy: Occupancy,
        at_date: date,
        snapshot: Snapshot,
        target_unit_id: str | None = None,
    ) -> Applied | Rejected:
        self._require_active(occupancy)
        if target_unit_id is not None:
            snapshot.unit(target_unit_id)
        return split.resolve_split(
            occupancy,
            at_date,
            snapshot.occupancies,
            self.settings.min_stay,
            target_unit_id=target_unit_id,
        )

    def propose_swap(
        self, a: Occupancy, b: Occupancy, snapshot: Snapshot
    ) -> Proposed | Rejected:
        self._require_active(a)
        self._require_active(b)
        snapshot.unit(a.unit_id)
        snapshot.unit(b.unit_id)
        return swap.propose_swap(a, b, snapshot.occupancies)

    def apply_swap(
        self, proposal: SwapProposal, snapshot: Snapshot | None = None
    ) -> Applied | Rejected:
        return swap.apply_swap(proposal, snapshot.occupancies if snapshot else None)

    def gap_fill(
        self,
        request: StayRequest,
        candidate_unit_ids: list[str],
        snapshot: Snapshot,
        allow_swaps: bool = True,
    ) -> Applied | Proposed | Rejected:
        return gapfill.gap_fill(
            request, candidate_unit_ids, snapshot, allow_swaps, self.settings
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def snap(
        self,
        target_date: date,
        unit_id: str,
        snapshot: Snapshot,
        exclude_id: str | None = None,
    ) -> date:
        return snap.snap_to_nearest_edge(
            target_date,
            unit_id,
            snapshot.occupancies,
            self.settings.snap_tolerance_days,
            exclude_id,
        )

    def nearby_edges(
        self,
        target_date: date,
        unit_id: str,
        snapshot: Snapshot,
        exclude_id: str | None = None,
    ) -> list[SnapEdge]:
        return snap.find_nearby_edges(
            target_date,
            unit_id,
            snapshot.occupancies,
            self.settings.snap_tolerance_days,
            exclude_id,
        )

    def resize_bounds(
        self, occupancy: Occupancy, edge: Edge, snapshot: Snapshot
    ) -> ResizeBounds:
        return resize.resize_bounds(
            occupancy, edge, snapshot.occupancies, self.settings.min_stay
        )

    def check_availability(
        self,
        unit_id: str,
        window: DateRange,
        snapshot: Snapshot,
        exclude_id: str | None = None,
    ) -> bool:
        snapshot.unit(unit_id)
        return conflicts.is_unit_available(unit_id, window, snapshot.occupancies, exclude_id)

    def find_conflicts(
        self,
        unit_ids: list[str],
        window: DateRange,
        snapshot: Snapshot,
        exclude_id: str | None = None,
    ) -> list[Occupancy]:
        for unit_id in unit_ids:
            snapshot.unit(unit_id)
        return conflicts.find_conflicts_in_window(
            snapshot.occupancies, unit_ids, window, exclude_id
        )

    def free_nights(
        self,
        unit_id: str,
        window: DateRange,
        snapshot: Snapshot,
        exclude_id: str | None = None,
    ) -> list[date]:
        snapshot.unit(unit_id)
        return conflicts.free_nights(unit_id, window, snapshot.occupancies, exclude_id)

    def audit(self, snapshot: Snapshot) -> list[tuple[Occupancy, Occupancy]]:
        """Return every pair of active occupancies that break non-overlap."""
        return conflicts.find_overlaps(snapshot.occupancies)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resize(
        self,
        occupancy: Occupancy,
        target_date: date,
        edge: Edge,
        snapshot: Snapshot,
        fixed_date: date | None,
        clamp: bool,
        snap_to_edges: bool,
    ) -> Applied | Rejected:
        snapshot.unit(occupancy.unit_id)
        if snap_to_edges:
            target_date = self.snap(target_date, occupancy.unit_id, snapshot, occupancy.id)
        return resize.resolve_resize(
            occupancy,
            target_date,
            edge,
            snapshot.occupancies,
            self.settings.min_stay,
            clamp=clamp,
            fixed_date=fixed_date,
        )

    @staticmethod
    def _require_active(occupancy: Occupancy) -> None:
        if not occupancy.is_active:
            raise MalformedRequestError(
                f"occupancy {occupancy.id} is {occupancy.status} and cannot be edited"
            )
