"""In-memory repositories for units, occupancies, proposals and history."""

from __future__ import annotations

import threading
from datetime import date, timedelta

from timeline_alloc.domain.errors import MalformedRequestError, StaleSnapshotError
from timeline_alloc.domain.models import (
    Applied,
    DateRange,
    HistoryEntry,
    Occupancy,
    OccupancyStatus,
    ProposalStatus,
    Snapshot,
    SwapProposal,
    Unit,
)
from timeline_alloc.services.conflicts import find_conflicts


class UnitRepository:
    """Dict-backed unit catalog, keyed by id, in insertion order."""

    def __init__(self) -> None:
        self._store: dict[str, Unit] = {}

    def add(self, unit: Unit) -> None:
        self._store[unit.id] = unit

    def get(self, unit_id: str) -> Unit | None:
        return self._store.get(unit_id)

    def list_all(self) -> list[Unit]:
        return list(self._store.values())

    def list_units(self, room_type_id: str) -> list[Unit]:
        return [u for u in self._store.values() if u.room_type_id == room_type_id]


class OccupancyRepository:
    """Dict-backed occupancy store.

    ``commit`` is the only writer used by the calendar service; it holds the
    store lock while checking that nothing the result replaces has changed
    since the snapshot was taken.
    """

    def __init__(self) -> None:
        self._store: dict[str, Occupancy] = {}
        self._lock = threading.RLock()

    def add(self, occupancy: Occupancy) -> None:
        with self._lock:
            self._store[occupancy.id] = occupancy

    def get(self, occupancy_id: str) -> Occupancy | None:
        return self._store.get(occupancy_id)

    def list_all(self) -> list[Occupancy]:
        return list(self._store.values())

    def list_active_for_unit(self, unit_id: str) -> list[Occupancy]:
        return sorted(
            (o for o in self._store.values() if o.unit_id == unit_id and o.is_active),
            key=lambda o: o.start_date,
        )

    def list_active_for_reservation(self, reservation_id: str) -> list[Occupancy]:
        """Return all active segments of a reservation, in date order."""
        return sorted(
            (
                o
                for o in self._store.values()
                if o.reservation_id == reservation_id and o.is_active
            ),
            key=lambda o: o.start_date,
        )

    def cancel(self, occupancy_id: str) -> None:
        with self._lock:
            occ = self._store.get(occupancy_id)
            if occ is not None:
                self._store[occupancy_id] = occ.model_copy(
                    update={"status": OccupancyStatus.CANCELLED}
                )

    def commit(self, result: Applied, snapshot: Snapshot) -> None:
        """Apply *result*, refusing if the store moved on since *snapshot*.

        Besides the values the result replaces, every written occupancy is
        checked against what is on its unit now, so two results built from
        the same snapshot cannot both land on the same nights.
        """
        seen = {o.id: o for o in snapshot.occupancies}
        touched = {o.id for o in result.occupancies} | set(result.removed_ids)
        with self._lock:
            for occupancy_id in touched:
                if self._store.get(occupancy_id) != seen.get(occupancy_id):
                    raise StaleSnapshotError(occupancy_id)
            untouched = [o for o in self._store.values() if o.id not in touched]
            for occ in result.occupancies:
                if not occ.is_active:
                    continue
                clashes = find_conflicts(occ, untouched)
                if clashes:
                    raise StaleSnapshotError(clashes[0].id)
            for occupancy_id in result.removed_ids:
                del self._store[occupancy_id]
            for occ in result.occupancies:
                self._store[occ.id] = occ


class ProposalRepository:
    """Dict-backed store for SwapProposal instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, SwapProposal] = {}

    def add(self, proposal: SwapProposal) -> None:
        current = self._store.get(proposal.id)
        if current is not None and current.status != ProposalStatus.PENDING:
            raise MalformedRequestError(
                f"Proposal {proposal.id} is already {current.status}"
            )
        self._store[proposal.id] = proposal

    def get(self, proposal_id: str) -> SwapProposal | None:
        return self._store.get(proposal_id)

    def list_pending(self) -> list[SwapProposal]:
        return [p for p in self._store.values() if p.status == ProposalStatus.PENDING]

    def update_status(self, proposal_id: str, status: ProposalStatus) -> None:
        proposal = self._store.get(proposal_id)
        if proposal is not None:
            self._store[proposal_id] = proposal.model_copy(update={"status": status})


class HistoryRepository:
    """List-backed store for HistoryEntry instances."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []

    def add(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def list_for_occupancy(self, occupancy_id: str) -> list[HistoryEntry]:
        return sorted(
            [e for e in self._entries if e.occupancy_id == occupancy_id],
            key=lambda e: e.timestamp,
        )


# ---------------------------------------------------------------------------
# Seed data: a small property for trying out edits
# ---------------------------------------------------------------------------


def _seed(units: UnitRepository, occupancies: OccupancyRepository, start: date) -> None:
    for number in ("101", "102", "103"):
        units.add(Unit(id=f"unit-{number}", room_type_id="double", label=number, floor="1"))
    units.add(Unit(id="unit-201", room_type_id="suite", label="201", floor="2", max_guests=4))

    def stay(occupancy_id: str, unit_id: str, offset: int, nights: int, label: str) -> Occupancy:
        first = start + timedelta(days=offset)
        last = first + timedelta(days=nights)
        return Occupancy(
            id=occupancy_id,
            unit_id=unit_id,
            range=DateRange(start=first, end=last),
            reservation_id=f"res-{occupancy_id}",
            label=label,
        )

    occupancies.add(stay("occ-1", "unit-101", 0, 3, "Ada Lovelace"))
    occupancies.add(stay("occ-2", "unit-101", 3, 4, "Grace Hopper"))
    occupancies.add(stay("occ-3", "unit-102", 1, 5, "Alan Turing"))
    occupancies.add(stay("occ-4", "unit-201", 2, 2, "Edsger Dijkstra"))


def create_repositories(start: date) -> tuple[UnitRepository, OccupancyRepository]:
    """Return unit and occupancy repositories pre-loaded with sample data."""
    units = UnitRepository()
    occupancies = OccupancyRepository()
    _seed(units, occupancies, start)
    return units, occupancies
