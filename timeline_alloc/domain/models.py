"""Domain models for the timeline allocation engine."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from enum import StrEnum
from typing import Annotated, Iterator, Literal, Union

from dateutil.rrule import DAILY, rrule
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from timeline_alloc.domain.errors import (
    AllocationError,
    ConflictError,
    InvalidDurationError,
    InvalidEdgeError,
    NoAvailabilityError,
    SwapInfeasibleError,
    UnknownOccupancyError,
    UnknownUnitError,
)


class OccupancyStatus(StrEnum):
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    PENDING = "pending"
    NEW = "new"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


INACTIVE_STATUSES = frozenset({OccupancyStatus.CANCELLED, OccupancyStatus.NO_SHOW})


class Edge(StrEnum):
    START = "resize-start"
    END = "resize-end"


class RejectionKind(StrEnum):
    CONFLICT = "conflict"
    INVALID_DURATION = "invalid_duration"
    INVALID_EDGE = "invalid_edge"
    NO_AVAILABILITY = "no_availability"
    SWAP_INFEASIBLE = "swap_infeasible"


class ProposalStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


class DateRange(BaseModel):
    """Half-open interval of calendar dates ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _end_after_start(self) -> DateRange:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def overlaps(self, other: DateRange) -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    def days(self) -> Iterator[date]:
        """Yield every night of the range, ``end`` excluded."""
        last = self.end - timedelta(days=1)
        for dt in rrule(DAILY, dtstart=_midnight(self.start), until=_midnight(last)):
            yield dt.date()


def _midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day)


def _new_id() -> str:
    return str(uuid.uuid4())


class Unit(BaseModel):
    """An addressable, interchangeable room."""

    model_config = ConfigDict(frozen=True)

    id: str
    room_type_id: str
    label: str
    floor: str | None = None
    max_guests: int | None = Field(default=None, gt=0)

    def admits(self, guest_count: int) -> bool:
        return self.max_guests is None or guest_count <= self.max_guests


class Occupancy(BaseModel):
    """One contiguous booked interval of one unit."""

    model_config = ConfigDict(frozen=True)

    id: str
    unit_id: str
    range: DateRange
    reservation_id: str
    segment_id: str | None = None
    status: OccupancyStatus = OccupancyStatus.CONFIRMED
    label: str | None = None

    @property
    def start_date(self) -> date:
        return self.range.start

    @property
    def end_date(self) -> date:
        return self.range.end

    @property
    def nights(self) -> int:
        return self.range.nights

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES

    def on_unit(self, unit_id: str) -> Occupancy:
        return self.model_copy(update={"unit_id": unit_id})

    def with_range(self, new_range: DateRange) -> Occupancy:
        return self.model_copy(update={"range": new_range})

    def describe(self) -> str:
        name = self.label or self.reservation_id
        return f"{name} ({self.id})"


class StayRequest(BaseModel):
    """A new stay waiting to be placed by the gap-fill allocator."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    range: DateRange
    guest_count: int = Field(default=1, ge=1)
    label: str | None = None
    reservation_id: str | None = None

    def as_occupancy(self, unit_id: str) -> Occupancy:
        return Occupancy(
            id=self.id,
            unit_id=unit_id,
            range=self.range,
            reservation_id=self.reservation_id or self.id,
            status=OccupancyStatus.NEW,
            label=self.label,
        )


class UnitMove(BaseModel):
    model_config = ConfigDict(frozen=True)

    occupancy_id: str
    from_unit_id: str
    to_unit_id: str


class SnapEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    edge_date: date
    edge: Literal["start", "end"]
    distance: int
    occupancy_id: str


class ResizeBounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_date: date | None = None
    max_date: date | None = None
    min_neighbor_id: str | None = None
    max_neighbor_id: str | None = None


class ResizePreview(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    duration: int
    has_conflicts: bool = False
    validation_reason: str | None = None
    rejection_kind: RejectionKind | None = None
    was_constrained: bool = False
    conflicting_ids: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return self.validation_reason is None and not self.has_conflicts


class SwapProposal(BaseModel):
    """Unit reassignments awaiting explicit confirmation.

    Used both for two-way swaps and for gap-fill placements that need an
    existing occupancy relocated first (``placement`` is then set).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    moves: list[UnitMove]
    originals: list[Occupancy]
    placement: Occupancy | None = None
    target_unit_id: str | None = None
    status: ProposalStatus = ProposalStatus.PENDING

    def moved(self) -> list[Occupancy]:
        """Return the post-move occupancy values, in ``moves`` order."""
        by_id = {o.id: o for o in self.originals}
        return [by_id[m.occupancy_id].on_unit(m.to_unit_id) for m in self.moves]


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class Snapshot(BaseModel):
    """Units and occupancies an engine call is evaluated against."""

    model_config = ConfigDict(frozen=True)

    units: list[Unit] = Field(default_factory=list)
    occupancies: list[Occupancy] = Field(default_factory=list)

    @model_validator(mode="after")
    def _consistent(self) -> Snapshot:
        unit_ids = [u.id for u in self.units]
        if len(unit_ids) != len(set(unit_ids)):
            raise ValueError("duplicate unit ids in snapshot")
        known = set(unit_ids)
        for occ in self.occupancies:
            if occ.unit_id not in known:
                raise ValueError(f"occupancy {occ.id} references unknown unit {occ.unit_id}")
        occupancy_ids = [o.id for o in self.occupancies]
        if len(occupancy_ids) != len(set(occupancy_ids)):
            raise ValueError("duplicate occupancy ids in snapshot")
        return self

    def unit(self, unit_id: str) -> Unit:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        raise UnknownUnitError(unit_id)

    def occupancy(self, occupancy_id: str) -> Occupancy:
        for occ in self.occupancies:
            if occ.id == occupancy_id:
                return occ
        raise UnknownOccupancyError(occupancy_id)

    def units_of_type(self, room_type_id: str) -> list[Unit]:
        return [u for u in self.units if u.room_type_id == room_type_id]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class Applied(BaseModel):
    """An accepted edit: new or changed occupancies plus removed ids."""

    status: Literal["applied"] = "applied"
    operation: str
    occupancies: list[Occupancy] = Field(default_factory=list)
    removed_ids: list[str] = Field(default_factory=list)
    preview: ResizePreview | None = None

    def apply_to(self, occupancies: list[Occupancy]) -> list[Occupancy]:
        """Return *occupancies* with this result applied; the input is untouched."""
        replaced = {o.id: o for o in self.occupancies}
        result = []
        for occ in occupancies:
            if occ.id in self.removed_ids:
                continue
            result.append(replaced.pop(occ.id, occ))
        result.extend(o for o in self.occupancies if o.id in replaced)
        return result


class Proposed(BaseModel):
    status: Literal["proposed"] = "proposed"
    operation: str
    proposal: SwapProposal


_ERRORS: dict[RejectionKind, type[AllocationError]] = {
    RejectionKind.CONFLICT: ConflictError,
    RejectionKind.INVALID_DURATION: InvalidDurationError,
    RejectionKind.INVALID_EDGE: InvalidEdgeError,
    RejectionKind.NO_AVAILABILITY: NoAvailabilityError,
    RejectionKind.SWAP_INFEASIBLE: SwapInfeasibleError,
}


class Rejected(BaseModel):
    """A refused edit, explained well enough to show an operator."""

    status: Literal["rejected"] = "rejected"
    operation: str
    kind: RejectionKind
    reason: str
    conflicting_ids: list[str] = Field(default_factory=list)
    blocked_side: Literal["a", "b", "both"] | None = None
    preview: ResizePreview | None = None

    def to_error(self) -> AllocationError:
        error_class = _ERRORS[self.kind]
        if error_class is SwapInfeasibleError:
            return SwapInfeasibleError(self.reason, self.conflicting_ids, self.blocked_side)
        return error_class(self.reason, self.conflicting_ids)


Result = Annotated[Union[Applied, Proposed, Rejected], Field(discriminator="status")]


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class HistoryEntryType(StrEnum):
    MOVED = "moved"
    RESIZED = "resized"
    SPLIT = "split"
    SWAPPED = "swapped"
    PLACED = "placed"
    PROPOSED = "proposed"
    PROPOSAL_REJECTED = "proposal_rejected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    occupancy_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: HistoryEntryType
    payload: dict = Field(default_factory=dict)
