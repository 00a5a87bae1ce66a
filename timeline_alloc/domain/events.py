"""Domain events emitted when allocation changes are committed or proposed."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from timeline_alloc.domain.models import UnitMove


class OccupancyMoved(BaseModel):
    """Fired after an occupancy has been committed to another unit."""

    occupancy_id: str
    from_unit_id: str
    to_unit_id: str


class OccupancyResized(BaseModel):
    """Fired after one edge of an occupancy has been committed."""

    occupancy_id: str
    edge: str
    start_date: date
    end_date: date
    was_constrained: bool = False


class OccupancySplit(BaseModel):
    """Fired after an occupancy has been replaced by two segments."""

    occupancy_id: str
    segment_ids: list[str]


class UnitsSwapped(BaseModel):
    """Fired when a confirmed proposal's unit moves have been committed."""

    proposal_id: str
    moves: list[UnitMove]


class StayPlaced(BaseModel):
    """Fired when a new stay has been committed to a unit."""

    occupancy_id: str
    unit_id: str
    proposal_id: str | None = None


class SwapProposed(BaseModel):
    """Fired when a proposal is waiting for an operator's decision."""

    proposal_id: str


class ProposalRejected(BaseModel):
    """Fired when a proposal is turned down or no longer applies."""

    proposal_id: str
    reason: str
