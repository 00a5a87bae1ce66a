"""Calendar service: runs engine edits against the in-memory store.

This is the caller the engine expects. It takes a snapshot of the store,
asks the engine for a verdict, commits ``Applied`` results and publishes the
matching domain event. Proposals (swaps and gap fills that need a unit
freed) are parked as pending until ``confirm_proposal`` or
``reject_proposal`` is called.
"""

from __future__ import annotations

import logging
from datetime import date

from pydantic import BaseModel

from timeline_alloc.domain.bus import EventBus
from timeline_alloc.domain.errors import MalformedRequestError, UnknownProposalError
from timeline_alloc.domain.events import (
    OccupancyMoved,
    OccupancyResized,
    OccupancySplit,
    ProposalRejected,
    StayPlaced,
    SwapProposed,
    UnitsSwapped,
)
from timeline_alloc.domain.handlers import HandlerRegistry
from timeline_alloc.domain.models import (
    Applied,
    Proposed,
    ProposalStatus,
    Rejected,
    Snapshot,
    StayRequest,
    SwapProposal,
    UnitMove,
)
from timeline_alloc.repos.memory import (
    HistoryRepository,
    OccupancyRepository,
    ProposalRepository,
    UnitRepository,
)
from timeline_alloc.services.engine import AllocationEngine

log = logging.getLogger(__name__)


class MoveOutcome(BaseModel):
    occupancy_id: str
    success: bool
    reason: str | None = None


class CalendarService:
    def __init__(
        self,
        units: UnitRepository,
        occupancies: OccupancyRepository,
        proposals: ProposalRepository | None = None,
        history: HistoryRepository | None = None,
        bus: EventBus | None = None,
        engine: AllocationEngine | None = None,
        strict: bool = False,
    ) -> None:
        self.units = units
        self.occupancies = occupancies
        self.proposals = proposals or ProposalRepository()
        self.history = history or HistoryRepository()
        self.bus = bus or EventBus()
        self.engine = engine or AllocationEngine()
        # strict: raise the matching AllocationError instead of returning Rejected
        self.strict = strict
        self.handlers = HandlerRegistry(
            bus=self.bus, history_repo=self.history, proposal_repo=self.proposals
        )

    def snapshot(self) -> Snapshot:
        return Snapshot(units=self.units.list_all(), occupancies=self.occupancies.list_all())

    # ------------------------------------------------------------------
    # Direct edits
    # ------------------------------------------------------------------

    def move(self, occupancy_id: str, target_unit_id: str) -> Applied | Rejected:
        snapshot = self.snapshot()
        occupancy = snapshot.occupancy(occupancy_id)
        result = self.engine.move(occupancy, target_unit_id, snapshot)
        if isinstance(result, Applied):
            self._commit(result, snapshot)
            self.bus.publish(
                OccupancyMoved(
                    occupancy_id=occupancy_id,
                    from_unit_id=occupancy.unit_id,
                    to_unit_id=target_unit_id,
                )
            )
        return self._finish(result)

    def resize_start(self, occupancy_id: str, target_date: date, **options) -> Applied | Rejected:
        snapshot = self.snapshot()
        occupancy = snapshot.occupancy(occupancy_id)
        result = self.engine.resize_start(occupancy, target_date, snapshot, **options)
        return self._after_resize(result, snapshot)

    def resize_end(self, occupancy_id: str, target_date: date, **options) -> Applied | Rejected:
        snapshot = self.snapshot()
        occupancy = snapshot.occupancy(occupancy_id)
        result = self.engine.resize_end(occupancy, target_date, snapshot, **options)
        return self._after_resize(result, snapshot)

    def split(
        self, occupancy_id: str, at_date: date, target_unit_id: str | None = None
    ) -> Applied | Rejected:
        snapshot = self.snapshot()
        occupancy = snapshot.occupancy(occupancy_id)
        result = self.engine.split(occupancy, at_date, snapshot, target_unit_id)
        if isinstance(result, Applied):
            self._commit(result, snapshot)
            self.bus.publish(
                OccupancySplit(
                    occupancy_id=occupancy_id,
                    segment_ids=[o.id for o in result.occupancies],
                )
            )
        return self._finish(result)

    def apply_unit_moves(self, moves: list[UnitMove]) -> list[MoveOutcome]:
        """Apply moves one by one, reporting each outcome.

        A failed move does not stop the batch; later moves see the state left
        by the earlier successful ones.
        """
        if not moves:
            raise MalformedRequestError("Moves list is required")

        outcomes = []
        for unit_move in moves:
            current = self.occupancies.get(unit_move.occupancy_id)
            if current is None or current.unit_id != unit_move.from_unit_id:
                outcomes.append(
                    MoveOutcome(
                        occupancy_id=unit_move.occupancy_id,
                        success=False,
                        reason=f"Occupancy is no longer on unit {unit_move.from_unit_id}",
                    )
                )
                continue
            snapshot = self.snapshot()
            result = self.engine.move(current, unit_move.to_unit_id, snapshot)
            if isinstance(result, Rejected):
                outcomes.append(
                    MoveOutcome(
                        occupancy_id=unit_move.occupancy_id, success=False, reason=result.reason
                    )
                )
                continue
            self._commit(result, snapshot)
            self.bus.publish(
                OccupancyMoved(
                    occupancy_id=unit_move.occupancy_id,
                    from_unit_id=unit_move.from_unit_id,
                    to_unit_id=unit_move.to_unit_id,
                )
            )
            outcomes.append(MoveOutcome(occupancy_id=unit_move.occupancy_id, success=True))

        succeeded = sum(1 for o in outcomes if o.success)
        log.info("Applied %d of %d unit move(s)", succeeded, len(outcomes))
        return outcomes

    # ------------------------------------------------------------------
    # Two-phase edits
    # ------------------------------------------------------------------

    def propose_swap(self, occupancy_a_id: str, occupancy_b_id: str) -> Proposed | Rejected:
        snapshot = self.snapshot()
        result = self.engine.propose_swap(
            snapshot.occupancy(occupancy_a_id), snapshot.occupancy(occupancy_b_id), snapshot
        )
        if isinstance(result, Proposed):
            result = self._park(result)
        return self._finish(result)

    def gap_fill(
        self,
        request: StayRequest,
        candidate_unit_ids: list[str],
        allow_swaps: bool = True,
    ) -> Applied | Proposed | Rejected:
        snapshot = self.snapshot()
        result = self.engine.gap_fill(request, candidate_unit_ids, snapshot, allow_swaps)
        if isinstance(result, Applied):
            self._commit(result, snapshot)
            placed = result.occupancies[0]
            self.bus.publish(StayPlaced(occupancy_id=placed.id, unit_id=placed.unit_id))
        elif isinstance(result, Proposed):
            result = self._park(result)
        return self._finish(result)

    def confirm_proposal(self, proposal_id: str) -> Applied | Rejected:
        """Re-check a pending proposal against the current store and apply it."""
        proposal = self._pending(proposal_id)
        snapshot = self.snapshot()
        result = self.engine.apply_swap(proposal, snapshot)
        if isinstance(result, Rejected):
            self.bus.publish(ProposalRejected(proposal_id=proposal_id, reason=result.reason))
            return self._finish(result)

        self._commit(result, snapshot)
        self.bus.publish(UnitsSwapped(proposal_id=proposal_id, moves=proposal.moves))
        if proposal.placement is not None:
            self.bus.publish(
                StayPlaced(
                    occupancy_id=proposal.placement.id,
                    unit_id=proposal.placement.unit_id,
                    proposal_id=proposal_id,
                )
            )
        return self._finish(result)

    def reject_proposal(self, proposal_id: str, reason: str = "Rejected by operator") -> None:
        self._pending(proposal_id)
        self.bus.publish(ProposalRejected(proposal_id=proposal_id, reason=reason))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _after_resize(self, result: Applied | Rejected, snapshot: Snapshot) -> Applied | Rejected:
        if isinstance(result, Applied):
            self._commit(result, snapshot)
            resized = result.occupancies[0]
            self.bus.publish(
                OccupancyResized(
                    occupancy_id=resized.id,
                    edge=result.operation,
                    start_date=resized.start_date,
                    end_date=resized.end_date,
                    was_constrained=result.preview.was_constrained if result.preview else False,
                )
            )
        return self._finish(result)

    def _commit(self, result: Applied, snapshot: Snapshot) -> None:
        self.occupancies.commit(result, snapshot)
        log.info(
            "Committed %s: %d occupancy value(s), %d removed",
            result.operation,
            len(result.occupancies),
            len(result.removed_ids),
        )

    def _park(self, result: Proposed) -> Proposed:
        """Store the proposal as pending, renaming it if its id is already decided."""
        proposal = result.proposal
        proposal_id = proposal.id
        n = 1
        taken = self.proposals.get(proposal_id)
        while taken is not None and taken.status != ProposalStatus.PENDING:
            n += 1
            proposal_id = f"{proposal.id}:{n}"
            taken = self.proposals.get(proposal_id)
        if proposal_id != proposal.id:
            proposal = proposal.model_copy(update={"id": proposal_id})
            result = result.model_copy(update={"proposal": proposal})
        self.proposals.add(proposal)
        self.bus.publish(SwapProposed(proposal_id=proposal.id))
        return result

    def _pending(self, proposal_id: str) -> SwapProposal:
        proposal = self.proposals.get(proposal_id)
        if proposal is None:
            raise UnknownProposalError(f"unknown proposal {proposal_id!r}")
        if proposal.status != ProposalStatus.PENDING:
            raise MalformedRequestError(f"Proposal is already {proposal.status}")
        return proposal

    def _finish(self, result):
        if self.strict and isinstance(result, Rejected):
            raise result.to_error()
        return result
