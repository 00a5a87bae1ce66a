"""Domain event handlers, wired up when the calendar service is built."""

from __future__ import annotations

from timeline_alloc.domain.bus import EventBus
from timeline_alloc.domain.events import (
    OccupancyMoved,
    OccupancyResized,
    OccupancySplit,
    ProposalRejected,
    StayPlaced,
    SwapProposed,
    UnitsSwapped,
)
from timeline_alloc.domain.models import HistoryEntry, HistoryEntryType, ProposalStatus
from timeline_alloc.repos.memory import HistoryRepository, ProposalRepository


class HandlerRegistry:
    """Wires allocation-event handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        history_repo: HistoryRepository,
        proposal_repo: ProposalRepository,
    ) -> None:
        self.bus = bus
        self.history_repo = history_repo
        self.proposal_repo = proposal_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(OccupancyMoved, self.on_occupancy_moved)
        self.bus.subscribe(OccupancyResized, self.on_occupancy_resized)
        self.bus.subscribe(OccupancySplit, self.on_occupancy_split)
        self.bus.subscribe(UnitsSwapped, self.on_units_swapped)
        self.bus.subscribe(StayPlaced, self.on_stay_placed)
        self.bus.subscribe(SwapProposed, self.on_swap_proposed)
        self.bus.subscribe(ProposalRejected, self.on_proposal_rejected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_occupancy_moved(self, event: OccupancyMoved) -> None:
        self.history_repo.add(
            HistoryEntry(
                occupancy_id=event.occupancy_id,
                type=HistoryEntryType.MOVED,
                payload={"from": event.from_unit_id, "to": event.to_unit_id},
            )
        )

    def on_occupancy_resized(self, event: OccupancyResized) -> None:
        self.history_repo.add(
            HistoryEntry(
                occupancy_id=event.occupancy_id,
                type=HistoryEntryType.RESIZED,
                payload={
                    "edge": event.edge,
                    "start_date": event.start_date.isoformat(),
                    "end_date": event.end_date.isoformat(),
                    "was_constrained": event.was_constrained,
                },
            )
        )

    def on_occupancy_split(self, event: OccupancySplit) -> None:
        # The original id disappears from the store, so every segment gets
        # its own copy of the entry.
        for occupancy_id in [event.occupancy_id, *event.segment_ids]:
            self.history_repo.add(
                HistoryEntry(
                    occupancy_id=occupancy_id,
                    type=HistoryEntryType.SPLIT,
                    payload={"parent": event.occupancy_id, "segments": event.segment_ids},
                )
            )

    def on_units_swapped(self, event: UnitsSwapped) -> None:
        self.proposal_repo.update_status(event.proposal_id, ProposalStatus.CONFIRMED)
        for move in event.moves:
            self.history_repo.add(
                HistoryEntry(
                    occupancy_id=move.occupancy_id,
                    type=HistoryEntryType.SWAPPED,
                    payload={
                        "proposal_id": event.proposal_id,
                        "from": move.from_unit_id,
                        "to": move.to_unit_id,
                    },
                )
            )

    def on_stay_placed(self, event: StayPlaced) -> None:
        if event.proposal_id is not None:
            self.proposal_repo.update_status(event.proposal_id, ProposalStatus.CONFIRMED)
        self.history_repo.add(
            HistoryEntry(
                occupancy_id=event.occupancy_id,
                type=HistoryEntryType.PLACED,
                payload={"unit_id": event.unit_id, "proposal_id": event.proposal_id},
            )
        )

    def on_swap_proposed(self, event: SwapProposed) -> None:
        proposal = self.proposal_repo.get(event.proposal_id)
        if proposal is None:
            return

        for move in proposal.moves:
            self.history_repo.add(
                HistoryEntry(
                    occupancy_id=move.occupancy_id,
                    type=HistoryEntryType.PROPOSED,
                    payload={"proposal_id": proposal.id, "to": move.to_unit_id},
                )
            )

    def on_proposal_rejected(self, event: ProposalRejected) -> None:
        proposal = self.proposal_repo.get(event.proposal_id)
        if proposal is None:
            return

        self.proposal_repo.update_status(proposal.id, ProposalStatus.REJECTED)
        for move in proposal.moves:
            self.history_repo.add(
                HistoryEntry(
                    occupancy_id=move.occupancy_id,
                    type=HistoryEntryType.PROPOSAL_REJECTED,
                    payload={"proposal_id": proposal.id, "reason": event.reason},
                )
            )
