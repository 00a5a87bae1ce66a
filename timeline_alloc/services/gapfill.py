"""Service for placing a new stay into existing capacity.

Placement is tried directly first. When no candidate unit is free and swaps
are allowed, the allocator looks for a candidate blocked by exactly one
occupancy that can itself be moved, unchanged, to another unit. Only one
level of displacement is ever considered.
"""

from __future__ import annotations

import logging

from timeline_alloc.domain.errors import MalformedRequestError
from timeline_alloc.domain.models import (
    Applied,
    Occupancy,
    Proposed,
    Rejected,
    RejectionKind,
    Snapshot,
    StayRequest,
    SwapProposal,
    Unit,
    UnitMove,
)
from timeline_alloc.domain.settings import DEFAULT_SETTINGS, EngineSettings
from timeline_alloc.services.conflicts import find_conflicts, free_nights, has_conflict

log = logging.getLogger(__name__)


def _relocation_pool(
    blocker: Occupancy,
    candidate: Unit,
    candidates: list[Unit],
    snapshot: Snapshot,
) -> list[Unit]:
    """Units the blocking occupancy may be moved to, in search order.

    Other candidates come first, then the remaining units of the blocker's
    room type.
    """
    pool = [u for u in candidates if u.id != candidate.id]
    seen = {u.id for u in pool} | {candidate.id}
    room_type_id = snapshot.unit(blocker.unit_id).room_type_id
    for unit in snapshot.units_of_type(room_type_id):
        if unit.id not in seen:
            pool.append(unit)
            seen.add(unit.id)
    return pool


def gap_fill(
    request: StayRequest,
    candidate_unit_ids: list[str],
    snapshot: Snapshot,
    allow_swaps: bool = True,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> Applied | Proposed | Rejected:
    """Place *request* on the first free candidate, or propose a single move.

    Raises ``MalformedRequestError`` for an empty candidate list or a guest
    count above the configured maximum; unknown unit ids raise
    ``UnknownUnitError``.
    """
    if not candidate_unit_ids:
        raise MalformedRequestError("Select at least one unit for allocation")
    if request.guest_count > settings.max_guests:
        raise MalformedRequestError(
            f"Number of guests must be between 1 and {settings.max_guests}"
        )

    if request.range.nights > settings.max_stay_nights:
        reason = f"Stay cannot exceed {settings.max_stay_nights} nights"
        log.info("Rejected gap fill %s: %s", request.id, reason)
        return Rejected(operation="gap_fill", kind=RejectionKind.INVALID_DURATION, reason=reason)

    pool_units = [snapshot.unit(unit_id) for unit_id in candidate_unit_ids]
    candidates = [unit for unit in pool_units if unit.admits(request.guest_count)]

    # 1. Direct placement
    for unit in candidates:
        placement = request.as_occupancy(unit.id)
        if not has_conflict(placement, snapshot.occupancies):
            log.debug("Placed %s on %s", request.id, unit.id)
            return Applied(operation="gap_fill", occupancies=[placement])

    # 2. Single displacement
    if allow_swaps:
        for unit in candidates:
            placement = request.as_occupancy(unit.id)
            blockers = find_conflicts(placement, snapshot.occupancies)
            if len(blockers) != 1:
                continue
            blocker = blockers[0]
            for target in _relocation_pool(blocker, unit, pool_units, snapshot):
                if has_conflict(blocker.on_unit(target.id), snapshot.occupancies, blocker.id):
                    continue
                proposal = SwapProposal(
                    id=f"gap_fill:{request.id}",
                    moves=[
                        UnitMove(
                            occupancy_id=blocker.id,
                            from_unit_id=unit.id,
                            to_unit_id=target.id,
                        )
                    ],
                    originals=[blocker],
                    placement=placement,
                    target_unit_id=unit.id,
                )
                log.debug(
                    "Proposed gap fill %s on %s moving %s to %s",
                    request.id,
                    unit.id,
                    blocker.id,
                    target.id,
                )
                return Proposed(operation="gap_fill", proposal=proposal)

    reason = (
        f"No availability for {request.range.start}..{request.range.end} "
        f"across {len(candidate_unit_ids)} unit(s)"
    )
    if candidates:
        best = max(
            len(free_nights(unit.id, request.range, snapshot.occupancies)) for unit in candidates
        )
        reason += f"; at most {best} of {request.range.nights} night(s) free on one unit"
    log.info("Rejected gap fill %s: %s", request.id, reason)
    return Rejected(operation="gap_fill", kind=RejectionKind.NO_AVAILABILITY, reason=reason)
