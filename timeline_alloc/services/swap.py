"""Service for proposing and applying unit swaps between occupancies.

A swap only exchanges units; dates never change. Proposals are never applied
by the resolver itself: ``apply_swap`` must be called explicitly, and it
re-checks the proposal against whatever snapshot the caller hands in.
"""

from __future__ import annotations

import logging

from timeline_alloc.domain.models import (
    Applied,
    Occupancy,
    Proposed,
    Rejected,
    RejectionKind,
    SwapProposal,
    UnitMove,
)
from timeline_alloc.services.conflicts import find_conflicts

log = logging.getLogger(__name__)


def propose_swap(
    a: Occupancy,
    b: Occupancy,
    existing: list[Occupancy],
) -> Proposed | Rejected:
    """Check whether *a* and *b* can trade units.

    Each side is checked on its own: *a* against the occupancies of *b*'s
    unit other than *b*, and *b* against those of *a*'s unit other than *a*.
    The two need not overlap in time.
    """
    if a.unit_id == b.unit_id:
        reason = f"{a.describe()} and {b.describe()} are already on unit {a.unit_id}"
        log.info("Rejected swap: %s", reason)
        return Rejected(operation="swap", kind=RejectionKind.SWAP_INFEASIBLE, reason=reason)

    a_moved = a.on_unit(b.unit_id)
    b_moved = b.on_unit(a.unit_id)
    a_blockers = find_conflicts(a_moved, existing, exclude_id=b.id)
    b_blockers = find_conflicts(b_moved, existing, exclude_id=a.id)

    if a_blockers or b_blockers:
        parts = []
        if a_blockers:
            parts.append(
                f"{a.describe()} cannot move to unit {b.unit_id}: blocked by "
                + ", ".join(o.describe() for o in a_blockers)
            )
        if b_blockers:
            parts.append(
                f"{b.describe()} cannot move to unit {a.unit_id}: blocked by "
                + ", ".join(o.describe() for o in b_blockers)
            )
        if a_blockers and b_blockers:
            side = "both"
        elif a_blockers:
            side = "a"
        else:
            side = "b"
        reason = "; ".join(parts)
        log.info("Rejected swap of %s and %s: %s", a.id, b.id, reason)
        return Rejected(
            operation="swap",
            kind=RejectionKind.SWAP_INFEASIBLE,
            reason=reason,
            conflicting_ids=[o.id for o in a_blockers + b_blockers],
            blocked_side=side,
        )

    proposal = SwapProposal(
        id=f"swap:{a.id}:{b.id}",
        moves=[
            UnitMove(occupancy_id=a.id, from_unit_id=a.unit_id, to_unit_id=b.unit_id),
            UnitMove(occupancy_id=b.id, from_unit_id=b.unit_id, to_unit_id=a.unit_id),
        ],
        originals=[a, b],
    )
    log.debug("Proposed swap %s", proposal.id)
    return Proposed(operation="swap", proposal=proposal)


def apply_swap(
    proposal: SwapProposal,
    existing: list[Occupancy] | None = None,
) -> Applied | Rejected:
    """Turn a confirmed proposal into an applied result.

    When *existing* is given, every original must still be present unchanged
    and the post-move state must be free of overlaps on the touched units.
    """
    moved = proposal.moved()
    changed = moved + ([proposal.placement] if proposal.placement else [])
    operation = "gap_fill" if proposal.placement else "swap"

    if existing is not None:
        current = {o.id: o for o in existing}
        stale = [o.id for o in proposal.originals if current.get(o.id) != o]
        if stale:
            reason = "Occupancies changed since the proposal was made: " + ", ".join(stale)
            log.info("Rejected %s %s: %s", operation, proposal.id, reason)
            return Rejected(
                operation=operation,
                kind=RejectionKind.SWAP_INFEASIBLE,
                reason=reason,
                conflicting_ids=stale,
            )

        after = Applied(operation=operation, occupancies=changed).apply_to(existing)
        blockers: list[Occupancy] = []
        for occ in changed:
            blockers.extend(
                b for b in find_conflicts(occ, after, exclude_id=occ.id) if b not in blockers
            )
        if blockers:
            reason = "Applying would overlap " + ", ".join(o.describe() for o in blockers)
            log.info("Rejected %s %s: %s", operation, proposal.id, reason)
            return Rejected(
                operation=operation,
                kind=RejectionKind.SWAP_INFEASIBLE,
                reason=reason,
                conflicting_ids=[o.id for o in blockers],
            )

    log.debug("Applied %s %s", operation, proposal.id)
    return Applied(operation=operation, occupancies=changed)
