"""Service for relocating an occupancy to another unit with its dates unchanged."""

from __future__ import annotations

import logging

from timeline_alloc.domain.models import Applied, Occupancy, Rejected, RejectionKind
from timeline_alloc.services.conflicts import find_conflicts

log = logging.getLogger(__name__)


def resolve_move(
    occupancy: Occupancy,
    target_unit_id: str,
    existing: list[Occupancy],
) -> Applied | Rejected:
    """Move *occupancy* to *target_unit_id* if nothing there overlaps it."""
    candidate = occupancy.on_unit(target_unit_id)
    conflicts = find_conflicts(candidate, existing, exclude_id=occupancy.id)
    if conflicts:
        reason = (
            f"Unit {target_unit_id} is occupied by "
            + ", ".join(c.describe() for c in conflicts)
        )
        log.info("Rejected move of %s: %s", occupancy.id, reason)
        return Rejected(
            operation="move",
            kind=RejectionKind.CONFLICT,
            reason=reason,
            conflicting_ids=[c.id for c in conflicts],
        )

    log.debug("Moved %s from %s to %s", occupancy.id, occupancy.unit_id, target_unit_id)
    return Applied(operation="move", occupancies=[candidate])
