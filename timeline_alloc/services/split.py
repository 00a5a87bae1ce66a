"""Service for splitting an occupancy into two contiguous segments."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from timeline_alloc.domain.models import (
    Applied,
    DateRange,
    Occupancy,
    Rejected,
    RejectionKind,
)
from timeline_alloc.services.conflicts import find_conflicts

log = logging.getLogger(__name__)


def _segment(occupancy: Occupancy, index: int, unit_id: str, new_range: DateRange) -> Occupancy:
    # Ids derive from the parent so repeated splits stay deterministic.
    segment_id = f"{occupancy.segment_id}.{index}" if occupancy.segment_id else str(index)
    return occupancy.model_copy(
        update={
            "id": f"{occupancy.id}.{index}",
            "unit_id": unit_id,
            "range": new_range,
            "segment_id": segment_id,
        }
    )


def resolve_split(
    occupancy: Occupancy,
    at_date: date,
    existing: list[Occupancy],
    min_stay: timedelta,
    target_unit_id: str | None = None,
) -> Applied | Rejected:
    """Split *occupancy* at *at_date*.

    The first segment keeps the original unit; the second goes to
    *target_unit_id* (the original unit when omitted). The original
    occupancy is reported in ``removed_ids``.
    """
    target_unit_id = target_unit_id or occupancy.unit_id

    def reject(kind: RejectionKind, reason: str, conflicting_ids=None) -> Rejected:
        log.info("Rejected split of %s at %s: %s", occupancy.id, at_date, reason)
        return Rejected(
            operation="split",
            kind=kind,
            reason=reason,
            conflicting_ids=conflicting_ids or [],
        )

    if not occupancy.start_date < at_date < occupancy.end_date:
        return reject(
            RejectionKind.INVALID_EDGE,
            f"Split date {at_date} must fall strictly inside "
            f"{occupancy.start_date}..{occupancy.end_date}",
        )
    if at_date - occupancy.start_date < min_stay:
        return reject(
            RejectionKind.INVALID_DURATION,
            f"First segment would be shorter than {min_stay.days} night(s)",
        )
    if occupancy.end_date - at_date < min_stay:
        return reject(
            RejectionKind.INVALID_DURATION,
            f"Second segment would be shorter than {min_stay.days} night(s)",
        )

    first = _segment(
        occupancy, 1, occupancy.unit_id, DateRange(start=occupancy.start_date, end=at_date)
    )
    second = _segment(
        occupancy, 2, target_unit_id, DateRange(start=at_date, end=occupancy.end_date)
    )

    conflicts = find_conflicts(second, existing, exclude_id=occupancy.id)
    if conflicts:
        return reject(
            RejectionKind.CONFLICT,
            f"Unit {target_unit_id} is occupied by "
            + ", ".join(c.describe() for c in conflicts),
            [c.id for c in conflicts],
        )

    log.debug("Split %s at %s into %s and %s", occupancy.id, at_date, first.id, second.id)
    return Applied(
        operation="split",
        occupancies=[first, second],
        removed_ids=[occupancy.id],
    )
