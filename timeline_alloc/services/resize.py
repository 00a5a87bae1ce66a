"""Service for validating and previewing edge resizes of an occupancy.

Only one edge moves per resize: ``resize-start`` moves the check-in date and
keeps check-out fixed, ``resize-end`` does the opposite. Either edge may move
in both directions. Targets beyond the derived bounds are clamped unless the
caller asks for strict handling.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from timeline_alloc.domain.models import (
    Applied,
    DateRange,
    Edge,
    Occupancy,
    Rejected,
    RejectionKind,
    ResizeBounds,
    ResizePreview,
)
from timeline_alloc.services.conflicts import find_conflicts

log = logging.getLogger(__name__)


def validate_resize(
    original: Occupancy,
    new_start: date,
    new_end: date,
    edge: Edge,
    min_stay: timedelta,
) -> tuple[RejectionKind, str] | None:
    """Return the rejection kind and reason for a resize, or ``None`` if valid."""
    if edge == Edge.START and new_end != original.end_date:
        return (
            RejectionKind.INVALID_EDGE,
            "Check-out date must remain unchanged when resizing check-in",
        )
    if edge == Edge.END and new_start != original.start_date:
        return (
            RejectionKind.INVALID_EDGE,
            "Check-in date must remain unchanged when resizing check-out",
        )
    if new_end - new_start < min_stay:
        nights = min_stay.days
        return (
            RejectionKind.INVALID_DURATION,
            f"Minimum {nights} night{'s' if nights != 1 else ''} duration required",
        )
    return None


def resize_bounds(
    occupancy: Occupancy,
    edge: Edge,
    existing: Iterable[Occupancy],
    min_stay: timedelta,
) -> ResizeBounds:
    """Compute the legal range for the moving edge.

    The neighbours considered are active occupancies on the same unit that
    lie entirely before (``resize-start``) or after (``resize-end``) the
    original range.
    """
    neighbours = [
        o
        for o in existing
        if o.id != occupancy.id and o.unit_id == occupancy.unit_id and o.is_active
    ]

    if edge == Edge.START:
        earlier = [o for o in neighbours if o.end_date <= occupancy.start_date]
        latest = max(earlier, key=lambda o: o.end_date, default=None)
        return ResizeBounds(
            min_date=latest.end_date if latest else None,
            max_date=occupancy.end_date - min_stay,
            min_neighbor_id=latest.id if latest else None,
        )

    later = [o for o in neighbours if o.start_date >= occupancy.end_date]
    earliest = min(later, key=lambda o: o.start_date, default=None)
    return ResizeBounds(
        min_date=occupancy.start_date + min_stay,
        max_date=earliest.start_date if earliest else None,
        max_neighbor_id=earliest.id if earliest else None,
    )


def constrain_resize_date(target_date: date, bounds: ResizeBounds) -> date:
    constrained = target_date
    if bounds.min_date is not None and constrained < bounds.min_date:
        constrained = bounds.min_date
    if bounds.max_date is not None and constrained > bounds.max_date:
        constrained = bounds.max_date
    return constrained


def resize_preview(
    occupancy: Occupancy,
    target_date: date,
    edge: Edge,
    existing: list[Occupancy],
    min_stay: timedelta,
    clamp: bool = True,
    fixed_date: date | None = None,
) -> ResizePreview:
    """Preview the occupancy with its *edge* moved to *target_date*.

    *fixed_date* is the caller's idea of the untouched edge; anything other
    than the current value is reported as an invalid edge.
    """
    new_date = target_date
    if clamp:
        bounds = resize_bounds(occupancy, edge, existing, min_stay)
        new_date = constrain_resize_date(target_date, bounds)

    if edge == Edge.START:
        new_start = new_date
        new_end = fixed_date if fixed_date is not None else occupancy.end_date
    else:
        new_start = fixed_date if fixed_date is not None else occupancy.start_date
        new_end = new_date

    rejection = validate_resize(occupancy, new_start, new_end, edge, min_stay)

    conflicts: list[Occupancy] = []
    if new_end > new_start:
        candidate = occupancy.with_range(DateRange(start=new_start, end=new_end))
        conflicts = find_conflicts(candidate, existing, exclude_id=occupancy.id)

    return ResizePreview(
        start_date=new_start,
        end_date=new_end,
        duration=(new_end - new_start).days,
        has_conflicts=bool(conflicts),
        validation_reason=rejection[1] if rejection else None,
        rejection_kind=rejection[0] if rejection else None,
        was_constrained=new_date != target_date,
        conflicting_ids=[o.id for o in conflicts],
    )


def resolve_resize(
    occupancy: Occupancy,
    target_date: date,
    edge: Edge,
    existing: list[Occupancy],
    min_stay: timedelta,
    clamp: bool = True,
    fixed_date: date | None = None,
) -> Applied | Rejected:
    operation = str(edge)
    preview = resize_preview(
        occupancy, target_date, edge, existing, min_stay, clamp=clamp, fixed_date=fixed_date
    )

    if preview.rejection_kind is not None:
        reason = preview.validation_reason
        log.info("Rejected %s of %s: %s", operation, occupancy.id, reason)
        return Rejected(
            operation=operation, kind=preview.rejection_kind, reason=reason, preview=preview
        )

    if preview.has_conflicts:
        conflicting = [o for o in existing if o.id in preview.conflicting_ids]
        reason = "Overlaps " + ", ".join(o.describe() for o in conflicting)
        log.info("Rejected %s of %s: %s", operation, occupancy.id, reason)
        return Rejected(
            operation=operation,
            kind=RejectionKind.CONFLICT,
            reason=reason,
            conflicting_ids=preview.conflicting_ids,
            preview=preview,
        )

    resized = occupancy.with_range(
        DateRange(start=preview.start_date, end=preview.end_date)
    )
    log.debug(
        "Resized %s to %s..%s (constrained=%s)",
        occupancy.id,
        preview.start_date,
        preview.end_date,
        preview.was_constrained,
    )
    return Applied(operation=operation, occupancies=[resized], preview=preview)
