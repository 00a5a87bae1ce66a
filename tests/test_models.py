"""Tests for domain model validation and helpers."""

from datetime import date

import pytest
from pydantic import TypeAdapter, ValidationError

from timeline_alloc.domain.errors import (
    ConflictError,
    SwapInfeasibleError,
    UnknownOccupancyError,
    UnknownUnitError,
)
from timeline_alloc.domain.models import (
    Applied,
    DateRange,
    Occupancy,
    OccupancyStatus,
    Rejected,
    RejectionKind,
    ResizePreview,
    Result,
    Snapshot,
    StayRequest,
    Unit,
)


def _make_occupancy(occupancy_id: str, unit_id: str = "U1", **kw) -> Occupancy:
    kw.setdefault("range", DateRange(start=date(2026, 2, 1), end=date(2026, 2, 3)))
    return Occupancy(id=occupancy_id, unit_id=unit_id, reservation_id=f"res-{occupancy_id}", **kw)


# ---------------------------------------------------------------------------
# DateRange
# ---------------------------------------------------------------------------


def test_date_range_requires_at_least_one_night():
    with pytest.raises(ValidationError):
        DateRange(start=date(2026, 2, 3), end=date(2026, 2, 3))
    with pytest.raises(ValidationError):
        DateRange(start=date(2026, 2, 3), end=date(2026, 2, 1))


def test_date_range_days_excludes_checkout():
    days = list(DateRange(start=date(2026, 2, 27), end=date(2026, 3, 2)).days())

    assert days == [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1)]


def test_date_range_is_half_open():
    first = DateRange(start=date(2026, 2, 1), end=date(2026, 2, 3))
    second = DateRange(start=date(2026, 2, 3), end=date(2026, 2, 5))

    assert not first.overlaps(second)
    assert first.contains(date(2026, 2, 2))
    assert not first.contains(date(2026, 2, 3))


# ---------------------------------------------------------------------------
# Occupancy / StayRequest
# ---------------------------------------------------------------------------


def test_inactive_statuses():
    assert _make_occupancy("a").is_active
    assert not _make_occupancy("b", status=OccupancyStatus.CANCELLED).is_active
    assert not _make_occupancy("c", status=OccupancyStatus.NO_SHOW).is_active
    assert _make_occupancy("d", status=OccupancyStatus.CHECKED_IN).is_active


def test_describe_prefers_label():
    assert _make_occupancy("a", label="Ada").describe() == "Ada (a)"
    assert _make_occupancy("a").describe() == "res-a (a)"


def test_stay_request_becomes_new_occupancy():
    request = StayRequest(
        id="req",
        range=DateRange(start=date(2026, 2, 1), end=date(2026, 2, 3)),
        guest_count=2,
        label="Walk-in",
    )

    occupancy = request.as_occupancy("U7")

    assert occupancy.id == "req"
    assert occupancy.reservation_id == "req"
    assert occupancy.status == OccupancyStatus.NEW
    assert occupancy.unit_id == "U7"


def test_stay_request_rejects_zero_guests():
    with pytest.raises(ValidationError):
        StayRequest(range=DateRange(start=date(2026, 2, 1), end=date(2026, 2, 3)), guest_count=0)


def test_unit_capacity():
    assert Unit(id="u", room_type_id="t", label="u").admits(12)
    assert Unit(id="u", room_type_id="t", label="u", max_guests=2).admits(2)
    assert not Unit(id="u", room_type_id="t", label="u", max_guests=2).admits(3)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


def test_snapshot_rejects_unknown_unit_reference():
    with pytest.raises(ValidationError):
        Snapshot(units=[], occupancies=[_make_occupancy("a")])


def test_snapshot_rejects_duplicate_ids():
    unit = Unit(id="U1", room_type_id="t", label="1")
    with pytest.raises(ValidationError):
        Snapshot(units=[unit, unit])
    with pytest.raises(ValidationError):
        Snapshot(units=[unit], occupancies=[_make_occupancy("a"), _make_occupancy("a")])


def test_snapshot_lookups():
    snapshot = Snapshot(
        units=[
            Unit(id="U1", room_type_id="double", label="1"),
            Unit(id="S1", room_type_id="suite", label="S"),
        ],
        occupancies=[_make_occupancy("a")],
    )

    assert snapshot.occupancy("a").unit_id == "U1"
    assert [u.id for u in snapshot.units_of_type("suite")] == ["S1"]
    with pytest.raises(UnknownUnitError):
        snapshot.unit("U9")
    with pytest.raises(UnknownOccupancyError):
        snapshot.occupancy("zzz")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def test_apply_to_does_not_mutate_input():
    original = [_make_occupancy("a"), _make_occupancy("b")]
    moved = original[0].on_unit("U2")

    after = Applied(operation="move", occupancies=[moved], removed_ids=["b"]).apply_to(original)

    assert after == [moved]
    assert original[0].unit_id == "U1"
    assert len(original) == 2


def test_rejection_maps_to_matching_error():
    conflict = Rejected(
        operation="move", kind=RejectionKind.CONFLICT, reason="taken", conflicting_ids=["x"]
    ).to_error()
    infeasible = Rejected(
        operation="swap",
        kind=RejectionKind.SWAP_INFEASIBLE,
        reason="blocked",
        blocked_side="b",
    ).to_error()

    assert isinstance(conflict, ConflictError)
    assert conflict.conflicting_ids == ["x"]
    assert str(conflict) == "taken"
    assert isinstance(infeasible, SwapInfeasibleError)
    assert infeasible.blocked_side == "b"


def test_result_union_is_discriminated_by_status():
    adapter = TypeAdapter(Result)

    result = adapter.validate_python(
        {"status": "rejected", "operation": "move", "kind": "conflict", "reason": "taken"}
    )

    assert isinstance(result, Rejected)
    assert result.kind == RejectionKind.CONFLICT


def test_resize_preview_dump_includes_validity():
    preview = ResizePreview(
        start_date=date(2026, 2, 1),
        end_date=date(2026, 2, 3),
        duration=2,
        has_conflicts=True,
        conflicting_ids=["x"],
    )

    clean = preview.model_copy(update={"has_conflicts": False, "conflicting_ids": []})

    assert preview.model_dump()["is_valid"] is False
    assert clean.model_dump()["is_valid"] is True
