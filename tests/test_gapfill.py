"""Tests for the gap-fill allocator."""

from __future__ import annotations

from datetime import date

import pytest

from timeline_alloc.domain.errors import MalformedRequestError, UnknownUnitError
from timeline_alloc.domain.models import (
    Applied,
    DateRange,
    Occupancy,
    OccupancyStatus,
    Proposed,
    Rejected,
    RejectionKind,
    Snapshot,
    StayRequest,
    Unit,
)
from timeline_alloc.domain.settings import EngineSettings
from timeline_alloc.services.gapfill import gap_fill
from timeline_alloc.services.swap import apply_swap

_APRIL = DateRange(start=date(2026, 4, 1), end=date(2026, 4, 4))


def _make_unit(unit_id: str, room_type_id: str = "double", **kw) -> Unit:
    return Unit(id=unit_id, room_type_id=room_type_id, label=unit_id, **kw)


def _make_occupancy(occupancy_id: str, unit_id: str, start: date, end: date) -> Occupancy:
    return Occupancy(
        id=occupancy_id,
        unit_id=unit_id,
        range=DateRange(start=start, end=end),
        reservation_id=f"res-{occupancy_id}",
    )


def _make_request(**kw) -> StayRequest:
    kw.setdefault("id", "req-1")
    kw.setdefault("range", _APRIL)
    return StayRequest(**kw)


# ---------------------------------------------------------------------------
# Direct placement
# ---------------------------------------------------------------------------


def test_places_on_first_free_candidate():
    snapshot = Snapshot(
        units=[_make_unit("U1"), _make_unit("U2")],
        occupancies=[_make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 4))],
    )

    result = gap_fill(_make_request(), ["U1", "U2"], snapshot)

    assert isinstance(result, Applied)
    placed = result.occupancies[0]
    assert placed.unit_id == "U2"
    assert placed.range == _APRIL
    assert placed.status == OccupancyStatus.NEW
    assert placed.id == "req-1"


def test_candidate_order_is_respected():
    snapshot = Snapshot(units=[_make_unit("U1"), _make_unit("U2")])

    result = gap_fill(_make_request(), ["U2", "U1"], snapshot)

    assert result.occupancies[0].unit_id == "U2"


def test_adjacent_stays_do_not_block():
    snapshot = Snapshot(
        units=[_make_unit("U1")],
        occupancies=[
            _make_occupancy("before", "U1", date(2026, 3, 28), date(2026, 4, 1)),
            _make_occupancy("after", "U1", date(2026, 4, 4), date(2026, 4, 6)),
        ],
    )

    assert isinstance(gap_fill(_make_request(), ["U1"], snapshot), Applied)


def test_units_too_small_are_skipped():
    snapshot = Snapshot(units=[_make_unit("small", max_guests=2), _make_unit("big", max_guests=4)])

    result = gap_fill(_make_request(guest_count=3), ["small", "big"], snapshot)

    assert result.occupancies[0].unit_id == "big"


# ---------------------------------------------------------------------------
# Single displacement
# ---------------------------------------------------------------------------


def test_blocker_is_moved_to_unit_outside_candidates():
    blocker = _make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 4))
    snapshot = Snapshot(units=[_make_unit("U1"), _make_unit("U2")], occupancies=[blocker])

    result = gap_fill(_make_request(), ["U1"], snapshot)

    assert isinstance(result, Proposed)
    proposal = result.proposal
    assert proposal.id == "gap_fill:req-1"
    assert proposal.target_unit_id == "U1"
    assert [(m.occupancy_id, m.from_unit_id, m.to_unit_id) for m in proposal.moves] == [
        ("o1", "U1", "U2")
    ]
    assert proposal.placement.unit_id == "U1"
    assert proposal.originals == [blocker]


def test_other_candidates_are_tried_before_same_type_units():
    blocker = _make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 4))
    snapshot = Snapshot(
        units=[_make_unit("U1"), _make_unit("U3"), _make_unit("single", max_guests=1)],
        occupancies=[blocker],
    )

    # "single" admits only one guest, so it is not a placement candidate for two,
    # but the blocker may still be relocated there.
    result = gap_fill(_make_request(guest_count=2), ["U1", "single"], snapshot)

    assert isinstance(result, Proposed)
    assert result.proposal.moves[0].to_unit_id == "single"


def test_other_room_types_are_not_used_for_relocation():
    blocker = _make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 4))
    snapshot = Snapshot(
        units=[_make_unit("U1"), _make_unit("S1", room_type_id="suite")],
        occupancies=[blocker],
    )

    result = gap_fill(_make_request(), ["U1"], snapshot)

    assert isinstance(result, Rejected)
    assert result.kind == RejectionKind.NO_AVAILABILITY


def test_swaps_disabled_gives_no_availability():
    snapshot = Snapshot(
        units=[_make_unit("U1"), _make_unit("U2")],
        occupancies=[_make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 4))],
    )

    result = gap_fill(_make_request(), ["U1"], snapshot, allow_swaps=False)

    assert isinstance(result, Rejected)
    assert result.kind == RejectionKind.NO_AVAILABILITY


def test_unit_with_two_blockers_is_not_displaced():
    snapshot = Snapshot(
        units=[_make_unit("U1"), _make_unit("U2")],
        occupancies=[
            _make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 2)),
            _make_occupancy("o2", "U1", date(2026, 4, 2), date(2026, 4, 4)),
        ],
    )

    result = gap_fill(_make_request(), ["U1"], snapshot)

    assert isinstance(result, Rejected)
    assert result.kind == RejectionKind.NO_AVAILABILITY


def test_confirmed_proposal_leaves_no_overlap():
    blocker = _make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 4))
    snapshot = Snapshot(units=[_make_unit("U1"), _make_unit("U2")], occupancies=[blocker])

    proposal = gap_fill(_make_request(), ["U1"], snapshot).proposal
    applied = apply_swap(proposal, snapshot.occupancies)

    assert isinstance(applied, Applied)
    after = applied.apply_to(snapshot.occupancies)
    assert {(o.id, o.unit_id) for o in after} == {("o1", "U2"), ("req-1", "U1")}


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


def test_stay_longer_than_maximum_is_invalid_duration():
    snapshot = Snapshot(units=[_make_unit("U1")])
    request = _make_request(range=DateRange(start=date(2026, 4, 1), end=date(2026, 5, 2)))

    result = gap_fill(request, ["U1"], snapshot)

    assert isinstance(result, Rejected)
    assert result.kind == RejectionKind.INVALID_DURATION
    assert "30 nights" in result.reason


def test_custom_maximum_stay():
    snapshot = Snapshot(units=[_make_unit("U1")])

    result = gap_fill(
        _make_request(), ["U1"], snapshot, settings=EngineSettings(max_stay_nights=2)
    )

    assert isinstance(result, Rejected)
    assert result.kind == RejectionKind.INVALID_DURATION


def test_empty_candidate_list_raises():
    with pytest.raises(MalformedRequestError):
        gap_fill(_make_request(), [], Snapshot(units=[_make_unit("U1")]))


def test_too_many_guests_raises():
    with pytest.raises(MalformedRequestError):
        gap_fill(_make_request(guest_count=21), ["U1"], Snapshot(units=[_make_unit("U1")]))


def test_unknown_candidate_raises():
    with pytest.raises(UnknownUnitError):
        gap_fill(_make_request(), ["nope"], Snapshot(units=[_make_unit("U1")]))


def test_no_availability_reports_best_partial_fit():
    snapshot = Snapshot(
        units=[_make_unit("U1"), _make_unit("U2", room_type_id="suite")],
        occupancies=[
            _make_occupancy("o1", "U1", date(2026, 4, 1), date(2026, 4, 2)),
            _make_occupancy("o2", "U1", date(2026, 4, 3), date(2026, 4, 5)),
        ],
    )

    result = gap_fill(_make_request(), ["U1"], snapshot)

    assert isinstance(result, Rejected)
    assert "at most 1 of 3 night(s) free" in result.reason
