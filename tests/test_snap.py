"""Tests for edge snapping."""

from datetime import date

from timeline_alloc.domain.models import DateRange, Occupancy, OccupancyStatus
from timeline_alloc.services.snap import find_nearby_edges, snap_to_nearest_edge


def _make_occupancy(occupancy_id: str, start: date, end: date, unit_id: str = "U", **kw) -> Occupancy:
    return Occupancy(
        id=occupancy_id,
        unit_id=unit_id,
        range=DateRange(start=start, end=end),
        reservation_id=f"res-{occupancy_id}",
        **kw,
    )


_OCCUPANCIES = [
    _make_occupancy("a", date(2026, 5, 1), date(2026, 5, 4)),
    _make_occupancy("b", date(2026, 5, 10), date(2026, 5, 12)),
    _make_occupancy("other", date(2026, 5, 5), date(2026, 5, 6), unit_id="V"),
]


def test_snaps_to_edge_within_tolerance():
    assert snap_to_nearest_edge(date(2026, 5, 5), "U", _OCCUPANCIES) == date(2026, 5, 4)
    assert snap_to_nearest_edge(date(2026, 5, 9), "U", _OCCUPANCIES) == date(2026, 5, 10)


def test_returns_target_when_nothing_is_near():
    assert snap_to_nearest_edge(date(2026, 5, 7), "U", _OCCUPANCIES) == date(2026, 5, 7)


def test_other_units_are_ignored():
    # "other" on unit V has edges on 5/5 and 5/6 but must not attract.
    assert snap_to_nearest_edge(date(2026, 5, 7), "U", _OCCUPANCIES) == date(2026, 5, 7)


def test_excluded_occupancy_is_ignored():
    assert (
        snap_to_nearest_edge(date(2026, 5, 5), "U", _OCCUPANCIES, exclude_id="a")
        == date(2026, 5, 5)
    )


def test_cancelled_edges_do_not_attract():
    occupancies = [
        _make_occupancy(
            "c", date(2026, 5, 1), date(2026, 5, 4), status=OccupancyStatus.CANCELLED
        )
    ]
    assert snap_to_nearest_edge(date(2026, 5, 5), "U", occupancies) == date(2026, 5, 5)


def test_edges_sorted_by_distance_then_date():
    edges = find_nearby_edges(date(2026, 5, 11), "U", _OCCUPANCIES, tolerance_days=2)

    assert [(e.edge_date, e.edge, e.distance) for e in edges] == [
        (date(2026, 5, 10), "start", 1),
        (date(2026, 5, 12), "end", 1),
    ]


def test_exact_edge_has_zero_distance():
    edges = find_nearby_edges(date(2026, 5, 4), "U", _OCCUPANCIES)

    assert edges[0].distance == 0
    assert edges[0].occupancy_id == "a"
    assert edges[0].edge == "end"


def test_zero_tolerance_only_matches_exact_edges():
    assert snap_to_nearest_edge(date(2026, 5, 5), "U", _OCCUPANCIES, tolerance_days=0) == date(
        2026, 5, 5
    )
