"""Exceptions raised by the allocation engine and the calendar service.

Business-rule violations travel as ``Rejected`` results; the matching
exception is only built by ``Rejected.to_error()``. Defects (malformed input,
unknown ids, stale snapshots) are raised directly.
"""

from __future__ import annotations


class AllocationError(Exception):
    __slots__ = ('reason', 'conflicting_ids')

    def __init__(self, reason: str, conflicting_ids: list[str] | None = None):
        super().__init__(reason)
        self.reason = reason
        self.conflicting_ids = list(conflicting_ids or [])


class ConflictError(AllocationError):
    pass


class InvalidDurationError(AllocationError):
    pass


class InvalidEdgeError(AllocationError):
    pass


class NoAvailabilityError(AllocationError):
    pass


class SwapInfeasibleError(AllocationError):

    __slots__ = ('blocked_side',)

    def __init__(
        self,
        reason: str,
        conflicting_ids: list[str] | None = None,
        blocked_side: str | None = None
    ):
        super().__init__(reason, conflicting_ids)
        self.blocked_side = blocked_side


class AllocationDefect(Exception):
    """Programming error on the caller's side, never a business outcome."""


class UnknownUnitError(AllocationDefect):

    __slots__ = ('unit_id',)

    def __init__(self, unit_id: str):
        super().__init__(f"unknown unit {unit_id!r}")
        self.unit_id = unit_id


class UnknownOccupancyError(AllocationDefect):

    __slots__ = ('occupancy_id',)

    def __init__(self, occupancy_id: str):
        super().__init__(f"unknown occupancy {occupancy_id!r}")
        self.occupancy_id = occupancy_id


class UnknownProposalError(AllocationDefect):
    pass


class MalformedRequestError(AllocationDefect):
    pass


class StaleSnapshotError(AllocationDefect):

    __slots__ = ('occupancy_id',)

    def __init__(self, occupancy_id: str):
        super().__init__(f"occupancy {occupancy_id!r} changed since the snapshot was taken")
        self.occupancy_id = occupancy_id
