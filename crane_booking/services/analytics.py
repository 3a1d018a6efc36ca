"""Per-crane utilisation over a reporting window."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import List

from crane_booking.enterprise.core import (
    Actor,
    CraneUtilization,
    ForbiddenError,
    ReservationQuery,
    ReservationStatus,
    ValidationError,
    as_utc,
)
from crane_booking.persistence.unit_of_work import UnitOfWork

_BOOKED = frozenset({ReservationStatus.APPROVED, ReservationStatus.COMPLETED})


def _clipped_hours(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> float:
    overlap = min(end, window_end) - max(start, window_start)
    return max(overlap.total_seconds(), 0.0) / 3600.0


class UtilizationReport:
    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    async def crane_utilization(self, actor: Actor, start: datetime, end: datetime) -> List[CraneUtilization]:
        """Hours booked (approved or completed) and under maintenance, clipped to the window."""

        if not actor.can_view_all:
            raise ForbiddenError("Only staff may view utilisation.", role=actor.role.value)
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            raise ValidationError("Report end must be after its start.")

        rows: List[CraneUtilization] = []
        async with self.uow.reader() as repo:
            for crane in await repo.list_cranes(active_only=False):
                reservations = await repo.list_reservations(
                    ReservationQuery(crane_id=crane.id, window_start=start, window_end=end)
                )
                blocks = await repo.maintenance_blocks(crane.id, start, end)
                counts = Counter(reservation.status for reservation in reservations)
                booked = sum(
                    _clipped_hours(res.start, res.end, start, end)
                    for res in reservations
                    if res.status in _BOOKED
                )
                rows.append(
                    CraneUtilization(
                        crane_id=crane.id,
                        crane_name=crane.name,
                        approved_hours=round(booked, 2),
                        maintenance_hours=round(
                            sum(_clipped_hours(b.start, b.end, start, end) for b in blocks), 2
                        ),
                        pending_count=counts[ReservationStatus.PENDING],
                        rejected_count=counts[ReservationStatus.REJECTED],
                        cancelled_count=counts[ReservationStatus.CANCELLED],
                        completed_count=counts[ReservationStatus.COMPLETED],
                    )
                )
        return rows
