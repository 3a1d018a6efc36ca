"""Interval conflict detection against reservations and maintenance blocks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from crane_booking.enterprise.core import MaintenanceBlock, Reservation, ScheduleSettings


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap test; touching intervals do not overlap."""

    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class Conflict:
    """What a candidate interval collided with."""

    kind: str
    id: str
    start: datetime
    effective_end: datetime


class ConflictDetector:
    """Answers whether a crane is free for an interval.

    Only the existing reservation is widened: its end is pushed out by the
    buffer, the candidate interval is compared as given. Maintenance blocks
    are never widened and always count.
    """

    def first_conflict(
        self,
        start: datetime,
        end: datetime,
        reservations: Iterable[Reservation],
        blocks: Iterable[MaintenanceBlock],
        buffer: timedelta,
        exclude_reservation_id: Optional[str] = None,
    ) -> Optional[Conflict]:
        for block in blocks:
            if intervals_overlap(start, end, block.start, block.end):
                return Conflict("maintenance", block.id, block.start, block.end)
        for reservation in reservations:
            if reservation.id == exclude_reservation_id or not reservation.is_active:
                continue
            effective_end = reservation.end + buffer
            if intervals_overlap(start, end, reservation.start, effective_end):
                return Conflict("reservation", reservation.id, reservation.start, effective_end)
        return None

    def free_candidates(
        self,
        candidates: Sequence[datetime],
        duration: timedelta,
        reservations: Sequence[Reservation],
        blocks: Sequence[MaintenanceBlock],
        settings: ScheduleSettings,
    ) -> List[datetime]:
        """Filter candidate starts against an already-fetched day of holds."""

        return [
            candidate
            for candidate in candidates
            if self.first_conflict(candidate, candidate + duration, reservations, blocks, settings.buffer) is None
        ]

    async def find_conflict(
        self,
        repo,
        crane_id: str,
        start: datetime,
        end: datetime,
        settings: ScheduleSettings,
        exclude_reservation_id: Optional[str] = None,
    ) -> Optional[Conflict]:
        buffer = settings.buffer
        reservations = await repo.active_reservations(crane_id, start - buffer, end)
        blocks = await repo.maintenance_blocks(crane_id, start, end)
        return self.first_conflict(start, end, reservations, blocks, buffer, exclude_reservation_id)

    async def overlaps(
        self,
        repo,
        crane_id: str,
        start: datetime,
        end: datetime,
        settings: ScheduleSettings,
        exclude_reservation_id: Optional[str] = None,
    ) -> bool:
        conflict = await self.find_conflict(repo, crane_id, start, end, settings, exclude_reservation_id)
        return conflict is not None
