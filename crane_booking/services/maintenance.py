"""Maintenance blocks: hard exclusions on a crane's calendar."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from crane_booking.enterprise.core import (
    Actor,
    ConflictError,
    MaintenanceBlock,
    NotFoundError,
    ValidationError,
    as_utc,
)
from crane_booking.observability.logging import get_logger
from crane_booking.observability.metrics import record_conflict
from crane_booking.observability.tracing import get_tracer
from crane_booking.persistence.unit_of_work import UnitOfWork

from .lifecycle import require_admin

logger = get_logger(__name__)
tracer = get_tracer(__name__)


class MaintenanceScheduler:
    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    async def block(
        self,
        actor: Actor,
        crane_id: str,
        start: datetime,
        end: datetime,
        description: str = "Maintenance",
    ) -> MaintenanceBlock:
        """Reserve a crane for maintenance.

        Refused while any pending or approved reservation overlaps the window;
        the buffer does not apply to maintenance in either direction.
        """

        require_admin(actor, "schedule maintenance")
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            raise ValidationError("Maintenance end must be after its start.")

        with tracer.start_as_current_span("maintenance.block"):
            async with self.uow.transaction(crane_id) as repo:
                if await repo.get_crane(crane_id) is None:
                    raise NotFoundError("Crane not found.", crane_id=crane_id)
                clashing = await repo.active_reservations(crane_id, start, end)
                if clashing:
                    record_conflict("maintenance")
                    raise ConflictError(
                        "Maintenance overlaps existing reservations; reschedule or cancel them first.",
                        reservations=[reservation.id for reservation in clashing],
                    )
                block = MaintenanceBlock(
                    crane_id=crane_id,
                    start=start,
                    end=end,
                    description=description,
                    created_by=actor.id,
                )
                await repo.add_maintenance_block(block)
                await repo.record_event(
                    "maintenance.created",
                    "maintenance",
                    block.id,
                    actor.id,
                    {"crane_id": crane_id, "start": start.isoformat(), "end": end.isoformat()},
                )
        logger.info("maintenance_blocked", block_id=block.id, crane_id=crane_id)
        return block

    async def remove(self, actor: Actor, block_id: str) -> None:
        require_admin(actor, "remove maintenance")
        async with self.uow.reader() as repo:
            block = await repo.get_maintenance_block(block_id)
        if block is None:
            raise NotFoundError("Maintenance block not found.", block_id=block_id)
        async with self.uow.transaction(block.crane_id) as repo:
            if not await repo.delete_maintenance_block(block_id):
                raise NotFoundError("Maintenance block not found.", block_id=block_id)
            await repo.record_event("maintenance.deleted", "maintenance", block_id, actor.id)

    async def list_blocks(
        self,
        crane_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MaintenanceBlock]:
        async with self.uow.reader() as repo:
            return await repo.maintenance_blocks(
                crane_id,
                as_utc(start) if start else None,
                as_utc(end) if end else None,
            )
