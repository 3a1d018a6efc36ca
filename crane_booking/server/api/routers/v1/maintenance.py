"""Maintenance block endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from crane_booking.enterprise.core import Actor
from crane_booking.server.api.schemas.fleet import MaintenanceBlockSchema, MaintenanceCreateRequest
from crane_booking.server.dependencies import get_actor, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("", response_model=List[MaintenanceBlockSchema])
async def list_blocks(
    crane_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[MaintenanceBlockSchema]:
    blocks = await service.list_maintenance(crane_id, start, end)
    return [MaintenanceBlockSchema.from_domain(block) for block in blocks]


@router.post("", response_model=MaintenanceBlockSchema, status_code=status.HTTP_201_CREATED)
async def create_block(
    payload: MaintenanceCreateRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> MaintenanceBlockSchema:
    block = await service.schedule_maintenance(
        actor, payload.crane_id, payload.start, payload.end, payload.description
    )
    return MaintenanceBlockSchema.from_domain(block)


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_block(
    block_id: str,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> None:
    await service.remove_maintenance(actor, block_id)
