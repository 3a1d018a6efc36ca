"""Crane registry and slot availability endpoints."""

from __future__ import annotations

from datetime import date, timedelta
from typing import List

from fastapi import APIRouter, Depends, Query, status

from crane_booking.enterprise.core import Actor
from crane_booking.server.api.schemas.fleet import (
    CraneCreateRequest,
    CraneSchema,
    CraneUpdateRequest,
    SlotListSchema,
)
from crane_booking.server.dependencies import get_actor, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(prefix="/cranes", tags=["cranes"])


def _service(service: SchedulingService = Depends(get_scheduling_service)) -> SchedulingService:
    return service


@router.get("", response_model=List[CraneSchema])
async def list_cranes(
    include_inactive: bool = False,
    service: SchedulingService = Depends(_service),
) -> List[CraneSchema]:
    cranes = await service.list_cranes(active_only=not include_inactive)
    return [CraneSchema.from_domain(crane) for crane in cranes]


@router.post("", response_model=CraneSchema, status_code=status.HTTP_201_CREATED)
async def create_crane(
    payload: CraneCreateRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> CraneSchema:
    crane = await service.create_crane(actor, **payload.model_dump())
    return CraneSchema.from_domain(crane)


@router.get("/{crane_id}", response_model=CraneSchema)
async def get_crane(crane_id: str, service: SchedulingService = Depends(_service)) -> CraneSchema:
    return CraneSchema.from_domain(await service.get_crane(crane_id))


@router.patch("/{crane_id}", response_model=CraneSchema)
async def update_crane(
    crane_id: str,
    payload: CraneUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> CraneSchema:
    crane = await service.update_crane(actor, crane_id, **payload.model_dump(exclude_unset=True))
    return CraneSchema.from_domain(crane)


@router.delete("/{crane_id}", response_model=CraneSchema)
async def deactivate_crane(
    crane_id: str,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> CraneSchema:
    return CraneSchema.from_domain(await service.deactivate_crane(actor, crane_id))


@router.get("/{crane_id}/slots", response_model=SlotListSchema)
async def available_slots(
    crane_id: str,
    day: date = Query(..., alias="date"),
    slot_count: int = Query(1, ge=1),
    tz_offset_minutes: int = Query(0, gt=-1440, lt=1440),
    service: SchedulingService = Depends(_service),
) -> SlotListSchema:
    slots = await service.available_slots(crane_id, day, slot_count, timedelta(minutes=tz_offset_minutes))
    return SlotListSchema(
        crane_id=crane_id,
        date=day,
        slot_count=slot_count,
        slot_minutes=service.schedule_settings().slot_minutes,
        slots=slots,
    )
