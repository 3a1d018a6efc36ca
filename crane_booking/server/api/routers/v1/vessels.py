"""Saved vessel profiles of the calling requester."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from crane_booking.enterprise.core import Actor
from crane_booking.server.api.schemas.fleet import VesselSchema
from crane_booking.server.api.schemas.reservations import LoadProfileSchema
from crane_booking.server.dependencies import get_actor, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(prefix="/vessels", tags=["vessels"])


@router.get("", response_model=List[VesselSchema])
async def list_vessels(
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[VesselSchema]:
    return [VesselSchema.from_domain(vessel) for vessel in await service.list_vessels(actor)]


@router.post("", response_model=VesselSchema, status_code=status.HTTP_201_CREATED)
async def save_vessel(
    payload: LoadProfileSchema,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> VesselSchema:
    return VesselSchema.from_domain(await service.save_vessel(actor, payload.to_domain()))


@router.delete("/{vessel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vessel(
    vessel_id: str,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> None:
    await service.delete_vessel(actor, vessel_id)
