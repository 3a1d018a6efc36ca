"""Waiting-list endpoints."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from crane_booking.enterprise.core import Actor
from crane_booking.server.api.schemas.reservations import (
    JoinWaitingListRequest,
    MarkNotifiedRequest,
    PromoteRequest,
    ReservationSchema,
    WaitingListEntrySchema,
)
from crane_booking.server.dependencies import get_actor, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(prefix="/waiting-list", tags=["waiting-list"])


def _service(service: SchedulingService = Depends(get_scheduling_service)) -> SchedulingService:
    return service


@router.post("", response_model=WaitingListEntrySchema, status_code=status.HTTP_201_CREATED)
async def join_waiting_list(
    payload: JoinWaitingListRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> WaitingListEntrySchema:
    entry = await service.join_waiting_list(
        actor,
        payload.crane_id,
        payload.requested_date,
        payload.slot_count,
        payload.load_profile.to_domain() if payload.load_profile else None,
        timedelta(minutes=payload.tz_offset_minutes),
    )
    return WaitingListEntrySchema.from_domain(entry)


@router.get("/mine", response_model=List[WaitingListEntrySchema])
async def my_entries(
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> List[WaitingListEntrySchema]:
    return [WaitingListEntrySchema.from_domain(entry) for entry in await service.my_waiting_entries(actor)]


@router.get("", response_model=List[WaitingListEntrySchema])
async def list_entries(
    crane_id: Optional[str] = None,
    include_consumed: bool = False,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> List[WaitingListEntrySchema]:
    entries = await service.list_waiting_entries(actor, crane_id, include_consumed)
    return [WaitingListEntrySchema.from_domain(entry) for entry in entries]


@router.get("/notifications", response_model=List[WaitingListEntrySchema])
async def pending_notifications(
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> List[WaitingListEntrySchema]:
    entries = await service.pending_waiting_notifications(actor)
    return [WaitingListEntrySchema.from_domain(entry) for entry in entries]


@router.post("/notifications/ack", response_model=List[WaitingListEntrySchema])
async def mark_notified(
    payload: MarkNotifiedRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> List[WaitingListEntrySchema]:
    entries = await service.mark_waiting_notified(actor, payload.entry_ids)
    return [WaitingListEntrySchema.from_domain(entry) for entry in entries]


@router.post("/{entry_id}/promote", response_model=ReservationSchema, status_code=status.HTTP_201_CREATED)
async def promote_entry(
    entry_id: str,
    payload: PromoteRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    reservation = await service.promote_waiting_entry(actor, entry_id, payload.start, payload.end, payload.crane_id)
    return ReservationSchema.from_domain(reservation)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_waiting_list(
    entry_id: str,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> None:
    await service.leave_waiting_list(actor, entry_id)
