"""Reservation lifecycle endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from crane_booking.enterprise.core import Actor, ReservationQuery, ReservationStatus
from crane_booking.server.api.schemas.reservations import (
    CancelRequest,
    CreateReservationRequest,
    RescheduleRequest,
    ReservationSchema,
    ReviewRequest,
)
from crane_booking.server.dependencies import get_actor, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(prefix="/reservations", tags=["reservations"])


def _service(service: SchedulingService = Depends(get_scheduling_service)) -> SchedulingService:
    return service


@router.post("", response_model=ReservationSchema, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: CreateReservationRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    reservation = await service.create_reservation(
        actor,
        payload.crane_id,
        payload.start,
        payload.end,
        load_profile=payload.load_profile.to_domain() if payload.load_profile else None,
        vessel_id=payload.vessel_id,
        purpose=payload.purpose,
        contact_phone=payload.contact_phone,
        tz_offset=timedelta(minutes=payload.tz_offset_minutes),
    )
    return ReservationSchema.from_domain(reservation)


@router.get("/mine", response_model=List[ReservationSchema])
async def my_reservations(
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> List[ReservationSchema]:
    return [ReservationSchema.from_domain(res) for res in await service.my_reservations(actor)]


@router.get("", response_model=List[ReservationSchema])
async def list_reservations(
    status_filter: Optional[List[ReservationStatus]] = Query(None, alias="status"),
    crane_id: Optional[str] = None,
    requester_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> List[ReservationSchema]:
    query = ReservationQuery(
        statuses=frozenset(status_filter) if status_filter else None,
        crane_id=crane_id,
        requester_id=requester_id,
        window_start=start,
        window_end=end,
    )
    return [ReservationSchema.from_domain(res) for res in await service.list_reservations(actor, query)]


@router.get("/{reservation_id}", response_model=ReservationSchema)
async def get_reservation(
    reservation_id: str,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    return ReservationSchema.from_domain(await service.get_reservation(actor, reservation_id))


@router.post("/{reservation_id}/approve", response_model=ReservationSchema)
async def approve_reservation(
    reservation_id: str,
    payload: Optional[ReviewRequest] = None,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    note = payload.note if payload else None
    return ReservationSchema.from_domain(await service.approve_reservation(actor, reservation_id, note))


@router.post("/{reservation_id}/reject", response_model=ReservationSchema)
async def reject_reservation(
    reservation_id: str,
    payload: Optional[ReviewRequest] = None,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    note = payload.note if payload else None
    return ReservationSchema.from_domain(await service.reject_reservation(actor, reservation_id, note))


@router.post("/{reservation_id}/cancel", response_model=ReservationSchema)
async def cancel_reservation(
    reservation_id: str,
    payload: Optional[CancelRequest] = None,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    reason = payload.reason if payload else None
    return ReservationSchema.from_domain(await service.cancel_reservation(actor, reservation_id, reason))


@router.post("/{reservation_id}/complete", response_model=ReservationSchema)
async def complete_reservation(
    reservation_id: str,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    return ReservationSchema.from_domain(await service.complete_reservation(actor, reservation_id))


@router.post("/{reservation_id}/reschedule", response_model=ReservationSchema)
async def reschedule_reservation(
    reservation_id: str,
    payload: RescheduleRequest,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(_service),
) -> ReservationSchema:
    reservation = await service.reschedule_reservation(
        actor, reservation_id, payload.start, payload.end, payload.crane_id
    )
    return ReservationSchema.from_domain(reservation)
