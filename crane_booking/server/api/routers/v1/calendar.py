"""Calendar feed combining reservations and maintenance."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends

from crane_booking.enterprise.core import Actor, CalendarFilter
from crane_booking.server.api.schemas.reservations import CalendarEventSchema
from crane_booking.server.dependencies import get_actor, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/events", response_model=List[CalendarEventSchema])
async def calendar_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    crane_id: Optional[str] = None,
    include_pending: bool = True,
    include_maintenance: bool = True,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[CalendarEventSchema]:
    events = await service.list_calendar_events(
        actor,
        CalendarFilter(
            start=start,
            end=end,
            crane_id=crane_id,
            include_pending=include_pending,
            include_maintenance=include_maintenance,
        ),
    )
    return [CalendarEventSchema.from_domain(event) for event in events]
