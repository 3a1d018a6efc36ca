"""Utilisation and audit endpoints for staff."""

from __future__ import annotations

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query

from crane_booking.enterprise.core import Actor
from crane_booking.server.api.schemas.analytics import AuditEventSchema, CraneUtilizationSchema
from crane_booking.server.dependencies import get_actor, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(tags=["analytics"])


@router.get("/analytics/utilization", response_model=List[CraneUtilizationSchema])
async def crane_utilization(
    start: datetime,
    end: datetime,
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[CraneUtilizationSchema]:
    rows = await service.crane_utilization(actor, start, end)
    return [CraneUtilizationSchema.from_domain(row) for row in rows]


@router.get("/audit", response_model=List[AuditEventSchema])
async def audit_log(
    limit: int = Query(50, ge=1, le=500),
    actor: Actor = Depends(get_actor),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[AuditEventSchema]:
    return [AuditEventSchema.from_domain(event) for event in await service.audit_log(actor, limit)]


__all__ = ["router"]
