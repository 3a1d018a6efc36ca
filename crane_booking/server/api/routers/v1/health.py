"""Liveness and readiness probes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from crane_booking.enterprise.config.settings import AppSettings
from crane_booking.observability.logging import get_logger
from crane_booking.server.dependencies import get_app_settings, get_scheduling_service
from crane_booking.services import SchedulingService

router = APIRouter(prefix="/health", tags=["health"])
logger = get_logger(__name__)


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    service: SchedulingService = Depends(get_scheduling_service),
    settings: AppSettings = Depends(get_app_settings),
) -> dict[str, str]:
    try:
        await service.list_cranes(active_only=True)
    except Exception as exc:
        logger.warning("readiness_check_failed", error=str(exc))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable") from exc
    return {
        "status": "ready",
        "environment": settings.environment,
        "storage": "database" if settings.database.enabled else "memory",
    }
