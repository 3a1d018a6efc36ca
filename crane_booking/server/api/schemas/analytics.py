"""Pydantic schemas powering reporting endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from crane_booking.enterprise.core import AuditEvent, CraneUtilization


class CraneUtilizationSchema(BaseModel):
    crane_id: str
    crane_name: str
    approved_hours: float
    maintenance_hours: float
    pending_count: int
    rejected_count: int
    cancelled_count: int
    completed_count: int

    @classmethod
    def from_domain(cls, row: CraneUtilization) -> "CraneUtilizationSchema":
        return cls(**row.model_dump())


class AuditEventSchema(BaseModel):
    id: Optional[int]
    created_at: datetime
    action: str
    entity_type: str
    entity_id: Optional[str]
    actor_id: Optional[str]
    payload: dict

    @classmethod
    def from_domain(cls, event: AuditEvent) -> "AuditEventSchema":
        return cls(**event.model_dump())


__all__ = ["CraneUtilizationSchema", "AuditEventSchema"]
