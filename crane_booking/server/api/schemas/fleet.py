"""Pydantic schemas for cranes, vessels, maintenance and slot listings."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from crane_booking.enterprise.core import Crane, MaintenanceBlock, VesselProfile
from crane_booking.server.api.schemas.reservations import LoadProfileSchema


class CraneSchema(BaseModel):
    id: str
    name: str
    capacity_t: float
    max_width_m: Optional[float]
    description: Optional[str]
    location: Optional[str]
    is_active: bool
    updated_at: datetime

    @classmethod
    def from_domain(cls, crane: Crane) -> "CraneSchema":
        return cls(**crane.model_dump())


class CraneCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    capacity_t: float = Field(..., gt=0)
    max_width_m: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    location: Optional[str] = None


class CraneUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    capacity_t: Optional[float] = Field(None, gt=0)
    max_width_m: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    location: Optional[str] = None
    is_active: Optional[bool] = None


class SlotListSchema(BaseModel):
    crane_id: str
    date: date
    slot_count: int
    slot_minutes: int
    slots: List[datetime]


class VesselSchema(BaseModel):
    id: str
    owner_id: str
    profile: LoadProfileSchema
    created_at: datetime

    @classmethod
    def from_domain(cls, vessel: VesselProfile) -> "VesselSchema":
        return cls(
            id=vessel.id,
            owner_id=vessel.owner_id,
            profile=LoadProfileSchema.from_domain(vessel.profile),
            created_at=vessel.created_at,
        )


class MaintenanceBlockSchema(BaseModel):
    id: str
    crane_id: str
    start: datetime
    end: datetime
    description: str
    created_by: Optional[str]
    created_at: datetime

    @classmethod
    def from_domain(cls, block: MaintenanceBlock) -> "MaintenanceBlockSchema":
        return cls(**block.model_dump())


class MaintenanceCreateRequest(BaseModel):
    crane_id: str
    start: datetime
    end: datetime
    description: str = "Maintenance"


__all__ = [
    "CraneSchema",
    "CraneCreateRequest",
    "CraneUpdateRequest",
    "SlotListSchema",
    "VesselSchema",
    "MaintenanceBlockSchema",
    "MaintenanceCreateRequest",
]
