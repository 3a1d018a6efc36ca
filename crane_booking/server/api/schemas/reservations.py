"""Pydantic schemas for reservation, calendar and waiting-list endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, PositiveInt

from crane_booking.enterprise.core import (
    CalendarEvent,
    LoadProfile,
    Reservation,
    VesselType,
    WaitingListEntry,
)


class LoadProfileSchema(BaseModel):
    vessel_type: VesselType = VesselType.OTHER
    name: Optional[str] = None
    length_m: Optional[float] = Field(None, gt=0)
    width_m: Optional[float] = Field(None, gt=0)
    draft_m: Optional[float] = Field(None, gt=0)
    weight_t: Optional[float] = Field(None, ge=0)

    @classmethod
    def from_domain(cls, profile: LoadProfile) -> "LoadProfileSchema":
        return cls(**profile.model_dump())

    def to_domain(self) -> LoadProfile:
        return LoadProfile(**self.model_dump())


class ReservationSchema(BaseModel):
    id: str
    reservation_number: str
    crane_id: str
    requester_id: str
    start: datetime
    end: datetime
    status: str
    load_profile: LoadProfileSchema
    vessel_id: Optional[str]
    purpose: str
    contact_phone: Optional[str]
    admin_note: Optional[str]
    cancel_reason: Optional[str]
    cancelled_by: Optional[str]
    reviewed_by: Optional[str]
    reviewed_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "ReservationSchema":
        return cls(
            id=reservation.id,
            reservation_number=reservation.reservation_number,
            crane_id=reservation.crane_id,
            requester_id=reservation.requester_id,
            start=reservation.start,
            end=reservation.end,
            status=reservation.status.value,
            load_profile=LoadProfileSchema.from_domain(reservation.load_profile),
            vessel_id=reservation.vessel_id,
            purpose=reservation.purpose,
            contact_phone=reservation.contact_phone,
            admin_note=reservation.admin_note,
            cancel_reason=reservation.cancel_reason,
            cancelled_by=reservation.cancelled_by.value if reservation.cancelled_by else None,
            reviewed_by=reservation.reviewed_by,
            reviewed_at=reservation.reviewed_at,
            completed_at=reservation.completed_at,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )


class CreateReservationRequest(BaseModel):
    crane_id: str
    start: datetime
    end: datetime
    load_profile: Optional[LoadProfileSchema] = None
    vessel_id: Optional[str] = None
    purpose: str = ""
    contact_phone: Optional[str] = None
    tz_offset_minutes: int = Field(0, gt=-1440, lt=1440, description="Requester's UTC offset in minutes.")


class ReviewRequest(BaseModel):
    note: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class RescheduleRequest(BaseModel):
    start: datetime
    end: datetime
    crane_id: Optional[str] = None


class CalendarEventSchema(BaseModel):
    id: str
    kind: str
    crane_id: str
    crane_name: str
    crane_location: Optional[str]
    start: datetime
    end: datetime
    status: Optional[str]
    vessel_type: Optional[str]
    purpose: Optional[str]

    @classmethod
    def from_domain(cls, event: CalendarEvent) -> "CalendarEventSchema":
        return cls(
            id=event.id,
            kind=event.kind.value,
            crane_id=event.crane_id,
            crane_name=event.crane_name,
            crane_location=event.crane_location,
            start=event.start,
            end=event.end,
            status=event.status.value if event.status else None,
            vessel_type=event.vessel_type.value if event.vessel_type else None,
            purpose=event.purpose,
        )


class WaitingListEntrySchema(BaseModel):
    id: str
    crane_id: str
    requester_id: str
    requested_date: date
    slot_count: int
    load_profile: LoadProfileSchema
    utc_offset_minutes: int
    notify_state: str
    consumed: bool
    reservation_id: Optional[str]
    created_at: datetime

    @classmethod
    def from_domain(cls, entry: WaitingListEntry) -> "WaitingListEntrySchema":
        return cls(
            id=entry.id,
            crane_id=entry.crane_id,
            requester_id=entry.requester_id,
            requested_date=entry.requested_date,
            slot_count=entry.slot_count,
            load_profile=LoadProfileSchema.from_domain(entry.load_profile),
            utc_offset_minutes=entry.utc_offset_minutes,
            notify_state=entry.notify_state.value,
            consumed=entry.consumed,
            reservation_id=entry.reservation_id,
            created_at=entry.created_at,
        )


class JoinWaitingListRequest(BaseModel):
    crane_id: str
    requested_date: date
    slot_count: PositiveInt = 1
    load_profile: Optional[LoadProfileSchema] = None
    tz_offset_minutes: int = Field(0, gt=-1440, lt=1440)


class PromoteRequest(BaseModel):
    start: datetime
    end: datetime
    crane_id: Optional[str] = None


class MarkNotifiedRequest(BaseModel):
    entry_ids: List[str]


__all__ = [
    "LoadProfileSchema",
    "ReservationSchema",
    "CreateReservationRequest",
    "ReviewRequest",
    "CancelRequest",
    "RescheduleRequest",
    "CalendarEventSchema",
    "WaitingListEntrySchema",
    "JoinWaitingListRequest",
    "PromoteRequest",
    "MarkNotifiedRequest",
]
