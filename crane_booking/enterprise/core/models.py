"""Domain models for the crane booking engine.

These models provide a typed, immutable representation of the entities the
scheduler reasons about. They are intentionally framework-agnostic so they can
be reused by services, APIs, and persistence layers. Updates are expressed as
``model_copy(update=...)`` so a value held by one caller never changes under it.
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalise ``value`` to an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ActorRole(str, enum.Enum):
    """Roles an authenticated caller may hold."""

    USER = "user"
    OPERATOR = "operator"
    ADMIN = "admin"


class Actor(_Frozen):
    """The authenticated party performing an operation."""

    id: str
    role: ActorRole = ActorRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def can_view_all(self) -> bool:
        return self.role in {ActorRole.ADMIN, ActorRole.OPERATOR}


class ScheduleSettings(_Frozen):
    """Read-only scheduling snapshot threaded into every computation."""

    workday_start: time = time(8, 0)
    workday_end: time = time(16, 0)
    slot_minutes: PositiveInt = 60
    buffer_minutes: NonNegativeInt = 15

    @model_validator(mode="after")
    def _check_window(self) -> "ScheduleSettings":
        if self.workday_end <= self.workday_start:
            raise ValueError("workday_end must be after workday_start")
        return self

    @property
    def slot(self) -> timedelta:
        return timedelta(minutes=self.slot_minutes)

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_minutes)


class TimeInterval(_Frozen):
    """Half-open interval ``[start, end)`` between two UTC instants."""

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "TimeInterval":
        if self.end <= self.start:
            raise ValueError("interval end must be after start")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class Crane(_Frozen):
    """A schedulable, indivisible lifting unit."""

    id: str = Field(default_factory=_new_id)
    name: str
    capacity_t: PositiveFloat = Field(..., description="Maximum load in tonnes.")
    max_width_m: Optional[PositiveFloat] = Field(None, description="Widest vessel the basin accepts.")
    description: Optional[str] = None
    location: Optional[str] = None
    is_active: bool = True
    updated_at: datetime = Field(default_factory=utcnow)


class VesselType(str, enum.Enum):
    SAILBOAT = "sailboat"
    MOTORBOAT = "motorboat"
    CATAMARAN = "catamaran"
    OTHER = "other"


class LoadProfile(_Frozen):
    """Snapshot of the vessel to be lifted."""

    vessel_type: VesselType = VesselType.OTHER
    name: Optional[str] = None
    length_m: Optional[PositiveFloat] = None
    width_m: Optional[PositiveFloat] = None
    draft_m: Optional[PositiveFloat] = None
    weight_t: Optional[NonNegativeFloat] = None


class VesselProfile(_Frozen):
    """A load profile saved by its owner for reuse across bookings."""

    id: str = Field(default_factory=_new_id)
    owner_id: str
    profile: LoadProfile
    created_at: datetime = Field(default_factory=utcnow)


class ReservationStatus(str, enum.Enum):
    """Lifecycle states for a reservation."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.APPROVED})


class Reservation(_Frozen):
    """A claim on one crane for one interval."""

    id: str = Field(default_factory=_new_id)
    reservation_number: str
    crane_id: str
    requester_id: str
    start: datetime
    end: datetime
    status: ReservationStatus = ReservationStatus.PENDING
    load_profile: LoadProfile = LoadProfile()
    vessel_id: Optional[str] = None
    purpose: str = ""
    contact_phone: Optional[str] = None
    admin_note: Optional[str] = None
    cancel_reason: Optional[str] = None
    cancelled_by: Optional[ActorRole] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("start", "end")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "Reservation":
        if self.end <= self.start:
            raise ValueError("reservation end must be after start")
        return self

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start, end=self.end)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class MaintenanceBlock(_Frozen):
    """Hard, buffer-free exclusion interval on a crane."""

    id: str = Field(default_factory=_new_id)
    crane_id: str
    start: datetime
    end: datetime
    description: str = "Maintenance"
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("start", "end")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "MaintenanceBlock":
        if self.end <= self.start:
            raise ValueError("maintenance end must be after start")
        return self


class NotifyState(str, enum.Enum):
    """Whether a waiting requester has been told a slot opened up."""

    NONE = "none"
    PENDING = "pending"
    SENT = "sent"


class WaitingListEntry(_Frozen):
    """Recorded unmet demand for a crane on a calendar day."""

    id: str = Field(default_factory=_new_id)
    crane_id: str
    requester_id: str
    requested_date: date
    slot_count: PositiveInt = 1
    load_profile: LoadProfile = LoadProfile()
    utc_offset_minutes: int = 0
    notify_state: NotifyState = NotifyState.NONE
    consumed: bool = False
    reservation_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    def local_day(self) -> TimeInterval:
        """The requested calendar day as an absolute interval."""

        tz = timezone(timedelta(minutes=self.utc_offset_minutes))
        start = datetime.combine(self.requested_date, time(0, 0), tzinfo=tz)
        return TimeInterval(start=start, end=start + timedelta(days=1))


class AuditEvent(_Frozen):
    """Append-only record of a state change."""

    id: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    actor_id: Optional[str] = None
    payload: dict = Field(default_factory=dict)


class ReservationQuery(_Frozen):
    """Filters for listing reservations."""

    statuses: Optional[frozenset[ReservationStatus]] = None
    crane_id: Optional[str] = None
    requester_id: Optional[str] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    @field_validator("window_start", "window_end")
    @classmethod
    def _normalise(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class CalendarFilter(_Frozen):
    """Filters for calendar listings."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    crane_id: Optional[str] = None
    include_pending: bool = True
    include_maintenance: bool = True

    @field_validator("start", "end")
    @classmethod
    def _normalise(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class CalendarEventKind(str, enum.Enum):
    RESERVATION = "reservation"
    MAINTENANCE = "maintenance"


class CalendarEvent(_Frozen):
    """Read model combining a booking or block with its crane."""

    id: str
    kind: CalendarEventKind
    crane_id: str
    crane_name: str
    crane_location: Optional[str] = None
    start: datetime
    end: datetime
    status: Optional[ReservationStatus] = None
    vessel_type: Optional[VesselType] = None
    purpose: Optional[str] = None


class CraneUtilization(_Frozen):
    """Aggregated use of a crane over a reporting window."""

    crane_id: str
    crane_name: str
    approved_hours: float = 0.0
    maintenance_hours: float = 0.0
    pending_count: NonNegativeInt = 0
    rejected_count: NonNegativeInt = 0
    cancelled_count: NonNegativeInt = 0
    completed_count: NonNegativeInt = 0
