"""Core domain package for the crane booking engine."""

from .errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SchedulingError,
    StateError,
    ValidationError,
)
from .models import (
    ACTIVE_STATUSES,
    Actor,
    ActorRole,
    AuditEvent,
    CalendarEvent,
    CalendarEventKind,
    CalendarFilter,
    Crane,
    CraneUtilization,
    LoadProfile,
    MaintenanceBlock,
    NotifyState,
    Reservation,
    ReservationQuery,
    ReservationStatus,
    ScheduleSettings,
    TimeInterval,
    VesselProfile,
    VesselType,
    WaitingListEntry,
    as_utc,
    utcnow,
)

__all__ = [
    "ACTIVE_STATUSES",
    "Actor",
    "ActorRole",
    "AuditEvent",
    "CalendarEvent",
    "CalendarEventKind",
    "CalendarFilter",
    "Crane",
    "CraneUtilization",
    "LoadProfile",
    "MaintenanceBlock",
    "NotifyState",
    "Reservation",
    "ReservationQuery",
    "ReservationStatus",
    "ScheduleSettings",
    "TimeInterval",
    "VesselProfile",
    "VesselType",
    "WaitingListEntry",
    "SchedulingError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ForbiddenError",
    "StateError",
    "as_utc",
    "utcnow",
]
