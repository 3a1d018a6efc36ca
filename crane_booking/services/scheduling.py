"""High-level facade over the booking components, independent of any transport."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Sequence

from crane_booking.enterprise.config.settings import AppSettings, get_settings
from crane_booking.enterprise.core import (
    Actor,
    AuditEvent,
    CalendarEvent,
    CalendarEventKind,
    CalendarFilter,
    Crane,
    CraneUtilization,
    ForbiddenError,
    LoadProfile,
    MaintenanceBlock,
    NotFoundError,
    Reservation,
    ReservationQuery,
    ReservationStatus,
    ScheduleSettings,
    ValidationError,
    VesselProfile,
    WaitingListEntry,
    utcnow,
)
from crane_booking.observability.metrics import SLOT_QUERY_DURATION
from crane_booking.persistence.unit_of_work import InMemoryUnitOfWork, UnitOfWork

from .analytics import UtilizationReport
from .capacity import CapacityValidator
from .conflicts import ConflictDetector
from .fleet import FleetRegistry
from .lifecycle import Clock, ReservationLifecycle
from .maintenance import MaintenanceScheduler
from .notifications import NotificationDispatcher
from .rescheduling import ReschedulingEngine
from .slots import SlotGenerator
from .waiting_list import WaitingListMatcher


class SchedulingService:
    """Entry point used by the API layer and by scripts.

    Wires the components against one :class:`UnitOfWork` and one
    notification dispatcher. Settings are re-read for every operation.
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        uow: Optional[UnitOfWork] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings or get_settings()
        self.uow = uow or InMemoryUnitOfWork()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.clock = clock
        self.slots = SlotGenerator()
        self.detector = ConflictDetector()
        self.lifecycle = ReservationLifecycle(
            self.uow,
            self.schedule_settings,
            policy=self.settings.booking,
            capacity=CapacityValidator(),
            detector=self.detector,
            slots=self.slots,
            dispatcher=self.dispatcher,
            clock=clock,
        )
        self.waiting_list = WaitingListMatcher(self.lifecycle)
        self.lifecycle.on_slot_released = self.waiting_list.flag_for_notification
        self.rescheduling = ReschedulingEngine(self.lifecycle)
        self.fleet = FleetRegistry(self.uow)
        self.maintenance = MaintenanceScheduler(self.uow)
        self.analytics = UtilizationReport(self.uow)

    def schedule_settings(self) -> ScheduleSettings:
        return self.settings.schedule.snapshot()

    # availability

    async def available_slots(
        self,
        crane_id: str,
        day: date,
        slot_count: int = 1,
        tz_offset: timedelta = timedelta(0),
    ) -> List[datetime]:
        """Free start instants on ``day`` for a booking of ``slot_count`` slots.

        Best effort: nothing is held, so a listed slot can still be refused by
        :meth:`create_reservation` if another requester claims it first.
        """

        settings = self.schedule_settings()
        with SLOT_QUERY_DURATION.time():
            candidates = self.slots.generate(day, slot_count, settings, tz_offset)
            window = self.slots.workday(day, settings, tz_offset)
            async with self.uow.reader() as repo:
                crane = await repo.get_crane(crane_id)
                if crane is None:
                    raise NotFoundError("Crane not found.", crane_id=crane_id)
                if not crane.is_active:
                    return []
                reservations = await repo.active_reservations(crane_id, window.start - settings.buffer, window.end)
                blocks = await repo.maintenance_blocks(crane_id, window.start, window.end)
            now = self.clock()
            return self.detector.free_candidates(
                [candidate for candidate in candidates if candidate >= now],
                settings.slot * slot_count,
                reservations,
                blocks,
                settings,
            )

    # reservations

    async def create_reservation(
        self,
        actor: Actor,
        crane_id: str,
        start: datetime,
        end: datetime,
        load_profile: Optional[LoadProfile] = None,
        vessel_id: Optional[str] = None,
        purpose: str = "",
        contact_phone: Optional[str] = None,
        tz_offset: timedelta = timedelta(0),
    ) -> Reservation:
        return await self.lifecycle.create(
            actor,
            crane_id,
            start,
            end,
            load_profile=load_profile,
            vessel_id=vessel_id,
            purpose=purpose,
            contact_phone=contact_phone,
            tz_offset=tz_offset,
        )

    async def approve_reservation(self, actor: Actor, reservation_id: str, note: Optional[str] = None) -> Reservation:
        return await self.lifecycle.approve(actor, reservation_id, note)

    async def reject_reservation(self, actor: Actor, reservation_id: str, note: Optional[str] = None) -> Reservation:
        return await self.lifecycle.reject(actor, reservation_id, note)

    async def cancel_reservation(self, actor: Actor, reservation_id: str, reason: Optional[str] = None) -> Reservation:
        return await self.lifecycle.cancel(actor, reservation_id, reason)

    async def complete_reservation(self, actor: Actor, reservation_id: str) -> Reservation:
        return await self.lifecycle.complete(actor, reservation_id)

    async def reschedule_reservation(
        self,
        actor: Actor,
        reservation_id: str,
        start: datetime,
        end: datetime,
        crane_id: Optional[str] = None,
    ) -> Reservation:
        return await self.rescheduling.reschedule(actor, reservation_id, start, end, crane_id)

    async def get_reservation(self, actor: Actor, reservation_id: str) -> Reservation:
        return await self.lifecycle.get(actor, reservation_id)

    async def my_reservations(self, actor: Actor) -> List[Reservation]:
        return await self.lifecycle.list_for_requester(actor)

    async def list_reservations(self, actor: Actor, query: Optional[ReservationQuery] = None) -> List[Reservation]:
        return await self.lifecycle.list_reservations(actor, query)

    # calendar

    async def list_calendar_events(
        self, actor: Actor, calendar_filter: Optional[CalendarFilter] = None
    ) -> List[CalendarEvent]:
        """Pending/approved bookings and maintenance, joined with their crane."""

        criteria = calendar_filter or CalendarFilter()
        if criteria.start and criteria.end and criteria.end <= criteria.start:
            raise ValidationError("Calendar end must be after its start.")
        statuses = {ReservationStatus.APPROVED}
        if criteria.include_pending:
            statuses.add(ReservationStatus.PENDING)

        async with self.uow.reader() as repo:
            cranes = {crane.id: crane for crane in await repo.list_cranes(active_only=False)}
            reservations = await repo.list_reservations(
                ReservationQuery(
                    statuses=frozenset(statuses),
                    crane_id=criteria.crane_id,
                    window_start=criteria.start,
                    window_end=criteria.end,
                )
            )
            blocks = []
            if criteria.include_maintenance:
                blocks = await repo.maintenance_blocks(criteria.crane_id, criteria.start, criteria.end)

        events: List[CalendarEvent] = []
        for res in reservations:
            crane = cranes.get(res.crane_id)
            if crane is None:
                continue
            events.append(
                CalendarEvent(
                    id=res.id,
                    kind=CalendarEventKind.RESERVATION,
                    crane_id=crane.id,
                    crane_name=crane.name,
                    crane_location=crane.location,
                    start=res.start,
                    end=res.end,
                    status=res.status,
                    vessel_type=res.load_profile.vessel_type,
                    purpose=res.purpose if actor.can_view_all or res.requester_id == actor.id else None,
                )
            )
        for block in blocks:
            crane = cranes.get(block.crane_id)
            if crane is None:
                continue
            events.append(
                CalendarEvent(
                    id=block.id,
                    kind=CalendarEventKind.MAINTENANCE,
                    crane_id=crane.id,
                    crane_name=crane.name,
                    crane_location=crane.location,
                    start=block.start,
                    end=block.end,
                    purpose=block.description,
                )
            )
        return sorted(events, key=lambda event: (event.start, event.crane_name))

    # waiting list

    async def join_waiting_list(
        self,
        actor: Actor,
        crane_id: str,
        requested_date: date,
        slot_count: int = 1,
        load_profile: Optional[LoadProfile] = None,
        tz_offset: timedelta = timedelta(0),
    ) -> WaitingListEntry:
        return await self.waiting_list.join(actor, crane_id, requested_date, slot_count, load_profile, tz_offset)

    async def promote_waiting_entry(
        self,
        actor: Actor,
        entry_id: str,
        start: datetime,
        end: datetime,
        crane_id: Optional[str] = None,
    ) -> Reservation:
        return await self.waiting_list.promote(actor, entry_id, start, end, crane_id)

    async def leave_waiting_list(self, actor: Actor, entry_id: str) -> None:
        await self.waiting_list.leave(actor, entry_id)

    async def my_waiting_entries(self, actor: Actor) -> List[WaitingListEntry]:
        return await self.waiting_list.list_for_requester(actor)

    async def list_waiting_entries(
        self, actor: Actor, crane_id: Optional[str] = None, include_consumed: bool = False
    ) -> List[WaitingListEntry]:
        return await self.waiting_list.list_entries(actor, crane_id, include_consumed)

    async def pending_waiting_notifications(self, actor: Actor) -> List[WaitingListEntry]:
        return await self.waiting_list.pending_notifications(actor)

    async def mark_waiting_notified(self, actor: Actor, entry_ids: Sequence[str]) -> List[WaitingListEntry]:
        return await self.waiting_list.mark_notified(actor, entry_ids)

    # fleet

    async def list_cranes(self, active_only: bool = True) -> List[Crane]:
        return await self.fleet.list_cranes(active_only)

    async def get_crane(self, crane_id: str) -> Crane:
        return await self.fleet.get_crane(crane_id)

    async def create_crane(self, actor: Actor, **fields: Any) -> Crane:
        return await self.fleet.create_crane(actor, **fields)

    async def update_crane(self, actor: Actor, crane_id: str, **changes: Any) -> Crane:
        return await self.fleet.update_crane(actor, crane_id, **changes)

    async def deactivate_crane(self, actor: Actor, crane_id: str) -> Crane:
        return await self.fleet.deactivate_crane(actor, crane_id)

    async def save_vessel(self, actor: Actor, profile: LoadProfile) -> VesselProfile:
        return await self.fleet.save_vessel(actor, profile)

    async def list_vessels(self, actor: Actor) -> List[VesselProfile]:
        return await self.fleet.list_vessels(actor)

    async def delete_vessel(self, actor: Actor, vessel_id: str) -> None:
        await self.fleet.delete_vessel(actor, vessel_id)

    # maintenance

    async def schedule_maintenance(
        self,
        actor: Actor,
        crane_id: str,
        start: datetime,
        end: datetime,
        description: str = "Maintenance",
    ) -> MaintenanceBlock:
        return await self.maintenance.block(actor, crane_id, start, end, description)

    async def remove_maintenance(self, actor: Actor, block_id: str) -> None:
        await self.maintenance.remove(actor, block_id)

    async def list_maintenance(
        self,
        crane_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MaintenanceBlock]:
        return await self.maintenance.list_blocks(crane_id, start, end)

    # reporting

    async def crane_utilization(self, actor: Actor, start: datetime, end: datetime) -> List[CraneUtilization]:
        return await self.analytics.crane_utilization(actor, start, end)

    async def audit_log(self, actor: Actor, limit: int = 50) -> List[AuditEvent]:
        if not actor.is_admin:
            raise ForbiddenError("Only administrators may read the audit log.", role=actor.role.value)
        async with self.uow.reader() as repo:
            return await repo.recent_events(limit)

    async def close(self) -> None:
        await self.dispatcher.drain()
