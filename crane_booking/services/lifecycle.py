"""Reservation state machine and its transactional writes."""

from __future__ import annotations

import secrets
import string
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Awaitable, Callable, Dict, FrozenSet, List, Optional, Tuple

from crane_booking.enterprise.config.settings import BookingPolicySettings
from crane_booking.enterprise.core import (
    Actor,
    ActorRole,
    ConflictError,
    Crane,
    ForbiddenError,
    LoadProfile,
    NotFoundError,
    Reservation,
    ReservationQuery,
    ReservationStatus,
    ScheduleSettings,
    StateError,
    ValidationError,
    WaitingListEntry,
    as_utc,
    utcnow,
)
from crane_booking.observability.logging import get_logger
from crane_booking.observability.metrics import record_conflict, record_transition
from crane_booking.observability.tracing import get_tracer
from crane_booking.persistence.unit_of_work import UnitOfWork

from .capacity import CapacityValidator
from .conflicts import ConflictDetector
from .notifications import NotificationDispatcher
from .slots import SlotGenerator

logger = get_logger(__name__)
tracer = get_tracer(__name__)

SettingsProvider = Callable[[], ScheduleSettings]
Clock = Callable[[], datetime]
SlotReleasedHook = Callable[[object, Reservation], Awaitable[List[WaitingListEntry]]]

TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.APPROVED, ReservationStatus.REJECTED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.APPROVED: frozenset({ReservationStatus.CANCELLED, ReservationStatus.COMPLETED}),
    ReservationStatus.REJECTED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise ForbiddenError(f"Only administrators may {action}.", role=actor.role.value)


def require_writer(actor: Actor) -> None:
    if actor.role == ActorRole.OPERATOR:
        raise ForbiddenError("Operators have read-only access.", role=actor.role.value)


class ReservationLifecycle:
    """Creates reservations and moves them through their states.

    Every check that guards a write (capacity, overlap, current status) runs
    inside the same :meth:`UnitOfWork.transaction` as the write itself, so the
    outcome of a check can never be stale by the time the row is stored.
    Notifications go out only once the transaction has committed.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        settings_provider: SettingsProvider,
        policy: Optional[BookingPolicySettings] = None,
        capacity: Optional[CapacityValidator] = None,
        detector: Optional[ConflictDetector] = None,
        slots: Optional[SlotGenerator] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utcnow,
        on_slot_released: Optional[SlotReleasedHook] = None,
    ) -> None:
        self.uow = uow
        self.settings_provider = settings_provider
        self.policy = policy or BookingPolicySettings()
        self.capacity = capacity or CapacityValidator()
        self.detector = detector or ConflictDetector()
        self.slots = slots or SlotGenerator()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.clock = clock
        self.on_slot_released = on_slot_released

    # shared commit path

    def next_reservation_number(self) -> str:
        year = self.clock().strftime("%y")
        suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(4))
        return f"{self.policy.reservation_number_prefix}-{year}-{suffix}"

    async def check_placement(
        self,
        repo,
        reservation: Reservation,
        settings: ScheduleSettings,
        operation: str,
        exclude_reservation_id: Optional[str] = None,
    ) -> Crane:
        """Capacity and conflict checks every write of an interval goes through."""

        crane = await repo.get_crane(reservation.crane_id)
        if crane is None:
            raise NotFoundError("Crane not found.", crane_id=reservation.crane_id)
        if not crane.is_active:
            raise ValidationError(f"{crane.name} is not accepting reservations.", crane_id=crane.id)
        self.capacity.validate(crane, reservation.load_profile)
        conflict = await self.detector.find_conflict(
            repo,
            crane.id,
            reservation.start,
            reservation.end,
            settings,
            exclude_reservation_id=exclude_reservation_id,
        )
        if conflict is not None:
            record_conflict(operation)
            logger.info(
                "reservation_conflict",
                operation=operation,
                crane_id=crane.id,
                conflict_kind=conflict.kind,
                conflict_id=conflict.id,
            )
            if conflict.kind == "maintenance":
                message = f"{crane.name} is under maintenance during the requested time."
            else:
                message = "The requested time overlaps an existing reservation (including the buffer)."
            raise ConflictError(message, conflict_kind=conflict.kind, conflict_id=conflict.id)
        return crane

    def check_not_past(self, start: datetime) -> None:
        if start < self.clock():
            raise ValidationError("Reservations cannot start in the past.", field="start")

    # operations

    async def create(
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
        require_writer(actor)
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            raise ValidationError("Reservation end must be after its start.")
        self.check_not_past(start)
        settings = self.settings_provider()
        self.slots.validate_interval(start, end, settings, tz_offset)

        with tracer.start_as_current_span("reservation.create") as span:
            span.set_attribute("crane_id", crane_id)
            async with self.uow.transaction(crane_id) as repo:
                limit = self.policy.max_active_per_requester
                if limit and await repo.count_active_reservations(actor.id) >= limit:
                    raise ValidationError(
                        f"You already hold {limit} active reservations.",
                        limit=limit,
                    )
                profile = load_profile or LoadProfile()
                if vessel_id:
                    vessel = await repo.get_vessel(vessel_id)
                    if vessel is None:
                        raise NotFoundError("Vessel not found.", vessel_id=vessel_id)
                    if vessel.owner_id != actor.id and not actor.is_admin:
                        raise ForbiddenError("Vessel belongs to another requester.", vessel_id=vessel_id)
                    profile = vessel.profile
                now = self.clock()
                reservation = Reservation(
                    reservation_number=self.next_reservation_number(),
                    crane_id=crane_id,
                    requester_id=actor.id,
                    start=start,
                    end=end,
                    load_profile=profile,
                    vessel_id=vessel_id,
                    purpose=purpose,
                    contact_phone=contact_phone,
                    created_at=now,
                    updated_at=now,
                )
                await self.check_placement(repo, reservation, settings, "create")
                await repo.add_reservation(reservation)
                await repo.record_event(
                    "reservation.created",
                    "reservation",
                    reservation.id,
                    actor.id,
                    {"crane_id": crane_id, "start": start.isoformat(), "end": end.isoformat()},
                )
            span.set_attribute("reservation_id", reservation.id)

        record_transition(reservation.status.value)
        logger.info(
            "reservation_created",
            reservation_id=reservation.id,
            reservation_number=reservation.reservation_number,
            crane_id=crane_id,
        )
        self.dispatcher.status_changed(reservation, None)
        return reservation

    async def approve(self, actor: Actor, reservation_id: str, note: Optional[str] = None) -> Reservation:
        require_admin(actor, "approve reservations")
        settings = self.settings_provider()
        with tracer.start_as_current_span("reservation.approve"):
            async with self.locked(reservation_id) as (repo, current):
                self._check_transition(current, ReservationStatus.APPROVED)
                await self.check_placement(
                    repo, current, settings, "approve", exclude_reservation_id=current.id
                )
                updated = self._stamp(current, ReservationStatus.APPROVED, actor, admin_note=note)
                await repo.save_reservation(updated)
                await repo.record_event("reservation.approved", "reservation", updated.id, actor.id, {"note": note})
        return self._after_transition(current, updated)

    async def reject(self, actor: Actor, reservation_id: str, note: Optional[str] = None) -> Reservation:
        require_admin(actor, "reject reservations")
        with tracer.start_as_current_span("reservation.reject"):
            async with self.locked(reservation_id) as (repo, current):
                self._check_transition(current, ReservationStatus.REJECTED)
                updated = self._stamp(current, ReservationStatus.REJECTED, actor, admin_note=note)
                await repo.save_reservation(updated)
                await repo.record_event("reservation.rejected", "reservation", updated.id, actor.id, {"note": note})
                released = await self._release(repo, updated)
        return self._after_transition(current, updated, released)

    async def cancel(self, actor: Actor, reservation_id: str, reason: Optional[str] = None) -> Reservation:
        require_writer(actor)
        reason = (reason or "").strip() or None
        with tracer.start_as_current_span("reservation.cancel"):
            async with self.locked(reservation_id) as (repo, current):
                if not actor.is_admin:
                    if current.requester_id != actor.id:
                        raise ForbiddenError("You can only cancel your own reservations.")
                    minimum = self.policy.min_cancel_reason_length
                    if reason is None or len(reason) < minimum:
                        raise ValidationError(
                            f"A cancellation reason of at least {minimum} characters is required.",
                            field="reason",
                        )
                self._check_transition(current, ReservationStatus.CANCELLED)
                updated = current.model_copy(
                    update={
                        "status": ReservationStatus.CANCELLED,
                        "cancel_reason": reason,
                        "cancelled_by": ActorRole.ADMIN if actor.is_admin else ActorRole.USER,
                        "updated_at": self.clock(),
                    }
                )
                await repo.save_reservation(updated)
                await repo.record_event(
                    "reservation.cancelled", "reservation", updated.id, actor.id, {"reason": reason}
                )
                released = await self._release(repo, updated)
        return self._after_transition(current, updated, released)

    async def complete(self, actor: Actor, reservation_id: str) -> Reservation:
        require_admin(actor, "complete reservations")
        with tracer.start_as_current_span("reservation.complete"):
            async with self.locked(reservation_id) as (repo, current):
                self._check_transition(current, ReservationStatus.COMPLETED)
                updated = current.model_copy(
                    update={
                        "status": ReservationStatus.COMPLETED,
                        "completed_at": self.clock(),
                        "updated_at": self.clock(),
                    }
                )
                await repo.save_reservation(updated)
                await repo.record_event("reservation.completed", "reservation", updated.id, actor.id)
        return self._after_transition(current, updated)

    # reads

    async def get(self, actor: Actor, reservation_id: str) -> Reservation:
        async with self.uow.reader() as repo:
            reservation = await self._load(repo, reservation_id)
        if reservation.requester_id != actor.id and not actor.can_view_all:
            raise ForbiddenError("You can only view your own reservations.")
        return reservation

    async def list_for_requester(self, actor: Actor) -> List[Reservation]:
        async with self.uow.reader() as repo:
            reservations = await repo.list_reservations(ReservationQuery(requester_id=actor.id))
        return sorted(reservations, key=lambda res: res.created_at, reverse=True)

    async def list_reservations(self, actor: Actor, query: Optional[ReservationQuery] = None) -> List[Reservation]:
        if not actor.can_view_all:
            raise ForbiddenError("Only staff may list all reservations.", role=actor.role.value)
        async with self.uow.reader() as repo:
            return await repo.list_reservations(query or ReservationQuery())

    # helpers

    async def _crane_of(self, reservation_id: str) -> str:
        async with self.uow.reader() as repo:
            return (await self._load(repo, reservation_id)).crane_id

    @asynccontextmanager
    async def locked(self, reservation_id: str, *extra_crane_ids: str) -> AsyncIterator[Tuple[object, Reservation]]:
        """Open a transaction holding the reservation's crane and load the row.

        A reschedule may move the reservation to another crane between the
        unlocked lookup and the lock, so the crane is re-checked and the lock
        retaken until they agree.
        """

        while True:
            crane_id = await self._crane_of(reservation_id)
            async with self.uow.transaction(crane_id, *extra_crane_ids) as repo:
                current = await self._load(repo, reservation_id)
                if current.crane_id == crane_id:
                    yield repo, current
                    return

    @staticmethod
    async def _load(repo, reservation_id: str) -> Reservation:
        reservation = await repo.get_reservation(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found.", reservation_id=reservation_id)
        return reservation

    @staticmethod
    def _check_transition(current: Reservation, target: ReservationStatus) -> None:
        if target not in TRANSITIONS[current.status]:
            raise StateError(
                f"Cannot move a {current.status.value} reservation to {target.value}.",
                status=current.status.value,
                target=target.value,
            )

    def _stamp(
        self,
        current: Reservation,
        status: ReservationStatus,
        actor: Actor,
        admin_note: Optional[str],
    ) -> Reservation:
        now = self.clock()
        return current.model_copy(
            update={
                "status": status,
                "admin_note": admin_note if admin_note is not None else current.admin_note,
                "reviewed_by": actor.id,
                "reviewed_at": now,
                "updated_at": now,
            }
        )

    async def _release(self, repo, reservation: Reservation) -> List[WaitingListEntry]:
        if self.on_slot_released is None:
            return []
        return await self.on_slot_released(repo, reservation)

    def _after_transition(
        self,
        previous: Reservation,
        updated: Reservation,
        released: Optional[List[WaitingListEntry]] = None,
    ) -> Reservation:
        record_transition(updated.status.value)
        logger.info(
            "reservation_transition",
            reservation_id=updated.id,
            previous_status=previous.status.value,
            status=updated.status.value,
        )
        self.dispatcher.status_changed(updated, previous.status)
        if released:
            self.dispatcher.slot_released(updated, released)
        return updated
