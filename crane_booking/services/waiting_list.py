"""Waiting list: recorded unmet demand and its manual promotion."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from crane_booking.enterprise.core import (
    Actor,
    ForbiddenError,
    LoadProfile,
    NotFoundError,
    NotifyState,
    Reservation,
    ReservationStatus,
    StateError,
    ValidationError,
    WaitingListEntry,
    as_utc,
)
from crane_booking.observability.logging import get_logger
from crane_booking.observability.metrics import record_transition
from crane_booking.observability.tracing import get_tracer

from .conflicts import intervals_overlap
from .lifecycle import ReservationLifecycle, require_admin, require_writer

logger = get_logger(__name__)
tracer = get_tracer(__name__)

PROMOTED_PURPOSE = "Waiting list"


class WaitingListMatcher:
    """Joins, promotes and flags waiting-list entries.

    Nothing here books automatically. A released slot only moves matching
    entries to ``NotifyState.PENDING``; an administrator decides who gets it
    through :meth:`promote`, which shares the reservation commit path.
    """

    def __init__(self, lifecycle: ReservationLifecycle) -> None:
        self.lifecycle = lifecycle
        self.uow = lifecycle.uow

    async def join(
        self,
        actor: Actor,
        crane_id: str,
        requested_date: date,
        slot_count: int = 1,
        load_profile: Optional[LoadProfile] = None,
        tz_offset: timedelta = timedelta(0),
    ) -> WaitingListEntry:
        require_writer(actor)
        settings = self.lifecycle.settings_provider()
        slots = self.lifecycle.slots
        candidates = slots.generate(requested_date, slot_count, settings, tz_offset)
        window = slots.workday(requested_date, settings, tz_offset)
        now = self.lifecycle.clock()
        profile = load_profile or LoadProfile()
        if window.end <= now:
            raise ValidationError("That day has already passed.", requested_date=requested_date.isoformat())

        async with self.uow.transaction(crane_id) as repo:
            crane = await repo.get_crane(crane_id)
            if crane is None:
                raise NotFoundError("Crane not found.", crane_id=crane_id)
            if not crane.is_active:
                raise ValidationError(f"{crane.name} is not accepting reservations.", crane_id=crane.id)
            self.lifecycle.capacity.validate(crane, profile)
            reservations = await repo.active_reservations(crane_id, window.start - settings.buffer, window.end)
            blocks = await repo.maintenance_blocks(crane_id, window.start, window.end)
            free = self.lifecycle.detector.free_candidates(
                [candidate for candidate in candidates if candidate >= now],
                settings.slot * slot_count,
                reservations,
                blocks,
                settings,
            )
            if free:
                raise ValidationError(
                    "Slots are still available on that day; book one instead.",
                    available=len(free),
                )
            entry = WaitingListEntry(
                crane_id=crane_id,
                requester_id=actor.id,
                requested_date=requested_date,
                slot_count=slot_count,
                load_profile=profile,
                utc_offset_minutes=int(tz_offset.total_seconds() // 60),
                created_at=now,
            )
            await repo.save_waiting_entry(entry)
            await repo.record_event(
                "waiting_list.joined",
                "waiting_list",
                entry.id,
                actor.id,
                {"crane_id": crane_id, "requested_date": requested_date.isoformat()},
            )
        logger.info("waiting_list_joined", entry_id=entry.id, crane_id=crane_id)
        return entry

    async def promote(
        self,
        actor: Actor,
        entry_id: str,
        start: datetime,
        end: datetime,
        crane_id: Optional[str] = None,
    ) -> Reservation:
        """Turn an entry into an approved reservation on the chosen crane and interval."""

        require_admin(actor, "promote waiting-list entries")
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            raise ValidationError("Reservation end must be after its start.")
        self.lifecycle.check_not_past(start)
        settings = self.lifecycle.settings_provider()

        async with self.uow.reader() as repo:
            entry = await self._load(repo, entry_id)
        target_crane = crane_id or entry.crane_id

        with tracer.start_as_current_span("waiting_list.promote") as span:
            span.set_attribute("crane_id", target_crane)
            async with self.uow.transaction(target_crane, entry.crane_id) as repo:
                entry = await self._load(repo, entry_id)
                if entry.consumed:
                    raise StateError("Waiting-list entry was already promoted.", entry_id=entry_id)
                now = self.lifecycle.clock()
                reservation = Reservation(
                    reservation_number=self.lifecycle.next_reservation_number(),
                    crane_id=target_crane,
                    requester_id=entry.requester_id,
                    start=start,
                    end=end,
                    status=ReservationStatus.APPROVED,
                    load_profile=entry.load_profile,
                    purpose=PROMOTED_PURPOSE,
                    reviewed_by=actor.id,
                    reviewed_at=now,
                    created_at=now,
                    updated_at=now,
                )
                await self.lifecycle.check_placement(repo, reservation, settings, "promote")
                await repo.add_reservation(reservation)
                await repo.save_waiting_entry(
                    entry.model_copy(update={"consumed": True, "reservation_id": reservation.id})
                )
                await repo.record_event(
                    "waiting_list.promoted",
                    "reservation",
                    reservation.id,
                    actor.id,
                    {"waiting_list_id": entry.id},
                )

        record_transition(reservation.status.value)
        logger.info("waiting_list_promoted", entry_id=entry_id, reservation_id=reservation.id)
        self.lifecycle.dispatcher.status_changed(reservation, None)
        return reservation

    async def flag_for_notification(self, repo, reservation: Reservation) -> List[WaitingListEntry]:
        """Mark entries whose requested day overlaps a released interval.

        Runs inside the caller's transaction so the flags commit together with
        the cancellation or rejection that freed the slot.
        """

        first = (reservation.start - timedelta(days=1)).date()
        last = (reservation.end + timedelta(days=1)).date()
        days = [first + timedelta(days=n) for n in range((last - first).days + 1)]
        flagged: List[WaitingListEntry] = []
        for entry in await repo.list_waiting_entries(crane_id=reservation.crane_id, requested_dates=days):
            if entry.notify_state != NotifyState.NONE:
                continue
            day = entry.local_day()
            if not intervals_overlap(day.start, day.end, reservation.start, reservation.end):
                continue
            updated = entry.model_copy(update={"notify_state": NotifyState.PENDING})
            await repo.save_waiting_entry(updated)
            flagged.append(updated)
        if flagged:
            await repo.record_event(
                "waiting_list.flagged",
                "reservation",
                reservation.id,
                None,
                {"entries": [entry.id for entry in flagged]},
            )
        return flagged

    async def leave(self, actor: Actor, entry_id: str) -> None:
        async with self.uow.reader() as repo:
            entry = await self._load(repo, entry_id)
        async with self.uow.transaction(entry.crane_id) as repo:
            entry = await self._load(repo, entry_id)
            if entry.requester_id != actor.id and not actor.is_admin:
                raise ForbiddenError("You can only leave your own waiting-list entries.")
            if entry.consumed:
                raise StateError("Promoted entries cannot be removed.", entry_id=entry_id)
            await repo.delete_waiting_entry(entry_id)
            await repo.record_event("waiting_list.left", "waiting_list", entry_id, actor.id)

    async def list_for_requester(self, actor: Actor) -> List[WaitingListEntry]:
        async with self.uow.reader() as repo:
            return await repo.list_waiting_entries(requester_id=actor.id, include_consumed=True)

    async def list_entries(
        self,
        actor: Actor,
        crane_id: Optional[str] = None,
        include_consumed: bool = False,
    ) -> List[WaitingListEntry]:
        if not actor.can_view_all:
            raise ForbiddenError("Only staff may list the waiting list.", role=actor.role.value)
        async with self.uow.reader() as repo:
            return await repo.list_waiting_entries(crane_id=crane_id, include_consumed=include_consumed)

    async def pending_notifications(self, actor: Actor) -> List[WaitingListEntry]:
        entries = await self.list_entries(actor)
        return [entry for entry in entries if entry.notify_state == NotifyState.PENDING]

    async def mark_notified(self, actor: Actor, entry_ids: Sequence[str]) -> List[WaitingListEntry]:
        """Record that the external sweep has told these requesters."""

        require_admin(actor, "acknowledge waiting-list notifications")
        marked: List[WaitingListEntry] = []
        async with self.uow.reader() as repo:
            entries = [await self._load(repo, entry_id) for entry_id in entry_ids]
        crane_ids = {entry.crane_id for entry in entries}
        async with self.uow.transaction(*crane_ids) as repo:
            for entry_id in entry_ids:
                entry = await self._load(repo, entry_id)
                if entry.notify_state != NotifyState.PENDING:
                    continue
                updated = entry.model_copy(update={"notify_state": NotifyState.SENT})
                await repo.save_waiting_entry(updated)
                marked.append(updated)
            if marked:
                await repo.record_event(
                    "waiting_list.notified",
                    "waiting_list",
                    None,
                    actor.id,
                    {"entries": [entry.id for entry in marked]},
                )
        return marked

    @staticmethod
    async def _load(repo, entry_id: str) -> WaitingListEntry:
        entry = await repo.get_waiting_entry(entry_id)
        if entry is None:
            raise NotFoundError("Waiting-list entry not found.", entry_id=entry_id)
        return entry
