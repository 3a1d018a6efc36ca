"""Outbound reservation notifications.

Lifecycle operations hand events to a :class:`NotificationDispatcher` after
their transaction has committed. Publishing happens on a background task, so
a broker outage can neither fail nor roll back the transition that caused it.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional, Sequence, Set

from crane_booking.enterprise.config.settings import NotificationSettings
from crane_booking.enterprise.core import Reservation, ReservationStatus, WaitingListEntry, utcnow
from crane_booking.observability.logging import get_logger
from crane_booking.observability.metrics import NOTIFICATION_FAILURES

from .messaging import MessageBus, MessageEnvelope

logger = get_logger(__name__)


class Notifier:
    """Receives committed scheduling events."""

    async def reservation_status_changed(
        self,
        reservation: Reservation,
        previous: Optional[ReservationStatus],
    ) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def slot_released(
        self,
        reservation: Reservation,
        entries: Sequence[WaitingListEntry],
    ) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class MessageBusNotifier(Notifier):
    """Publishes scheduling events as JSON envelopes on a :class:`MessageBus`."""

    def __init__(self, bus: MessageBus, settings: NotificationSettings) -> None:
        self.bus = bus
        self.settings = settings

    async def reservation_status_changed(
        self,
        reservation: Reservation,
        previous: Optional[ReservationStatus],
    ) -> None:
        payload = {
            "event": "reservation.status_changed",
            "reservation_id": reservation.id,
            "reservation_number": reservation.reservation_number,
            "crane_id": reservation.crane_id,
            "requester_id": reservation.requester_id,
            "previous_status": previous.value if previous else None,
            "status": reservation.status.value,
            "start": reservation.start.isoformat(),
            "end": reservation.end.isoformat(),
            "note": reservation.admin_note or reservation.cancel_reason,
            "emitted_at": utcnow().isoformat(),
        }
        await self.bus.publish(MessageEnvelope(topic=self.settings.topic_status, payload=payload))

    async def slot_released(
        self,
        reservation: Reservation,
        entries: Sequence[WaitingListEntry],
    ) -> None:
        payload = {
            "event": "waiting_list.slot_released",
            "crane_id": reservation.crane_id,
            "start": reservation.start.isoformat(),
            "end": reservation.end.isoformat(),
            "entries": [
                {"entry_id": entry.id, "requester_id": entry.requester_id, "requested_date": entry.requested_date.isoformat()}
                for entry in entries
            ],
            "emitted_at": utcnow().isoformat(),
        }
        await self.bus.publish(MessageEnvelope(topic=self.settings.topic_waiting_list, payload=payload))


class NotificationDispatcher:
    """Runs notifier calls as fire-and-forget tasks."""

    def __init__(self, notifier: Optional[Notifier] = None) -> None:
        self.notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    def status_changed(self, reservation: Reservation, previous: Optional[ReservationStatus]) -> None:
        if self.notifier is None:
            return
        self._spawn(
            self.notifier.reservation_status_changed(reservation, previous),
            event="status_changed",
            reservation_id=reservation.id,
        )

    def slot_released(self, reservation: Reservation, entries: Iterable[WaitingListEntry]) -> None:
        entries = list(entries)
        if self.notifier is None or not entries:
            return
        self._spawn(
            self.notifier.slot_released(reservation, entries),
            event="slot_released",
            reservation_id=reservation.id,
        )

    def _spawn(self, coro, **context) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(coro, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, coro, context: dict) -> None:
        try:
            await coro
        except Exception:
            NOTIFICATION_FAILURES.inc()
            logger.exception("notification_failed", **context)

    async def drain(self) -> None:
        """Wait for every in-flight notification; used on shutdown and in tests."""

        pending: List[asyncio.Task] = list(self._tasks)
        if pending:
            await asyncio.gather(*pending)
