"""Administrative moves of a reservation to another crane or interval."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from crane_booking.enterprise.core import Actor, Reservation, StateError, ValidationError, as_utc
from crane_booking.observability.logging import get_logger
from crane_booking.observability.tracing import get_tracer

from .lifecycle import ReservationLifecycle, require_admin

logger = get_logger(__name__)
tracer = get_tracer(__name__)


class ReschedulingEngine:
    """Moves pending or approved reservations without touching their status.

    The reservation is re-validated against the target crane and re-checked
    for conflicts (ignoring itself) while both the current and the target
    crane are locked. A refused move leaves the stored row untouched.
    Workday alignment is not enforced for administrators.
    """

    def __init__(self, lifecycle: ReservationLifecycle) -> None:
        self.lifecycle = lifecycle

    async def reschedule(
        self,
        actor: Actor,
        reservation_id: str,
        start: datetime,
        end: datetime,
        crane_id: Optional[str] = None,
    ) -> Reservation:
        require_admin(actor, "reschedule reservations")
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            raise ValidationError("Reservation end must be after its start.")
        self.lifecycle.check_not_past(start)
        settings = self.lifecycle.settings_provider()
        extra = (crane_id,) if crane_id else ()

        with tracer.start_as_current_span("reservation.reschedule"):
            async with self.lifecycle.locked(reservation_id, *extra) as (repo, current):
                if not current.is_active:
                    raise StateError(
                        f"Cannot reschedule a {current.status.value} reservation.",
                        status=current.status.value,
                    )
                moved = current.model_copy(
                    update={
                        "crane_id": crane_id or current.crane_id,
                        "start": start,
                        "end": end,
                        "updated_at": self.lifecycle.clock(),
                    }
                )
                await self.lifecycle.check_placement(
                    repo, moved, settings, "reschedule", exclude_reservation_id=current.id
                )
                await repo.save_reservation(moved)
                await repo.record_event(
                    "reservation.rescheduled",
                    "reservation",
                    moved.id,
                    actor.id,
                    {
                        "from": {
                            "crane_id": current.crane_id,
                            "start": current.start.isoformat(),
                            "end": current.end.isoformat(),
                        },
                        "to": {"crane_id": moved.crane_id, "start": start.isoformat(), "end": end.isoformat()},
                    },
                )

        logger.info(
            "reservation_rescheduled",
            reservation_id=moved.id,
            crane_id=moved.crane_id,
            start=start.isoformat(),
        )
        self.lifecycle.dispatcher.status_changed(moved, current.status)
        return moved
