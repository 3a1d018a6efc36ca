"""Candidate slot generation inside the configured workday."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List

from crane_booking.enterprise.core import ScheduleSettings, TimeInterval, ValidationError

_MAX_OFFSET = timedelta(hours=24)


def _local_zone(tz_offset: timedelta) -> timezone:
    if abs(tz_offset) >= _MAX_OFFSET:
        raise ValidationError("Timezone offset must be strictly within +/-24 hours.")
    return timezone(tz_offset)


class SlotGenerator:
    """Produces fixed-step candidate start instants for a calendar day.

    The calendar day belongs to the caller, so every method takes the caller's
    UTC offset. A fixed offset is applied to the whole day: on a DST switch day
    the caller must pass the offset that holds during working hours.
    """

    def workday(self, day: date, settings: ScheduleSettings, tz_offset: timedelta = timedelta(0)) -> TimeInterval:
        zone = _local_zone(tz_offset)
        return TimeInterval(
            start=datetime.combine(day, settings.workday_start, tzinfo=zone),
            end=datetime.combine(day, settings.workday_end, tzinfo=zone),
        )

    def generate(
        self,
        day: date,
        slot_count: int,
        settings: ScheduleSettings,
        tz_offset: timedelta = timedelta(0),
    ) -> List[datetime]:
        """Return every start whose ``slot_count`` slots fit inside the workday."""

        if slot_count < 1:
            raise ValidationError("slot_count must be at least 1.", field="slot_count")
        window = self.workday(day, settings, tz_offset)
        duration = settings.slot * slot_count
        candidates: List[datetime] = []
        start = window.start
        while start + duration <= window.end:
            candidates.append(start)
            start += settings.slot
        return candidates

    def validate_interval(
        self,
        start: datetime,
        end: datetime,
        settings: ScheduleSettings,
        tz_offset: timedelta = timedelta(0),
    ) -> None:
        """Check a requested interval sits on the slot grid of its local workday."""

        if end <= start:
            raise ValidationError("Reservation end must be after its start.")
        local_start = start.astimezone(_local_zone(tz_offset))
        window = self.workday(local_start.date(), settings, tz_offset)
        if start < window.start or end > window.end:
            raise ValidationError(
                f"Slots are available between {settings.workday_start:%H:%M} and {settings.workday_end:%H:%M}."
            )
        if (start - window.start) % settings.slot:
            raise ValidationError(
                f"Reservations must start on a {settings.slot_minutes}-minute boundary of the workday."
            )
        if (end - start) % settings.slot:
            raise ValidationError(
                f"Duration must be a multiple of {settings.slot_minutes} minutes."
            )
