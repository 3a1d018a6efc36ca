from datetime import date, datetime, time, timedelta, timezone

import pytest

from crane_booking.enterprise.core import ScheduleSettings, ValidationError
from crane_booking.services.slots import SlotGenerator

DAY = date(2030, 6, 3)
SETTINGS = ScheduleSettings(workday_start=time(8, 0), workday_end=time(16, 0), slot_minutes=60, buffer_minutes=15)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(DAY, time(hour, minute), tzinfo=timezone.utc)


def test_generate_single_slots_cover_workday():
    starts = SlotGenerator().generate(DAY, 1, SETTINGS)

    assert starts == [at(hour) for hour in range(8, 16)]


def test_generate_candidates_fit_inside_window():
    generator = SlotGenerator()
    for slot_count in range(1, 9):
        starts = generator.generate(DAY, slot_count, SETTINGS)
        duration = SETTINGS.slot * slot_count
        assert len(starts) == 9 - slot_count
        for start in starts:
            assert start >= at(8)
            assert start + duration <= at(16)


def test_generate_returns_nothing_when_booking_is_longer_than_workday():
    assert SlotGenerator().generate(DAY, 9, SETTINGS) == []


def test_generate_uses_caller_offset():
    starts = SlotGenerator().generate(DAY, 1, SETTINGS, tz_offset=timedelta(hours=2))

    assert starts[0] == at(6)
    assert starts[-1] == at(13)


def test_generate_rejects_non_positive_slot_count():
    with pytest.raises(ValidationError):
        SlotGenerator().generate(DAY, 0, SETTINGS)


def test_offset_must_be_within_a_day():
    with pytest.raises(ValidationError):
        SlotGenerator().generate(DAY, 1, SETTINGS, tz_offset=timedelta(hours=24))


def test_validate_interval_accepts_aligned_booking():
    SlotGenerator().validate_interval(at(9), at(11), SETTINGS)


@pytest.mark.parametrize(
    "start,end",
    [
        (at(7), at(8)),
        (at(15), at(17)),
        (at(9, 30), at(10, 30)),
        (at(9), at(9, 45)),
        (at(10), at(9)),
    ],
)
def test_validate_interval_rejects_off_grid_requests(start, end):
    with pytest.raises(ValidationError):
        SlotGenerator().validate_interval(start, end, SETTINGS)


def test_validate_interval_respects_local_workday():
    generator = SlotGenerator()
    offset = timedelta(hours=2)

    generator.validate_interval(at(6), at(7), SETTINGS, offset)
    with pytest.raises(ValidationError):
        generator.validate_interval(at(15), at(16), SETTINGS, offset)
