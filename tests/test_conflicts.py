from datetime import date, datetime, time, timedelta, timezone

import pytest

from crane_booking.enterprise.core import (
    LoadProfile,
    MaintenanceBlock,
    Reservation,
    ReservationStatus,
    ScheduleSettings,
)
from crane_booking.services.conflicts import ConflictDetector, intervals_overlap

DAY = date(2030, 6, 3)
SETTINGS = ScheduleSettings(slot_minutes=60, buffer_minutes=15)
BUFFER = timedelta(minutes=15)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(DAY, time(hour, minute), tzinfo=timezone.utc)


def booking(start: datetime, end: datetime, status: ReservationStatus = ReservationStatus.APPROVED) -> Reservation:
    return Reservation(
        reservation_number="REV-30-TEST",
        crane_id="crane-1",
        requester_id="alice",
        start=start,
        end=end,
        status=status,
    )


@pytest.mark.parametrize(
    "first,second,expected",
    [
        ((at(9), at(10)), (at(9, 30), at(11)), True),
        ((at(9), at(12)), (at(10), at(11)), True),
        ((at(9), at(10)), (at(10), at(11)), False),
        ((at(9), at(10)), (at(12), at(13)), False),
    ],
)
def test_overlap_is_symmetric(first, second, expected):
    assert intervals_overlap(*first, *second) is expected
    assert intervals_overlap(*second, *first) is expected


def test_existing_reservation_end_is_widened_by_buffer():
    detector = ConflictDetector()
    existing = [booking(at(9), at(10))]

    conflict = detector.first_conflict(at(10), at(11), existing, [], BUFFER)
    assert conflict is not None
    assert conflict.kind == "reservation"
    assert conflict.effective_end == at(10, 15)

    assert detector.first_conflict(at(10, 15), at(11, 15), existing, [], BUFFER) is None


def test_candidate_is_not_widened():
    detector = ConflictDetector()
    existing = [booking(at(9), at(10))]

    assert detector.first_conflict(at(8), at(9), existing, [], BUFFER) is None


def test_maintenance_blocks_are_buffer_free():
    detector = ConflictDetector()
    block = MaintenanceBlock(crane_id="crane-1", start=at(9), end=at(10))

    assert detector.first_conflict(at(10), at(11), [], [block], BUFFER) is None
    conflict = detector.first_conflict(at(9, 30), at(10, 30), [], [block], BUFFER)
    assert conflict is not None
    assert conflict.kind == "maintenance"


def test_excluded_and_terminal_reservations_are_ignored():
    detector = ConflictDetector()
    own = booking(at(9), at(10))
    cancelled = booking(at(9), at(10), ReservationStatus.CANCELLED)

    assert detector.first_conflict(at(9), at(10), [own], [], BUFFER, exclude_reservation_id=own.id) is None
    assert detector.first_conflict(at(9), at(10), [cancelled], [], BUFFER) is None


def test_free_candidates_filters_busy_starts():
    detector = ConflictDetector()
    candidates = [at(hour) for hour in range(8, 16)]

    free = detector.free_candidates(candidates, SETTINGS.slot, [booking(at(9), at(10))], [], SETTINGS)

    assert at(8) in free
    assert at(9) not in free
    assert at(10) not in free
    assert free[1:] == [at(hour) for hour in range(11, 16)]


@pytest.mark.asyncio
async def test_available_slots_respect_buffer_after_approved_booking(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift 50", capacity_t=50)
    reservation = await service.create_reservation(alice, crane.id, at(9), at(10))
    await service.approve_reservation(admin, reservation.id)

    slots = await service.available_slots(crane.id, DAY, 1)

    assert slots[0] == at(8)
    assert at(9) not in slots
    assert at(10) not in slots
    assert slots[1:] == [at(hour) for hour in range(11, 16)]


@pytest.mark.asyncio
async def test_available_slots_skip_maintenance(service, admin):
    crane = await service.create_crane(admin, name="Crane A", capacity_t=20)
    await service.schedule_maintenance(admin, crane.id, at(12), at(14))

    slots = await service.available_slots(crane.id, DAY, 1)

    assert at(11) in slots
    assert at(12) not in slots
    assert at(13) not in slots
    assert at(14) in slots


@pytest.mark.asyncio
async def test_available_slots_for_inactive_crane_are_empty(service, admin):
    crane = await service.create_crane(admin, name="Crane B", capacity_t=20)
    await service.deactivate_crane(admin, crane.id)

    assert await service.available_slots(crane.id, DAY, 1) == []


@pytest.mark.asyncio
async def test_overlaps_reads_from_repository(service, admin, alice):
    crane = await service.create_crane(admin, name="Crane C", capacity_t=20)
    await service.create_reservation(alice, crane.id, at(9), at(10), load_profile=LoadProfile(weight_t=5))
    settings = service.schedule_settings()

    async with service.uow.reader() as repo:
        assert await service.detector.overlaps(repo, crane.id, at(10), at(11), settings)
        assert not await service.detector.overlaps(repo, crane.id, at(11), at(12), settings)
