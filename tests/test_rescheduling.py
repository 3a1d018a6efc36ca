from datetime import date, datetime, time, timezone

import pytest

from crane_booking.enterprise.core import (
    ConflictError,
    ForbiddenError,
    LoadProfile,
    ReservationStatus,
    StateError,
    ValidationError,
)

DAY = date(2030, 6, 3)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(DAY, time(hour, minute), tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_reschedule_moves_interval_and_keeps_status(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    reservation = await service.create_reservation(alice, crane.id, at(9), at(10))
    await service.approve_reservation(admin, reservation.id)

    moved = await service.reschedule_reservation(admin, reservation.id, at(13, 30), at(14, 30))

    assert moved.status == ReservationStatus.APPROVED
    assert moved.start == at(13, 30)
    assert moved.reservation_number == reservation.reservation_number
    assert await service.available_slots(crane.id, DAY, 1) == [
        at(hour) for hour in (8, 9, 10, 11, 12, 15)
    ]


@pytest.mark.asyncio
async def test_reschedule_may_overlap_its_own_old_interval(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    reservation = await service.create_reservation(alice, crane.id, at(9), at(10))

    moved = await service.reschedule_reservation(admin, reservation.id, at(9), at(11))

    assert moved.end == at(11)


@pytest.mark.asyncio
async def test_conflicting_reschedule_leaves_reservation_untouched(service, admin, alice, bob):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    first = await service.create_reservation(alice, crane.id, at(9), at(10))
    await service.create_reservation(bob, crane.id, at(12), at(13))

    with pytest.raises(ConflictError):
        await service.reschedule_reservation(admin, first.id, at(12), at(13))

    assert await service.get_reservation(admin, first.id) == first


@pytest.mark.asyncio
async def test_reschedule_to_another_crane_checks_capacity(service, admin, alice):
    big = await service.create_crane(admin, name="Travel lift 50", capacity_t=50)
    small = await service.create_crane(admin, name="Jib crane", capacity_t=10)
    spare = await service.create_crane(admin, name="Travel lift 35", capacity_t=35)
    reservation = await service.create_reservation(
        alice, big.id, at(9), at(10), load_profile=LoadProfile(weight_t=30)
    )

    with pytest.raises(ValidationError):
        await service.reschedule_reservation(admin, reservation.id, at(9), at(10), crane_id=small.id)

    moved = await service.reschedule_reservation(admin, reservation.id, at(9), at(10), crane_id=spare.id)
    assert moved.crane_id == spare.id
    assert moved.status == ReservationStatus.PENDING
    assert 9 in [slot.hour for slot in await service.available_slots(big.id, DAY, 1)]


@pytest.mark.asyncio
async def test_reschedule_is_admin_only(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    reservation = await service.create_reservation(alice, crane.id, at(9), at(10))

    with pytest.raises(ForbiddenError):
        await service.reschedule_reservation(alice, reservation.id, at(11), at(12))


@pytest.mark.asyncio
async def test_terminal_reservation_cannot_be_rescheduled(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    reservation = await service.create_reservation(alice, crane.id, at(9), at(10))
    await service.cancel_reservation(alice, reservation.id, "Sold the boat")

    with pytest.raises(StateError):
        await service.reschedule_reservation(admin, reservation.id, at(11), at(12))


@pytest.mark.asyncio
async def test_reschedule_refuses_a_start_in_the_past(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    reservation = await service.create_reservation(alice, crane.id, at(9), at(10))
    yesterday = datetime(2030, 5, 31, 9, tzinfo=timezone.utc)

    with pytest.raises(ValidationError):
        await service.reschedule_reservation(admin, reservation.id, yesterday, yesterday.replace(hour=10))

    unchanged = await service.get_reservation(admin, reservation.id)
    assert (unchanged.start, unchanged.end) == (at(9), at(10))


@pytest.mark.asyncio
async def test_reschedule_publishes_current_status(service, bus, app_settings, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    reservation = await service.create_reservation(alice, crane.id, at(9), at(10))
    await service.reschedule_reservation(admin, reservation.id, at(11), at(12))
    await service.close()

    last = [e.payload for e in bus.published if e.topic == app_settings.notifications.topic_status][-1]
    assert last["status"] == "pending"
    assert last["start"] == at(11).isoformat()
