from datetime import date, datetime, time, timedelta, timezone

import pytest

from crane_booking.enterprise.core import (
    ConflictError,
    ForbiddenError,
    LoadProfile,
    NotifyState,
    ReservationStatus,
    StateError,
    ValidationError,
)

DAY = date(2030, 6, 3)


def at(hour: int, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, 0), tzinfo=timezone.utc)


async def fully_booked_crane(service, admin, owner):
    crane = await service.create_crane(admin, name="Travel lift 50", capacity_t=50)
    booking = await service.create_reservation(owner, crane.id, at(8), at(16))
    await service.approve_reservation(admin, booking.id)
    return crane, booking


@pytest.mark.asyncio
async def test_join_is_refused_while_slots_are_free(service, admin, bob):
    crane = await service.create_crane(admin, name="Crane A", capacity_t=20)

    with pytest.raises(ValidationError):
        await service.join_waiting_list(bob, crane.id, DAY)


@pytest.mark.asyncio
async def test_join_checks_capacity(service, admin, alice, bob):
    crane, _ = await fully_booked_crane(service, admin, alice)

    with pytest.raises(ValidationError):
        await service.join_waiting_list(bob, crane.id, DAY, load_profile=LoadProfile(weight_t=75))


@pytest.mark.asyncio
async def test_join_when_day_is_full(service, admin, alice, bob):
    crane, _ = await fully_booked_crane(service, admin, alice)

    entry = await service.join_waiting_list(bob, crane.id, DAY, slot_count=2)

    assert entry.requester_id == "bob"
    assert entry.slot_count == 2
    assert entry.notify_state == NotifyState.NONE
    assert not entry.consumed
    assert await service.my_waiting_entries(bob) == [entry]
    assert await service.list_waiting_entries(admin, crane.id) == [entry]
    with pytest.raises(ForbiddenError):
        await service.list_waiting_entries(bob)


@pytest.mark.asyncio
async def test_join_refuses_a_day_that_has_passed(service, admin, alice, bob):
    crane, _ = await fully_booked_crane(service, admin, alice)

    with pytest.raises(ValidationError, match="already passed"):
        await service.join_waiting_list(bob, crane.id, date(2030, 5, 29))
    assert await service.my_waiting_entries(bob) == []


@pytest.mark.asyncio
async def test_join_refuses_an_inactive_crane(service, admin, bob):
    crane = await service.create_crane(admin, name="Crane A", capacity_t=20)
    await service.deactivate_crane(admin, crane.id)

    assert await service.available_slots(crane.id, DAY, 1) == []
    with pytest.raises(ValidationError, match="not accepting reservations"):
        await service.join_waiting_list(bob, crane.id, DAY)


@pytest.mark.asyncio
async def test_cancellation_flags_waiting_entries(service, bus, app_settings, admin, alice, bob):
    crane, booking = await fully_booked_crane(service, admin, alice)
    entry = await service.join_waiting_list(bob, crane.id, DAY)

    await service.cancel_reservation(alice, booking.id, "Sailing south early")
    await service.close()

    pending = await service.pending_waiting_notifications(admin)
    assert [flagged.id for flagged in pending] == [entry.id]
    assert pending[0].notify_state == NotifyState.PENDING

    released = [e.payload for e in bus.published if e.topic == app_settings.notifications.topic_waiting_list]
    assert len(released) == 1
    assert released[0]["event"] == "waiting_list.slot_released"
    assert released[0]["entries"][0]["entry_id"] == entry.id


@pytest.mark.asyncio
async def test_release_only_flags_entries_for_the_same_local_day(service, admin, alice, bob):
    crane = await service.create_crane(admin, name="Crane B", capacity_t=20)
    next_day = DAY + timedelta(days=1)
    first = await service.create_reservation(alice, crane.id, at(8), at(16))
    second = await service.create_reservation(admin, crane.id, at(8, next_day), at(16, next_day))
    await service.join_waiting_list(bob, crane.id, next_day)

    await service.reject_reservation(admin, first.id, "Crane out of service")
    assert await service.pending_waiting_notifications(admin) == []

    await service.cancel_reservation(admin, second.id)
    pending = await service.pending_waiting_notifications(admin)
    assert [entry.requested_date for entry in pending] == [next_day]


@pytest.mark.asyncio
async def test_mark_notified_moves_entries_to_sent(service, admin, alice, bob):
    crane, booking = await fully_booked_crane(service, admin, alice)
    entry = await service.join_waiting_list(bob, crane.id, DAY)
    await service.cancel_reservation(admin, booking.id)

    with pytest.raises(ForbiddenError):
        await service.mark_waiting_notified(bob, [entry.id])
    marked = await service.mark_waiting_notified(admin, [entry.id])

    assert [item.notify_state for item in marked] == [NotifyState.SENT]
    assert await service.pending_waiting_notifications(admin) == []
    assert await service.mark_waiting_notified(admin, [entry.id]) == []


@pytest.mark.asyncio
async def test_promote_books_an_approved_reservation(service, admin, alice, bob):
    crane, booking = await fully_booked_crane(service, admin, alice)
    entry = await service.join_waiting_list(bob, crane.id, DAY, load_profile=LoadProfile(weight_t=18))
    await service.cancel_reservation(alice, booking.id, "Plans changed")

    reservation = await service.promote_waiting_entry(admin, entry.id, at(10), at(11))

    assert reservation.status == ReservationStatus.APPROVED
    assert reservation.requester_id == "bob"
    assert reservation.load_profile.weight_t == 18
    assert reservation.reviewed_by == admin.id
    [consumed] = await service.my_waiting_entries(bob)
    assert consumed.consumed
    assert consumed.reservation_id == reservation.id
    assert await service.list_waiting_entries(admin) == []

    with pytest.raises(StateError):
        await service.promote_waiting_entry(admin, entry.id, at(12), at(13))


@pytest.mark.asyncio
async def test_promote_into_taken_slot_leaves_entry_waiting(service, admin, alice, bob):
    crane, _ = await fully_booked_crane(service, admin, alice)
    entry = await service.join_waiting_list(bob, crane.id, DAY)

    with pytest.raises(ConflictError):
        await service.promote_waiting_entry(admin, entry.id, at(10), at(11))

    [still_waiting] = await service.my_waiting_entries(bob)
    assert not still_waiting.consumed
    assert [res.requester_id for res in await service.list_reservations(admin)] == ["alice"]


@pytest.mark.asyncio
async def test_promote_to_another_crane(service, admin, alice, bob):
    crane, _ = await fully_booked_crane(service, admin, alice)
    spare = await service.create_crane(admin, name="Mobile crane", capacity_t=30)
    entry = await service.join_waiting_list(bob, crane.id, DAY)

    reservation = await service.promote_waiting_entry(admin, entry.id, at(10), at(11), crane_id=spare.id)

    assert reservation.crane_id == spare.id


@pytest.mark.asyncio
async def test_promote_is_admin_only(service, admin, alice, bob):
    crane, _ = await fully_booked_crane(service, admin, alice)
    entry = await service.join_waiting_list(bob, crane.id, DAY)

    with pytest.raises(ForbiddenError):
        await service.promote_waiting_entry(bob, entry.id, at(10), at(11))


@pytest.mark.asyncio
async def test_leave_waiting_list(service, admin, alice, bob):
    crane, _ = await fully_booked_crane(service, admin, alice)
    entry = await service.join_waiting_list(bob, crane.id, DAY)

    with pytest.raises(ForbiddenError):
        await service.leave_waiting_list(alice, entry.id)
    await service.leave_waiting_list(bob, entry.id)

    assert await service.my_waiting_entries(bob) == []
