from datetime import date, datetime, time, timezone

import pytest

from crane_booking.enterprise.core import (
    CalendarEventKind,
    CalendarFilter,
    ConflictError,
    ForbiddenError,
    LoadProfile,
    NotFoundError,
    ValidationError,
)

DAY = date(2030, 6, 3)


def at(hour: int, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, 0), tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_crane_registry(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50, max_width_m=6.5, location="North pier")

    with pytest.raises(ForbiddenError):
        await service.create_crane(alice, name="Rogue crane", capacity_t=5)
    with pytest.raises(ValidationError):
        await service.update_crane(admin, crane.id, colour="red")
    with pytest.raises(ValidationError):
        await service.update_crane(admin, crane.id, capacity_t=-1)

    updated = await service.update_crane(admin, crane.id, capacity_t=60)
    assert updated.capacity_t == 60
    assert (await service.get_crane(crane.id)).capacity_t == 60

    await service.deactivate_crane(admin, crane.id)
    assert await service.list_cranes() == []
    assert [c.id for c in await service.list_cranes(active_only=False)] == [crane.id]

    with pytest.raises(NotFoundError):
        await service.get_crane("missing")


@pytest.mark.asyncio
async def test_vessel_profiles_belong_to_their_owner(service, alice, bob):
    vessel = await service.save_vessel(alice, LoadProfile(name="Albatross", weight_t=8))

    assert [v.id for v in await service.list_vessels(alice)] == [vessel.id]
    assert await service.list_vessels(bob) == []
    with pytest.raises(ForbiddenError):
        await service.delete_vessel(bob, vessel.id)

    await service.delete_vessel(alice, vessel.id)
    assert await service.list_vessels(alice) == []


@pytest.mark.asyncio
async def test_maintenance_refused_over_active_reservation(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    await service.create_reservation(alice, crane.id, at(9), at(10))

    with pytest.raises(ConflictError):
        await service.schedule_maintenance(admin, crane.id, at(9), at(12))

    # the buffer does not apply to maintenance
    block = await service.schedule_maintenance(admin, crane.id, at(10), at(12), "Hydraulics service")
    assert block.description == "Hydraulics service"
    assert await service.list_maintenance(crane.id) == [block]


@pytest.mark.asyncio
async def test_maintenance_is_admin_only_and_removable(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)

    with pytest.raises(ForbiddenError):
        await service.schedule_maintenance(alice, crane.id, at(9), at(10))

    block = await service.schedule_maintenance(admin, crane.id, at(9), at(10))
    with pytest.raises(ConflictError):
        await service.create_reservation(alice, crane.id, at(9), at(10))

    await service.remove_maintenance(admin, block.id)
    assert await service.list_maintenance() == []
    with pytest.raises(NotFoundError):
        await service.remove_maintenance(admin, block.id)


@pytest.mark.asyncio
async def test_calendar_hides_other_requesters_purpose(service, admin, alice, bob):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    await service.create_reservation(alice, crane.id, at(9), at(10), purpose="Hull survey")
    await service.schedule_maintenance(admin, crane.id, at(12), at(13))

    events = await service.list_calendar_events(bob)
    assert [event.kind for event in events] == [CalendarEventKind.RESERVATION, CalendarEventKind.MAINTENANCE]
    assert events[0].purpose is None
    assert events[0].crane_name == "Travel lift"

    own = await service.list_calendar_events(alice, CalendarFilter(include_maintenance=False))
    assert [event.purpose for event in own] == ["Hull survey"]

    assert (await service.list_calendar_events(admin))[0].purpose == "Hull survey"


@pytest.mark.asyncio
async def test_calendar_window_and_pending_filter(service, admin, alice):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    pending = await service.create_reservation(alice, crane.id, at(9), at(10))
    approved = await service.create_reservation(alice, crane.id, at(12), at(13))
    await service.approve_reservation(admin, approved.id)

    only_approved = await service.list_calendar_events(admin, CalendarFilter(include_pending=False))
    assert [event.id for event in only_approved] == [approved.id]

    morning = await service.list_calendar_events(admin, CalendarFilter(start=at(8), end=at(11)))
    assert [event.id for event in morning] == [pending.id]

    with pytest.raises(ValidationError):
        await service.list_calendar_events(admin, CalendarFilter(start=at(11), end=at(8)))


@pytest.mark.asyncio
async def test_utilization_counts_booked_hours(service, admin, alice, bob):
    crane = await service.create_crane(admin, name="Travel lift", capacity_t=50)
    approved = await service.create_reservation(alice, crane.id, at(8), at(11))
    await service.approve_reservation(admin, approved.id)
    await service.create_reservation(bob, crane.id, at(13), at(14))
    await service.schedule_maintenance(admin, crane.id, at(14), at(16))

    [row] = await service.crane_utilization(admin, at(9), at(16))

    assert row.crane_id == crane.id
    assert row.approved_hours == 2.0
    assert row.maintenance_hours == 2.0
    assert row.pending_count == 1

    with pytest.raises(ForbiddenError):
        await service.crane_utilization(alice, at(9), at(16))
