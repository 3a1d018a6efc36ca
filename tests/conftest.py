from datetime import datetime, timezone

import pytest

from crane_booking.enterprise.config.settings import (
    AppSettings,
    BookingPolicySettings,
    DatabaseSettings,
    NotificationSettings,
    ScheduleConfig,
)
from crane_booking.enterprise.core import Actor, ActorRole
from crane_booking.persistence import InMemoryUnitOfWork
from crane_booking.services import (
    InMemoryMessageBus,
    MessageBusNotifier,
    NotificationDispatcher,
    SchedulingService,
)

NOW = datetime(2030, 6, 1, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        environment="test",
        schedule=ScheduleConfig(),
        booking=BookingPolicySettings(),
        notifications=NotificationSettings(backend="memory"),
        database=DatabaseSettings(enabled=False),
    )


@pytest.fixture
def bus() -> InMemoryMessageBus:
    return InMemoryMessageBus()


@pytest.fixture
def service(app_settings: AppSettings, bus: InMemoryMessageBus) -> SchedulingService:
    dispatcher = NotificationDispatcher(MessageBusNotifier(bus, app_settings.notifications))
    return SchedulingService(
        settings=app_settings,
        uow=InMemoryUnitOfWork(),
        dispatcher=dispatcher,
        clock=lambda: NOW,
    )


@pytest.fixture
def admin() -> Actor:
    return Actor(id="harbour-master", role=ActorRole.ADMIN)


@pytest.fixture
def alice() -> Actor:
    return Actor(id="alice")


@pytest.fixture
def bob() -> Actor:
    return Actor(id="bob")
