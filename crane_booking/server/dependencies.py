"""Dependency providers for the API layer."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException, status

from crane_booking.enterprise.config.settings import AppSettings, get_settings
from crane_booking.enterprise.core import Actor, ActorRole
from crane_booking.observability.logging import bind_actor
from crane_booking.persistence import InMemoryUnitOfWork, SqlUnitOfWork, UnitOfWork, get_sessionmaker, init_engine
from crane_booking.services import (
    MessageBus,
    MessageBusNotifier,
    NotificationDispatcher,
    SchedulingService,
    create_message_bus,
)

__all__ = [
    "get_scheduling_service",
    "reset_scheduling_service",
    "get_message_bus",
    "get_unit_of_work",
    "get_app_settings",
    "get_actor",
    "reset_unit_of_work",
]


_memory_uow: Optional[InMemoryUnitOfWork] = None


def get_app_settings() -> AppSettings:
    return get_settings()


def get_unit_of_work(settings: Optional[AppSettings] = None) -> UnitOfWork:
    """SQL unit of work when the database is enabled, else a shared in-memory one."""

    config = settings or get_settings()
    if config.database.enabled:
        init_engine(config)
        return SqlUnitOfWork(get_sessionmaker())
    global _memory_uow
    if _memory_uow is None:
        _memory_uow = InMemoryUnitOfWork()
    return _memory_uow


def reset_unit_of_work() -> None:
    global _memory_uow
    _memory_uow = None


@lru_cache(maxsize=1)
def get_message_bus() -> MessageBus:
    return create_message_bus(get_settings().notifications)


@lru_cache(maxsize=1)
def _get_scheduling_service_singleton() -> SchedulingService:
    settings = get_settings()
    notifier = MessageBusNotifier(get_message_bus(), settings.notifications)
    return SchedulingService(
        settings=settings,
        uow=get_unit_of_work(settings),
        dispatcher=NotificationDispatcher(notifier),
    )


def get_scheduling_service() -> SchedulingService:
    """Return the shared :class:`SchedulingService` instance."""

    return _get_scheduling_service_singleton()


def reset_scheduling_service() -> None:
    """Reset the cached service, bus and in-memory store (useful for tests)."""

    _get_scheduling_service_singleton.cache_clear()
    get_message_bus.cache_clear()
    reset_unit_of_work()


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: str = Header("user"),
) -> Actor:
    """The caller as asserted by the authenticating proxy in front of the API."""

    if not x_actor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Actor-Id header is required")
    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown role: {x_actor_role}")
    bind_actor(x_actor_id, role.value)
    return Actor(id=x_actor_id, role=role)
