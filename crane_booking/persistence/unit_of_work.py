"""Transaction boundaries for check-then-write scheduling operations.

``transaction(*crane_ids)`` is the single place where writers are serialised:
the conflict check and the write that depends on it both happen inside it.
Locks are always taken in sorted crane-id order so two writers touching the
same pair of cranes cannot deadlock.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .memory import InMemoryDatastore, InMemorySchedulingRepository
from .repository import SchedulingRepository


class ResourceLocks:
    """Process-local mutexes keyed by crane id."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, crane_id: str) -> asyncio.Lock:
        lock = self._locks.get(crane_id)
        if lock is None:
            lock = self._locks[crane_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, crane_ids: Iterable[str]) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for crane_id in sorted(set(crane_ids)):
                await stack.enter_async_context(self._lock(crane_id))
            yield


class UnitOfWork:
    """Abstract transaction factory."""

    def transaction(self, *crane_ids: str):  # pragma: no cover - interface
        raise NotImplementedError

    def reader(self):  # pragma: no cover - interface
        raise NotImplementedError


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work over an :class:`InMemoryDatastore`."""

    def __init__(self, store: InMemoryDatastore | None = None, locks: ResourceLocks | None = None) -> None:
        self.store = store or InMemoryDatastore()
        self.locks = locks or ResourceLocks()

    @asynccontextmanager
    async def transaction(self, *crane_ids: str) -> AsyncIterator[InMemorySchedulingRepository]:
        async with self.locks.hold(crane_ids):
            repo = InMemorySchedulingRepository(self.store)
            try:
                yield repo
            except BaseException:
                repo.rollback()
                raise
            repo.commit()

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[InMemorySchedulingRepository]:
        yield InMemorySchedulingRepository(self.store)


class SqlUnitOfWork(UnitOfWork):
    """Unit of work backed by SQLAlchemy async sessions.

    Crane rows are locked with ``SELECT ... FOR UPDATE`` so writers in other
    processes serialise on the database; the in-process locks cover dialects
    that ignore ``FOR UPDATE`` (SQLite).
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], locks: ResourceLocks | None = None) -> None:
        self.sessionmaker = sessionmaker
        self.locks = locks or ResourceLocks()

    @asynccontextmanager
    async def transaction(self, *crane_ids: str) -> AsyncIterator[SchedulingRepository]:
        async with self.locks.hold(crane_ids):
            async with self.sessionmaker() as session:
                async with session.begin():
                    repo = SchedulingRepository(session)
                    await repo.lock_cranes(crane_ids)
                    yield repo

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[SchedulingRepository]:
        async with self.sessionmaker() as session:
            yield SchedulingRepository(session)
