"""Persistence layer built on async SQLAlchemy with an in-memory fallback."""

from .database import create_schema, get_sessionmaker, init_engine, metadata
from .memory import InMemoryDatastore, InMemorySchedulingRepository
from .repository import SchedulingRepository
from .unit_of_work import InMemoryUnitOfWork, ResourceLocks, SqlUnitOfWork, UnitOfWork

__all__ = [
    "init_engine",
    "get_sessionmaker",
    "create_schema",
    "metadata",
    "SchedulingRepository",
    "InMemoryDatastore",
    "InMemorySchedulingRepository",
    "UnitOfWork",
    "InMemoryUnitOfWork",
    "SqlUnitOfWork",
    "ResourceLocks",
]
