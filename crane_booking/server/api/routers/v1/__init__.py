"""Versioned API routers."""

from .health import router as health
from .reservations import router as reservations

__all__ = ["health", "reservations"]
