"""Observability utilities for structured logging, metrics, and tracing."""

from .logging import bind_actor, configure_logging, get_logger
from .metrics import metrics_registry, record_conflict, record_transition
from .tracing import configure_tracer, get_tracer

__all__ = [
    "bind_actor",
    "configure_logging",
    "configure_tracer",
    "get_logger",
    "get_tracer",
    "metrics_registry",
    "record_conflict",
    "record_transition",
]
