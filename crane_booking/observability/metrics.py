"""Prometheus metrics utilities."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram

metrics_registry = CollectorRegistry()

REQUEST_COUNTER = Counter(
    "crane_booking_api_requests_total",
    "Total number of API requests handled",
    registry=metrics_registry,
)

RESERVATION_TRANSITIONS = Counter(
    "crane_booking_reservation_transitions_total",
    "Reservation lifecycle transitions committed",
    labelnames=("status",),
    registry=metrics_registry,
)

CONFLICT_COUNTER = Counter(
    "crane_booking_conflicts_total",
    "Writes refused because the interval was already taken",
    labelnames=("operation",),
    registry=metrics_registry,
)

NOTIFICATION_FAILURES = Counter(
    "crane_booking_notification_failures_total",
    "Notifications that could not be published",
    registry=metrics_registry,
)

SLOT_QUERY_DURATION = Histogram(
    "crane_booking_slot_query_seconds",
    "Duration of available-slot computations",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
    registry=metrics_registry,
)


def record_transition(status: str) -> None:
    RESERVATION_TRANSITIONS.labels(status=status).inc()


def record_conflict(operation: str) -> None:
    CONFLICT_COUNTER.labels(operation=operation).inc()
