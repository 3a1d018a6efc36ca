"""Error taxonomy surfaced by scheduling operations.

Every error carries a stable ``kind`` so API layers can map it without
inspecting messages. None of them are retried by the engine itself.
"""

from __future__ import annotations

from typing import Any, Dict


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""

    kind = "scheduling_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(SchedulingError):
    """Malformed input, bad interval, past start or capacity exceeded."""

    kind = "validation"


class NotFoundError(SchedulingError):
    """Crane, reservation, waiting entry or block does not exist."""

    kind = "not_found"


class ConflictError(SchedulingError):
    """Interval overlaps an active reservation or maintenance block."""

    kind = "conflict"


class ForbiddenError(SchedulingError):
    """Actor lacks ownership or role for the operation."""

    kind = "forbidden"


class StateError(SchedulingError):
    """Illegal lifecycle transition."""

    kind = "invalid_state"


__all__ = [
    "SchedulingError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ForbiddenError",
    "StateError",
]
