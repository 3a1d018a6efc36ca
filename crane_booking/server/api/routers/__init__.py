"""API routers exposed by the server package."""

from .v1.analytics import router as analytics_router
from .v1.calendar import router as calendar_router
from .v1.cranes import router as cranes_router
from .v1.health import router as health_router
from .v1.maintenance import router as maintenance_router
from .v1.observability import router as observability_router
from .v1.reservations import router as reservations_router
from .v1.vessels import router as vessels_router
from .v1.waiting_list import router as waiting_list_router

__all__ = [
	"analytics_router",
	"calendar_router",
	"cranes_router",
	"health_router",
	"maintenance_router",
	"observability_router",
	"reservations_router",
	"vessels_router",
	"waiting_list_router",
]
