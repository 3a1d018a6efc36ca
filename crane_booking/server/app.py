"""FastAPI application exposing the crane booking services."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from crane_booking.enterprise.config.settings import get_settings
from crane_booking.enterprise.core import SchedulingError
from crane_booking.observability import configure_logging, configure_tracer, get_logger
from crane_booking.observability.metrics import REQUEST_COUNTER
from crane_booking.persistence import create_schema, init_engine
from crane_booking.persistence.database import dispose_engine
from crane_booking.server.api.routers import (
	analytics_router,
	calendar_router,
	cranes_router,
	health_router,
	maintenance_router,
	observability_router,
	reservations_router,
	vessels_router,
	waiting_list_router,
)
from crane_booking.server.dependencies import get_message_bus, get_scheduling_service

settings = get_settings()
configure_logging(settings.logging)
configure_tracer("crane-booking-api", settings.telemetry.otlp_endpoint)

logger = get_logger(__name__)

STATUS_BY_KIND = {
	"validation": 422,
	"not_found": 404,
	"conflict": 409,
	"forbidden": 403,
	"invalid_state": 409,
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
	if settings.database.enabled and settings.database.create_schema:
		await create_schema(init_engine(settings))
	bus = get_message_bus()
	await bus.connect()
	logger.info("api_started", environment=settings.environment, backend=settings.notifications.backend)
	try:
		yield
	finally:
		await get_scheduling_service().close()
		await bus.close()
		await dispose_engine()


app = FastAPI(title="Crane Booking API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
	CORSMiddleware,
	allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

FastAPIInstrumentor.instrument_app(app)


@app.middleware("http")
async def count_requests(request: Request, call_next):
	REQUEST_COUNTER.inc()
	response = await call_next(request)
	return response


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(_request: Request, exc: SchedulingError) -> JSONResponse:
	return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 400), content=exc.to_dict())


app.include_router(health_router, prefix="/api/v1")
app.include_router(cranes_router, prefix="/api/v1")
app.include_router(reservations_router, prefix="/api/v1")
app.include_router(calendar_router, prefix="/api/v1")
app.include_router(waiting_list_router, prefix="/api/v1")
app.include_router(maintenance_router, prefix="/api/v1")
app.include_router(vessels_router, prefix="/api/v1")
app.include_router(analytics_router, prefix="/api/v1")
app.include_router(observability_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
	return {"message": "Crane Booking API"}
