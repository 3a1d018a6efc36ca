"""Command line entry point for the crane booking API."""

from __future__ import annotations

import argparse
import asyncio

import uvicorn

from crane_booking.enterprise.config.settings import get_settings
from crane_booking.observability import configure_logging, get_logger
from crane_booking.persistence import create_schema, init_engine
from crane_booking.persistence.database import dispose_engine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crane booking scheduling API")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create missing database tables before serving.",
    )
    parser.add_argument(
        "--init-only",
        action="store_true",
        help="Create the schema and exit without starting the server.",
    )
    return parser


async def _init_db() -> None:
    settings = get_settings()
    await create_schema(init_engine(settings))
    await dispose_engine()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.logging)
    logger = get_logger(__name__)

    if args.init_db or args.init_only:
        if not settings.database.enabled:
            raise SystemExit("Database is disabled; set CB_DATABASE__ENABLED=true to create the schema.")
        asyncio.run(_init_db())
        logger.info("schema_created", url=str(settings.database.url))
        if args.init_only:
            return

    uvicorn.run(
        "crane_booking.server.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
