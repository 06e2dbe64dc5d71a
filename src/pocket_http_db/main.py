"""
Application entry point — wires dependencies and starts the HTTP server.

Composition root: creates the concrete PostgreSQL store, which the ASGI
lifespan hands to the cache (as StoreReader) and to the handlers
(as StoreWriter).

This is the ONLY place where concrete adapter classes are instantiated.
Everything else depends on Protocol interfaces.

Responsibilities:
  1. Configure structlog for structured logging
  2. Load and validate configuration from environment
  3. Create the concrete store adapter
  4. Start uvicorn serving pocket_http_db.asgi:app
"""

from __future__ import annotations

import logging
import sys

import structlog
import uvicorn

from pocket_http_db import __version__
from pocket_http_db.adapters.repository import PsycopgStore
from pocket_http_db.config import AppSettings


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for structured logging.

    Colored, human-readable console output with ISO timestamps; events
    below `log_level` are dropped.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_store(settings: AppSettings) -> PsycopgStore:
    """Instantiate the PostgreSQL store from application settings."""
    return PsycopgStore(
        dsn=settings.database.get_dsn(),
        retry_attempts=settings.store_retry_attempts,
    )


def main() -> None:
    """Validate configuration and serve the API until interrupted."""
    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error: {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    configure_structlog(settings.log_level)
    log = structlog.get_logger()

    log.info(
        "app.starting",
        version=__version__,
        log_level=settings.log_level,
        host=settings.host,
        port=settings.port,
    )

    uvicorn.run(
        "pocket_http_db.asgi:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    log.info("app.shutdown")


if __name__ == "__main__":
    main()
