"""FastAPI application entry point — wires everything together.

Usage:
    python -m appointease.main

Serves the notification and share APIs and runs the reminder scheduler
in-process.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from appointease.api import notifications as notifications_api
from appointease.api import shares as shares_api
from appointease.audit import audit_on_event
from appointease.config import settings
from appointease.db.engine import db_lifespan
from appointease.events import emit, start_event_system, stop_event_system, subscribe
from appointease.jobs import start_scheduler, stop_scheduler
from appointease.notifications import notification_dispatcher
from appointease.schemas.events import EventType, SystemEvent

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting %s (env=%s)", settings.app_name, settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")

        await start_event_system()
        subscribe(audit_on_event)
        logger.info("Event system started with audit subscriber")

        start_scheduler()
        await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="main"))

        try:
            yield
        finally:
            logger.info("Shutting down %s...", settings.app_name)
            stop_scheduler()
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))
            await stop_event_system()
            logger.info("Event system stopped")

    logger.info("%s shutdown complete", settings.app_name)


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="AppointEase API",
    description="Appointment reminders and public share links",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(notifications_api.router)
app.include_router(shares_api.router)


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "dispatcher": notification_dispatcher.describe(),
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "appointease.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
