"""ASGI app for the partners portal: routers, error mapping, lifecycle.

Run locally with:
    python -m src.main      (or the `sovra-portal` script)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api import deals, pricing, quotes
from src.config import settings
from src.db.engine import check_connections, db_lifespan
from src.errors import PortalError, RateLimitedError, TransitionDenied
from src.events.bus import emit, start_event_system, stop_event_system, subscribe
from src.rating.subscriber import RATING_EVENT_TYPES, rating_on_event
from src.schemas.common import ErrorResponse
from src.schemas.events import EventType, SystemEvent
from src.security.audit import audit_on_event

# ── Logging ──────────────────────────────────────────────────────────


def configure_logging() -> None:
    """Plain stdlib records to stdout; structlog renders JSON in production."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    renderer = structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()
logger = logging.getLogger(__name__)

# ── Lifespan ─────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open connections, wire the subscribers and run the event worker for the app's lifetime."""
    logger.info("Starting %s (env=%s)", settings.app_name, settings.environment)

    async with db_lifespan():
        subscribe(audit_on_event)
        subscribe(rating_on_event, event_types=RATING_EVENT_TYPES)
        await start_event_system()
        await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="main"))

        try:
            yield
        finally:
            # Queued events are delivered before the connections close
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))
            await stop_event_system()

    logger.info("%s stopped", settings.app_name)


# ── App ──────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="Deal registration, approval lifecycle and quoting for Sovra partners",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(deals.router)
app.include_router(quotes.router)
app.include_router(pricing.router)


# ── Error handlers ───────────────────────────────────────────────────


def _error_body(error: str, reason: str | None = None, fields: dict[str, str] | None = None) -> dict[str, object]:
    return ErrorResponse(error=error, reason=reason, fields=fields).model_dump(by_alias=True, exclude_none=True)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Domain errors become `{"error", "reason"}` bodies with the error's status code."""
    reason = exc.reason.value if isinstance(exc, TransitionDenied) else type(exc).__name__.removesuffix("Error")
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, reason, exc.fields),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    fields = {location: message} if location else None
    return JSONResponse(status_code=400, content=_error_body(message, "Validation", fields))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Internal server error"))


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Liveness plus PostgreSQL and Redis connectivity."""
    connections = await check_connections()
    healthy = all(c["status"] == "ok" for c in connections.values())
    return {
        "status": "ok" if healthy else "degraded",
        "environment": settings.environment,
        **connections,
    }


# ── Entry point ──────────────────────────────────────────────────────


def run() -> None:
    """Serve the app with uvicorn; reloads on code changes in development."""
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
