"""
BookAPI Backend - FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (bookapi.main:app) and by the tests, which pass
       their own settings, gateway and telemetry.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌────────┐ ┌───────────┐ ┌─────────┐ ┌──────────┐       │
    │  │ Req ID │→│ Telemetry │→│ Logging │→│ Deadline │       │
    │  └────────┘ └───────────┘ └─────────┘ └──────────┘       │
    │                                                          │
    │  Routes:                                                 │
    │  ┌────────────────────┐ ┌──────────────┐ ┌────────────┐  │
    │  │ GET/POST/PUT/DELETE│ │ GET /healthz │ │GET /metrics│  │
    │  │       /books       │ └──────────────┘ └────────────┘  │
    │  └────────────────────┘                                  │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ NotFound→404 │ 405 │ Database→500 │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (errors are logged, the server still starts)
    3. Build the engine and gateway unless one was injected
    4. Ping the database once and log the result

    Shutdown:
    1. uvicorn stops accepting connections and drains in-flight requests
       (bounded by SHUTDOWN_GRACE_PERIOD)
    2. Close the gateway (dispose the engine's pool)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Set

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookapi import __version__
from bookapi.config import Settings, settings
from bookapi.database import create_engine_from_settings
from bookapi.exceptions import (
    BookAPIError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from bookapi.middleware.logging import RequestLoggingMiddleware
from bookapi.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from bookapi.middleware.telemetry import TelemetryMiddleware
from bookapi.middleware.timeout import RequestTimeoutMiddleware
from bookapi.observability.gateway import InstrumentedBookGateway
from bookapi.observability.telemetry import Telemetry, build_telemetry
from bookapi.routes import books, health, metrics
from bookapi.services.book_gateway import BookGateway
from bookapi.services.book_store import BookStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s

    The request ID is injected by RequestIDLogFilter, so log lines emitted
    while serving a request carry its correlation ID ("-" otherwise).
    """
    handler = logging.StreamHandler(sys.stdout)  # Docker captures stdout
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup builds the gateway (when none was injected) and checks the
    database once; shutdown closes whatever the lifespan opened.

    An unreachable database is logged, not fatal: /healthz keeps answering
    and book requests fail with 500 until the database comes back.
    """
    app_settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("BookAPI %s starting up (%s)...", __version__, app_settings.environment)

    try:
        app_settings.validate_for_environment()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    owns_gateway = getattr(app.state, "gateway", None) is None
    if owns_gateway:
        gateway = BookGateway(create_engine_from_settings(app_settings))
        telemetry: Optional[Telemetry] = getattr(app.state, "telemetry", None)
        app.state.gateway = (
            InstrumentedBookGateway(gateway, telemetry) if telemetry is not None else gateway
        )

    if await app.state.gateway.ping():
        logger.info("Database reachable")
    else:
        logger.warning("Database not reachable at startup; requests will fail until it is")

    logger.info("Server ready at http://%s:%d", app_settings.host, app_settings.port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("BookAPI shutting down...")
    if owns_gateway:
        await app.state.gateway.close()
        app.state.gateway = None
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _allowed_methods(app: FastAPI, path: str) -> Set[str]:
    methods: Set[str] = set()
    for route in app.router.routes:
        if getattr(route, "path", None) == path and getattr(route, "methods", None):
            methods.update(route.methods)
    return methods


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError         → 400 Bad Request
        RequestValidationError  → 400 Bad Request (malformed body / query)
        NotFoundError           → 404 Not Found
        HTTPException           → its own status (404 unknown path, 405 wrong method)
        DatabaseError           → 500 Internal Server Error
        BookAPIError (base)     → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error

    Responses never contain SQL, driver messages or stack traces; those are
    logged server-side with the request ID.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """FastAPI's own input validation; reported as 400 rather than 422."""
        rid = request_id_var.get("")
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Invalid request: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Invalid request",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        rid = request_id_var.get("")
        headers = dict(exc.headers or {})
        if exc.status_code == 405:
            error = "method_not_allowed"
            # The router reports only the first matching route's methods
            allowed = _allowed_methods(app, request.url.path)
            if allowed:
                headers["Allow"] = ", ".join(sorted(allowed))
        elif exc.status_code == 404:
            error = "not_found"
        else:
            error = "http_error"
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": error,
                "message": str(exc.detail),
                "request_id": rid,
            },
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        """Database error: generic message to the client, details logged."""
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(BookAPIError)
    async def handle_app_error(request: Request, exc: BookAPIError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    app_settings: Optional[Settings] = None,
    gateway: Optional[BookStore] = None,
    telemetry: Optional[Telemetry] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Defaults to the process-wide settings.
        gateway:      Pre-built gateway (tests). When omitted the lifespan
                      builds one from app_settings and closes it on shutdown.
        telemetry:    Pre-built telemetry (tests). When omitted and
                      TELEMETRY_ENABLED is true, in-memory metrics and a
                      logging tracer are used.
    """
    app_settings = app_settings or settings

    if telemetry is None and app_settings.telemetry_enabled:
        telemetry = build_telemetry(app_settings)

    app = FastAPI(
        title="BookAPI",
        description="CRUD service for a catalogue of books.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.telemetry = telemetry
    if gateway is not None and telemetry is not None:
        gateway = InstrumentedBookGateway(gateway, telemetry)
    app.state.gateway = gateway

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute, so the chain runs
    # RequestID → Telemetry → Logging → Deadline → routes
    app.add_middleware(RequestTimeoutMiddleware, timeout=app_settings.request_timeout)
    app.add_middleware(RequestLoggingMiddleware)
    if telemetry is not None:
        app.add_middleware(TelemetryMiddleware, telemetry=telemetry)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(books.router)
    app.include_router(health.router)
    app.include_router(metrics.router)

    return app


# uvicorn expects `bookapi.main:app` to be importable
app = create_app()
