"""
QuizAPI Backend - FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app(settings) builds the service container,
       mounts the routers and registers lifecycle hooks.
Who:   Called by uvicorn to start the server (uvicorn quizapi.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Starlette Middleware:  CORS → GZip                 │
    │                                                     │
    │  Dispatch Pipeline (per wrapped route):             │
    │  ┌──────────┐ ┌──────┐ ┌─────────┐ ┌─────────────┐  │
    │  │ Context  │→│ Log  │→│ Handler │→│ Metrics/Err │  │
    │  └──────────┘ └──────┘ └─────────┘ └─────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  GET /health   GET /api/metrics                     │
    │  POST /api/v1/auth/login   GET /api/v1/admin/session│
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Start the rate limiter's stale-entry sweep

    Shutdown:
    1. Stop the sweep
    2. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizapi import __version__
from quizapi.config import Settings, settings as default_settings
from quizapi.container import ServiceContainer, build_services
from quizapi.exceptions import HTTPError, QuizAPIError
from quizapi.middleware.error_handler import handle_error
from quizapi.middleware.request_context import current_request_id, generate_request_id
from quizapi.routes import build_routers

logger = logging.getLogger(__name__)

# structured level → stdlib level for the root logger
_ROOT_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure stdlib logging for the entire application.

    Structured events (quizapi.events) are already JSON lines, so the
    format only prefixes operational messages with time, level and logger.
    """
    logging.basicConfig(
        level=_ROOT_LEVELS[settings.log_level],
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    services: ServiceContainer = app.state.services

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(services.settings)
    logger.info("QuizAPI Backend %s starting up (%s)", __version__, services.settings.environment)

    try:
        services.settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    services.rate_limiter.start()
    logger.info(
        "Rate limiter: %d requests per %dms window",
        services.rate_limiter.max_requests,
        services.rate_limiter.window_ms,
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    await services.rate_limiter.stop()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI, services: ServiceContainer) -> None:
    """
    Route failures raised outside wrapped endpoints (unknown paths, wrong
    methods, middleware errors) through the same envelope as handler errors.
    """

    def _request_id(request: Request) -> str:
        return current_request_id("") or generate_request_id(request.headers.get("x-request-id"))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        code = "NOT_FOUND_ERROR" if exc.status_code == 404 else "HTTP_ERROR"
        error = HTTPError(exc.status_code, code, str(exc.detail))
        return handle_error(error, _request_id(request), services.logger, services.settings.expose_traces)

    @app.exception_handler(QuizAPIError)
    async def handle_quizapi_error(request: Request, exc: QuizAPIError):
        return handle_error(exc, _request_id(request), services.logger, services.settings.expose_traces)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unhandled error outside the dispatch pipeline: %s", exc, exc_info=True)
        return handle_error(exc, _request_id(request), services.logger, services.settings.expose_traces)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None, services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:  Configuration to use (defaults to the environment-loaded one)
        services:  Pre-built service container (tests inject fakes/clocks here)
    """
    settings = settings or (services.settings if services else default_settings)
    services = services or build_services(settings)

    app = FastAPI(
        title="QuizAPI",
        description="Quiz-taking backend: request pipeline, admin auth and metrics.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)

    register_exception_handlers(app, services)

    for router in build_routers(services):
        app.include_router(router)

    return app


app = create_app()
