"""
QuizAPI Backend - Health Check Route
=====================================

What:  Liveness endpoint for monitoring and load balancer probes.
How:   Reports version and uptime. Persistence lives outside this service,
       so there are no dependencies to probe here.
Who:   Called by Docker health checks, load balancers, and monitoring systems.
"""

import time

from fastapi import APIRouter
from starlette.requests import Request

from quizapi import __version__
from quizapi.container import ServiceContainer
from quizapi.middleware.request_context import RequestContext
from quizapi.schemas.envelope import HealthResponse


def build_router(services: ServiceContainer) -> APIRouter:
    router = APIRouter(tags=["Health"])
    started = time.monotonic()

    async def health_check(request: Request, ctx: RequestContext) -> HealthResponse:
        """Service health check."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            uptime_seconds=round(time.monotonic() - started, 2),
        )

    router.add_api_route(
        "/health",
        services.pipeline.wrap(health_check),
        methods=["GET"],
        summary="Service health check",
    )
    return router
