"""
QuizAPI Backend - Metrics Route
================================

What:  Exposes the in-memory request metrics.
Who:   Polled by dashboards and scrapers.

Response (GET /api/metrics):
    {
        "requests_total": 42,
        "requests_errors_total": 3,
        "avg_request_duration_ms": 18,
        "routes": {"/api/v1/auth/login": {"count": 5, "errors": 1, "avgMs": 21, "totalMs": 105.3}}
    }
"""

from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import JSONResponse

from quizapi.container import ServiceContainer
from quizapi.middleware.request_context import RequestContext
from quizapi.schemas.envelope import MetricsSnapshot


def build_router(services: ServiceContainer) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["Metrics"])

    async def get_metrics(request: Request, ctx: RequestContext) -> JSONResponse:
        """Snapshot of request counters and durations, per route and overall."""
        snapshot = MetricsSnapshot.model_validate(services.metrics.get_metrics())
        return JSONResponse(snapshot.model_dump(by_alias=True))

    router.add_api_route(
        "/metrics",
        services.pipeline.wrap(get_metrics),
        methods=["GET"],
        summary="Request metrics snapshot",
        response_model=MetricsSnapshot,
    )
    return router
