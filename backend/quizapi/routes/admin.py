"""
QuizAPI Backend - Admin Route Handlers
=======================================

What:  Admin-gated endpoints of the console.
How:   Wrapped with authenticate=True so the pipeline attaches identity from
       the bearer header or the adminToken cookie; each handler then calls
       require_admin() and records an audit event.
Who:   Called by the admin console after login.
"""

from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import JSONResponse

from quizapi.container import ServiceContainer
from quizapi.middleware.auth import require_admin
from quizapi.middleware.logging import log_audit_action
from quizapi.middleware.request_context import RequestContext
from quizapi.schemas.envelope import SuccessEnvelope


def build_router(services: ServiceContainer) -> APIRouter:
    router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])

    async def get_session(request: Request, ctx: RequestContext) -> JSONResponse:
        """Identity of the authenticated admin."""
        admin_id = require_admin(ctx)
        log_audit_action(services.logger, ctx.request_id, admin_id, "READ", "session", admin_id)
        data = {"adminId": admin_id, "userId": ctx.user_id, "role": "admin"}
        return JSONResponse(SuccessEnvelope(request_id=ctx.request_id, data=data).to_wire())

    router.add_api_route(
        "/session",
        services.pipeline.wrap(get_session, authenticate=True),
        methods=["GET"],
        summary="Current admin session",
    )
    return router
