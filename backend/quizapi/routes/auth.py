"""
QuizAPI Backend - Auth Route Handlers
======================================

What:  POST /api/v1/auth/login exchanges the admin password for a bearer token.
How:   Rate-limited per client IP; validates the JSON body with Pydantic and
       reports problems as VALIDATION_ERROR envelopes.
Who:   Called by the admin console login page.

Response (200):
    {"success": true, "requestId": "...", "data": {"token": "...", "expiresIn": 86400}}
    Set-Cookie: adminToken=<token>; HttpOnly; SameSite=Lax
"""

import json

from fastapi import APIRouter
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from quizapi.container import ServiceContainer
from quizapi.exceptions import AuthError, ValidationError
from quizapi.middleware.auth import ADMIN_COOKIE
from quizapi.middleware.request_context import RequestContext
from quizapi.schemas.envelope import LoginRequest, SuccessEnvelope, TokenData
from quizapi.services.auth import generate_token, validate_admin_password


async def read_login_request(request: Request) -> LoginRequest:
    """Parse and validate the login body, raising ValidationError on bad input."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON body")

    try:
        return LoginRequest.model_validate(body)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError("Password required", field=field or "password")


def build_router(services: ServiceContainer) -> APIRouter:
    router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])
    settings = services.settings

    async def login(request: Request, ctx: RequestContext) -> JSONResponse:
        """Exchange the admin password for a bearer token."""
        services.rate_limiter.check(ctx.ip)

        body = await read_login_request(request)
        if not validate_admin_password(body.password, settings.admin_password):
            entry = services.rate_limiter.peek(ctx.ip)
            services.logger.warn(
                "auth:login_failed",
                {"ip": ctx.ip, "attemptsInWindow": entry.count if entry else None},
                ctx.request_id,
            )
            raise AuthError("Invalid password")

        token = generate_token("admin", subject="admin", ttl_seconds=settings.token_ttl_seconds)
        services.logger.info("auth:login", {"ip": ctx.ip, "role": "admin"}, ctx.request_id)

        data = TokenData(token=token, expires_in=settings.token_ttl_seconds)
        response = JSONResponse(
            SuccessEnvelope(request_id=ctx.request_id, data=data.model_dump(by_alias=True)).to_wire()
        )
        response.set_cookie(
            ADMIN_COOKIE,
            token,
            max_age=settings.token_ttl_seconds,
            httponly=True,
            samesite="lax",
            secure=settings.environment == "production",
        )
        return response

    router.add_api_route(
        "/login",
        services.pipeline.wrap(login),
        methods=["POST"],
        summary="Admin login",
    )
    return router
