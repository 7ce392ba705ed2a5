"""
QuizAPI Backend - Auth Attachment & Gates
==========================================

What:  Turns a bearer credential into identity on the RequestContext, and
       provides the gate functions handlers call to demand it.
How:   `attach_auth_context()` is run by the dispatch pipeline for endpoints
       wrapped with authenticate=True. Absence of a credential leaves the
       context anonymous; a present-but-invalid one raises AuthError.
       `require_auth()` / `require_admin()` are opt-in per handler.

Credential sources (first match wins):
    1. Authorization: Bearer <token>
    2. adminToken cookie (admin-gated paths only)
"""

from typing import Optional

from starlette.requests import Request

from quizapi.exceptions import AuthError
from quizapi.middleware.request_context import RequestContext
from quizapi.services.auth import decode_token

ADMIN_COOKIE = "adminToken"
ADMIN_PATH_PREFIXES = ("/admin", "/api/v1/admin")


def is_admin_path(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in ADMIN_PATH_PREFIXES)


def extract_bearer_token(request: Request) -> Optional[str]:
    """Token from the Authorization header, else the admin cookie on admin paths."""
    header = request.headers.get("authorization")
    if header:
        scheme, _, value = header.strip().partition(" ")
        if scheme.lower() == "bearer":
            return value.strip()
        # A non-Bearer Authorization header is still a (bad) credential
        return header.strip()
    if is_admin_path(request.url.path):
        return request.cookies.get(ADMIN_COOKIE) or None
    return None


def attach_auth_context(request: Request, ctx: RequestContext) -> None:
    """
    Populate ctx.user_id (and ctx.admin_id for admin tokens) from the request.

    Raises:
        AuthError: a credential was supplied but could not be decoded.
    """
    token = extract_bearer_token(request)
    if token is None:
        return
    if not token:
        raise AuthError("Invalid token")

    outcome = decode_token(token)
    if not outcome.ok:
        raise AuthError("Invalid token")

    payload = outcome.unwrap()
    ctx.user_id = payload.sub
    if payload.is_admin:
        ctx.admin_id = payload.sub


def require_auth(ctx: RequestContext) -> str:
    """Return ctx.user_id or raise AuthError."""
    if not ctx.is_authenticated:
        raise AuthError("Authentication required")
    return ctx.user_id


def require_admin(ctx: RequestContext) -> str:
    """Return ctx.admin_id or raise AuthError."""
    if not ctx.is_admin:
        raise AuthError("Admin authentication required")
    return ctx.admin_id
