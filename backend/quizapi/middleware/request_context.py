"""
QuizAPI Backend - Request Context
==================================

What:  Builds the per-request context (request ID, client IP, user agent,
       start time, identity) and publishes it for the duration of a dispatch.
How:   `attach_request_context()` reads a fixed set of headers; the dispatch
       pipeline stores the result in a ContextVar while the handler runs.
Who:   Created by DispatchPipeline; passed to every handler as `ctx`.
When:  First step of every dispatch, before anything is logged.

Headers read:
    x-request-id     → request_id (else generated)
    x-forwarded-for  → ip (first entry)
    x-real-ip        → ip (fallback)
    user-agent       → user_agent
"""

import random
import string
import time
from contextvars import ContextVar
from typing import Optional

from starlette.requests import Request

UNKNOWN = "unknown"

_BASE36 = string.digits + string.ascii_lowercase


class RequestContext:
    """
    Per-request state bag, owned by exactly one in-flight request.

    request_id, ip, user_agent and start_time are fixed at creation.
    user_id and admin_id are write-once: the auth step may set each at most
    once, and a second assignment raises RuntimeError.
    """

    __slots__ = ("_request_id", "_ip", "_user_agent", "_start_time", "_user_id", "_admin_id")

    def __init__(
        self,
        request_id: str,
        ip: str = UNKNOWN,
        user_agent: str = UNKNOWN,
        start_time: Optional[float] = None,
    ):
        self._request_id = request_id
        self._ip = ip
        self._user_agent = user_agent
        # perf_counter is monotonic; only ever used for elapsed durations
        self._start_time = time.perf_counter() if start_time is None else start_time
        self._user_id: Optional[str] = None
        self._admin_id: Optional[str] = None

    @property
    def request_id(self) -> str:
        return self._request_id

    @property
    def ip(self) -> str:
        return self._ip

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @user_id.setter
    def user_id(self, value: str) -> None:
        if self._user_id is not None:
            raise RuntimeError(f"user_id already set for request {self._request_id}")
        self._user_id = value

    @property
    def admin_id(self) -> Optional[str]:
        return self._admin_id

    @admin_id.setter
    def admin_id(self, value: str) -> None:
        if self._admin_id is not None:
            raise RuntimeError(f"admin_id already set for request {self._request_id}")
        self._admin_id = value

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    @property
    def is_admin(self) -> bool:
        return self._admin_id is not None

    def elapsed_ms(self) -> float:
        """Milliseconds since the context was created."""
        return (time.perf_counter() - self._start_time) * 1000

    def __repr__(self) -> str:
        return (
            f"RequestContext(request_id={self._request_id!r}, ip={self._ip!r}, "
            f"user_id={self._user_id!r}, admin_id={self._admin_id!r})"
        )


# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests on one event loop each see their own
# context. Set and reset by DispatchPipeline around the handler call.
request_context_var: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def current_request_id(default: str = "system") -> str:
    """Request ID of the dispatch running in this context, else `default`."""
    ctx = request_context_var.get()
    return ctx.request_id if ctx is not None else default


def generate_request_id(existing_id: Optional[str] = None) -> str:
    """
    Return `existing_id` if given, else "<epoch-ms>-<9 base36 chars>".

    Uniqueness is best-effort; the ID is for log correlation, not security.
    """
    if existing_id:
        return existing_id
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, else X-Real-IP, else "unknown"."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return UNKNOWN


def attach_request_context(request: Request) -> RequestContext:
    """Build a fresh RequestContext from the inbound request headers."""
    return RequestContext(
        request_id=generate_request_id(request.headers.get("x-request-id") or None),
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent") or UNKNOWN,
    )
