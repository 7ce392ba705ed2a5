"""
QuizAPI Backend - Dispatch Pipeline
====================================

What:  Wraps a route handler with request context, structured logging,
       optional auth attachment, metrics and error translation.
How:   `DispatchPipeline.wrap(handler)` returns a Starlette endpoint
       `(request) -> Response` that calls `handler(request, ctx)`.
Who:   Every route in quizapi.routes is registered through `wrap()`.
When:  Once per inbound request.

Dispatch steps:
    1. Build RequestContext (and publish it in request_context_var)
    2. Log request:start (method, path, query, ip, userAgent)
    3. Attach auth identity when wrapped with authenticate=True
    4. Invoke handler(request, ctx)
    5a. Success: log request:end, record metrics, set X-Request-ID
    5b. Failure: log request:error, record an error observation,
        build the envelope with handle_error()

No exception escapes step 5b. The one exception is cancellation of the
dispatching task itself: the terminal log and metrics are still written,
then CancelledError is re-raised so the server can finish shutting the
request down.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from quizapi.exceptions import QuizAPIError
from quizapi.middleware.auth import attach_auth_context
from quizapi.middleware.error_handler import format_trace, handle_error
from quizapi.middleware.logging import StructuredLogger
from quizapi.middleware.request_context import (
    RequestContext,
    attach_request_context,
    request_context_var,
)
from quizapi.services.metrics import MetricsCollector

Handler = Callable[[Request, RequestContext], Union[Awaitable[Any], Any]]
Endpoint = Callable[[Request], Awaitable[Response]]


def route_key(request: Request) -> str:
    """Metrics key: the matched route template if known, else the raw path."""
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or request.url.path


def _to_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    return JSONResponse(content=jsonable_encoder(result))


def _response_size(response: Response) -> int:
    length = response.headers.get("content-length")
    if length and length.isdigit():
        return int(length)
    body = getattr(response, "body", None)
    return len(body) if isinstance(body, (bytes, bytearray)) else 0


def _own_task_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class DispatchPipeline:
    """
    Composition root for per-request middleware.

    Holds references to the shared services; owns no per-request state.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        metrics: MetricsCollector,
        expose_trace: bool = False,
    ):
        self.logger = logger
        self.metrics = metrics
        self.expose_trace = expose_trace

    def wrap(self, handler: Handler, authenticate: bool = False) -> Endpoint:
        """Return an endpoint with the Starlette signature that dispatches to `handler`."""

        async def endpoint(request: Request) -> Response:
            return await self.dispatch(request, handler, authenticate=authenticate)

        endpoint.__name__ = getattr(handler, "__name__", "endpoint")
        endpoint.__qualname__ = getattr(handler, "__qualname__", endpoint.__name__)
        endpoint.__doc__ = handler.__doc__
        endpoint.__module__ = getattr(handler, "__module__", __name__)
        return endpoint

    async def dispatch(
        self,
        request: Request,
        handler: Handler,
        authenticate: bool = False,
    ) -> Response:
        ctx = attach_request_context(request)
        token = request_context_var.set(ctx)
        try:
            self._log_start(request, ctx)
            try:
                if authenticate:
                    attach_auth_context(request, ctx)
                response = _to_response(await self._invoke(handler, request, ctx))
            except asyncio.CancelledError as exc:
                response = self._on_error(request, ctx, exc)
                if _own_task_cancelling():
                    raise
                return response
            except Exception as exc:
                return self._on_error(request, ctx, exc)
            return self._on_success(request, ctx, response)
        finally:
            request_context_var.reset(token)

    async def _invoke(self, handler: Handler, request: Request, ctx: RequestContext) -> Any:
        if inspect.iscoroutinefunction(handler):
            return await handler(request, ctx)
        result = await run_in_threadpool(handler, request, ctx)
        if inspect.isawaitable(result):
            return await result
        return result

    # ── Step 2 ────────────────────────────────────────────────────────────

    def _log_start(self, request: Request, ctx: RequestContext) -> None:
        self.logger.info(
            "request:start",
            {
                "method": request.method,
                "path": request.url.path,
                "query": dict(request.query_params),
                "ip": ctx.ip,
                "userAgent": ctx.user_agent,
            },
            ctx.request_id,
        )

    # ── Step 5a ───────────────────────────────────────────────────────────

    def _on_success(self, request: Request, ctx: RequestContext, response: Response) -> Response:
        duration_ms = ctx.elapsed_ms()
        status = response.status_code
        self.logger.info(
            "request:end",
            {
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "durationMs": round(duration_ms),
                "responseSize": _response_size(response),
                "userId": ctx.user_id,
            },
            ctx.request_id,
        )
        self.metrics.record_request(route_key(request), duration_ms, status >= 400)
        response.headers["X-Request-ID"] = ctx.request_id
        return response

    # ── Step 5b ───────────────────────────────────────────────────────────

    def _on_error(self, request: Request, ctx: RequestContext, error: BaseException) -> Response:
        duration_ms = ctx.elapsed_ms()
        status = error.status if isinstance(error, QuizAPIError) else 500
        stack: Optional[str] = format_trace(error) if self.expose_trace else None
        self.logger.error(
            "request:error",
            {
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "errorMessage": str(error) or type(error).__name__,
                "errorType": type(error).__name__,
                "durationMs": round(duration_ms),
                "stack": stack,
            },
            ctx.request_id,
        )
        self.metrics.record_request(route_key(request), duration_ms, True)
        return handle_error(error, ctx.request_id, self.logger, self.expose_trace)
