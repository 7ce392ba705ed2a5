"""
QuizAPI Backend - Error Handler
================================

What:  Converts any failure into the uniform JSON error envelope.
How:   `classify()` reads the error's kind tag and produces an ErrorInfo;
       `handle_error()` logs it and renders the response. Errors that are
       not QuizAPIError instances fall through to the 500 catch-all.
Who:   Called by DispatchPipeline on every thrown error, and by the app-level
       exception handlers for failures outside wrapped endpoints.

Response headers:
    X-Request-ID  always
    Retry-After   only for RATE_LIMIT_ERROR with a positive details["retryAfter"]

Security: unclassified errors never expose their message; the stack trace is
attached to the log entry and the envelope only outside production.
"""

import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from starlette.responses import JSONResponse

from quizapi.exceptions import ERROR_TABLE, ErrorKind, QuizAPIError
from quizapi.middleware.logging import StructuredLogger
from quizapi.schemas.envelope import ErrorEnvelope

GENERIC_MESSAGE = "Internal Server Error"


@dataclass(frozen=True)
class ErrorInfo:
    kind: ErrorKind
    status: int
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    retry_after: Optional[int] = None


def classify(error: BaseException) -> ErrorInfo:
    """Map an error onto its taxonomy row."""
    if not isinstance(error, QuizAPIError):
        status, code = ERROR_TABLE[ErrorKind.GENERIC]
        return ErrorInfo(ErrorKind.GENERIC, status, code, GENERIC_MESSAGE)

    details = dict(error.details)
    match error.kind:
        case ErrorKind.RATE_LIMIT:
            retry_after = details.get("retryAfter")
            return ErrorInfo(
                error.kind,
                error.status,
                error.code,
                error.message,
                details,
                retry_after=int(retry_after) if retry_after is not None else None,
            )
        case (
            ErrorKind.VALIDATION
            | ErrorKind.AUTH
            | ErrorKind.FORBIDDEN
            | ErrorKind.NOT_FOUND
            | ErrorKind.EXTERNAL_SERVICE
        ):
            status, code = ERROR_TABLE[error.kind]
            return ErrorInfo(error.kind, status, code, error.message, details)
        case ErrorKind.GENERIC:
            return ErrorInfo(error.kind, error.status, error.code, error.message, details)
    raise AssertionError(f"Unhandled error kind: {error.kind!r}")


def format_trace(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def _fallback_response(request_id: str) -> JSONResponse:
    status, code = ERROR_TABLE[ErrorKind.GENERIC]
    return JSONResponse(
        status_code=status,
        content={"requestId": request_id, "status": status, "error": code, "message": GENERIC_MESSAGE},
        headers={"X-Request-ID": request_id},
    )


def handle_error(
    error: BaseException,
    request_id: str,
    logger: StructuredLogger,
    expose_trace: bool = False,
) -> JSONResponse:
    """
    Log `error` and build its response envelope. Never raises.

    Args:
        error:         The exception raised by the handler
        request_id:    Correlation ID of the failing request
        logger:        Structured logger for the `error:handled` event
        expose_trace:  Attach the stack trace (non-production only)
    """
    try:
        info = classify(error)
        trace = format_trace(error) if expose_trace else None

        logger.error(
            "error:handled",
            {
                "kind": info.kind.value,
                "status": info.status,
                "code": info.code,
                "message": info.message,
                "stack": trace,
            },
            request_id,
        )

        envelope = ErrorEnvelope(
            request_id=request_id,
            status=info.status,
            error=info.code,
            message=info.message,
            details=info.details or None,
            trace=trace,
        )
        headers = {"X-Request-ID": request_id}
        if info.kind is ErrorKind.RATE_LIMIT and info.retry_after:
            headers["Retry-After"] = str(info.retry_after)

        return JSONResponse(status_code=info.status, content=envelope.to_wire(), headers=headers)
    except Exception:
        return _fallback_response(request_id)
