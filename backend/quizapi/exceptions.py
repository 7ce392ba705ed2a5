"""
QuizAPI Backend - Typed Error Taxonomy
=======================================

What:  The closed set of failure kinds a handler can raise, each bound to
       exactly one HTTP status and error code.
How:   Every exception carries a `kind` tag (ErrorKind). The error handler
       dispatches on that tag, never on the exception class, so a new
       subclass cannot silently change how a failure is reported.
Who:   Raised by handlers, the auth gates and the rate limiter; consumed
       exactly once by `middleware.error_handler.handle_error`.

Exception Hierarchy:
    QuizAPIError (base, kind=GENERIC)   → own status/code, default 500
    ├── ValidationError                  → 400 VALIDATION_ERROR
    ├── AuthError                        → 401 AUTH_ERROR
    ├── ForbiddenError                   → 403 FORBIDDEN_ERROR
    ├── NotFoundError                    → 404 NOT_FOUND_ERROR
    ├── RateLimitError                   → 429 RATE_LIMIT_ERROR
    └── ExternalServiceError             → 502 EXTERNAL_SERVICE_ERROR

Anything that is not a QuizAPIError is unclassified and reported as
500 INTERNAL_SERVER_ERROR.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Tag identifying which taxonomy row an error belongs to."""

    VALIDATION = "validation"
    AUTH = "auth"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    EXTERNAL_SERVICE = "external_service"
    GENERIC = "generic"


# kind → (status, code)
ERROR_TABLE: Dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.VALIDATION: (400, "VALIDATION_ERROR"),
    ErrorKind.AUTH: (401, "AUTH_ERROR"),
    ErrorKind.FORBIDDEN: (403, "FORBIDDEN_ERROR"),
    ErrorKind.NOT_FOUND: (404, "NOT_FOUND_ERROR"),
    ErrorKind.RATE_LIMIT: (429, "RATE_LIMIT_ERROR"),
    ErrorKind.EXTERNAL_SERVICE: (502, "EXTERNAL_SERVICE_ERROR"),
    ErrorKind.GENERIC: (500, "INTERNAL_SERVER_ERROR"),
}


class QuizAPIError(Exception):
    """
    Base exception for all QuizAPI errors; also the Generic(status, code) variant.

    Attributes:
        kind:     Taxonomy tag (class-level for every subclass)
        message:  Human-readable description, safe to return to the client
        details:  Optional structured payload (offending field, retryAfter, ...)
        status:   HTTP status bound to the kind (Generic may override)
        code:     Stable error code bound to the kind (Generic may override)
    """

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str = "Internal Server Error",
        details: Optional[Dict[str, Any]] = None,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ):
        default_status, default_code = ERROR_TABLE[self.kind]
        self.message = message
        self.details = details or {}
        # Only the Generic variant may carry its own status/code
        if self.kind is ErrorKind.GENERIC:
            self.status = status or default_status
            self.code = code or default_code
        else:
            self.status = default_status
            self.code = default_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, code={self.code!r}, message={self.message!r})"


class HTTPError(QuizAPIError):
    """
    Generic variant with an explicit status and code.

    Example:
        raise HTTPError(409, "CONFLICT", "Quiz id 'python_101' already exists")
    """

    def __init__(
        self,
        status: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details, status=status, code=code)


class ValidationError(QuizAPIError):
    """
    Raised when client input fails validation.

    Example response:
        {
            "requestId": "1718000000000-k3j9x0a2b",
            "status": 400,
            "error": "VALIDATION_ERROR",
            "message": "Invalid input",
            "details": {"field": "email"}
        }
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        ctx = dict(details or {})
        if field:
            ctx["field"] = field
        super().__init__(message, ctx)
        self.field = field or ctx.get("field")


class AuthError(QuizAPIError):
    """Missing or invalid credential."""

    kind = ErrorKind.AUTH

    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ForbiddenError(QuizAPIError):
    """Authenticated but not allowed to perform the action."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class NotFoundError(QuizAPIError):
    """
    Raised when a requested resource does not exist.

    Either pass a full message, or a resource name (and id) to have one built.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: Optional[str] = None,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(details or {})
        if message is None:
            if resource and resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
            elif resource:
                message = f"The requested {resource} was not found"
            else:
                message = "Not Found"
        if resource:
            ctx["resource"] = resource
        if resource_id:
            ctx["resourceId"] = resource_id
        super().__init__(message, ctx)


class RateLimitError(QuizAPIError):
    """
    Raised when a client exceeds its admission budget for the current window.

    `retry_after` (seconds) is mirrored into details["retryAfter"], which the
    error handler copies into the Retry-After response header.
    """

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, retry_after: int, message: str = "Too Many Requests"):
        super().__init__(message, {"retryAfter": retry_after})
        self.retry_after = retry_after


class ExternalServiceError(QuizAPIError):
    """A downstream dependency (database, upstream API) failed."""

    kind = ErrorKind.EXTERNAL_SERVICE

    def __init__(self, message: str = "Bad Gateway", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
