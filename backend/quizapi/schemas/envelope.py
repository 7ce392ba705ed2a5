"""
QuizAPI Backend - Pydantic Request/Response Schemas
====================================================

What:  Pydantic models defining the wire contract of the pipeline.
How:   Field names are snake_case in Python and camelCase on the wire
       (aliases); responses are dumped with by_alias=True.
Who:   Used by the error handler, the route handlers and the tests.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════
# Envelopes
# ══════════════════════════════════════════════════════════════════════════


class ErrorEnvelope(_WireModel):
    """
    What:  Uniform body of every error response.

    Example:
        {
            "requestId": "1718000000000-k3j9x0a2b",
            "status": 429,
            "error": "RATE_LIMIT_ERROR",
            "message": "Too Many Requests",
            "details": {"retryAfter": 42}
        }
    """

    request_id: str = Field(alias="requestId")
    status: int
    error: str = Field(description="Stable error code, e.g. VALIDATION_ERROR")
    message: str
    details: Optional[Dict[str, Any]] = None
    trace: Optional[str] = Field(default=None, description="Stack trace (non-production only)")


class SuccessEnvelope(_WireModel):
    """Conventional success body: {success: true, requestId, data}."""

    success: bool = True
    request_id: str = Field(alias="requestId")
    data: Any = None

    def to_wire(self) -> Dict[str, Any]:
        # data may legitimately be null
        return self.model_dump(by_alias=True)


# ══════════════════════════════════════════════════════════════════════════
# Request / Response bodies
# ══════════════════════════════════════════════════════════════════════════


class LoginRequest(BaseModel):
    password: str = Field(min_length=1, description="Admin console password")


class TokenData(BaseModel):
    token: str
    expires_in: int = Field(serialization_alias="expiresIn")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy")
    version: str
    uptime_seconds: float


class RouteMetrics(_WireModel):
    count: int = 0
    errors: int = 0
    avg_ms: int = Field(default=0, alias="avgMs")
    total_ms: float = Field(default=0.0, alias="totalMs")


class MetricsSnapshot(BaseModel):
    """Export shape of MetricsCollector.get_metrics()."""

    requests_total: int
    requests_errors_total: int
    avg_request_duration_ms: int
    routes: Dict[str, RouteMetrics] = Field(default_factory=dict)
