# Middleware package init
"""
QuizAPI Backend - Middleware Package
=====================================

What:  Cross-cutting concerns applied to every wrapped route handler.
How:   Composed by `dispatch.DispatchPipeline` rather than stacked as ASGI
       middleware, so each step sees the same RequestContext.

Pipeline (per request):
    Request → [Context] → [Log start] → [Auth?] → Handler
                                                    │
    Response ← [X-Request-ID] ← [Metrics] ← [Log end / Error envelope]

Modules:
    - request_context.py:  RequestContext, request ID generation, client IP
    - logging.py:          StructuredLogger (JSON lines, redaction), audit events
    - auth.py:             Bearer/cookie credential attachment, require_* gates
    - rate_limit.py:       Fixed-window RateLimiter (opt-in per handler)
    - error_handler.py:    Error kind → status/code, uniform error envelope
    - dispatch.py:         The pipeline itself

CORS and GZip stay as Starlette middleware (see quizapi.main).
"""
