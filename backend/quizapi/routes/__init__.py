# Routes package init
"""
QuizAPI Backend - API Routes Package
=====================================

What:  HTTP route handlers, each registered through the dispatch pipeline.
How:   Every module exposes `build_router(services)`; handlers take
       `(request, ctx)` and are wrapped with `services.pipeline.wrap()`.

Route Inventory:
    - health.py:   GET  /health                 (liveness)
    - metrics.py:  GET  /api/metrics            (request metrics snapshot)
    - auth.py:     POST /api/v1/auth/login      (admin login, rate-limited)
    - admin.py:    GET  /api/v1/admin/session   (admin-gated)

Design Principle:
    Routes are THIN: extract input, call services, raise typed errors.
    Logging, metrics, X-Request-ID and error envelopes are the pipeline's job.
"""

from fastapi import APIRouter

from quizapi.container import ServiceContainer
from quizapi.routes import admin, auth, health, metrics


def build_routers(services: ServiceContainer) -> list[APIRouter]:
    return [
        health.build_router(services),
        metrics.build_router(services),
        auth.build_router(services),
        admin.build_router(services),
    ]
