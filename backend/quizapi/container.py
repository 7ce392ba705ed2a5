"""
QuizAPI Backend - Service Container
====================================

What:  Builds the long-lived services (structured logger, metrics collector,
       rate limiter, dispatch pipeline) once per application.
How:   `build_services(settings)` constructs each service explicitly and
       bundles them; the app factory stores the container on `app.state`
       and hands it to every router builder.
Who:   Called by `quizapi.main.create_app()` and by tests that need an
       isolated set of services.
"""

from dataclasses import dataclass
from typing import Optional

from quizapi.clock import Clock
from quizapi.config import Settings
from quizapi.middleware.dispatch import DispatchPipeline
from quizapi.middleware.logging import StructuredLogger
from quizapi.middleware.rate_limit import RateLimiter
from quizapi.services.metrics import MetricsCollector


@dataclass
class ServiceContainer:
    settings: Settings
    logger: StructuredLogger
    metrics: MetricsCollector
    rate_limiter: RateLimiter
    pipeline: DispatchPipeline


def build_services(settings: Settings, clock: Optional[Clock] = None) -> ServiceContainer:
    """Construct every shared service for one application instance."""
    logger = StructuredLogger.from_settings(settings)
    metrics = MetricsCollector()
    return ServiceContainer(
        settings=settings,
        logger=logger,
        metrics=metrics,
        rate_limiter=RateLimiter.from_settings(settings, clock=clock),
        pipeline=DispatchPipeline(logger, metrics, expose_trace=settings.expose_traces),
    )
