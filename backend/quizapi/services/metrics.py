"""
QuizAPI Backend - Metrics Collector
====================================

What:  In-memory request counters and duration aggregates keyed by route.
How:   Each route owns a RouteStats record guarded by its own lock; the
       registry lock guards route creation and the process-wide summary.
Who:   Written by DispatchPipeline after every completed request; read by
       GET /api/metrics.

Export shape:
    {
        "requests_total": 2,
        "requests_errors_total": 0,
        "avg_request_duration_ms": 125,
        "routes": {"/api/test": {"count": 2, "errors": 0, "avgMs": 125, "totalMs": 250}}
    }

Lock ordering: registry lock, then a route lock. record_request() never holds
both at once; get_metrics() takes the registry lock and then each route lock
in turn, so a snapshot never contains a half-updated route.
"""

import math
import threading
from typing import Any, Dict


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (125.5 → 126)."""
    return int(math.floor(value + 0.5))


class RouteStats:
    """Mutable aggregate for one route. Only touched while holding `lock`."""

    __slots__ = ("lock", "count", "errors", "total_ms", "avg_ms")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.count = 0
        self.errors = 0
        self.total_ms = 0.0
        self.avg_ms = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "errors": self.errors,
            "avgMs": self.avg_ms,
            "totalMs": self.total_ms,
        }


class MetricsCollector:
    """Thread-safe per-route request metrics."""

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._routes: Dict[str, RouteStats] = {}

    def _route(self, path: str) -> RouteStats:
        stats = self._routes.get(path)
        if stats is None:
            with self._registry_lock:
                stats = self._routes.setdefault(path, RouteStats())
        return stats

    def record_request(self, path: str, duration_ms: float, is_error: bool) -> None:
        """
        Add one observation for `path`.

        The increment and the average recomputation happen under the route's
        lock as one unit. The average is recomputed from the stored total on
        every call rather than updated incrementally.
        """
        stats = self._route(path)
        with stats.lock:
            stats.count += 1
            if is_error:
                stats.errors += 1
            stats.total_ms += duration_ms
            stats.avg_ms = round_half_up(stats.total_ms / stats.count)

    def get_metrics(self) -> Dict[str, Any]:
        """Return a snapshot in the export shape. Mutating it has no effect here."""
        routes: Dict[str, Dict[str, Any]] = {}
        with self._registry_lock:
            for path, stats in self._routes.items():
                with stats.lock:
                    routes[path] = stats.as_dict()

        total = sum(r["count"] for r in routes.values())
        errors = sum(r["errors"] for r in routes.values())
        total_ms = sum(r["totalMs"] for r in routes.values())
        return {
            "requests_total": total,
            "requests_errors_total": errors,
            "avg_request_duration_ms": round_half_up(total_ms / total) if total else 0,
            "routes": routes,
        }

    def reset(self) -> None:
        """Clear every counter. For test isolation; not exposed over HTTP."""
        with self._registry_lock:
            self._routes = {}
