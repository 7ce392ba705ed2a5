"""
QuizAPI Backend - Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── settings:       Isolated Settings (small rate-limit budget, test env)
    ├── fake_clock:     Manually advanced millisecond clock
    ├── services:       ServiceContainer built from settings + fake_clock
    ├── app:            FastAPI app wired to `services`
    ├── test_client:    HTTPX AsyncClient for endpoint testing
    ├── make_request:   Factory for bare Starlette Request objects
    └── events:         Parsed structured log entries captured by caplog
"""

import json
import logging
import os

# Override settings for testing BEFORE any quizapi imports
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "debug"
os.environ["ADMIN_PASSWORD"] = "test-admin-password"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from quizapi.config import Settings
from quizapi.container import build_services
from quizapi.main import create_app
from quizapi.middleware.logging import EVENT_LOGGER_NAME


class FakeClock:
    def __init__(self, start_ms: float = 1_000_000.0):
        self._now = start_ms

    def now_ms(self) -> float:
        return self._now

    def advance(self, ms: float) -> None:
        self._now += ms


@pytest.fixture
def settings():
    return Settings(
        environment="test",
        log_level="debug",
        admin_password="test-admin-password",
        rate_limit_window_ms=60_000,
        rate_limit_max_requests=3,
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def services(settings, fake_clock):
    return build_services(settings, clock=fake_clock)


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the app (no server, no lifespan).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_request():
    """Build a Starlette Request with the given headers (names are lower-cased)."""

    def _make(headers=None, path="/api/test", method="GET", query_string=b""):
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "server": ("test", 80),
            "client": ("127.0.0.1", 50000),
            "root_path": "",
            "path": path,
            "raw_path": path.encode("latin-1"),
            "query_string": query_string,
            "headers": raw_headers,
        }
        return Request(scope)

    return _make


@pytest.fixture
def events(caplog):
    """
    Capture structured events; call the returned function to get them parsed.

    Usage:
        def test_something(events):
            ...
            assert events()[0]["event"] == "request:start"
    """
    caplog.set_level(logging.DEBUG, logger=EVENT_LOGGER_NAME)

    def _parsed(event=None):
        entries = [
            json.loads(record.getMessage())
            for record in caplog.records
            if record.name == EVENT_LOGGER_NAME
        ]
        if event is not None:
            entries = [e for e in entries if e["event"] == event]
        return entries

    return _parsed
