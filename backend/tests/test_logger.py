"""
QuizAPI Backend - Structured Logger Unit Tests
===============================================

What:  Tests for level gating, redaction and the never-raise guarantee.

Test Strategy:
    ✅ Entries carry timestamp, level, event, requestId and caller fields
    ✅ Sensitive keys are redacted at any depth and in any case
    ✅ Levels below the configured minimum are dropped
    ✅ Unserializable fields degrade to a fallback entry instead of raising
"""

import logging

import pytest

from quizapi.config import Settings
from quizapi.middleware.logging import (
    EVENT_LOGGER_NAME,
    REDACTED,
    StructuredLogger,
    log_audit_action,
)
from quizapi.middleware.request_context import RequestContext, request_context_var


class TestRedaction:
    """Tests for StructuredLogger.redact()."""

    def setup_method(self):
        self.logger = StructuredLogger(level="debug")

    def test_top_level_key_redacted(self):
        result = self.logger.redact({"password": "hunter2", "email": "user@test.com"})
        assert result == {"password": REDACTED, "email": "user@test.com"}

    def test_match_is_case_insensitive_substring(self):
        result = self.logger.redact({"X-Auth-TOKEN": "abc", "UserPassword": "p", "Authorization": "Bearer x"})
        assert set(result.values()) == {REDACTED}

    def test_nested_mapping_redacted(self):
        result = self.logger.redact({"user": {"profile": {"credit_card_number": "4111"}}})
        assert result["user"]["profile"]["credit_card_number"] == REDACTED

    def test_mapping_inside_list_redacted(self):
        result = self.logger.redact({"attempts": [{"token": "a"}, {"token": "b", "ok": True}]})
        assert result["attempts"] == [{"token": REDACTED}, {"token": REDACTED, "ok": True}]

    def test_whole_sensitive_subtree_replaced(self):
        result = self.logger.redact({"tokens": {"access": "a", "refresh": "b"}})
        assert result["tokens"] == REDACTED

    def test_returns_copy(self):
        original = {"nested": {"password": "secret", "keep": 1}}
        self.logger.redact(original)
        assert original["nested"]["password"] == "secret"

    def test_custom_redact_fields(self):
        logger = StructuredLogger(level="debug", redact_fields=["ssn"])
        result = logger.redact({"ssn": "123", "password": "kept"})
        assert result == {"ssn": REDACTED, "password": "kept"}

    def test_blank_redact_fields_ignored(self):
        logger = StructuredLogger(level="debug", redact_fields=["", " ", "secret"])
        assert logger.redact({"name": "quiz"}) == {"name": "quiz"}

    def test_from_settings_uses_env_style_list(self):
        settings = Settings(log_level="warning", log_redact_fields="pin, otp")
        logger = StructuredLogger.from_settings(settings)
        assert logger.level == "warn"
        assert logger.redact({"PIN": 1, "otp_code": 2, "name": 3}) == {"PIN": REDACTED, "otp_code": REDACTED, "name": 3}


class TestEmission:
    """Tests for StructuredLogger.log() and level helpers."""

    def test_entry_shape(self, events):
        logger = StructuredLogger(level="debug")
        logger.info("test:event", {"key": "value"}, "req-123")

        [entry] = events()
        assert entry["event"] == "test:event"
        assert entry["level"] == "info"
        assert entry["requestId"] == "req-123"
        assert entry["key"] == "value"
        assert entry["timestamp"].endswith("+00:00")

    def test_sensitive_value_never_emitted(self, events, caplog):
        logger = StructuredLogger(level="debug")
        logger.info("test:event", {"password": "secret", "nested": [{"Token": "t0k3n"}]}, "req-123")

        raw = caplog.records[-1].getMessage()
        assert REDACTED in raw
        assert "secret" not in raw
        assert "t0k3n" not in raw

    def test_below_minimum_level_dropped(self, events):
        logger = StructuredLogger(level="warn")
        logger.debug("dropped:debug")
        logger.info("dropped:info")
        logger.warn("kept:warn")
        logger.error("kept:error")

        assert [e["event"] for e in events()] == ["kept:warn", "kept:error"]

    def test_stdlib_level_mapping(self, caplog, events):
        logger = StructuredLogger(level="debug")
        logger.warn("w")
        logger.error("e")
        levels = [r.levelno for r in caplog.records if r.name == EVENT_LOGGER_NAME]
        assert levels == [logging.WARNING, logging.ERROR]

    def test_default_request_id_is_system(self, events):
        StructuredLogger(level="debug").info("boot")
        assert events()[0]["requestId"] == "system"

    def test_default_request_id_follows_active_request(self, events):
        token = request_context_var.set(RequestContext(request_id="req-ctx"))
        try:
            StructuredLogger(level="debug").info("inside")
        finally:
            request_context_var.reset(token)
        assert events()[0]["requestId"] == "req-ctx"

    def test_caller_cannot_override_base_keys(self, events):
        StructuredLogger(level="debug").info("real", {"event": "fake", "level": "error"}, "r1")
        [entry] = events()
        assert entry["event"] == "real"
        assert entry["level"] == "info"

    def test_unserializable_fields_fall_back(self, events):
        cyclic: dict = {}
        cyclic["self"] = cyclic
        # Must not raise
        StructuredLogger(level="debug").error("broken", {"data": cyclic}, "r1")

        [entry] = events()
        assert entry["event"] == "broken"
        assert entry["requestId"] == "r1"
        assert "logError" in entry
        assert "data" not in entry

    def test_non_json_values_stringified(self, events):
        StructuredLogger(level="debug").info("objects", {"when": object()})
        assert events()[0]["when"].startswith("<object object")

    def test_invalid_level_rejected_at_construction(self):
        with pytest.raises(ValueError):
            StructuredLogger(level="verbose")


class TestAuditLog:
    def test_audit_event_fields(self, events):
        logger = StructuredLogger(level="info")
        log_audit_action(logger, "req-9", "admin", "DELETE", "quiz", "python_101", "SUCCESS")

        [entry] = events("admin:audit")
        assert entry["adminId"] == "admin"
        assert entry["action"] == "DELETE"
        assert entry["resourceType"] == "quiz"
        assert entry["resourceId"] == "python_101"
        assert entry["outcome"] == "SUCCESS"

    def test_unknown_action_rejected(self):
        with pytest.raises(ValueError):
            log_audit_action(StructuredLogger(), "r", "admin", "PATCH", "quiz", "q1")
