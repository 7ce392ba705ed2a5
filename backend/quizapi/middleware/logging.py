"""
QuizAPI Backend - Structured Logger
====================================

What:  Leveled, field-redacting JSON event logger.
How:   Each call builds one entry (timestamp, level, event, requestId, fields),
       redacts sensitive keys at any depth, serializes it to a single JSON
       line and hands it to the standard-library logger `quizapi.events`.
Who:   Constructed once by the service container; used by the dispatch
       pipeline, the error handler and handlers for audit events.

Log Format (one JSON line per event):
    {
        "timestamp": "2024-01-15T12:00:00.000+00:00",
        "level": "info",
        "event": "request:end",
        "requestId": "1705320000000-a1b2c3d4e",
        "status": 200,
        "durationMs": 12,
        "userId": null
    }

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, IP, user-agent, request ID
    ❌ Don't log: values of keys containing password, token, authorization,
       credit_card (configurable), at any nesting depth
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from quizapi.config import DEFAULT_REDACT_FIELDS, LOG_LEVELS, Settings
from quizapi.middleware.request_context import current_request_id

REDACTED = "[REDACTED]"

EVENT_LOGGER_NAME = "quizapi.events"

# structured level → (rank, stdlib level)
_LEVELS: Dict[str, tuple[int, int]] = {
    "debug": (0, logging.DEBUG),
    "info": (1, logging.INFO),
    "warn": (2, logging.WARNING),
    "error": (3, logging.ERROR),
}

_module_logger = logging.getLogger(__name__)


class StructuredLogger:
    """
    Process-wide sink for leveled, redacted log events.

    Logging never raises: if an entry cannot be serialized, a fallback entry
    with only the base keys and a `logError` description is emitted instead.
    """

    def __init__(
        self,
        level: str = "info",
        redact_fields: Optional[Iterable[str]] = None,
        name: str = EVENT_LOGGER_NAME,
    ):
        if level not in _LEVELS:
            raise ValueError(f"Invalid log level '{level}'. Must be one of: {LOG_LEVELS}")
        self.level = level
        fields = DEFAULT_REDACT_FIELDS.split(",") if redact_fields is None else redact_fields
        self.redact_fields = [f.strip().lower() for f in fields if f and f.strip()]
        self._logger = logging.getLogger(name)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StructuredLogger":
        return cls(level=settings.log_level, redact_fields=settings.redact_fields_list)

    # ── Level gate ────────────────────────────────────────────────────────

    def is_enabled(self, level: str) -> bool:
        return _LEVELS[level][0] >= _LEVELS[self.level][0]

    # ── Redaction ─────────────────────────────────────────────────────────

    def _is_sensitive(self, key: Any) -> bool:
        name = str(key).lower()
        return any(field in name for field in self.redact_fields)

    def redact(self, value: Any) -> Any:
        """
        Return a deep copy of `value` with every sensitive key's value replaced.

        Mappings are rebuilt key by key; lists, tuples and sets become lists
        and are walked element by element. Scalars are returned as-is.
        """
        if isinstance(value, Mapping):
            return {
                key: REDACTED if self._is_sensitive(key) else self.redact(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.redact(item) for item in value]
        return value

    # ── Emission ──────────────────────────────────────────────────────────

    def log(
        self,
        level: str,
        event: str,
        fields: Optional[Mapping[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Emit one structured entry if `level` clears the configured minimum."""
        if level not in _LEVELS or not self.is_enabled(level):
            return

        base = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": level,
            "event": event,
            "requestId": request_id or current_request_id(),
        }

        try:
            entry = dict(base)
            for key, item in self.redact(dict(fields or {})).items():
                # Base keys always win over caller fields
                entry.setdefault(str(key), item)
            line = json.dumps(entry, default=str)
        except Exception as exc:  # serialization must never escape a log call
            line = json.dumps({**base, "logError": f"{type(exc).__name__}: {exc}"})

        try:
            self._logger.log(_LEVELS[level][1], line)
        except Exception:
            _module_logger.debug("Dropped log event %s", event)

    def debug(self, event: str, fields: Optional[Mapping[str, Any]] = None, request_id: Optional[str] = None) -> None:
        self.log("debug", event, fields, request_id)

    def info(self, event: str, fields: Optional[Mapping[str, Any]] = None, request_id: Optional[str] = None) -> None:
        self.log("info", event, fields, request_id)

    def warn(self, event: str, fields: Optional[Mapping[str, Any]] = None, request_id: Optional[str] = None) -> None:
        self.log("warn", event, fields, request_id)

    def error(self, event: str, fields: Optional[Mapping[str, Any]] = None, request_id: Optional[str] = None) -> None:
        self.log("error", event, fields, request_id)


AUDIT_ACTIONS = {"CREATE", "READ", "UPDATE", "DELETE"}
AUDIT_OUTCOMES = {"SUCCESS", "FAILED"}


def log_audit_action(
    logger: StructuredLogger,
    request_id: str,
    admin_id: str,
    action: str,
    resource_type: str,
    resource_id: str,
    outcome: str = "SUCCESS",
) -> None:
    """
    Record an admin action as an `admin:audit` event.

    Example:
        log_audit_action(services.logger, ctx.request_id, ctx.admin_id,
                         "DELETE", "quiz", "python_101", "SUCCESS")
    """
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action '{action}'")
    if outcome not in AUDIT_OUTCOMES:
        raise ValueError(f"Unknown audit outcome '{outcome}'")
    logger.info(
        "admin:audit",
        {
            "adminId": admin_id,
            "action": action,
            "resourceType": resource_type,
            "resourceId": resource_id,
            "outcome": outcome,
        },
        request_id,
    )
