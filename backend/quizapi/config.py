"""
QuizAPI Backend - Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a module-level `settings` object.
       `create_app()` accepts an explicit Settings instance so tests can
       build isolated apps without touching the environment.
Who:   Imported by the app factory and the service container.
When:  Loaded once at module import time; validated before app starts.
"""

from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Level names understood by the structured logger, lowest first
LOG_LEVELS = ("debug", "info", "warn", "error")

DEFAULT_REDACT_FIELDS = "password,token,authorization,credit_card"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development-friendly defaults. Production deployments
    MUST override ADMIN_PASSWORD and CORS_ORIGINS.
    """

    # ── Runtime Environment ───────────────────────────────────────────────
    # Stack traces are attached to logs and error envelopes outside production
    environment: Literal["development", "test", "production"] = Field(
        default="production",
        description="Deployment environment name",
    )

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: debug, info, warn, error ("warning" is accepted as "warn")
    log_level: str = Field(default="info")

    # Comma-separated, case-insensitive substrings of field names to redact
    log_redact_fields: str = Field(default=DEFAULT_REDACT_FIELDS)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalises the level name and rejects anything unknown."""
        lower = v.strip().lower()
        if lower == "warning":
            lower = "warn"
        if lower not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {LOG_LEVELS}")
        return lower

    @property
    def redact_fields_list(self) -> List[str]:
        """Splits LOG_REDACT_FIELDS, dropping blanks (a blank would match every key)."""
        return [f.strip() for f in self.log_redact_fields.split(",") if f.strip()]

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # Fixed-window counter per client IP
    rate_limit_window_ms: int = Field(default=60_000, ge=1_000, le=86_400_000)
    rate_limit_max_requests: int = Field(default=100, ge=1, le=100_000)

    # ── Authentication ────────────────────────────────────────────────────
    admin_password: str = Field(default="admin123")
    token_ttl_seconds: int = Field(default=86_400, ge=60)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    @property
    def expose_traces(self) -> bool:
        return self.environment != "production"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # LOG_LEVEL and log_level both work
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that security-sensitive settings were overridden.
        When:  Called during app startup (lifespan).
        """
        errors = []
        if self.environment == "production" and self.admin_password == "admin123":
            errors.append("ADMIN_PASSWORD is still the default value.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Module-level instance used by `uvicorn quizapi.main:app`
settings = Settings()
