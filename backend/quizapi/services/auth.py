"""
QuizAPI Backend - Token Service
================================

What:  Issues and decodes the bearer tokens used by the admin console.
How:   A token is the standard base64 encoding of a JSON payload
       {"role", "sub", "iat", "exp"}. Decoding checks shape and expiry.
Who:   POST /api/v1/auth/login issues tokens; middleware.auth decodes them.

Security Note:
    Tokens are NOT signed. Anyone who can base64-encode JSON can forge an
    admin token. The format is kept for compatibility with tokens already
    issued to clients; replacing it with a MAC over the payload (e.g. HMAC
    with a server secret) is tracked in DESIGN.md.
"""

import base64
import binascii
import hmac
import json
import math
import time
from dataclasses import dataclass
from typing import Literal, Optional

from quizapi.exceptions import AuthError
from quizapi.result import Outcome

Role = Literal["admin", "user"]

ROLES = ("admin", "user")


@dataclass(frozen=True)
class AuthPayload:
    role: str
    sub: str
    iat: Optional[int] = None
    exp: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def generate_token(role: Role = "user", subject: Optional[str] = None, ttl_seconds: int = 86_400) -> str:
    """Issue a token for `role` that expires `ttl_seconds` from now."""
    now = int(time.time())
    payload = {
        "role": role,
        "sub": subject or role,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def _is_timestamp(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def decode_token(token: str, now: Optional[int] = None) -> Outcome[AuthPayload]:
    """
    Decode a bearer token.

    Returns a failed Outcome (AuthError) for malformed, role-less or expired
    tokens; never raises.
    """
    try:
        raw = json.loads(base64.b64decode(token.strip(), validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return Outcome.failure(AuthError("Invalid token"))

    if not isinstance(raw, dict) or raw.get("role") not in ROLES:
        return Outcome.failure(AuthError("Invalid token"))

    exp = raw.get("exp")
    iat = raw.get("iat")
    # NaN, Infinity and 1e400 all parse as floats but are not timestamps
    if not all(_is_timestamp(v) for v in (exp, iat) if v is not None):
        return Outcome.failure(AuthError("Invalid token"))

    if exp is not None and exp < (int(time.time()) if now is None else now):
        return Outcome.failure(AuthError("Token expired"))

    return Outcome.success(
        AuthPayload(
            role=raw["role"],
            sub=str(raw.get("sub") or raw["role"]),
            iat=int(iat) if iat is not None else None,
            exp=int(exp) if exp is not None else None,
        )
    )


def validate_admin_password(candidate: str, expected: str) -> bool:
    """Constant-time comparison of the submitted admin password."""
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
