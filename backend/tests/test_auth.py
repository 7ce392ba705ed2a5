"""
QuizAPI Backend - Request Context & Auth Unit Tests
====================================================

What:  Tests for header parsing, request IDs, write-once identity, token
       decoding and the auth gates.

Test Strategy:
    ✅ Client IP from X-Forwarded-For, then X-Real-IP, else "unknown"
    ✅ Request IDs are honoured from the header or generated
    ✅ Identity fields can be set once and only once
    ✅ Valid, expired and malformed tokens decode as expected
    ✅ Credentials come from the bearer header or the admin cookie
"""

import base64
import json
import re
import time

import pytest

from quizapi.exceptions import AuthError
from quizapi.middleware.auth import (
    attach_auth_context,
    extract_bearer_token,
    is_admin_path,
    require_admin,
    require_auth,
)
from quizapi.middleware.request_context import (
    RequestContext,
    attach_request_context,
    generate_request_id,
    get_client_ip,
)
from quizapi.services.auth import decode_token, generate_token, validate_admin_password


def encode(payload) -> str:
    return base64.b64encode(json.dumps(payload).encode()).decode()


class TestRequestContext:
    def test_ip_from_forwarded_for_first_entry(self, make_request):
        request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Real-IP": "10.0.0.9"})
        assert get_client_ip(request) == "203.0.113.5"

    def test_ip_from_real_ip(self, make_request):
        assert get_client_ip(make_request({"X-Real-IP": "10.0.0.9"})) == "10.0.0.9"

    def test_ip_unknown(self, make_request):
        assert get_client_ip(make_request()) == "unknown"

    def test_headers_populate_context(self, make_request):
        ctx = attach_request_context(
            make_request({"X-Request-ID": "abc-123", "User-Agent": "pytest", "X-Real-IP": "1.1.1.1"})
        )
        assert ctx.request_id == "abc-123"
        assert ctx.user_agent == "pytest"
        assert ctx.ip == "1.1.1.1"
        assert ctx.user_id is None
        assert ctx.admin_id is None

    def test_missing_headers_default(self, make_request):
        ctx = attach_request_context(make_request())
        assert ctx.user_agent == "unknown"
        assert re.fullmatch(r"\d{13}-[0-9a-z]{9}", ctx.request_id)

    def test_generated_ids_differ(self):
        assert generate_request_id() != generate_request_id()
        assert generate_request_id("given") == "given"

    def test_identity_is_write_once(self):
        ctx = RequestContext(request_id="r1")
        ctx.user_id = "u1"
        ctx.admin_id = "admin"
        with pytest.raises(RuntimeError):
            ctx.user_id = "u2"
        with pytest.raises(RuntimeError):
            ctx.admin_id = "other"
        assert (ctx.user_id, ctx.admin_id) == ("u1", "admin")
        assert ctx.is_authenticated and ctx.is_admin

    def test_fixed_fields_are_read_only(self):
        ctx = RequestContext(request_id="r1")
        with pytest.raises(AttributeError):
            ctx.request_id = "r2"

    def test_elapsed_is_non_negative(self):
        assert RequestContext(request_id="r1").elapsed_ms() >= 0


class TestTokens:
    def test_round_trip(self):
        outcome = decode_token(generate_token("admin", subject="admin", ttl_seconds=60))
        assert outcome.ok
        payload = outcome.unwrap()
        assert payload.role == "admin"
        assert payload.sub == "admin"
        assert payload.is_admin
        assert payload.exp - payload.iat == 60

    def test_expired(self):
        token = encode({"role": "admin", "sub": "admin", "exp": int(time.time()) - 10})
        outcome = decode_token(token)
        assert not outcome.ok
        assert outcome.error.message == "Token expired"

    def test_explicit_now(self):
        token = encode({"role": "user", "exp": 1_000})
        assert decode_token(token, now=999).ok
        assert not decode_token(token, now=1_001).ok

    @pytest.mark.parametrize(
        "token",
        [
            "not base64 at all!",
            base64.b64encode(b"\xff\xfe").decode(),
            base64.b64encode(b"[1, 2]").decode(),
            encode({"sub": "x"}),
            encode({"role": "root"}),
            encode({"role": "admin", "exp": "tomorrow"}),
            encode({"role": "admin", "exp": float("nan")}),
            encode({"role": "admin", "iat": float("inf")}),
            base64.b64encode(b'{"role": "admin", "exp": 1e400}').decode(),
            encode({"role": "admin", "exp": True}),
        ],
    )
    def test_malformed(self, token):
        outcome = decode_token(token)
        assert not outcome.ok
        assert isinstance(outcome.error, AuthError)
        assert outcome.error.message == "Invalid token"

    def test_subject_defaults_to_role(self):
        assert decode_token(encode({"role": "user"})).unwrap().sub == "user"

    def test_password_comparison(self):
        assert validate_admin_password("s3cret", "s3cret")
        assert not validate_admin_password("s3cret", "S3cret")
        assert not validate_admin_password("", "s3cret")


class TestAttachAuth:
    def test_bearer_admin_token(self, make_request):
        token = generate_token("admin", subject="admin")
        request = make_request({"Authorization": f"Bearer {token}"})
        ctx = attach_request_context(request)

        attach_auth_context(request, ctx)
        assert ctx.user_id == "admin"
        assert ctx.admin_id == "admin"

    def test_user_token_is_not_admin(self, make_request):
        request = make_request({"Authorization": f"Bearer {generate_token('user', subject='u-7')}"})
        ctx = attach_request_context(request)

        attach_auth_context(request, ctx)
        assert ctx.user_id == "u-7"
        assert ctx.admin_id is None

    def test_cookie_only_on_admin_paths(self, make_request):
        cookie = {"Cookie": f"adminToken={generate_token('admin')}"}

        admin_request = make_request(cookie, path="/api/v1/admin/session")
        admin_ctx = attach_request_context(admin_request)
        attach_auth_context(admin_request, admin_ctx)
        assert admin_ctx.admin_id == "admin"

        other_request = make_request(cookie, path="/api/quizzes")
        other_ctx = attach_request_context(other_request)
        attach_auth_context(other_request, other_ctx)
        assert other_ctx.user_id is None

    def test_anonymous_request_untouched(self, make_request):
        request = make_request()
        ctx = attach_request_context(request)
        attach_auth_context(request, ctx)
        assert not ctx.is_authenticated

    @pytest.mark.parametrize("header", ["Bearer garbage", "Basic dXNlcjpwYXNz", "Bearer "])
    def test_invalid_credential_rejected(self, make_request, header):
        request = make_request({"Authorization": header})
        ctx = attach_request_context(request)
        with pytest.raises(AuthError, match="Invalid token"):
            attach_auth_context(request, ctx)
        assert ctx.user_id is None

    @pytest.mark.parametrize("raw", [b'{"role": "admin", "exp": NaN}', b'{"role": "admin", "iat": Infinity}'])
    def test_non_finite_timestamps_rejected(self, make_request, raw):
        request = make_request({"Authorization": f"Bearer {base64.b64encode(raw).decode()}"})
        ctx = attach_request_context(request)
        with pytest.raises(AuthError, match="Invalid token"):
            attach_auth_context(request, ctx)
        assert ctx.admin_id is None

    def test_extract_prefers_header_over_cookie(self, make_request):
        request = make_request(
            {"Authorization": "Bearer from-header", "Cookie": "adminToken=from-cookie"},
            path="/admin/quizzes",
        )
        assert extract_bearer_token(request) == "from-header"

    def test_admin_path_matching(self):
        assert is_admin_path("/admin")
        assert is_admin_path("/api/v1/admin/session")
        assert not is_admin_path("/administrator")


class TestGates:
    def test_require_auth(self):
        ctx = RequestContext(request_id="r1")
        with pytest.raises(AuthError):
            require_auth(ctx)
        ctx.user_id = "u1"
        assert require_auth(ctx) == "u1"

    def test_require_admin(self):
        ctx = RequestContext(request_id="r1")
        ctx.user_id = "u1"
        with pytest.raises(AuthError) as exc_info:
            require_admin(ctx)
        assert exc_info.value.status == 401
        ctx.admin_id = "admin"
        assert require_admin(ctx) == "admin"
