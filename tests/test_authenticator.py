"""
tests/test_authenticator.py -- Unit tests for secret comparison, session tokens
and the Authenticator's order of operations.

Coverage:
  - secrets_match() goes through hmac.compare_digest
  - comparison time does not depend on where the secrets differ (coarse bound)
  - session tokens: round trip, wrong key, expiry, foreign subject
  - login(): success resets the counter, failure returns ok=False,
    missing secret raises MisconfiguredSecret, and the rate limit is checked
    before any comparison
"""

from __future__ import annotations

import hmac
import timeit
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from jose import jwt

from auth.authenticator import Authenticator
from auth.ratelimit import RateLimiter
from auth.tokens import create_session_token, decode_session_token, secrets_match
from core.config import Settings
from core.errors import MisconfiguredSecret, RateLimited, Unauthorized

SECRET_KEY = "k" * 48
PASSWORD = "s3cret-admin-password-for-tests"


def _settings(**overrides) -> Settings:
    values = {"debug": True, "secret_key": SECRET_KEY, "admin_password": PASSWORD}
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Secret comparison
# ---------------------------------------------------------------------------


class TestSecretsMatch:
    def test_equal_and_unequal(self) -> None:
        assert secrets_match(PASSWORD, PASSWORD) is True
        assert secrets_match(PASSWORD + "x", PASSWORD) is False
        assert secrets_match("", PASSWORD) is False

    def test_uses_compare_digest(self) -> None:
        with patch("auth.tokens.hmac.compare_digest", wraps=hmac.compare_digest) as spy:
            secrets_match("abc", "abd")
        spy.assert_called_once()
        provided, expected = spy.call_args.args
        # Digests, so the comparison length never depends on the input length.
        assert len(provided) == len(expected) == 32

    def test_timing_independent_of_mismatch_position(self) -> None:
        expected = "a" * 64
        differs_last = "a" * 63 + "b"
        differs_first = "b" + "a" * 63

        def best(candidate: str) -> float:
            return min(timeit.repeat(lambda: secrets_match(candidate, expected), number=2000, repeat=7))

        late = best(differs_last)
        early = best(differs_first)
        # Coarse bound: a short-circuiting comparison would not show up here,
        # but a grossly position-dependent one would.
        assert 0.5 < late / early < 2.0


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


class TestSessionToken:
    def test_round_trip(self) -> None:
        token, expires_at = create_session_token(SECRET_KEY, 3600)
        payload = decode_session_token(token, SECRET_KEY)
        assert payload is not None
        assert payload["sub"] == "admin"
        assert expires_at > datetime.now(timezone.utc)

    def test_wrong_key_rejected(self) -> None:
        token, _ = create_session_token(SECRET_KEY, 3600)
        assert decode_session_token(token, "z" * 48) is None

    def test_expired_rejected(self) -> None:
        token, _ = create_session_token(SECRET_KEY, -10)
        assert decode_session_token(token, SECRET_KEY) is None

    def test_garbage_rejected(self) -> None:
        assert decode_session_token("not-a-jwt", SECRET_KEY) is None

    def test_foreign_subject_rejected(self) -> None:
        token = jwt.encode({"sub": "someone-else"}, SECRET_KEY, algorithm="HS256")
        assert decode_session_token(token, SECRET_KEY) is None


# ---------------------------------------------------------------------------
# Authenticator
# ---------------------------------------------------------------------------


class TestAuthenticator:
    def test_success_mints_token(self) -> None:
        auth = Authenticator(_settings(), RateLimiter())
        result = auth.login(PASSWORD, "1.2.3.4")
        assert result.ok is True
        assert decode_session_token(result.token, SECRET_KEY) is not None
        assert result.expires_at > datetime.now(timezone.utc)

    def test_wrong_secret(self) -> None:
        auth = Authenticator(_settings(), RateLimiter())
        result = auth.login(PASSWORD[:-1] + "X", "1.2.3.4")
        assert result.ok is False
        assert result.token is None

    def test_missing_secret_raises_misconfigured(self) -> None:
        auth = Authenticator(_settings(admin_password=""), RateLimiter())
        with pytest.raises(MisconfiguredSecret) as exc_info:
            auth.login("anything", "1.2.3.4")
        # Indistinguishable from a bad password at the HTTP layer.
        assert isinstance(exc_info.value, Unauthorized)
        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "unauthorized"

    def test_rate_limit_checked_before_comparison(self) -> None:
        auth = Authenticator(_settings(), RateLimiter())
        with patch("auth.authenticator.secrets_match", return_value=False) as compare:
            for _ in range(5):
                assert auth.login("wrong", "9.9.9.9").ok is False
            with pytest.raises(RateLimited) as exc_info:
                auth.login(PASSWORD, "9.9.9.9")
        assert compare.call_count == 5
        assert exc_info.value.retry_after >= 1

    def test_correct_password_is_still_locked_out(self) -> None:
        auth = Authenticator(_settings(), RateLimiter())
        for _ in range(5):
            auth.login("wrong", "9.9.9.9")
        with pytest.raises(RateLimited):
            auth.login(PASSWORD, "9.9.9.9")

    def test_success_resets_counter(self) -> None:
        limiter = RateLimiter()
        auth = Authenticator(_settings(), limiter)
        for _ in range(4):
            auth.login("wrong", "5.5.5.5")
        assert auth.login(PASSWORD, "5.5.5.5").ok is True
        assert limiter.status(Authenticator.limiter_key("5.5.5.5"), 5).remaining == 5

    def test_limit_is_per_client(self) -> None:
        auth = Authenticator(_settings(), RateLimiter())
        for _ in range(5):
            auth.login("wrong", "1.1.1.1")
        assert auth.login(PASSWORD, "2.2.2.2").ok is True

    def test_uses_configured_limits(self) -> None:
        auth = Authenticator(_settings(login_max_attempts=2, login_window_seconds=60), RateLimiter())
        auth.login("wrong", "c")
        auth.login("wrong", "c")
        with pytest.raises(RateLimited) as exc_info:
            auth.login("wrong", "c")
        assert exc_info.value.retry_after <= 60
