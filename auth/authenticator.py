"""
auth/authenticator.py -- Shared-secret admin login.

Order of operations in login() is part of the security contract:

  1. Rate limit. The attempt is counted and, if over the limit, rejected
     before the secret is looked at. Racing parallel requests cannot get
     extra comparisons in, because the check-and-increment is atomic in
     RateLimiter and happens first.
  2. Configuration. No ADMIN_PASSWORD -> MisconfiguredSecret. It is logged
     at error level but the client sees the same 401 as a wrong password,
     so the response does not reveal how the server is configured.
  3. Constant-time comparison (auth.tokens.secrets_match).
  4. Success resets the client's counter and mints a session token.
     Failure is logged at warning level; the remaining-attempts count is
     never returned to the client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from auth.ratelimit import RateLimiter
from auth.tokens import create_session_token, secrets_match
from core.config import Settings
from core.errors import MisconfiguredSecret, RateLimited

logger = logging.getLogger("folio.auth")


@dataclass(frozen=True)
class LoginResult:
    ok: bool
    token: Optional[str] = None
    expires_at: Optional[datetime] = None


class Authenticator:
    def __init__(self, settings: Settings, limiter: RateLimiter) -> None:
        self.settings = settings
        self.limiter = limiter

    @staticmethod
    def limiter_key(client_id: str) -> str:
        return f"login:{client_id}"

    def login(self, provided_secret: str, client_id: str) -> LoginResult:
        """Check a submitted password. Raises RateLimited or MisconfiguredSecret."""
        key = self.limiter_key(client_id)
        limit = self.limiter.check(
            key,
            self.settings.login_max_attempts,
            self.settings.login_window_seconds,
        )
        if not limit.allowed:
            logger.warning("Login rate limit exceeded for %s (retry in %ss)", client_id, limit.retry_after)
            raise RateLimited(retry_after=limit.retry_after or 1, reset_at=limit.reset_at)

        expected = self.settings.admin_password
        if not expected:
            logger.error("Admin login attempted but ADMIN_PASSWORD is not configured (client=%s)", client_id)
            raise MisconfiguredSecret()

        if not secrets_match(provided_secret, expected):
            logger.warning("Failed admin login attempt from %s", client_id)
            return LoginResult(ok=False)

        self.limiter.reset(key)
        token, expires_at = create_session_token(
            self.settings.secret_key,
            self.settings.session_expire_seconds,
        )
        logger.info("Successful admin login from %s", client_id)
        return LoginResult(ok=True, token=token, expires_at=expires_at)
