"""
auth/tokens.py -- Session token, secret comparison, and cookie utilities.

Security design decisions:
  Session token: python-jose JWT with HS256, signed with SECRET_KEY, carrying
       only sub="admin", iat and exp. There is no server-side session table --
       the signed cookie is the whole session. Verification returns None on
       any failure (bad signature, expired, malformed); the gate turns that
       into a redirect or a 401.

  Secret comparison: the admin credential is a single shared secret, not a
       stored hash. Both values are reduced to SHA-256 digests and compared
       with hmac.compare_digest. Equal-length digests plus a constant-time
       compare mean response time does not reveal how many leading
       characters of a guess were right, or how long the real secret is.

  Cookie: httponly (no script access), samesite="strict" (never sent on
       cross-site requests -- the admin area has no inbound cross-site links
       to preserve), secure in production, max_age equal to the token expiry,
       path "/".

Layer rule: no imports from api/, web/, or content/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

logger = logging.getLogger("folio.auth")

SESSION_COOKIE = "admin_session"
_ALGORITHM = "HS256"
_SUBJECT = "admin"


# ---------------------------------------------------------------------------
# Constant-time secret comparison
# ---------------------------------------------------------------------------


def secrets_match(provided: str, expected: str) -> bool:
    """Compare two secrets in time independent of where they first differ."""
    provided_digest = hashlib.sha256(provided.encode("utf-8")).digest()
    expected_digest = hashlib.sha256(expected.encode("utf-8")).digest()
    return hmac.compare_digest(provided_digest, expected_digest)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_session_token(secret_key: str, expire_seconds: int) -> tuple[str, datetime]:
    """Encode a signed session JWT. Returns (token, expires_at)."""
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=expire_seconds)
    payload = {
        "sub": _SUBJECT,
        "iat": now,
        "exp": expires_at,
    }
    return jwt.encode(payload, secret_key, algorithm=_ALGORITHM), expires_at


def decode_session_token(token: str, secret_key: str) -> Optional[dict]:
    """Decode and verify a session JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("sub") != _SUBJECT:
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, max_age: int, secure: bool) -> None:
    """Write the session token as an httpOnly, strict same-site cookie."""
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=max_age,
        path="/",
    )


def clear_session_cookie(response, secure: bool) -> None:
    """Expire the session cookie immediately, with the same flags it was set with."""
    response.set_cookie(
        SESSION_COOKIE,
        value="",
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=0,
        path="/",
    )
