"""
auth/dependencies.py -- Request helpers for authentication.

has_valid_session() is what the gate middleware asks about every admin
request. It only reads the session cookie -- the admin API is used by the
browser-based admin UI, so there is no Bearer or API-key path.

client_id() derives the identity that rate limits are keyed by. By default
that is the socket peer address. Forwarding headers are client-controlled
unless a proxy in front rewrites them, so they are read only when
TRUST_PROXY_HEADERS is on, checked in order of how specific the proxy is.

Layer rule: no imports from web/ or content/. May import from fastapi/starlette
because these helpers operate on Request objects.
"""

from __future__ import annotations

from fastapi import Request
from slowapi.util import get_remote_address

from auth.tokens import SESSION_COOKIE, decode_session_token

_IP_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip", "x-vercel-forwarded-for")


def client_id(request: Request) -> str:
    """Client address: the socket peer, or proxy headers when they are trusted."""
    if request.app.state.settings.trust_proxy_headers:
        for header in _IP_HEADERS:
            value = request.headers.get(header, "")
            if value:
                # X-Forwarded-For is a list; the first entry is the original client.
                return value.split(",")[0].strip()
    return get_remote_address(request) or "unknown"


def has_valid_session(request: Request) -> bool:
    """True if the request carries a well-formed, unexpired, correctly signed session cookie."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return False
    settings = request.app.state.settings
    return decode_session_token(token, settings.secret_key) is not None
