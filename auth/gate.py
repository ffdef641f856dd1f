"""
auth/gate.py -- Authorization decision for the admin surface.

This is the single authorization checkpoint. The middleware in api/main.py
calls evaluate() for every request before routing, and no route handler
re-checks the session. Keeping the decision a pure function of
(path, method, enabled, authenticated) makes every branch unit-testable
without an ASGI stack.

Decisions:
  PASS          -- not an admin path; the gate has no opinion.
  ALLOW         -- admin path with a valid session, or a login path.
  TO_DASHBOARD  -- GET of the login page while already logged in.
  REDIRECT      -- admin page without a session -> /admin/login?next=...
  UNAUTHORIZED  -- admin API without a session -> 401 JSON.
  DISABLED      -- admin surface switched off for this deployment.

Layer rule: no imports from api/, web/, or content/.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
from urllib.parse import quote

PAGE_PREFIX = "/admin"
API_PREFIX = "/api/admin"
LOGIN_PAGE = "/admin/login"
LOGIN_API = "/api/admin/login"
DASHBOARD = "/admin"


class GateDecision(str, Enum):
    PASS = "pass"
    ALLOW = "allow"
    TO_DASHBOARD = "to_dashboard"
    REDIRECT = "redirect"
    UNAUTHORIZED = "unauthorized"
    DISABLED = "disabled"


def _under(path: str, prefix: str) -> bool:
    # "/adminx" is not under "/admin".
    return path == prefix or path.startswith(prefix + "/")


def is_api_path(path: str) -> bool:
    return _under(path, API_PREFIX)


def is_protected(path: str) -> bool:
    return _under(path, PAGE_PREFIX) or _under(path, API_PREFIX)


def evaluate(path: str, method: str, *, enabled: bool, authenticated: bool) -> GateDecision:
    if not is_protected(path):
        return GateDecision.PASS
    if not enabled:
        return GateDecision.DISABLED
    if path in (LOGIN_PAGE, LOGIN_API):
        if authenticated and path == LOGIN_PAGE and method == "GET":
            return GateDecision.TO_DASHBOARD
        return GateDecision.ALLOW
    if authenticated:
        return GateDecision.ALLOW
    if is_api_path(path):
        return GateDecision.UNAUTHORIZED
    return GateDecision.REDIRECT


def login_redirect_url(path: str) -> str:
    """Login URL carrying the requested path as a relative return target."""
    return f"{LOGIN_PAGE}?next={quote(path, safe='/')}"


def safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths. [C2]

    Prevents open redirect attacks where an attacker crafts a URL like:
      /admin/login?next=https://attacker.com  or  ?next=//attacker.com
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//") and "\\" not in next_url:
        return next_url
    return DASHBOARD
