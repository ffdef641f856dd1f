"""
api/routes/auth.py -- Admin login and logout.

Routes:
  POST /api/admin/login   -- password login; sets the session cookie
  POST /api/admin/logout  -- clears the session cookie

Security:
  [H2] Login attempts are counted per client by the app's RateLimiter
       (5 per 15 minutes by default) before the password is compared.
  [C1] Authenticator.login() owns the constant-time comparison -- never
       compare the password inline here.
  [M5] Cache-Control: no-store on every response (api.responses).
  Wrong password and missing server configuration produce the same 401 body.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse
from api.responses import success
from auth.authenticator import Authenticator
from auth.dependencies import client_id
from auth.tokens import clear_session_cookie, set_session_cookie
from core.errors import Unauthorized

# The gate lets the login path through without a session; logout needs one
# like every other admin API route.
router = APIRouter()


@router.post("/login")
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with the shared admin password; set the session cookie.

    RateLimited and MisconfiguredSecret raised by the authenticator propagate
    to the exception handlers in api/main.py.
    """
    authenticator: Authenticator = request.app.state.authenticator
    settings = request.app.state.settings

    result = authenticator.login(body.password, client_id(request))
    if not result.ok:
        raise Unauthorized("Invalid credentials.")

    payload = LoginResponse(token=result.token, expires_at=int(result.expires_at.timestamp() * 1000))
    resp = JSONResponse(content=payload.model_dump(by_alias=True))
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    set_session_cookie(resp, result.token, settings.session_expire_seconds, settings.cookie_secure)
    return resp


@router.post("/logout")
def logout(request: Request) -> JSONResponse:
    """Clear the session cookie."""
    resp = success({"message": "Logged out successfully."})
    clear_session_cookie(resp, request.app.state.settings.cookie_secure)
    return resp
