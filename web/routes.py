"""
web/routes.py -- Jinja2 template routes for the admin UI shell.

These routes serve server-rendered HTML. They share app.state with the API
routes (same Authenticator, FileStore and BlogRepository) but return HTML and
redirects instead of JSON. The gate middleware has already decided whether
the caller may see a page by the time any handler here runs.

Routes:
  GET  /admin/login   -- login form (logged-in users are sent to /admin by the gate)
  POST /admin/login   -- handle password login, redirect to ?next=
  POST /admin/logout  -- clear cookie, redirect to /admin/login
  GET  /admin         -- dashboard: editable documents and blog posts
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.authenticator import Authenticator
from auth.dependencies import client_id
from auth.gate import LOGIN_PAGE, safe_next
from auth.tokens import clear_session_cookie, set_session_cookie
from content.blog import BlogRepository
from content.filestore import ADMIN_EDITABLE, RESOURCES
from core.errors import MisconfiguredSecret, RateLimited

logger = logging.getLogger("folio.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# Whitelist mapping for ?error= query params on /admin/login [M3].
# The raw query param is NEVER passed to templates -- only the message from
# this dict is.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid credentials.",
    "rate_limited": "Too many login attempts. Please try again later.",
}


def _login_error(code: str, next_url: Optional[str]) -> RedirectResponse:
    query = {"error": code}
    if next_url:
        query["next"] = next_url
    return RedirectResponse(f"{LOGIN_PAGE}?{urlencode(query)}", status_code=302)


@router.get("/admin/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the password form."""
    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""))
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "error_msg": error_msg,
            "next_url": safe_next(request.query_params.get("next")),
        },
    )


@router.post("/admin/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    password: str = Form(...),
    next_param: Optional[str] = Form(default=None, alias="next"),
) -> RedirectResponse:
    """Handle the login form submission."""
    authenticator: Authenticator = request.app.state.authenticator
    settings = request.app.state.settings
    next_url = next_param or request.query_params.get("next")

    try:
        result = authenticator.login(password, client_id(request))
    except RateLimited:
        return _login_error("rate_limited", next_url)
    except MisconfiguredSecret:
        # Same message as a wrong password.
        return _login_error("bad_credentials", next_url)
    if not result.ok:
        return _login_error("bad_credentials", next_url)

    resp = RedirectResponse(safe_next(next_url), status_code=302)  # [C2]
    set_session_cookie(resp, result.token, settings.session_expire_seconds, settings.cookie_secure)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/admin/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and redirect to the login page."""
    logger.info("Admin logged out from %s", client_id(request))
    resp = RedirectResponse(LOGIN_PAGE, status_code=302)
    clear_session_cookie(resp, request.app.state.settings.cookie_secure)
    return resp


@router.get("/admin", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    """List the editable documents and the blog index."""
    blog: BlogRepository = request.app.state.blog
    posts = sorted(blog.list_posts(), key=lambda p: p.published_date or "", reverse=True)
    missing, unindexed = blog.find_orphans()
    documents = [{"name": name, "file": RESOURCES[name]} for name in sorted(ADMIN_EDITABLE)]
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "documents": documents,
            "posts": posts,
            "missing": missing,
            "unindexed": unindexed,
        },
    )
