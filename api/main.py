"""
api/main.py -- FastAPI application factory for Folio Admin.

create_app() builds one application with all of its state attached to
app.state. Nothing mutable lives at module level: the login RateLimiter, the
slowapi limiter, the FileStore and the BlogRepository are all created here,
once per process, and discarded with the app. Tests build an app per module
with their own Settings and data directory.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. log_requests          -- method, path, status, latency, client
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. CORSMiddleware        -- adds CORS headers for allowed browser origins
  4. SlowAPIMiddleware     -- default per-client request limit on every route
  5. admin_gate            -- the only authorization checkpoint for /admin
                              and /api/admin; runs before any route handler

Starlette puts the most recently added middleware outermost, so they are
registered below in reverse of that list.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import build_limiter
from api.models import HealthResponse
from api.responses import failure
from api.routes.admin import router as admin_router
from api.routes.auth import router as auth_router
from api.routes.blog import router as blog_router
from auth.authenticator import Authenticator
from auth.dependencies import has_valid_session
from auth.gate import API_PREFIX, DASHBOARD, GateDecision, evaluate, is_api_path, login_redirect_url
from auth.ratelimit import RateLimiter
from content.blog import BlogRepository
from content.filestore import FileStore
from content.revalidate import build_notifier
from core.config import Settings, get_settings
from core.errors import (
    AdminDisabled,
    AdminError,
    InvalidSlug,
    NotWhitelisted,
    PersistenceError,
    RateLimited,
    Unauthorized,
    ValidationError,
)

VERSION = "0.3.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("folio.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare storage directories and report blog consistency on startup."""
    settings: Settings = app.state.settings
    logger.info("Folio Admin starting up (admin_enabled=%s, debug=%s)", settings.admin_enabled, settings.debug)
    for directory in (settings.data_dir, settings.blog_dir, settings.uploads_dir):
        directory.mkdir(parents=True, exist_ok=True)

    missing, unindexed = app.state.blog.find_orphans()
    if missing or unindexed:
        logger.warning(
            "Blog index and content files disagree: missing content for %s, unindexed files %s",
            missing,
            unindexed,
        )
    if not settings.admin_password:
        logger.warning("ADMIN_PASSWORD is not set -- admin login will be refused")

    yield

    close = getattr(app.state.notifier, "close", None)
    if close is not None:
        close()
    logger.info("Folio Admin shutdown complete")


# ---------------------------------------------------------------------------
# Gate middleware
# ---------------------------------------------------------------------------


async def admin_gate(request: Request, call_next):
    """Allow, redirect or reject every request under /admin and /api/admin.

    This is the sole authorization check. Route handlers behind it assume the
    caller is authenticated and never look at the session themselves.
    """
    path = request.url.path
    settings: Settings = request.app.state.settings
    decision = evaluate(
        path,
        request.method,
        enabled=settings.admin_enabled,
        authenticated=has_valid_session(request),
    )

    if decision in (GateDecision.PASS, GateDecision.ALLOW):
        return await call_next(request)
    if decision is GateDecision.TO_DASHBOARD:
        return RedirectResponse(DASHBOARD, status_code=302)
    if decision is GateDecision.DISABLED:
        if is_api_path(path):
            return _error_response(AdminDisabled())
        return PlainTextResponse("Not Found", status_code=404)
    if decision is GateDecision.UNAUTHORIZED:
        return _error_response(Unauthorized())
    return RedirectResponse(login_redirect_url(path), status_code=302)


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {success: false, error: {...}} envelope so
# clients can parse errors uniformly.
# ---------------------------------------------------------------------------


def _error_response(exc: AdminError) -> JSONResponse:
    details = exc.fields if isinstance(exc, ValidationError) else None
    resp = failure(exc.code, exc.message, exc.status_code, details)
    if isinstance(exc, RateLimited):
        resp.headers["Retry-After"] = str(exc.retry_after)
        resp.headers["X-RateLimit-Remaining"] = "0"
        resp.headers["X-RateLimit-Reset"] = str(int(exc.reset_at))
    return resp


async def admin_error_handler(request: Request, exc: AdminError) -> JSONResponse:
    """Translate the domain error taxonomy into the response envelope.

    NotWhitelisted and InvalidSlug look like probing and are logged at warning
    level. PersistenceError detail was already logged where it was raised; the
    client only gets the generic message.
    """
    if isinstance(exc, (NotWhitelisted, InvalidSlug)):
        logger.warning(
            "Rejected %s on %s %s from %s: %s",
            exc.code,
            request.method,
            request.url.path,
            request.client.host if request.client else "unknown",
            exc.message,
        )
    elif isinstance(exc, PersistenceError):
        logger.error("Persistence failure on %s %s", request.method, request.url.path)
    elif isinstance(exc, ValidationError):
        logger.info("Validation failed on %s %s: %s", request.method, request.url.path, exc.fields)
    return _error_response(exc)


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when the slowapi default limit is exceeded.

    Must stay synchronous: SlowAPIMiddleware calls this handler directly
    rather than awaiting it.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    resp = failure("rate_limited", "Too many requests.", 429)
    resp.headers["Retry-After"] = str(retry_after)
    return resp


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with one field message per pydantic error."""
    fields = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value."),
        }
        for err in exc.errors()
    ]
    logger.info("Request validation failed on %s %s: %d error(s)", request.method, request.url.path, len(fields))
    return failure("validation_error", "Request validation failed.", 422, fields)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured body for routing-level errors (404, 405)."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed."
    return failure(f"http_{exc.status_code}", message, exc.status_code)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the server log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return failure("internal_error", "An unexpected error occurred.", 500)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


async def health() -> HealthResponse:
    """Return API liveness and current version. Public and never rate limited."""
    return HealthResponse(version=VERSION)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Folio Admin API",
        description="Authentication and flat-file content persistence for a portfolio site.",
        version=VERSION,
        lifespan=lifespan,
        # No public API docs: the schema describes the admin surface.
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    notifier = build_notifier(
        settings.revalidate_url,
        token=settings.revalidate_token,
        timeout=settings.revalidate_timeout,
    )
    store = FileStore(settings.data_dir, notifier=notifier)
    rate_limiter = RateLimiter(max_keys=settings.rate_limit_max_keys)

    app.state.settings = settings
    app.state.notifier = notifier
    app.state.store = store
    app.state.blog = BlogRepository(store, settings.blog_dir, settings.uploads_dir)
    app.state.rate_limiter = rate_limiter
    app.state.authenticator = Authenticator(settings, rate_limiter)
    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = build_limiter(settings)

    app.middleware("http")(admin_gate)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
        max_age=3600,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)
    app.middleware("http")(log_requests)

    app.add_exception_handler(AdminError, admin_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(auth_router, prefix=API_PREFIX, tags=["Auth"])
    app.include_router(blog_router, prefix=API_PREFIX, tags=["Blog"])
    app.include_router(admin_router, prefix=API_PREFIX, tags=["Admin data"])
    app.add_api_route("/api/health", health, methods=["GET"], tags=["Health"])
    app.state.limiter.exempt(health)
    # Web UI router is mounted by asgi.py, not here.

    return app
