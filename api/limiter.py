"""
api/limiter.py -- slowapi limiter applied to every route as a coarse flood guard.

SlowAPIMiddleware applies default_limits to every route that is not exempt,
so no per-route decorators are needed. The limiter is built per application
by create_app() and attached to app.state.limiter (SlowAPI looks it up there
by convention) rather than living at module level.

This is separate from auth.ratelimit.RateLimiter, which counts login attempts
and supports reset-on-success. slowapi has no notion of "forget this client's
failures", so it cannot serve that purpose.
"""

from slowapi import Limiter

from auth.dependencies import client_id
from core.config import Settings


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=client_id,
        default_limits=[settings.api_rate_limit],
        storage_uri="memory://",
    )
