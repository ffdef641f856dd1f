"""
core/errors.py -- Error taxonomy shared by the stores, the authenticator and the API.

Every domain failure is an AdminError subclass carrying three things the HTTP
layer needs: a stable machine-readable code, the status code, and a message
that is safe to show a client. Exception handlers in api/main.py translate
these into the {success: false, error: {...}} envelope, so route handlers can
let them propagate instead of building error responses by hand.

The message never contains a filesystem path or an exception repr. Server-side
detail (the original OSError, the offending resource name) is logged where
the error is raised.

Layer rule: core/ is the kernel. No imports from api/, web/, auth/, or content/.
"""

from __future__ import annotations

from typing import Optional


class AdminError(Exception):
    """Base class for all errors surfaced through the admin API."""

    code = "internal_error"
    status_code = 500
    message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AdminError):
    """Malformed input. Carries a field-level message list."""

    code = "validation_error"
    status_code = 422
    message = "Request validation failed."

    def __init__(self, message: Optional[str] = None, fields: Optional[list[dict]] = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class Unauthorized(AdminError):
    code = "unauthorized"
    status_code = 401
    message = "Authentication required."


class MisconfiguredSecret(Unauthorized):
    """No admin secret is configured on the server.

    Subclasses Unauthorized so the client sees exactly the same code, status
    and body as a wrong password. Only the server log tells them apart.
    """

    message = "Invalid credentials."


class RateLimited(AdminError):
    code = "rate_limited"
    status_code = 429
    message = "Too many attempts. Please try again later."

    def __init__(self, retry_after: int, reset_at: float, message: Optional[str] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.reset_at = reset_at


class AdminDisabled(AdminError):
    code = "forbidden"
    status_code = 403
    message = "The admin area is disabled in this environment."


class NotWhitelisted(AdminError):
    """Resource name outside the fixed whitelist -- possible probing."""

    code = "not_whitelisted"
    status_code = 400
    message = "Unknown resource."


class InvalidSlug(AdminError):
    """Slug failed validation -- possible path traversal attempt."""

    code = "invalid_slug"
    status_code = 400
    message = "Slug must contain only lowercase letters, numbers, and hyphens."


class NotFound(AdminError):
    code = "not_found"
    status_code = 404
    message = "Not found."


class DuplicateSlug(AdminError):
    code = "duplicate_slug"
    status_code = 409
    message = "A blog post with this slug already exists."


class PersistenceError(AdminError):
    """Filesystem failure. Reported to the client as a generic server error."""

    code = "internal_error"
    status_code = 500
    message = "Failed to persist data."
