"""
API request and response models for the Folio Admin REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in content/models.py, which own
the internal domain representation. Route handlers map between the two.

Every request body has its own model, so a handler never sees a dynamically
shaped dict: the body either decodes into the model or the request is
rejected with a 422 validation_error before the handler runs.

Wire format is camelCase (the admin UI and the public site are JavaScript);
the models use snake_case attributes with a camelCase alias generator and
accept either spelling on input.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from content.models import BlogPost

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    """One field-level validation message."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    details: Optional[list[FieldError]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/admin/login."""

    password: str = Field(min_length=1, max_length=1024)


class LoginResponse(BaseModel):
    """Login success body. Token fields sit beside `success`, not under `data`."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    token: str
    expires_at: int  # epoch milliseconds


# ---------------------------------------------------------------------------
# Admin data
# ---------------------------------------------------------------------------


class AdminDataUpdate(BaseModel):
    """Request body for POST /api/admin.

    file is checked against the FileStore whitelist by the handler; the model
    only bounds its size. data is any JSON object or array.
    """

    file: str = Field(min_length=1, max_length=100)
    data: Union[dict[str, Any], list[Any]]


# ---------------------------------------------------------------------------
# Blog
# ---------------------------------------------------------------------------


class BlogPostMetadata(BaseModel):
    """Blog metadata as sent by the admin editor.

    Only types are enforced here. Required fields, lengths and date syntax are
    checked by BlogRepository so the same rules hold for every caller.
    """

    model_config = _WIRE

    slug: str = Field(max_length=1000)
    title: str = ""
    description: str = ""
    published_date: str = ""
    updated_date: Optional[str] = None
    author: str = ""
    tags: list[str] = Field(default_factory=list, max_length=50)
    published: bool = False
    reading_time: Optional[int] = None
    featured_image: Optional[str] = None

    def to_domain(self) -> BlogPost:
        return BlogPost(
            slug=self.slug,
            title=self.title,
            description=self.description,
            published_date=self.published_date,
            updated_date=self.updated_date,
            author=self.author,
            tags=list(self.tags),
            published=self.published,
            reading_time=self.reading_time,
            featured_image=self.featured_image,
        )


class BlogPostPayload(BaseModel):
    """Request body for POST and PUT /api/admin/blog."""

    metadata: BlogPostMetadata
    content: str = Field(max_length=2_000_000)
