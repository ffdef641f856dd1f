"""
api/routes/blog.py -- Blog post CRUD over BlogRepository.

Routes:
  GET    /api/admin/blog          -- list index entries
  POST   /api/admin/blog          -- create {metadata, content}; 201
  PUT    /api/admin/blog          -- update {metadata, content}
  DELETE /api/admin/blog?slug=    -- delete post, body and uploads
  GET    /api/admin/blog/{slug}   -- metadata + markdown body

Slug validation, duplicate detection and the two-file consistency protocol
all live in BlogRepository. Handlers only decode the body and shape the
response; repository errors propagate to the exception handlers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import BlogPostPayload
from api.responses import success
from content.blog import BlogRepository
from core.errors import ValidationError

router = APIRouter()


def _repo(request: Request) -> BlogRepository:
    return request.app.state.blog


@router.get("/blog")
def list_posts(request: Request) -> JSONResponse:
    return success([post.to_dict() for post in _repo(request).list_posts()])


@router.post("/blog")
def create_post(request: Request, body: BlogPostPayload) -> JSONResponse:
    post = _repo(request).create(body.metadata.to_domain(), body.content)
    return success(post.to_dict(), status_code=201)


@router.put("/blog")
def update_post(request: Request, body: BlogPostPayload) -> JSONResponse:
    post = _repo(request).update(body.metadata.to_domain(), body.content)
    return success(post.to_dict())


@router.delete("/blog")
def delete_post(request: Request, slug: Optional[str] = None) -> JSONResponse:
    if not slug:
        raise ValidationError(
            "Slug parameter is required.",
            fields=[{"field": "slug", "message": "Slug parameter is required."}],
        )
    _repo(request).delete(slug)
    return success({"message": "Blog post deleted successfully."})


@router.get("/blog/{slug}")
def read_post(request: Request, slug: str) -> JSONResponse:
    post, content = _repo(request).get(slug)
    return success({"metadata": post.to_dict(), "content": content})
