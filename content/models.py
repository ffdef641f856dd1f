"""
content/models.py -- Domain dataclasses for admin-managed content.

Pattern: Data class (pure data container, zero logic beyond mapping). The
stores and routes do the work; these own the shape.

The blog index on disk is consumed by the public site, which expects
camelCase keys (publishedDate, readingTime, ...). to_dict()/from_dict() are
the only places that know about that spelling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

# snake_case attribute -> camelCase key in blog-posts.json
_BLOG_KEYS: dict[str, str] = {
    "slug": "slug",
    "title": "title",
    "description": "description",
    "published_date": "publishedDate",
    "updated_date": "updatedDate",
    "author": "author",
    "tags": "tags",
    "published": "published",
    "reading_time": "readingTime",
    "featured_image": "featuredImage",
}


@dataclass
class BlogPost:
    """Metadata for one blog post. The body lives in <blog_dir>/<slug>.md.

    updated_date, reading_time and featured_image are omitted from the
    serialized form when unset so the index stays compact.
    """

    slug: str
    title: str
    published_date: str
    author: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    published: bool = False
    reading_time: Optional[int] = None
    updated_date: Optional[str] = None
    featured_image: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for attr, key in _BLOG_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            out[key] = list(value) if attr == "tags" else value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlogPost":
        kwargs = {attr: data[key] for attr, key in _BLOG_KEYS.items() if key in data}
        kwargs.setdefault("slug", "")
        kwargs.setdefault("title", "")
        kwargs.setdefault("published_date", "")
        return cls(**kwargs)
