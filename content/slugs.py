"""
content/slugs.py -- Slug validation for blog post identifiers.

A slug is used twice: as the key in the blog index and as a filename
component (<blog_dir>/<slug>.md, <uploads_dir>/<slug>/). Every externally
supplied slug must pass through validate_slug() before it is joined into a
path. BlogRepository is the only caller that touches the filesystem with a
slug, and it calls this first on every operation.
"""

from __future__ import annotations

import re
from typing import Optional

from core.errors import InvalidSlug

MAX_SLUG_LENGTH = 200

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
_SLUG_RE = re.compile(SLUG_PATTERN)


def validate_slug(raw: Optional[str]) -> str:
    """Return the normalized slug or raise InvalidSlug.

    Normalization is trim + lowercase. The traversal checks run on the
    trimmed input before the pattern match so the rejection reason is
    specific in the server log.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidSlug("Slug is required.")

    slug = raw.strip()

    if ".." in slug or "/" in slug or "\\" in slug:
        raise InvalidSlug("Slug contains path characters.")

    if len(slug) > MAX_SLUG_LENGTH:
        raise InvalidSlug(f"Slug must be no more than {MAX_SLUG_LENGTH} characters long.")

    slug = slug.lower()
    if not _SLUG_RE.match(slug):
        raise InvalidSlug()

    return slug


def is_valid_slug(raw: Optional[str]) -> bool:
    """Non-raising variant of validate_slug()."""
    try:
        validate_slug(raw)
    except InvalidSlug:
        return False
    return True
