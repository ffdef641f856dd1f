"""
content/blog.py -- Blog post repository over FileStore + per-post markdown files.

Each post is two artifacts that must never diverge:
  - an entry in the "blog-posts" index document (metadata), and
  - a markdown body at <blog_dir>/<slug>.md.

Write order is body first, index second. A crash between the two leaves an
unindexed .md file, which the public site never links to and find_orphans()
reports; it can never leave an index entry pointing at a missing body. When
the index save fails after the body was written, the body change is rolled
back before the error propagates.

Delete runs the other way round: the index entry goes first (readers stop
seeing the post), then the body, then the uploads directory. If the body
cannot be removed the index entry is restored.

All index read-modify-write sequences hold one repository lock. FileStore's
per-resource lock alone would still let two creates interleave their
load/append/save steps and drop one entry.

Every slug from a caller goes through validate_slug() before a path is built.
"""

from __future__ import annotations

import logging
import math
import re
import shutil
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Optional

from content.filestore import BLOG_INDEX, FileStore, write_text_atomic
from content.models import BlogPost
from content.slugs import validate_slug
from core.errors import DuplicateSlug, InvalidSlug, NotFound, PersistenceError, ValidationError

logger = logging.getLogger("folio.blog")

WORDS_PER_MINUTE = 200
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 160

_MARKDOWN_SYNTAX_RE = re.compile(r"[#*`>\-\[\]()]")


def estimate_reading_time(markdown: str) -> int:
    """Minutes to read markdown at 200 wpm, rounded up, never less than 1."""
    words = [w for w in _MARKDOWN_SYNTAX_RE.sub("", markdown).split() if w]
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))


def _check_date(value: Optional[str], field_name: str, errors: list[dict], required: bool) -> None:
    if not value:
        if required:
            errors.append({"field": field_name, "message": "Date is required."})
        return
    try:
        date.fromisoformat(value)
    except ValueError:
        errors.append({"field": field_name, "message": "Date must be in YYYY-MM-DD format."})


class BlogRepository:
    def __init__(
        self,
        store: FileStore,
        blog_dir: Path,
        uploads_dir: Path,
        reading_time: Callable[[str], int] = estimate_reading_time,
    ) -> None:
        self.store = store
        self.blog_dir = Path(blog_dir)
        self.uploads_dir = Path(uploads_dir)
        self.reading_time = reading_time
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_posts(self) -> list[BlogPost]:
        return [BlogPost.from_dict(entry) for entry in self._load_index()]

    def get(self, slug: str) -> tuple[BlogPost, str]:
        """Return (metadata, markdown body). NotFound if either half is missing."""
        slug = validate_slug(slug)
        entry = self._find(self._load_index(), slug)
        if entry is None:
            raise NotFound("Blog post not found.")
        path = self._content_path(slug)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            logger.error("Blog index entry %s has no content file at %s", slug, path)
            raise NotFound("Blog post not found.") from e
        except OSError as e:
            logger.error("Could not read blog content %s: %s", path, e)
            raise PersistenceError("Failed to load blog post.") from e
        return BlogPost.from_dict(entry), content

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, post: BlogPost, content: str) -> BlogPost:
        post = replace(post, slug=validate_slug(post.slug), tags=list(post.tags))
        if not post.author or not post.author.strip():
            post.author = self._default_author()
        self._validate(post)
        post.reading_time = self.reading_time(content)

        with self._lock:
            index = self._load_index()
            if self._find(index, post.slug) is not None:
                raise DuplicateSlug()
            path = self._content_path(post.slug)
            write_text_atomic(path, content)
            try:
                self.store.save(BLOG_INDEX, index + [post.to_dict()])
            except PersistenceError:
                logger.error("Blog index save failed for new post %s; removing its content file", post.slug)
                self._discard(path)
                raise

        logger.info("Created blog post %s (%d min read)", post.slug, post.reading_time)
        return post

    def update(self, post: BlogPost, content: str) -> BlogPost:
        post = replace(post, slug=validate_slug(post.slug), tags=list(post.tags))
        post.reading_time = self.reading_time(content)
        post.updated_date = date.today().isoformat()
        self._validate(post)

        with self._lock:
            index = self._load_index()
            position = self._position(index, post.slug)
            if position is None:
                raise NotFound("Blog post not found.")
            path = self._content_path(post.slug)
            previous_content = self._read_optional(path)
            write_text_atomic(path, content)
            updated = list(index)
            updated[position] = post.to_dict()
            try:
                self.store.save(BLOG_INDEX, updated)
            except PersistenceError:
                logger.error("Blog index save failed for %s; restoring previous content", post.slug)
                if previous_content is None:
                    self._discard(path)
                else:
                    self._restore_content(path, previous_content)
                raise

        logger.info("Updated blog post %s", post.slug)
        return post

    def delete(self, slug: str) -> None:
        slug = validate_slug(slug)
        with self._lock:
            index = self._load_index()
            position = self._position(index, slug)
            if position is None:
                raise NotFound("Blog post not found.")
            remaining = index[:position] + index[position + 1 :]
            self.store.save(BLOG_INDEX, remaining)

            path = self._content_path(slug)
            try:
                path.unlink()
            except FileNotFoundError:
                logger.warning("Deleted blog post %s had no content file", slug)
            except OSError as e:
                logger.error("Could not remove %s (%s); restoring index entry", path, e)
                self.store.save(BLOG_INDEX, index)
                raise PersistenceError("Failed to delete blog post.") from e

        self._remove_uploads(slug)
        logger.info("Deleted blog post %s", slug)

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------

    def find_orphans(self) -> tuple[list[str], list[str]]:
        """Return (index slugs with no content file, content files with no index entry)."""
        indexed = [str(entry.get("slug", "")) for entry in self._load_index()]
        missing = [s for s in indexed if not (self.blog_dir / f"{s}.md").is_file()]
        on_disk = {p.stem for p in self.blog_dir.glob("*.md")} if self.blog_dir.is_dir() else set()
        unindexed = sorted(on_disk - set(indexed))
        return missing, unindexed

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _content_path(self, slug: str) -> Path:
        # slug is already validated: no separators, no "..".
        return self.blog_dir / f"{slug}.md"

    def _load_index(self) -> list[dict[str, Any]]:
        index = self.store.load(BLOG_INDEX)
        if not isinstance(index, list):
            logger.error("Blog index is not a list (got %s)", type(index).__name__)
            raise PersistenceError("Failed to load blog posts.")
        return index

    @staticmethod
    def _position(index: list[dict[str, Any]], slug: str) -> Optional[int]:
        for i, entry in enumerate(index):
            if entry.get("slug") == slug:
                return i
        return None

    def _find(self, index: list[dict[str, Any]], slug: str) -> Optional[dict[str, Any]]:
        position = self._position(index, slug)
        return None if position is None else index[position]

    def _default_author(self) -> str:
        try:
            profile = self.store.load("profile")
        except PersistenceError:
            logger.warning("Could not load profile for default author, using Anonymous")
            return "Anonymous"
        name = profile.get("name") if isinstance(profile, dict) else None
        return name.strip() if isinstance(name, str) and name.strip() else "Anonymous"

    @staticmethod
    def _validate(post: BlogPost) -> None:
        errors: list[dict] = []
        if not post.title or not post.title.strip():
            errors.append({"field": "title", "message": "Title is required."})
        elif len(post.title) > MAX_TITLE_LENGTH:
            errors.append({"field": "title", "message": f"Title must be less than {MAX_TITLE_LENGTH} characters."})
        if len(post.description or "") > MAX_DESCRIPTION_LENGTH:
            errors.append(
                {"field": "description", "message": f"Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer."}
            )
        if not post.author or not post.author.strip():
            errors.append({"field": "author", "message": "Author is required."})
        _check_date(post.published_date, "publishedDate", errors, required=True)
        _check_date(post.updated_date, "updatedDate", errors, required=False)
        if errors:
            raise ValidationError("Invalid blog post metadata.", fields=errors)

    @staticmethod
    def _read_optional(path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("Could not read %s before overwrite: %s", path, e)
            raise PersistenceError("Failed to update blog post.") from e

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.critical("Rollback failed: could not remove %s: %s", path, e)

    @staticmethod
    def _restore_content(path: Path, text: str) -> None:
        try:
            write_text_atomic(path, text)
        except PersistenceError:
            logger.critical("Rollback failed: could not restore previous content of %s", path)

    def _remove_uploads(self, slug: str) -> None:
        root = self.uploads_dir.resolve()
        target = (self.uploads_dir / slug).resolve()
        if target.parent != root:
            logger.warning("Refusing to remove uploads outside %s for slug %r", root, slug)
            raise InvalidSlug()
        if not target.is_dir():
            return
        try:
            shutil.rmtree(target)
        except OSError as e:
            # Index and body are already gone; leftover images do not break the pairing.
            logger.warning("Could not remove uploads for %s at %s: %s", slug, target, e)
