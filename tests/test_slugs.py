"""
tests/test_slugs.py -- Unit tests for slug validation.

Coverage:
  - Accepted slugs and normalization (trim + lowercase)
  - Rejected slugs: empty, too long, separators, "..", pattern violations
  - Traversal-shaped slugs are rejected by BlogRepository before any store
    or filesystem call is made (spies on every I/O seam)
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from content.blog import BlogRepository
from content.models import BlogPost
from content.slugs import MAX_SLUG_LENGTH, is_valid_slug, validate_slug
from core.errors import InvalidSlug


class TestValidateSlug:
    @pytest.mark.parametrize("slug", ["hello-world", "a", "2024-recap", "abc123", "x" * MAX_SLUG_LENGTH])
    def test_accepts_valid_slugs(self, slug: str) -> None:
        assert validate_slug(slug) == slug

    def test_trims_and_lowercases(self) -> None:
        assert validate_slug("  Hello-World  ") == "hello-world"

    @pytest.mark.parametrize(
        "slug",
        [
            None,
            "",
            "   ",
            "../etc/passwd",
            "..",
            "a..b",
            "a/b",
            "/abs",
            "a\\b",
            "-leading",
            "trailing-",
            "double--hyphen",
            "under_score",
            "sp ace",
            "dot.md",
            "x" * (MAX_SLUG_LENGTH + 1),
        ],
    )
    def test_rejects_invalid_slugs(self, slug) -> None:
        with pytest.raises(InvalidSlug):
            validate_slug(slug)
        assert is_valid_slug(slug) is False

    def test_error_maps_to_400(self) -> None:
        with pytest.raises(InvalidSlug) as exc_info:
            validate_slug("../x")
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "invalid_slug"


class TestTraversalNeverTouchesFilesystem:
    """A slug with ".." or "/" must fail before the repository does any I/O."""

    @pytest.fixture
    def spied_repo(self, tmp_path: Path):
        store = MagicMock()
        repo = BlogRepository(store, tmp_path / "blog", tmp_path / "uploads")
        with (
            patch("content.blog.write_text_atomic") as write_spy,
            patch("content.blog.shutil.rmtree") as rmtree_spy,
            patch.object(Path, "unlink") as unlink_spy,
            patch.object(Path, "read_text") as read_spy,
        ):
            yield repo, store, [write_spy, rmtree_spy, unlink_spy, read_spy]

    @pytest.mark.parametrize("slug", ["../etc/passwd", "a/b", "..", "..\\windows"])
    def test_delete(self, spied_repo, slug: str) -> None:
        repo, store, spies = spied_repo
        with pytest.raises(InvalidSlug):
            repo.delete(slug)
        store.load.assert_not_called()
        store.save.assert_not_called()
        for spy in spies:
            spy.assert_not_called()

    @pytest.mark.parametrize("slug", ["../secret", "nested/post"])
    def test_get(self, spied_repo, slug: str) -> None:
        repo, store, spies = spied_repo
        with pytest.raises(InvalidSlug):
            repo.get(slug)
        store.load.assert_not_called()
        for spy in spies:
            spy.assert_not_called()

    def test_create(self, spied_repo) -> None:
        repo, store, spies = spied_repo
        post = BlogPost(slug="../../escape", title="T", published_date="2024-01-01", author="A")
        with pytest.raises(InvalidSlug):
            repo.create(post, "# body")
        store.load.assert_not_called()
        store.save.assert_not_called()
        for spy in spies:
            spy.assert_not_called()
