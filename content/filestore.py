"""
content/filestore.py -- Whitelisted, atomic JSON document store.

Every structured admin write goes through FileStore.save(). It owns three
guarantees:

  Whitelist: a resource name is looked up in RESOURCES before any path is
      built. Names not in the table raise NotWhitelisted, so no caller can
      turn request input into an arbitrary file write, however the name was
      derived upstream.

  Atomicity: documents are written to a temp file in the same directory,
      fsynced, then moved over the target with os.replace(). A concurrent
      reader sees the complete old file or the complete new file, never a
      truncated one. A failed write removes the temp file and leaves the
      committed document untouched.

  Revalidation: after the rename, the logical site paths that render the
      resource (REVALIDATION_PATHS) are handed to the notifier.

Concurrency: writers to the same resource are serialized with a per-resource
lock. The document-level semantic is last-writer-wins; there is no version
check between load() and save().

Usage:
    store = FileStore(Path("data"))
    profile = store.load("profile")
    profile["title"] = "Staff Engineer"
    store.save("profile", profile)
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional, Union

from content.revalidate import NullNotifier, RevalidationNotifier
from core.errors import NotWhitelisted, PersistenceError, ValidationError

logger = logging.getLogger("folio.filestore")

Document = Union[dict[str, Any], list[Any]]

BLOG_INDEX = "blog-posts"

# Resource name -> file name inside data_dir. The only files FileStore touches.
RESOURCES: dict[str, str] = {
    "experiences": "cv-data.json",
    "top-skills": "top-skills.json",
    "profile": "user-profile.json",
    "settings": "system-settings.json",
    BLOG_INDEX: "blog-posts.json",
}

# Resources the generic POST /api/admin endpoint may write. The blog index is
# excluded: it only changes together with a content file, via BlogRepository.
ADMIN_EDITABLE: frozenset[str] = frozenset(RESOURCES) - {BLOG_INDEX}

# Returned by load() when the file has never been written.
_DEFAULTS: dict[str, Document] = {
    "experiences": [],
    "top-skills": [],
    "profile": {},
    "settings": {},
    BLOG_INDEX: [],
}

REVALIDATION_PATHS: dict[str, list[str]] = {
    "experiences": ["/", "/blog"],
    "top-skills": ["/"],
    "profile": ["/"],
    "settings": ["/", "/blog"],
    BLOG_INDEX: ["/blog", "/"],
}


def serialize(doc: Document) -> str:
    """Canonical on-disk form: 2-space JSON, UTF-8, key order kept, trailing newline."""
    return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"


def _fsync_dir(directory: Path) -> None:
    # Persists the rename itself, not just the file contents.
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def write_text_atomic(path: Path, text: str) -> None:
    """Write text to path via temp file + fsync + os.replace + directory fsync.

    Raises PersistenceError on any OSError. The temp file lives in the target
    directory so the final rename never crosses a filesystem boundary.
    """
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
        tmp_name = None
        _fsync_dir(path.parent)
    except OSError as e:
        logger.error("Atomic write to %s failed: %s", path, e)
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            except OSError as cleanup_err:
                logger.warning("Could not remove temp file %s: %s", tmp_name, cleanup_err)
        raise PersistenceError() from e


class FileStore:
    def __init__(self, data_dir: Path, notifier: Optional[RevalidationNotifier] = None) -> None:
        self.data_dir = Path(data_dir)
        self.notifier: RevalidationNotifier = notifier or NullNotifier()
        self._locks = {name: threading.Lock() for name in RESOURCES}

    def path_for(self, name: str) -> Path:
        """Resolve a whitelisted resource name to its file. Raises NotWhitelisted."""
        filename = RESOURCES.get(name)
        if filename is None:
            logger.warning("Rejected non-whitelisted resource %r", name)
            raise NotWhitelisted(f"Unknown resource. Must be one of: {', '.join(sorted(RESOURCES))}")
        return self.data_dir / filename

    def load(self, name: str) -> Document:
        """Return the stored document, or a fresh default if it was never saved."""
        path = self.path_for(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return copy.deepcopy(_DEFAULTS[name])
        except OSError as e:
            logger.error("Could not read resource %s from %s: %s", name, path, e)
            raise PersistenceError("Failed to load data.") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Resource %s at %s is not valid JSON: %s", name, path, e)
            raise PersistenceError("Failed to load data.") from e

    def save(self, name: str, doc: Document) -> None:
        """Atomically replace the stored document, then invalidate cached views."""
        path = self.path_for(name)
        try:
            payload = serialize(doc)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                "Document is not JSON-serializable.",
                fields=[{"field": "data", "message": str(e)}],
            ) from e

        with self._locks[name]:
            write_text_atomic(path, payload)
        logger.info("Saved resource %s (%d bytes)", name, len(payload))

        self._notify(name)

    def _notify(self, name: str) -> None:
        # The write is committed; a notifier failure must not turn it into an error.
        paths = REVALIDATION_PATHS.get(name, ["/"])
        try:
            self.notifier.invalidate(paths)
        except Exception:
            logger.exception("Revalidation notifier raised for %s (paths=%s)", name, paths)
