"""
content/revalidate.py -- Downstream cache invalidation after a successful write.

The public site renders pages from the same data files and caches them. After
FileStore commits a document it tells the renderer which logical paths are
stale. This is strictly best-effort: the data is already on disk, so a failed
notification is logged and swallowed -- a stale page is a lesser failure than
reporting a committed save as failed.

Two implementations share the invalidate(paths) signature:
  NullNotifier    -- no cache layer configured; does nothing.
  WebhookNotifier -- POSTs {"paths": [...]} to the renderer's revalidate hook.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

import requests

logger = logging.getLogger("folio.revalidate")


class RevalidationNotifier(Protocol):
    def invalidate(self, paths: Iterable[str]) -> None: ...


class NullNotifier:
    """Used when no cache layer exists."""

    def invalidate(self, paths: Iterable[str]) -> None:
        return None


class WebhookNotifier:
    """Invalidate cached pages by calling the renderer's revalidation endpoint."""

    def __init__(self, url: str, token: str = "", timeout: float = 5.0) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout
        self._session = requests.Session()

    def invalidate(self, paths: Iterable[str]) -> None:
        path_list = list(paths)
        if not path_list:
            return
        headers = {"x-revalidate-token": self.token} if self.token else {}
        try:
            resp = self._session.post(
                self.url,
                json={"paths": path_list},
                headers=headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Cache revalidation failed for %s: %s", path_list, e)
            return
        logger.info("Cache revalidated: %s", path_list)

    def close(self) -> None:
        self._session.close()


def build_notifier(url: str, token: str = "", timeout: float = 5.0) -> RevalidationNotifier:
    """Return a WebhookNotifier when a URL is configured, else a NullNotifier."""
    if url:
        return WebhookNotifier(url, token=token, timeout=timeout)
    return NullNotifier()
