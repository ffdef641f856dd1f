"""
tests/conftest.py -- Shared test fixtures for Folio Admin tests.

This module provides:
  - settings: debug-mode Settings pointing at a per-test tmp data directory
  - client: TestClient over a freshly built app, follow_redirects=False
  - admin_client: the same client after a successful password login
  - make_client(): context manager for tests that need their own Settings
    (production cookie flags, disabled admin surface, tight slowapi limit)

Design: every test gets its own app from build_app(settings). All mutable
state (login counters, slowapi storage, stores) hangs off app.state, so
nothing leaks between tests and no lifespan patching is needed.

follow_redirects=False is essential: the gate and the web login answer with
302s and we assert on the Location header, which is invisible once the client
follows the redirect.

The DEBUG env var must be set before importing asgi: asgi builds its
module-level app from get_settings(), which refuses to start without
SECRET_KEY outside debug mode.
"""

from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from pathlib import Path

# CRITICAL: Set DEBUG before any core/api import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from asgi import build_app
from core.config import Settings

ADMIN_PASSWORD = "correct-horse-battery-staple"


def make_settings(data_dir: Path, **overrides) -> Settings:
    values = {
        "debug": True,
        "admin_password": ADMIN_PASSWORD,
        "data_dir": data_dir,
        # High enough that only the dedicated slowapi test ever hits it.
        "api_rate_limit": "1000/minute",
    }
    values.update(overrides)
    return Settings(**values)


@contextmanager
def make_client(settings: Settings) -> Iterator[TestClient]:
    """Build an app for settings and run its lifespan around the client."""
    with TestClient(build_app(settings), follow_redirects=False, raise_server_exceptions=True) as client:
        yield client


def login(client: TestClient, password: str = ADMIN_PASSWORD, **kwargs):
    return client.post("/api/admin/login", json={"password": password}, **kwargs)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return make_settings(data_dir)


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    with make_client(settings) as c:
        yield c


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    """client with a session cookie in its jar."""
    resp = login(client)
    assert resp.status_code == 200, resp.text
    return client
