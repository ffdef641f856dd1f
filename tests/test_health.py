"""
tests/test_health.py -- Integration tests for GET /api/health and the slowapi
default limit.

Covers:
  - 200 response with status and version
  - No authentication required
  - Health is exempt from the per-client request limit; other routes are not
"""

from __future__ import annotations

from api.main import VERSION
from conftest import make_client, make_settings


def test_health_returns_status_and_version(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": VERSION}


def test_health_no_auth_required(client):
    resp = client.get("/api/health", headers={})
    assert resp.status_code == 200


def test_default_limit_applies_except_to_health(data_dir):
    with make_client(make_settings(data_dir, api_rate_limit="3/minute")) as client:
        for _ in range(3):
            assert client.get("/admin/login").status_code == 200
        limited = client.get("/admin/login")
        assert limited.status_code == 429
        assert limited.json()["error"]["code"] == "rate_limited"
        assert "retry-after" in limited.headers

        for _ in range(10):
            assert client.get("/api/health").status_code == 200
