"""
tests/test_gate.py -- Route gate decisions and the web login redirect chain.

The first half tests auth.gate.evaluate() directly: it is a pure function,
so every branch is one assertion. The second half runs the same decisions
through the real ASGI stack with follow_redirects=False and asserts on the
Location header, which would be hidden if the client followed the redirect.

Coverage:
  - Non-admin paths pass; "/adminx" is not under "/admin"
  - Login paths always reachable; logged-in GET of the login page -> /admin
  - Unauthenticated pages -> 302 /admin/login?next=<path>; API -> 401
  - Disabled admin surface
  - Security: next= is always a relative path (open-redirect prevention)
  - Web login form success/failure, dashboard, logout
"""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from auth.gate import GateDecision, evaluate, login_redirect_url, safe_next
from content.filestore import RESOURCES
from conftest import ADMIN_PASSWORD


class TestEvaluate:
    @pytest.mark.parametrize("path", ["/", "/blog/hello", "/api/health", "/adminx", "/api/administrator"])
    def test_outside_prefixes_pass(self, path: str) -> None:
        assert evaluate(path, "GET", enabled=True, authenticated=False) is GateDecision.PASS
        assert evaluate(path, "GET", enabled=False, authenticated=False) is GateDecision.PASS

    @pytest.mark.parametrize("path", ["/admin", "/admin/posts", "/api/admin", "/api/admin/blog"])
    def test_authenticated_allowed(self, path: str) -> None:
        assert evaluate(path, "POST", enabled=True, authenticated=True) is GateDecision.ALLOW

    @pytest.mark.parametrize("path", ["/admin", "/admin/posts/new"])
    def test_unauthenticated_page_redirects(self, path: str) -> None:
        assert evaluate(path, "GET", enabled=True, authenticated=False) is GateDecision.REDIRECT

    @pytest.mark.parametrize("path", ["/api/admin", "/api/admin/blog", "/api/admin/logout"])
    def test_unauthenticated_api_rejected(self, path: str) -> None:
        assert evaluate(path, "GET", enabled=True, authenticated=False) is GateDecision.UNAUTHORIZED

    @pytest.mark.parametrize("path", ["/admin/login", "/api/admin/login"])
    def test_login_paths_always_allowed(self, path: str) -> None:
        assert evaluate(path, "POST", enabled=True, authenticated=False) is GateDecision.ALLOW
        assert evaluate(path, "POST", enabled=True, authenticated=True) is GateDecision.ALLOW

    def test_logged_in_login_page_goes_to_dashboard(self) -> None:
        assert evaluate("/admin/login", "GET", enabled=True, authenticated=True) is GateDecision.TO_DASHBOARD
        assert evaluate("/admin/login", "GET", enabled=True, authenticated=False) is GateDecision.ALLOW

    @pytest.mark.parametrize("path", ["/admin", "/admin/login", "/api/admin/login", "/api/admin/blog"])
    def test_disabled(self, path: str) -> None:
        assert evaluate(path, "GET", enabled=False, authenticated=True) is GateDecision.DISABLED

    def test_login_redirect_url_carries_path_only(self) -> None:
        assert login_redirect_url("/admin/posts") == "/admin/login?next=/admin/posts"

    @pytest.mark.parametrize(
        "target, expected",
        [
            ("/admin/posts", "/admin/posts"),
            (None, "/admin"),
            ("", "/admin"),
            ("https://attacker.example", "/admin"),
            ("//attacker.example", "/admin"),
            ("/\\attacker.example", "/admin"),
            ("javascript:alert(1)", "/admin"),
        ],
    )
    def test_safe_next(self, target, expected: str) -> None:
        assert safe_next(target) == expected


class TestPageRedirects:
    def test_dashboard_redirects_to_login(self, client: TestClient) -> None:
        resp = client.get("/admin")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/admin/login?next=/admin"

    def test_nested_page_keeps_next(self, client: TestClient) -> None:
        resp = client.get("/admin/blog/edit")
        assert resp.status_code == 302
        location = urlparse(resp.headers["location"])
        assert location.path == "/admin/login"
        assert parse_qs(location.query)["next"] == ["/admin/blog/edit"]
        # Path only, never an absolute URL.
        assert not location.netloc

    def test_login_page_renders(self, client: TestClient) -> None:
        resp = client.get("/admin/login")
        assert resp.status_code == 200
        assert 'name="password"' in resp.text

    def test_logged_in_login_page_redirects_to_dashboard(self, admin_client: TestClient) -> None:
        resp = admin_client.get("/admin/login")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/admin"

    def test_error_param_is_whitelisted(self, client: TestClient) -> None:
        resp = client.get("/admin/login", params={"error": "<script>alert(1)</script>"})
        assert resp.status_code == 200
        assert "<script>alert(1)</script>" not in resp.text

        known = client.get("/admin/login", params={"error": "bad_credentials"})
        assert "Invalid credentials." in known.text


class TestWebLogin:
    def test_success_redirects_to_next(self, client: TestClient) -> None:
        resp = client.post("/admin/login", data={"password": ADMIN_PASSWORD, "next": "/admin"})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/admin"
        assert "admin_session" in resp.cookies

        dashboard = client.get("/admin")
        assert dashboard.status_code == 200
        assert "Blog posts" in dashboard.text

    @pytest.mark.parametrize("target", ["https://attacker.example/phish", "//attacker.example"])
    def test_open_redirect_blocked(self, client: TestClient, target: str) -> None:
        resp = client.post("/admin/login", data={"password": ADMIN_PASSWORD, "next": target})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/admin"

    def test_wrong_password_returns_to_form(self, client: TestClient) -> None:
        resp = client.post("/admin/login", data={"password": "nope", "next": "/admin"})
        assert resp.status_code == 302
        location = urlparse(resp.headers["location"])
        assert location.path == "/admin/login"
        assert parse_qs(location.query)["error"] == ["bad_credentials"]
        assert "admin_session" not in resp.cookies

    def test_lockout_message(self, client: TestClient) -> None:
        for _ in range(5):
            client.post("/admin/login", data={"password": "nope"})
        resp = client.post("/admin/login", data={"password": ADMIN_PASSWORD})
        assert parse_qs(urlparse(resp.headers["location"]).query)["error"] == ["rate_limited"]

    def test_dashboard_lists_posts(self, admin_client: TestClient) -> None:
        admin_client.post(
            "/api/admin/blog",
            json={
                "metadata": {"slug": "first-post", "title": "My First Post", "publishedDate": "2024-01-01"},
                "content": "# Hello",
            },
        )
        resp = admin_client.get("/admin")
        assert resp.status_code == 200
        assert "My First Post" in resp.text
        assert "first-post" in resp.text

    def test_dashboard_tolerates_missing_published_date(self, admin_client: TestClient, data_dir) -> None:
        index = [
            {"slug": "dated", "title": "Dated post", "publishedDate": "2024-01-01"},
            {"slug": "hand-edited", "title": "Hand-edited post", "publishedDate": None},
        ]
        (data_dir / RESOURCES["blog-posts"]).write_text(json.dumps(index), encoding="utf-8")
        resp = admin_client.get("/admin")
        assert resp.status_code == 200
        assert resp.text.index("Dated post") < resp.text.index("Hand-edited post")

    def test_logout(self, admin_client: TestClient) -> None:
        resp = admin_client.post("/admin/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/admin/login"
        assert admin_client.get("/admin").status_code == 302
