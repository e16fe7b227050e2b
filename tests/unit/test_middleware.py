"""Tests for SessionMiddleware: identity resolution and the admin gate."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.testclient import TestClient

from pollster.api.app import create_app
from pollster.api.middleware import is_admin_path
from pollster.config.schema import PollsterConfig, SessionConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from tests.fixtures.backend import FakeStore


def _set_cookie_names(response) -> list[str]:  # type: ignore[no-untyped-def]
    return [h.split("=", 1)[0] for h in response.headers.get_list("set-cookie")]


# ── is_admin_path ──────────────────────────────────────────────


class TestIsAdminPath:
    def test_prefix_and_children(self) -> None:
        assert is_admin_path("/admin", "/admin")
        assert is_admin_path("/admin/polls", "/admin")
        assert is_admin_path("/admin/", "/admin/")

    def test_lookalikes_are_not_admin(self) -> None:
        assert not is_admin_path("/administrator", "/admin")
        assert not is_admin_path("/api/admin", "/admin")


# ── Admin gate ─────────────────────────────────────────────────


class TestAdminGate:
    def test_anonymous_redirected_to_login(self, client: TestClient) -> None:
        resp = client.get("/admin", follow_redirects=False)
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"

    def test_non_admin_redirected_to_unauthorized(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        sign_in(store.add_user("bob@example.com"))
        resp = client.get("/admin/polls", follow_redirects=False)
        assert resp.status_code == 307
        assert resp.headers["location"] == "/unauthorized"

    def test_unauthorized_page(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        sign_in(store.add_user("bob@example.com"))
        resp = client.get("/admin")
        assert resp.status_code == 403
        assert resp.json() == {
            "error": "You do not have permission to access this page."
        }

    def test_admin_proceeds(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        root = store.add_user("root@example.com", role="admin")
        sign_in(root)
        resp = client.get("/admin", follow_redirects=False)
        assert resp.status_code == 200
        assert resp.json() == {
            "user": {"id": root.id, "email": root.email},
            "role": "admin",
        }

    def test_role_looked_up_on_every_request(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        root = store.add_user("root@example.com", role="admin")
        sign_in(root)
        assert client.get("/admin", follow_redirects=False).status_code == 200

        store.roles[root.id] = "user"
        resp = client.get("/admin", follow_redirects=False)
        assert resp.headers["location"] == "/unauthorized"

    def test_role_lookup_failure_denies(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        sign_in(store.add_user("root@example.com", role="admin"))
        store.fail_on.add("get_role")
        resp = client.get("/admin", follow_redirects=False)
        assert resp.headers["location"] == "/unauthorized"

    def test_admin_lists_all_polls(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        alice = store.add_user("alice@example.com")
        store.add_poll(alice, "Alice's poll?", ["a", "b"])
        sign_in(store.add_user("root@example.com", role="admin"))

        resp = client.get("/admin/polls")

        assert resp.status_code == 200
        assert [p["user_id"] for p in resp.json()["polls"]] == [alice.id]

    def test_non_admin_routes_are_not_gated(self, client: TestClient) -> None:
        assert client.get("/login").status_code == 200


# ── Cookie propagation ─────────────────────────────────────────


class TestCookiePropagation:
    def test_refreshed_cookies_written_on_redirect(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        bob = store.add_user("bob@example.com")
        stale = sign_in(bob, expires_in=-10)

        resp = client.get("/admin", follow_redirects=False)

        assert resp.status_code == 307
        assert resp.headers["location"] == "/unauthorized"
        assert sorted(_set_cookie_names(resp)) == [
            "pollster-access-token",
            "pollster-refresh-token",
        ]
        assert stale.access_token not in resp.headers["set-cookie"]

    def test_refreshed_cookies_written_on_normal_response(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        sign_in(store.add_user("bob@example.com"), expires_in=-10)
        resp = client.get("/login")
        assert resp.json()["authenticated"] is True
        assert len(_set_cookie_names(resp)) == 2

    def test_invalid_session_cleared(self, client: TestClient) -> None:
        client.cookies.set("pollster-refresh-token", "revoked")
        resp = client.get("/login")
        assert resp.json()["authenticated"] is False
        assert all("Max-Age=0" in h for h in resp.headers.get_list("set-cookie"))

    def test_valid_session_sets_no_cookies(
        self, client: TestClient, store: FakeStore, sign_in: Callable
    ) -> None:
        sign_in(store.add_user("bob@example.com"))
        resp = client.get("/login")
        assert "set-cookie" not in resp.headers

    def test_health_is_exempt(self, client: TestClient, store: FakeStore) -> None:
        client.cookies.set("pollster-refresh-token", "revoked")
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert "set-cookie" not in resp.headers
        assert store.calls == []


# ── Unconfigured backend ───────────────────────────────────────


class TestUnconfigured:
    def _client(self) -> TestClient:
        config = PollsterConfig(session=SessionConfig(secure=False))
        return TestClient(create_app(config))

    def test_requests_redirect_to_login(self) -> None:
        with self._client() as client:
            resp = client.get("/api/polls", follow_redirects=False)
            assert resp.status_code == 307
            assert resp.headers["location"] == "/login"

    def test_login_page_served(self) -> None:
        with self._client() as client:
            resp = client.get("/login")
            assert resp.status_code == 200
            assert resp.json() == {"page": "login", "authenticated": False}

    def test_health_reports_degraded(self) -> None:
        with self._client() as client:
            data = client.get("/api/health/detailed").json()
            assert data["status"] == "degraded"
            assert data["components"]["backend"]["status"] == "unconfigured"
