"""Tests for the auth actions and role lookup."""

from __future__ import annotations

import pytest

from pollster.core.errors import AuthenticationError, ValidationError
from pollster.services import auth
from tests.fixtures.backend import FakeBackend, FakeStore


class TestRoleLookup:
    async def test_missing_row_is_user(self, store: FakeStore) -> None:
        bob = store.add_user("bob@example.com")
        assert await auth.get_user_role(FakeBackend(store), bob.id) == "user"

    async def test_admin(self, store: FakeStore) -> None:
        root = store.add_user("root@example.com", role="admin")
        assert await auth.get_user_role(FakeBackend(store), root.id) == "admin"

    async def test_unknown_role_is_user(self, store: FakeStore) -> None:
        odd = store.add_user("odd@example.com", role="superuser")
        assert await auth.get_user_role(FakeBackend(store), odd.id) == "user"

    async def test_lookup_failure_is_user(self, store: FakeStore) -> None:
        root = store.add_user("root@example.com", role="admin")
        store.fail_on.add("get_role")
        assert await auth.get_user_role(FakeBackend(store), root.id) == "user"

    async def test_current_user_with_role(self, store: FakeStore) -> None:
        root = store.add_user("root@example.com", name="Root", role="admin")
        backend = FakeBackend(store, store.issue_session(root).access_token)

        user = await auth.get_current_user_with_role(backend)

        assert user is not None
        assert user.id == root.id
        assert user.role == "admin"
        assert user.name == "Root"
        assert await auth.is_admin(backend, None)

    async def test_anonymous(self, store: FakeStore) -> None:
        backend = FakeBackend(store)
        assert await auth.get_current_user(backend) is None
        assert await auth.get_current_user_with_role(backend) is None
        assert not await auth.is_admin(backend, None)


class TestLoginRegister:
    async def test_login(self, store: FakeStore) -> None:
        alice = store.add_user("alice@example.com")
        session = await auth.login(FakeBackend(store), " alice@example.com ", "Secret#123")
        assert session.user == alice

    async def test_login_wrong_password(self, store: FakeStore) -> None:
        store.add_user("alice@example.com")
        with pytest.raises(AuthenticationError):
            await auth.login(FakeBackend(store), "alice@example.com", "nope")

    async def test_register_checks_password_strength(self, store: FakeStore) -> None:
        with pytest.raises(ValidationError, match="at least 8 characters"):
            await auth.register(FakeBackend(store), "a@example.com", "Ab1#", "A")
        assert store.calls == []

    async def test_register_pending_confirmation(self, store: FakeStore) -> None:
        store.confirm_email = True
        result = await auth.register(
            FakeBackend(store), "a@example.com", "Secret#123", "A"
        )
        assert result is None
        assert "a@example.com" in store.passwords

    async def test_logout_with_stale_session(self, store: FakeStore) -> None:
        await auth.logout(FakeBackend(store, "stale-token"))
        assert store.calls == ["sign_out"]
