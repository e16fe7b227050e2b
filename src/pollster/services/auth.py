"""Authentication actions and role lookup.

Credentials are only ever checked by the hosted identity provider;
this module validates form input, forwards it, and resolves roles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pollster.core.errors import (
    AuthenticationError,
    BackendError,
    ValidationError,
)
from pollster.rules.access import ROLE_ADMIN, ROLE_USER, normalize_role
from pollster.rules.passwords import validate_password_strength

if TYPE_CHECKING:
    from pollster.backend.base import AuthSession, BackendClient, Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserWithRole:
    id: str
    email: str
    role: str
    name: str | None = None


async def get_user_role(backend: BackendClient, user_id: str) -> str:
    """Look up the caller's role; failures and missing rows mean ``user``."""
    try:
        role = await backend.get_role(user_id)
    except BackendError as e:
        logger.warning("Role lookup for %s failed, treating as user: %s", user_id, e)
        return ROLE_USER
    return normalize_role(role)


async def get_current_user(backend: BackendClient) -> Identity | None:
    return await backend.get_user()


async def get_current_user_with_role(
    backend: BackendClient, identity: Identity | None = None
) -> UserWithRole | None:
    """Identity plus freshly looked-up role, or None when anonymous."""
    if identity is None:
        identity = await backend.get_user()
    if identity is None:
        return None
    role = await get_user_role(backend, identity.id)
    return UserWithRole(
        id=identity.id, email=identity.email, role=role, name=identity.name
    )


async def is_admin(backend: BackendClient, identity: Identity | None) -> bool:
    user = await get_current_user_with_role(backend, identity)
    return user is not None and user.role == ROLE_ADMIN


def _require_credentials(email: str, password: str) -> str:
    email = (email or "").strip()
    if not email or not password:
        msg = "Email and password are required"
        raise ValidationError(msg)
    return email


async def login(backend: BackendClient, email: str, password: str) -> AuthSession:
    """Sign in with email + password."""
    email = _require_credentials(email, password)
    session = await backend.sign_in(email, password)
    logger.info("User %s signed in", session.user.id)
    return session


async def register(
    backend: BackendClient, email: str, password: str, name: str
) -> AuthSession | None:
    """Create an account.

    Returns the new session, or None when the provider requires the
    address to be confirmed before signing in.
    """
    email = _require_credentials(email, password)
    name = (name or "").strip()
    if not name:
        msg = "Name is required"
        raise ValidationError(msg)
    weakness = validate_password_strength(password)
    if weakness is not None:
        raise ValidationError(weakness)

    session = await backend.sign_up(email, password, name)
    if session is None:
        logger.info("Sign-up for %s awaiting email confirmation", email)
    else:
        logger.info("User %s registered", session.user.id)
    return session


async def logout(backend: BackendClient) -> None:
    """Revoke the current session.

    A session the provider no longer recognises is already signed out,
    so that case is not an error.
    """
    try:
        await backend.sign_out()
    except AuthenticationError as e:
        logger.info("Sign-out with a stale session: %s", e)
