"""Authentication endpoints.  Credentials go straight to the identity provider."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from pollster.api.deps import get_backend, get_identity
from pollster.backend.base import BackendClient, Identity
from pollster.core.errors import AuthenticationError
from pollster.services import auth as auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/register")
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    backend: BackendClient = Depends(get_backend),  # noqa: B008
) -> dict[str, Any]:
    """Create an account; signs the caller in when no confirmation is needed."""
    session = await auth_service.register(
        backend, body.email, body.password, body.name
    )
    if session is not None:
        resolver = request.app.state.session_resolver
        resolver.apply(response, resolver.session_cookies(session))
    return {"error": None, "confirmation_required": session is None}


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    backend: BackendClient = Depends(get_backend),  # noqa: B008
) -> dict[str, Any]:
    session = await auth_service.login(backend, body.email, body.password)
    resolver = request.app.state.session_resolver
    resolver.apply(response, resolver.session_cookies(session))
    return {"error": None}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    backend: BackendClient = Depends(get_backend),  # noqa: B008
) -> dict[str, Any]:
    await auth_service.logout(backend)
    resolver = request.app.state.session_resolver
    resolver.apply(response, resolver.clear_cookies())
    return {"error": None}


@router.get("/me")
async def me(
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    backend: BackendClient = Depends(get_backend),  # noqa: B008
) -> dict[str, Any]:
    """Current user with their role."""
    if identity is None:
        msg = "Not authenticated"
        raise AuthenticationError(msg)
    user = await auth_service.get_current_user_with_role(backend, identity)
    assert user is not None
    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}
