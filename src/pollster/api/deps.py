"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from fastapi import Depends, Request

from pollster.backend.base import BackendClient, Identity
from pollster.core.errors import ConfigError
from pollster.services.polls import PollService


def get_identity(request: Request) -> Identity | None:
    """Caller resolved by ``SessionMiddleware`` (None = anonymous)."""
    return getattr(request.state, "identity", None)


def get_backend(request: Request) -> BackendClient:
    """Backend client bound to the caller's access token."""
    factory = getattr(request.app.state, "backend_factory", None)
    if factory is None:
        msg = "Backend is not configured"
        raise ConfigError(msg)
    return factory(getattr(request.state, "access_token", None))


def get_poll_service(
    request: Request,
    backend: BackendClient = Depends(get_backend),  # noqa: B008
) -> PollService:
    return PollService(backend, request.app.state.invalidator)
