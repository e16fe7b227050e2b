"""Admin endpoints.  ``SessionMiddleware`` has already checked the role."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from pollster.api.deps import get_identity, get_poll_service
from pollster.backend.base import Identity
from pollster.services.polls import PollService

router = APIRouter(tags=["admin"])


@router.get("")
async def dashboard(
    request: Request,
    identity: Identity | None = Depends(get_identity),  # noqa: B008
) -> dict[str, Any]:
    return {
        "user": {"id": identity.id, "email": identity.email} if identity else None,
        "role": request.state.role,
    }


@router.get("/polls")
async def all_polls(
    request: Request,
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    service: PollService = Depends(get_poll_service),  # noqa: B008
) -> dict[str, Any]:
    """Every poll, with owners and vote totals."""
    polls = await service.list_all_polls(identity, request.state.role)
    return {"polls": polls, "error": None}
