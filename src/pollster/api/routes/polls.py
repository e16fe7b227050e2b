"""Poll endpoints: list mine, create, read, update, delete, vote."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from pollster.api.deps import get_identity, get_poll_service
from pollster.backend.base import Identity
from pollster.services.polls import PollService

router = APIRouter(prefix="/api/polls", tags=["polls"])


class PollRequest(BaseModel):
    question: str = ""
    options: list[str] = Field(default_factory=list)


class VoteRequest(BaseModel):
    option_id: str


# -- GET /api/polls ------------------------------------------------------------


@router.get("")
async def list_my_polls(
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    service: PollService = Depends(get_poll_service),  # noqa: B008
) -> dict[str, Any]:
    """The caller's own polls, newest first."""
    polls = await service.get_user_polls(identity)
    return {"polls": polls, "error": None}


# -- POST /api/polls -----------------------------------------------------------


@router.post("", status_code=201)
async def create_poll(
    body: PollRequest,
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    service: PollService = Depends(get_poll_service),  # noqa: B008
) -> dict[str, Any]:
    """Create a poll owned by the caller."""
    poll = await service.create_poll(identity, body.question, body.options)
    return {"poll": poll, "error": None}


# -- GET /api/polls/{poll_id} --------------------------------------------------


@router.get("/{poll_id}")
async def get_poll(
    poll_id: str,
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    service: PollService = Depends(get_poll_service),  # noqa: B008
) -> dict[str, Any]:
    """A poll, with owner id and vote totals only for its owner or an admin."""
    view = await service.get_poll_by_id(poll_id, identity)
    return {"poll": view.poll, "is_owner": view.is_owner, "error": None}


# -- PUT /api/polls/{poll_id} --------------------------------------------------


@router.put("/{poll_id}")
async def update_poll(
    poll_id: str,
    body: PollRequest,
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    service: PollService = Depends(get_poll_service),  # noqa: B008
) -> dict[str, Any]:
    poll = await service.update_poll(poll_id, identity, body.question, body.options)
    return {"poll": poll, "error": None}


# -- DELETE /api/polls/{poll_id} -----------------------------------------------


@router.delete("/{poll_id}")
async def delete_poll(
    poll_id: str,
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    service: PollService = Depends(get_poll_service),  # noqa: B008
) -> dict[str, Any]:
    await service.delete_poll(poll_id, identity)
    return {"error": None}


# -- POST /api/polls/{poll_id}/votes -------------------------------------------


@router.post("/{poll_id}/votes")
async def submit_vote(
    poll_id: str,
    body: VoteRequest,
    identity: Identity | None = Depends(get_identity),  # noqa: B008
    service: PollService = Depends(get_poll_service),  # noqa: B008
) -> dict[str, Any]:
    """Cast the caller's one vote in a poll."""
    await service.submit_vote(poll_id, body.option_id, identity)
    return {"success": True, "error": None}
