"""Poll actions: create, read, update, delete, vote.

Every mutating action validates its input before any backend call and
re-checks ownership before writing.  Writes are additionally filtered
by owner in the query, and the store's row-level security applies the
same rule a third time.

Vote totals are derived from the ``votes`` table on read; nothing in
the poll row is incremented when a vote is cast.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pollster.backend.base import PollOption
from pollster.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    UniqueViolationError,
    ValidationError,
)
from pollster.rules.access import (
    can_create,
    can_modify,
    can_view_full,
    full_projection,
    is_admin,
    is_owner,
    project_poll,
)
from pollster.rules.validation import validate_options, validate_question
from pollster.services.auth import get_user_role
from pollster.services.revalidate import POLLS_PATH, PathInvalidator, poll_path

if TYPE_CHECKING:
    from pollster.backend.base import BackendClient, Identity, PollRecord, VoteRecord

logger = logging.getLogger(__name__)

DUPLICATE_VOTE = "You have already voted on this poll."
POLL_NOT_FOUND = "Poll not found."


@dataclass(frozen=True, slots=True)
class PollView:
    """A poll as one caller may see it."""

    poll: dict[str, Any]
    is_owner: bool


def _new_option_id() -> str:
    return uuid.uuid4().hex


def _validated(question: str | None, options: list[str] | None) -> tuple[str, list[str]]:
    """Run both validators; raise the first failure."""
    q = validate_question(question)
    if not q.is_valid:
        raise ValidationError(q.error)
    o = validate_options(options)
    if not o.is_valid:
        raise ValidationError(o.error)
    return q.value, o.value  # type: ignore[return-value]


def _merge_options(
    existing: tuple[PollOption, ...], texts: list[str]
) -> list[PollOption]:
    """Keep the id of options whose text did not change."""
    ids = {opt.text: opt.id for opt in existing}
    return [PollOption(id=ids.get(text) or _new_option_id(), text=text) for text in texts]


class PollService:
    """Poll actions for one request."""

    def __init__(
        self,
        backend: BackendClient,
        invalidator: PathInvalidator | None = None,
    ) -> None:
        self._backend = backend
        self._invalidator = invalidator or PathInvalidator()

    async def _fetch(self, poll_id: str) -> PollRecord:
        poll = await self._backend.get_poll(poll_id)
        if poll is None:
            raise NotFoundError(POLL_NOT_FOUND)
        return poll

    async def _with_counts(self, polls: list[PollRecord]) -> list[dict[str, Any]]:
        """Full projections, vote totals fetched in one query."""
        counts = await self._backend.count_votes_for([poll.id for poll in polls])
        return [full_projection(poll, counts.get(poll.id, {})) for poll in polls]

    # ── Create ───────────────────────────────────────────────────

    async def create_poll(
        self,
        identity: Identity | None,
        question: str | None,
        options: list[str] | None,
    ) -> dict[str, Any]:
        """Validate, sanitize and store a new poll owned by the caller."""
        clean_question, clean_options = _validated(question, options)

        if identity is None or not can_create(identity):
            msg = "You must be logged in to create a poll."
            raise AuthenticationError(msg)

        poll = await self._backend.insert_poll(
            clean_question,
            [PollOption(id=_new_option_id(), text=text) for text in clean_options],
            identity.id,
        )
        logger.info("Poll %s created by %s", poll.id, identity.id)
        self._invalidator.revalidate(POLLS_PATH)
        return full_projection(poll)

    # ── Read ─────────────────────────────────────────────────────

    async def get_user_polls(self, identity: Identity | None) -> list[dict[str, Any]]:
        """The caller's own polls, newest first, with vote totals."""
        if identity is None:
            msg = "You must be logged in to view your polls."
            raise AuthenticationError(msg)
        return await self._with_counts(
            await self._backend.list_polls_by_owner(identity.id)
        )

    async def get_poll_by_id(self, poll_id: str, identity: Identity | None) -> PollView:
        """Fetch a poll and filter its fields for the caller.

        Ownership and role are evaluated on every call; nothing about
        the caller's access is remembered between requests.
        """
        poll = await self._fetch(poll_id)

        owner = is_owner(poll, identity)
        role = None
        if identity is not None and not owner:
            role = await get_user_role(self._backend, identity.id)

        counts = None
        if can_view_full(poll, identity, role):
            counts = await self._backend.count_votes(poll.id)
        return PollView(poll=project_poll(poll, identity, role, counts), is_owner=owner)

    async def list_all_polls(
        self, identity: Identity | None, role: str | None
    ) -> list[dict[str, Any]]:
        """Every poll with full fields; admins only."""
        if identity is None:
            msg = "You must be logged in."
            raise AuthenticationError(msg)
        if not is_admin(role):
            msg = "Admin access required."
            raise AuthorizationError(msg)
        return await self._with_counts(await self._backend.list_polls())

    # ── Update / delete ──────────────────────────────────────────

    async def update_poll(
        self,
        poll_id: str,
        identity: Identity | None,
        question: str | None,
        options: list[str] | None,
    ) -> dict[str, Any]:
        """Replace question and options of a poll the caller owns."""
        clean_question, clean_options = _validated(question, options)

        if identity is None:
            msg = "You must be logged in to update a poll."
            raise AuthenticationError(msg)

        poll = await self._fetch(poll_id)
        if not can_modify(poll, identity):
            msg = "You can only edit your own polls."
            raise AuthorizationError(msg)

        updated = await self._backend.update_poll(
            poll.id,
            identity.id,
            clean_question,
            _merge_options(poll.options, clean_options),
        )
        if updated is None:
            # The store's policy refused the row even though we did not.
            msg = "You can only edit your own polls."
            raise AuthorizationError(msg)

        logger.info("Poll %s updated by %s", poll.id, identity.id)
        self._invalidator.revalidate(POLLS_PATH)
        self._invalidator.revalidate(poll_path(poll.id))
        return full_projection(updated, await self._backend.count_votes(updated.id))

    async def delete_poll(self, poll_id: str, identity: Identity | None) -> None:
        """Delete a poll the caller owns."""
        if identity is None:
            msg = "You must be logged in to delete a poll."
            raise AuthenticationError(msg)

        poll = await self._fetch(poll_id)
        if not can_modify(poll, identity):
            msg = "You can only delete your own polls."
            raise AuthorizationError(msg)

        deleted = await self._backend.delete_poll(poll.id, identity.id)
        if not deleted:
            msg = "You can only delete your own polls."
            raise AuthorizationError(msg)

        logger.info("Poll %s deleted by %s", poll.id, identity.id)
        self._invalidator.revalidate(POLLS_PATH)

    # ── Vote ─────────────────────────────────────────────────────

    async def submit_vote(
        self, poll_id: str, option_id: str, identity: Identity | None
    ) -> VoteRecord:
        """Record the caller's single vote in a poll.

        The existence check gives a friendly error in the common case.
        It is not atomic with the insert: the store's unique constraint
        on (poll, user) decides races, and its violation is reported as
        the same duplicate-vote error.
        """
        if identity is None:
            msg = "You must be logged in to vote."
            raise AuthenticationError(msg)

        existing = await self._backend.find_vote(poll_id, identity.id)
        if existing is not None:
            raise ConflictError(DUPLICATE_VOTE)

        poll = await self._fetch(poll_id)
        if option_id not in poll.option_ids():
            msg = "Invalid option for this poll."
            raise ValidationError(msg)

        try:
            vote = await self._backend.insert_vote(poll.id, option_id, identity.id)
        except UniqueViolationError as e:
            logger.info("Concurrent duplicate vote on %s by %s", poll.id, identity.id)
            raise ConflictError(DUPLICATE_VOTE) from e

        logger.info("Vote on poll %s recorded for %s", poll.id, identity.id)
        self._invalidator.revalidate(poll_path(poll.id))
        return vote
