"""Backend client interface and data classes.

The hosted backend owns identity, storage and row-level security.  All
calls go through a ``BackendClient`` bound to one request's access
token, so the store evaluates its policies as the caller.
Data classes are immutable (frozen dataclasses with slots).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Identity:
    """The authenticated caller behind a request."""

    id: str
    email: str = ""
    name: str | None = None

    @classmethod
    def from_user(cls, data: dict[str, Any]) -> Identity:
        """Build from an identity-provider user object."""
        metadata = data.get("user_metadata") or {}
        return cls(
            id=str(data["id"]),
            email=data.get("email") or "",
            name=metadata.get("name"),
        )


@dataclass(frozen=True, slots=True)
class AuthSession:
    """Tokens issued by the identity provider."""

    access_token: str
    refresh_token: str
    expires_in: int
    user: Identity

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> AuthSession:
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_in=int(data.get("expires_in") or 3600),
            user=Identity.from_user(data["user"]),
        )


@dataclass(frozen=True, slots=True)
class PollOption:
    """One choice within a poll."""

    id: str
    text: str

    def to_row(self) -> dict[str, str]:
        return {"id": self.id, "text": self.text}


@dataclass(frozen=True, slots=True)
class PollRecord:
    """A row of the ``polls`` table."""

    id: str
    question: str
    options: tuple[PollOption, ...]
    user_id: str
    created_at: str
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PollRecord:
        return cls(
            id=str(row["id"]),
            question=row["question"],
            options=tuple(
                PollOption(id=str(opt["id"]), text=opt["text"])
                for opt in row.get("options") or []
            ),
            user_id=str(row["user_id"]),
            created_at=str(row["created_at"]),
            updated_at=str(row["updated_at"]) if row.get("updated_at") else None,
        )

    def option_ids(self) -> set[str]:
        return {opt.id for opt in self.options}


@dataclass(frozen=True, slots=True)
class VoteRecord:
    """A row of the ``votes`` table."""

    id: str
    poll_id: str
    option_id: str
    user_id: str
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> VoteRecord:
        return cls(
            id=str(row["id"]),
            poll_id=str(row["poll_id"]),
            option_id=str(row["option_id"]),
            user_id=str(row["user_id"]),
            created_at=str(row["created_at"]) if row.get("created_at") else None,
        )


@runtime_checkable
class BackendClient(Protocol):
    """Request-scoped access to the hosted backend.

    Implementations raise ``BackendError`` when a call fails,
    ``UniqueViolationError`` when the store rejects a duplicate row and
    ``AuthenticationError`` when the identity provider refuses
    credentials.  Update and delete are always filtered by id *and*
    owner, so the store never applies them to someone else's row.
    """

    @property
    def access_token(self) -> str | None:
        """Token the client currently acts with (None = anonymous)."""
        ...

    # -- identity --

    async def get_user(self) -> Identity | None:
        """Return the caller identity, or None if the token is absent/invalid."""
        ...

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for a session."""
        ...

    async def sign_up(
        self, email: str, password: str, display_name: str
    ) -> AuthSession | None:
        """Create an account; None when the provider requires confirmation."""
        ...

    async def sign_out(self) -> None:
        """Revoke the current session."""
        ...

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        """Exchange a refresh token for a new session."""
        ...

    # -- polls --

    async def insert_poll(
        self, question: str, options: list[PollOption], owner_id: str
    ) -> PollRecord: ...

    async def get_poll(self, poll_id: str) -> PollRecord | None: ...

    async def list_polls_by_owner(self, owner_id: str) -> list[PollRecord]:
        """Owner's polls, newest first."""
        ...

    async def list_polls(self) -> list[PollRecord]:
        """All polls visible to the caller, newest first."""
        ...

    async def update_poll(
        self,
        poll_id: str,
        owner_id: str,
        question: str,
        options: list[PollOption],
    ) -> PollRecord | None:
        """Update a poll; None when no row matched id + owner."""
        ...

    async def delete_poll(self, poll_id: str, owner_id: str) -> bool:
        """Delete a poll; False when no row matched id + owner."""
        ...

    # -- votes --

    async def find_vote(self, poll_id: str, user_id: str) -> VoteRecord | None: ...

    async def insert_vote(
        self, poll_id: str, option_id: str, user_id: str
    ) -> VoteRecord: ...

    async def count_votes(self, poll_id: str) -> dict[str, int]:
        """Vote totals per option id (options without votes are omitted)."""
        ...

    async def count_votes_for(self, poll_ids: list[str]) -> dict[str, dict[str, int]]:
        """``count_votes`` for several polls in one round trip.

        Every requested id is present in the result, mapped to ``{}``
        when the poll has no votes.
        """
        ...

    # -- roles --

    async def get_role(self, user_id: str) -> str | None:
        """Role stored for *user_id*, or None when there is no row."""
        ...

