"""HTTP client for the hosted backend: auth endpoints + REST gateway.

One ``httpx.AsyncClient`` (connection pool) lives for the whole app;
``HostedBackend`` instances are cheap, created per request and bound to
that request's access token.  Every request carries the project anon
key in ``apikey`` and the caller's token (or the anon key when the
caller is anonymous) as the bearer, so row-level security is evaluated
for the caller.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from pollster.backend.base import AuthSession, Identity, PollRecord, VoteRecord
from pollster.core.errors import (
    AuthenticationError,
    BackendError,
    UniqueViolationError,
)

if TYPE_CHECKING:
    from pollster.backend.base import PollOption
    from pollster.config.schema import BackendConfig

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/auth/v1"
REST_PREFIX = "/rest/v1"

# Postgres SQLSTATE for unique_violation, as reported by the REST gateway.
UNIQUE_VIOLATION = "23505"
# invalid_text_representation: a filter value the column type rejects,
# e.g. a malformed uuid.
INVALID_TEXT_REPRESENTATION = "22P02"

_MESSAGE_KEYS = ("error_description", "msg", "message", "error")


def create_http_client(config: BackendConfig) -> httpx.AsyncClient:
    """Build the shared connection pool for the configured backend."""
    return httpx.AsyncClient(
        base_url=(config.url or "").rstrip("/"),
        timeout=config.timeout,
    )


def _error_message(response: httpx.Response) -> tuple[str, str | None]:
    """Extract (message, code) from an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None
    if not isinstance(body, dict):
        return str(body), None
    code = body.get("code")
    for key in _MESSAGE_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value, str(code) if code is not None else None
    return f"HTTP {response.status_code}", str(code) if code is not None else None


class HostedBackend:
    """``BackendClient`` implementation over HTTP."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        anon_key: str,
        access_token: str | None = None,
    ) -> None:
        self._http = http
        self._anon_key = anon_key
        self._access_token = access_token

    @property
    def access_token(self) -> str | None:
        return self._access_token

    # ── Transport ────────────────────────────────────────────────

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {self._access_token or self._anon_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as e:
            logger.warning("Backend request %s %s failed: %s", method, path, e)
            msg = f"Backend unavailable: {e.__class__.__name__}"
            raise BackendError(msg) from e

        if response.status_code >= 400:
            message, code = _error_message(response)
            if path.startswith(AUTH_PREFIX) and response.status_code < 500:
                raise AuthenticationError(message)
            if code == UNIQUE_VIOLATION:
                raise UniqueViolationError(
                    message, status_code=response.status_code, code=code
                )
            raise BackendError(message, status_code=response.status_code, code=code)
        return response

    async def _rows(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        response = await self._request(
            method, f"{REST_PREFIX}/{table}", params=params, json=json, prefer=prefer
        )
        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    async def _first(self, table: str, params: dict[str, str]) -> dict[str, Any] | None:
        """Single-row read; an id the column cannot hold matches nothing."""
        try:
            rows = await self._rows("GET", table, params={**params, "limit": "1"})
        except BackendError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                return None
            raise
        return rows[0] if rows else None

    # ── Identity ─────────────────────────────────────────────────

    async def get_user(self) -> Identity | None:
        if not self._access_token:
            return None
        try:
            response = await self._request("GET", f"{AUTH_PREFIX}/user")
        except AuthenticationError:
            return None
        return Identity.from_user(response.json())

    async def _grant(self, grant_type: str, body: dict[str, str]) -> AuthSession:
        response = await self._request(
            "POST",
            f"{AUTH_PREFIX}/token",
            params={"grant_type": grant_type},
            json=body,
        )
        session = AuthSession.from_payload(response.json())
        self._access_token = session.access_token
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        return await self._grant("password", {"email": email, "password": password})

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        return await self._grant("refresh_token", {"refresh_token": refresh_token})

    async def sign_up(
        self, email: str, password: str, display_name: str
    ) -> AuthSession | None:
        response = await self._request(
            "POST",
            f"{AUTH_PREFIX}/signup",
            json={
                "email": email,
                "password": password,
                "data": {"name": display_name},
            },
        )
        data = response.json()
        if "access_token" not in data:
            # Email confirmation pending: no session yet.
            return None
        session = AuthSession.from_payload(data)
        self._access_token = session.access_token
        return session

    async def sign_out(self) -> None:
        if not self._access_token:
            return
        await self._request("POST", f"{AUTH_PREFIX}/logout")
        self._access_token = None

    # ── Polls ────────────────────────────────────────────────────

    async def insert_poll(
        self, question: str, options: list[PollOption], owner_id: str
    ) -> PollRecord:
        rows = await self._rows(
            "POST",
            "polls",
            json={
                "user_id": owner_id,
                "question": question,
                "options": [opt.to_row() for opt in options],
            },
            prefer="return=representation",
        )
        if not rows:
            msg = "Poll was not created"
            raise BackendError(msg)
        return PollRecord.from_row(rows[0])

    async def get_poll(self, poll_id: str) -> PollRecord | None:
        row = await self._first("polls", {"id": f"eq.{poll_id}", "select": "*"})
        return PollRecord.from_row(row) if row else None

    async def list_polls_by_owner(self, owner_id: str) -> list[PollRecord]:
        rows = await self._rows(
            "GET",
            "polls",
            params={
                "user_id": f"eq.{owner_id}",
                "select": "*",
                "order": "created_at.desc",
            },
        )
        return [PollRecord.from_row(row) for row in rows]

    async def list_polls(self) -> list[PollRecord]:
        rows = await self._rows(
            "GET", "polls", params={"select": "*", "order": "created_at.desc"}
        )
        return [PollRecord.from_row(row) for row in rows]

    async def update_poll(
        self,
        poll_id: str,
        owner_id: str,
        question: str,
        options: list[PollOption],
    ) -> PollRecord | None:
        rows = await self._rows(
            "PATCH",
            "polls",
            params={"id": f"eq.{poll_id}", "user_id": f"eq.{owner_id}"},
            json={
                "question": question,
                "options": [opt.to_row() for opt in options],
                "updated_at": datetime.now(UTC).isoformat(),
            },
            prefer="return=representation",
        )
        return PollRecord.from_row(rows[0]) if rows else None

    async def delete_poll(self, poll_id: str, owner_id: str) -> bool:
        rows = await self._rows(
            "DELETE",
            "polls",
            params={"id": f"eq.{poll_id}", "user_id": f"eq.{owner_id}"},
            prefer="return=representation",
        )
        return bool(rows)

    # ── Votes ────────────────────────────────────────────────────

    async def find_vote(self, poll_id: str, user_id: str) -> VoteRecord | None:
        row = await self._first(
            "votes",
            {"poll_id": f"eq.{poll_id}", "user_id": f"eq.{user_id}", "select": "*"},
        )
        return VoteRecord.from_row(row) if row else None

    async def insert_vote(
        self, poll_id: str, option_id: str, user_id: str
    ) -> VoteRecord:
        rows = await self._rows(
            "POST",
            "votes",
            json={"poll_id": poll_id, "option_id": option_id, "user_id": user_id},
            prefer="return=representation",
        )
        if not rows:
            msg = "Vote was not recorded"
            raise BackendError(msg)
        return VoteRecord.from_row(rows[0])

    async def count_votes(self, poll_id: str) -> dict[str, int]:
        rows = await self._rows(
            "GET",
            "votes",
            params={"poll_id": f"eq.{poll_id}", "select": "option_id"},
        )
        return dict(Counter(str(row["option_id"]) for row in rows))

    async def count_votes_for(self, poll_ids: list[str]) -> dict[str, dict[str, int]]:
        if not poll_ids:
            return {}
        rows = await self._rows(
            "GET",
            "votes",
            params={
                "poll_id": f"in.({','.join(poll_ids)})",
                "select": "poll_id,option_id",
            },
        )
        tally = Counter((str(row["poll_id"]), str(row["option_id"])) for row in rows)
        counts: dict[str, dict[str, int]] = {poll_id: {} for poll_id in poll_ids}
        for (poll_id, option_id), total in tally.items():
            counts.setdefault(poll_id, {})[option_id] = total
        return counts

    # ── Roles ────────────────────────────────────────────────────

    async def get_role(self, user_id: str) -> str | None:
        rows = await self._rows(
            "GET",
            "user_roles",
            params={"user_id": f"eq.{user_id}", "select": "role", "limit": "1"},
        )
        return rows[0].get("role") if rows else None
