"""Authorization rules: admin routes, poll visibility, poll ownership.

These checks are the service's front door, not its only gate.  The
backend's row-level security and unique constraints enforce the same
rules again, and update/delete are always filtered by owner in the
query itself.

Roles: ``admin`` and ``user``.  Anything else, including a missing
role row, counts as ``user``.

Example::

    decision = admin_route_decision(identity, role)
    if not decision.allowed:
        return RedirectResponse(decision.location)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pollster.backend.base import Identity, PollRecord

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class Verdict(enum.Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True, slots=True)
class RouteDecision:
    """What to do with a request for a protected route."""

    verdict: Verdict
    location: str | None = None

    @property
    def allowed(self) -> bool:
        return self.verdict is Verdict.ALLOW


def normalize_role(role: str | None) -> str:
    """Map a stored role to ``admin`` or ``user``."""
    return ROLE_ADMIN if role == ROLE_ADMIN else ROLE_USER


def is_admin(role: str | None) -> bool:
    return normalize_role(role) == ROLE_ADMIN


def admin_route_decision(
    identity: Identity | None,
    role: str | None,
    *,
    login_path: str = "/login",
    unauthorized_path: str = "/unauthorized",
) -> RouteDecision:
    """Decide access to an admin route.

    unauthenticated -> redirect to login; non-admin -> redirect to the
    unauthorized page; admin -> allow.
    """
    if identity is None:
        return RouteDecision(Verdict.REDIRECT, login_path)
    if not is_admin(role):
        return RouteDecision(Verdict.REDIRECT, unauthorized_path)
    return RouteDecision(Verdict.ALLOW)


def is_owner(poll: PollRecord, identity: Identity | None) -> bool:
    return identity is not None and identity.id == poll.user_id


def can_view_full(
    poll: PollRecord, identity: Identity | None, role: str | None
) -> bool:
    """Owner and admins see every field; everyone else the public subset."""
    if identity is None:
        return False
    return is_owner(poll, identity) or is_admin(role)


def can_create(identity: Identity | None) -> bool:
    return identity is not None


def can_modify(poll: PollRecord, identity: Identity | None) -> bool:
    """Only the owner may update or delete a poll (admins included)."""
    return is_owner(poll, identity)


def public_projection(poll: PollRecord) -> dict[str, Any]:
    return {
        "id": poll.id,
        "question": poll.question,
        "options": [{"id": opt.id, "text": opt.text} for opt in poll.options],
        "created_at": poll.created_at,
        "updated_at": poll.updated_at,
    }


def full_projection(
    poll: PollRecord, vote_counts: Mapping[str, int] | None = None
) -> dict[str, Any]:
    counts = vote_counts or {}
    return {
        "id": poll.id,
        "question": poll.question,
        "options": [
            {"id": opt.id, "text": opt.text, "votes": counts.get(opt.id, 0)}
            for opt in poll.options
        ],
        "user_id": poll.user_id,
        "created_at": poll.created_at,
        "updated_at": poll.updated_at,
    }


def project_poll(
    poll: PollRecord,
    identity: Identity | None,
    role: str | None,
    vote_counts: Mapping[str, int] | None = None,
) -> dict[str, Any]:
    """Return the projection of *poll* the caller is allowed to see."""
    if can_view_full(poll, identity, role):
        return full_projection(poll, vote_counts)
    return public_projection(poll)
