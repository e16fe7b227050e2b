"""Session resolution from request cookies.

The access token and refresh token issued by the identity provider
travel in two HTTP-only cookies.  On every request the resolver turns
them into a caller identity, refreshing the pair when the access token
is expired or about to expire.  Replacement cookies must be written to
the response whatever it turns out to be (redirects included), or the
caller is logged out on their next request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import jwt

from pollster.core.errors import AuthenticationError, BackendError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from starlette.responses import Response

    from pollster.backend.base import AuthSession, BackendClient, Identity
    from pollster.config.schema import SessionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CookieUpdate:
    """A cookie to set on (or, with ``value=None``, clear from) the response."""

    name: str
    value: str | None
    max_age: int = 0

    @property
    def deleted(self) -> bool:
        return self.value is None


@dataclass(slots=True)
class ResolvedSession:
    """Outcome of resolving one request's cookies."""

    identity: Identity | None = None
    access_token: str | None = None
    cookies: list[CookieUpdate] = field(default_factory=list)


def token_expires_soon(token: str, margin_seconds: int = 0) -> bool:
    """True when *token* cannot be decoded or its ``exp`` is within the margin.

    The signature is not checked here: the identity provider validates
    the token when we ask it who the caller is.  This only avoids a
    round trip with a token that is known to be stale.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return True
    exp = claims.get("exp")
    if exp is None:
        return False
    return float(exp) - margin_seconds <= time.time()


class SessionResolver:
    """Turn session cookies into a caller identity."""

    def __init__(
        self,
        config: SessionConfig,
        backend_factory: Callable[[str | None], BackendClient],
    ) -> None:
        self._config = config
        self._backend_factory = backend_factory

    @property
    def access_cookie(self) -> str:
        return f"{self._config.cookie_prefix}-access-token"

    @property
    def refresh_cookie(self) -> str:
        return f"{self._config.cookie_prefix}-refresh-token"

    def session_cookies(self, session: AuthSession) -> list[CookieUpdate]:
        max_age = self._config.max_age_days * 86_400
        return [
            CookieUpdate(self.access_cookie, session.access_token, max_age),
            CookieUpdate(self.refresh_cookie, session.refresh_token, max_age),
        ]

    def clear_cookies(self) -> list[CookieUpdate]:
        return [
            CookieUpdate(self.access_cookie, None),
            CookieUpdate(self.refresh_cookie, None),
        ]

    async def resolve(self, cookies: Mapping[str, str]) -> ResolvedSession:
        """Resolve the caller.  Never raises: failures mean anonymous."""
        access = cookies.get(self.access_cookie)
        refresh = cookies.get(self.refresh_cookie)
        if not access and not refresh:
            return ResolvedSession()

        if access and not token_expires_soon(
            access, self._config.refresh_margin_seconds
        ):
            try:
                identity = await self._backend_factory(access).get_user()
            except BackendError as e:
                logger.warning("Identity lookup failed: %s", e)
                return ResolvedSession()
            if identity is not None:
                return ResolvedSession(identity=identity, access_token=access)

        if not refresh:
            return ResolvedSession(cookies=self.clear_cookies())

        try:
            session = await self._backend_factory(None).refresh_session(refresh)
        except AuthenticationError as e:
            logger.info("Session refresh rejected: %s", e)
            return ResolvedSession(cookies=self.clear_cookies())
        except BackendError as e:
            logger.warning("Session refresh failed: %s", e)
            return ResolvedSession()

        logger.debug("Refreshed session for %s", session.user.id)
        return ResolvedSession(
            identity=session.user,
            access_token=session.access_token,
            cookies=self.session_cookies(session),
        )

    def apply(self, response: Response, updates: list[CookieUpdate]) -> None:
        """Write *updates* to *response*.

        Cookies the handler already set on the response (e.g. a fresh
        login) take precedence and are left alone.
        """
        already_set = {
            header.split("=", 1)[0]
            for header in response.headers.getlist("set-cookie")
        }
        for update in updates:
            if update.name in already_set:
                continue
            if update.deleted:
                response.delete_cookie(
                    update.name,
                    path="/",
                    secure=self._config.secure,
                    httponly=True,
                    samesite=self._config.same_site,  # type: ignore[arg-type]
                )
            else:
                response.set_cookie(
                    update.name,
                    update.value or "",
                    max_age=update.max_age,
                    path="/",
                    secure=self._config.secure,
                    httponly=True,
                    samesite=self._config.same_site,  # type: ignore[arg-type]
                )
