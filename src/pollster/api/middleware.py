"""API middleware: session resolution and the admin-route gate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from pollster.rules.access import admin_route_decision
from pollster.services.auth import get_user_role

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import Request, Response

    from pollster.api.session import ResolvedSession

logger = logging.getLogger(__name__)


def is_admin_path(path: str, prefix: str) -> bool:
    """True for the admin prefix itself and anything below it."""
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


class SessionMiddleware(BaseHTTPMiddleware):
    """Resolve the caller for every request and guard admin routes.

    Sets ``request.state.identity`` (None = anonymous),
    ``request.state.access_token`` and, on admin routes,
    ``request.state.role``.  Refreshed session cookies are written to
    whatever response goes out, redirects included.
    """

    EXEMPT_PATHS: ClassVar[set[str]] = {
        "/api/health",
        "/api/health/detailed",
        "/docs",
        "/openapi.json",
        "/redoc",
    }

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        config = request.app.state.config
        request.state.identity = None
        request.state.access_token = None
        request.state.role = None

        if path in self.EXEMPT_PATHS:
            return await call_next(request)

        resolver = getattr(request.app.state, "session_resolver", None)
        if resolver is None:
            # Backend credentials missing: nothing can be authenticated.
            if path in (config.api.login_path, config.api.unauthorized_path):
                return await call_next(request)
            logger.error("Backend not configured; redirecting %s to login", path)
            return RedirectResponse(config.api.login_path, status_code=307)

        resolved = await resolver.resolve(request.cookies)
        request.state.identity = resolved.identity
        request.state.access_token = resolved.access_token

        response: Response | None = None
        if is_admin_path(path, config.api.admin_prefix):
            response = await self._admin_gate(request, resolved)
        if response is None:
            response = await call_next(request)

        resolver.apply(response, resolved.cookies)
        return response

    async def _admin_gate(
        self, request: Request, resolved: ResolvedSession
    ) -> Response | None:
        """Return a redirect when the caller may not enter, else None.

        The role is looked up from the store on every request.
        """
        config = request.app.state.config
        role = None
        if resolved.identity is not None:
            backend = request.app.state.backend_factory(resolved.access_token)
            role = await get_user_role(backend, resolved.identity.id)
            request.state.role = role

        decision = admin_route_decision(
            resolved.identity,
            role,
            login_path=config.api.login_path,
            unauthorized_path=config.api.unauthorized_path,
        )
        if decision.allowed:
            return None
        logger.info(
            "Admin route %s denied, redirecting to %s",
            request.url.path,
            decision.location,
        )
        return RedirectResponse(decision.location or "/", status_code=307)
