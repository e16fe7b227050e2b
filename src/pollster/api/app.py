"""FastAPI application factory for the pollster service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pollster.core.errors import BackendError, ConfigError, PollsterError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from fastapi import Request

    from pollster.backend.base import BackendClient
    from pollster.config.schema import PollsterConfig
    from pollster.services.revalidate import PathInvalidator

logger = logging.getLogger(__name__)


def _install_backend(
    app: FastAPI, factory: Callable[[str | None], BackendClient]
) -> None:
    from pollster.api.session import SessionResolver

    app.state.backend_factory = factory
    app.state.session_resolver = SessionResolver(app.state.config.session, factory)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the backend connection pool on startup, close it on shutdown.

    Skipped when a backend factory was injected.  With credentials
    missing the app still starts; the middleware then sends every
    request to the login page.
    """
    if app.state.backend_factory is not None:
        yield
        return

    from pollster.backend.rest import HostedBackend, create_http_client
    from pollster.config.loader import check_startup

    config: PollsterConfig = app.state.config
    check = check_startup(config)
    if not check.ok:
        logger.error("Backend disabled: %s", check.describe())
        yield
        return

    http = create_http_client(config.backend)
    anon_key = config.backend.anon_key or ""
    _install_backend(app, lambda token: HostedBackend(http, anon_key, token))
    logger.info("Backend client ready for %s", config.backend.url)

    yield

    await http.aclose()


async def _pollster_error(request: Request, exc: Exception) -> JSONResponse:
    """Render every domain error as ``{"error": message}``."""
    assert isinstance(exc, PollsterError)
    if isinstance(exc, (BackendError, ConfigError)):
        logger.error(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _request_validation_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Malformed request body"})


def create_app(
    config: PollsterConfig | None = None,
    *,
    backend_factory: Callable[[str | None], BackendClient] | None = None,
    invalidator: PathInvalidator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    from pollster.config.loader import load_config
    from pollster.services.revalidate import PathInvalidator

    if config is None:
        config = load_config()

    from pollster import __version__

    app = FastAPI(
        title="pollster",
        description="Polls with role-based access over a hosted backend",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.invalidator = invalidator or PathInvalidator()
    app.state.backend_factory = None
    app.state.session_resolver = None
    if backend_factory is not None:
        _install_backend(app, backend_factory)

    app.add_exception_handler(PollsterError, _pollster_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)

    # ── Middleware (Starlette runs in reverse order of addition) ──
    from fastapi.middleware.cors import CORSMiddleware

    from pollster.api.middleware import SessionMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Session resolution (added last, runs first)
    app.add_middleware(SessionMiddleware)

    # Routes
    from pollster.api.health import router as health_router
    from pollster.api.routes.admin import router as admin_router
    from pollster.api.routes.auth import router as auth_router
    from pollster.api.routes.pages import login_page, unauthorized_page
    from pollster.api.routes.polls import router as polls_router

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(polls_router)
    app.include_router(admin_router, prefix=config.api.admin_prefix.rstrip("/"))
    app.add_api_route(config.api.login_path, login_page, methods=["GET"])
    app.add_api_route(
        config.api.unauthorized_path, unauthorized_page, methods=["GET"]
    )

    return app
