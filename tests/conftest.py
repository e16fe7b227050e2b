"""Shared test fixtures for pollster."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from pollster.api.app import create_app
from pollster.config.schema import PollsterConfig, SessionConfig
from pollster.db.models import Base
from pollster.services.revalidate import PathInvalidator
from tests.fixtures.backend import FakeBackend, FakeStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncSession

    from pollster.backend.base import Identity


@pytest.fixture
async def db_session() -> AsyncSession:  # type: ignore[misc]
    """In-memory SQLite async session with FK enforcement."""
    engine = create_async_engine("sqlite+aiosqlite://")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_fks(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def config() -> PollsterConfig:
    """Defaults, except cookies are not marked Secure (TestClient speaks http)."""
    return PollsterConfig(session=SessionConfig(secure=False))


@pytest.fixture
def invalidator() -> PathInvalidator:
    return PathInvalidator()


@pytest.fixture
def app(
    config: PollsterConfig, store: FakeStore, invalidator: PathInvalidator
) -> FastAPI:
    return create_app(
        config,
        backend_factory=lambda token: FakeBackend(store, token),
        invalidator=invalidator,
    )


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sign_in(client: TestClient, store: FakeStore) -> Callable[..., Any]:
    """Put a fresh session for *identity* into the client's cookie jar."""

    def _sign_in(identity: Identity, **kwargs: Any) -> Any:
        session = store.issue_session(identity, **kwargs)
        client.cookies.set("pollster-access-token", session.access_token)
        client.cookies.set("pollster-refresh-token", session.refresh_token)
        return session

    return _sign_in
