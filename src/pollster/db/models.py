"""SQLAlchemy declaration of the hosted store's schema.

The service never connects to the database directly; it goes through
the backend's REST gateway.  These models exist so the tables and the
constraints the service relies on (one vote per user and poll, one role
per user) are versioned here and provisioned by alembic.

Rows written through the gateway carry no ids or timestamps, so every
such column also has a server-side default.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.expression import FunctionElement

ROLES = ("user", "admin")


def _uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    """Current UTC time for timestamps."""
    return datetime.now(UTC)


class TextUUID(FunctionElement):
    """Random UUID rendered as text, generated by the database."""

    type = String()
    inherit_cache = True


@compiles(TextUUID)
def _text_uuid_postgres(element: TextUUID, compiler: Any, **kw: Any) -> str:
    return "gen_random_uuid()::text"


@compiles(TextUUID, "sqlite")
def _text_uuid_sqlite(element: TextUUID, compiler: Any, **kw: Any) -> str:
    return "lower(hex(randomblob(16)))"


class Base(DeclarativeBase):
    """Declarative base for all pollster models."""


class Poll(Base):
    """A poll; ``options`` holds the ordered ``[{id, text}]`` list."""

    __tablename__ = "polls"
    __table_args__ = (Index("ix_polls_user_created", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_uuid, server_default=TextUUID()
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[dict[str, str]]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
    )

    votes: Mapped[list[Vote]] = relationship(
        back_populates="poll", cascade="all, delete-orphan"
    )


class Vote(Base):
    """One user's vote in one poll."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("poll_id", "user_id", name="uq_votes_poll_user"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_uuid, server_default=TextUUID()
    )
    poll_id: Mapped[str] = mapped_column(
        ForeignKey("polls.id", ondelete="CASCADE"), index=True
    )
    option_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    poll: Mapped[Poll] = relationship(back_populates="votes")


class UserRole(Base):
    """Role assignment; users without a row are plain users."""

    __tablename__ = "user_roles"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_user_roles_role"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_uuid, server_default=TextUUID()
    )
    user_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="user", server_default="user")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
