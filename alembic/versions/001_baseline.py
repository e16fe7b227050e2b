"""Baseline schema: polls, votes, user_roles.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: str | None = None

# Admin lookup for policies.  SECURITY DEFINER runs it as the table
# owner, so reading user_roles here does not re-enter user_roles' own
# policy.
_IS_ADMIN_FUNCTION = """
CREATE OR REPLACE FUNCTION public.is_admin(uid text) RETURNS boolean
LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
  SELECT EXISTS (
    SELECT 1 FROM public.user_roles WHERE user_id = uid AND role = 'admin'
  )
$$
"""

# Row-level security, applied on the hosted postgres only.  ``auth.uid()``
# is the caller's id as established by the identity provider.  A policy
# never selects from the table it guards.
POLICIES = (
    "ALTER TABLE polls ENABLE ROW LEVEL SECURITY",
    "ALTER TABLE votes ENABLE ROW LEVEL SECURITY",
    "ALTER TABLE user_roles ENABLE ROW LEVEL SECURITY",
    """CREATE POLICY polls_select ON polls FOR SELECT USING (true)""",
    """CREATE POLICY polls_insert ON polls FOR INSERT
       WITH CHECK (auth.uid()::text = user_id)""",
    """CREATE POLICY polls_update ON polls FOR UPDATE
       USING (auth.uid()::text = user_id)
       WITH CHECK (auth.uid()::text = user_id)""",
    """CREATE POLICY polls_delete ON polls FOR DELETE
       USING (auth.uid()::text = user_id)""",
    """CREATE POLICY votes_insert ON votes FOR INSERT
       WITH CHECK (auth.uid()::text = user_id)""",
    """CREATE POLICY votes_select ON votes FOR SELECT USING (
         auth.uid()::text = user_id
         OR EXISTS (SELECT 1 FROM polls p
                    WHERE p.id = votes.poll_id AND p.user_id = auth.uid()::text)
         OR public.is_admin(auth.uid()::text)
       )""",
    """CREATE POLICY user_roles_select ON user_roles FOR SELECT USING (
         auth.uid()::text = user_id
         OR public.is_admin(auth.uid()::text)
       )""",
)

_DROP_POLICIES = (
    ("user_roles_select", "user_roles"),
    ("votes_select", "votes"),
    ("votes_insert", "votes"),
    ("polls_delete", "polls"),
    ("polls_update", "polls"),
    ("polls_insert", "polls"),
    ("polls_select", "polls"),
)


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def _id_default() -> sa.TextClause:
    """Server-side text UUID; rows arrive through the REST gateway without ids."""
    if _is_postgres():
        return sa.text("gen_random_uuid()::text")
    return sa.text("(lower(hex(randomblob(16))))")


def upgrade() -> None:
    op.create_table(
        "polls",
        sa.Column("id", sa.String(36), primary_key=True, server_default=_id_default()),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_polls_user_created", "polls", ["user_id", "created_at"])

    op.create_table(
        "votes",
        sa.Column("id", sa.String(36), primary_key=True, server_default=_id_default()),
        sa.Column(
            "poll_id",
            sa.String(36),
            sa.ForeignKey("polls.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("option_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("poll_id", "user_id", name="uq_votes_poll_user"),
    )
    op.create_index("ix_votes_poll_id", "votes", ["poll_id"])
    op.create_index("ix_votes_user_id", "votes", ["user_id"])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.String(36), primary_key=True, server_default=_id_default()),
        sa.Column("user_id", sa.String(36), nullable=False, unique=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_user_roles_role"),
    )

    if _is_postgres():
        op.execute(_IS_ADMIN_FUNCTION)
        for statement in POLICIES:
            op.execute(statement)


def downgrade() -> None:
    if _is_postgres():
        for name, table in _DROP_POLICIES:
            op.execute(f"DROP POLICY IF EXISTS {name} ON {table}")
        op.execute("DROP FUNCTION IF EXISTS public.is_admin(text)")
    op.drop_table("user_roles")
    op.drop_index("ix_votes_user_id", table_name="votes")
    op.drop_index("ix_votes_poll_id", table_name="votes")
    op.drop_table("votes")
    op.drop_index("ix_polls_user_created", table_name="polls")
    op.drop_table("polls")
