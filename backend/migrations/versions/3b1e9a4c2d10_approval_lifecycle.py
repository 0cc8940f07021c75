"""users, listings, status transitions, notifications

Revision ID: 3b1e9a4c2d10
Revises:
Create Date: 2025-11-02 10:14:03.512207
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3b1e9a4c2d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(bind, name: str) -> bool:
    insp = sa.inspect(bind)
    return name in insp.get_table_names()


def upgrade() -> None:
    """Create lifecycle tables if they don't already exist."""
    bind = op.get_bind()

    # ---- USERS ----
    if not _table_exists(bind, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("full_name", sa.String(length=255), nullable=False),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("role", sa.String(length=16), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False),
            sa.Column("status_reason", sa.Text(), nullable=True),
            sa.Column("last_reviewed_by", sa.String(length=36), nullable=True),
            sa.Column("last_reviewed_at", sa.DateTime(), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id", name=op.f("users_pkey")),
            sa.CheckConstraint("status IN ('pending','approved','rejected')", name="ck_users_status"),
        )
        op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
        op.create_index(op.f("ix_users_status"), "users", ["status"], unique=False)

    # ---- LISTINGS ----
    if not _table_exists(bind, "listings"):
        op.create_table(
            "listings",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("host_id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("make", sa.String(length=64), nullable=False),
            sa.Column("model", sa.String(length=64), nullable=False),
            sa.Column("year", sa.Integer(), nullable=True),
            sa.Column("daily_rate", sa.Numeric(10, 2), nullable=False),
            sa.Column("location", sa.String(length=255), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False),
            sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("status_reason", sa.Text(), nullable=True),
            sa.Column("last_reviewed_by", sa.String(length=36), nullable=True),
            sa.Column("last_reviewed_at", sa.DateTime(), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["host_id"], ["users.id"], name=op.f("listings_host_id_fkey")),
            sa.PrimaryKeyConstraint("id", name=op.f("listings_pkey")),
            sa.CheckConstraint("status IN ('pending','approved','rejected')", name="ck_listings_status"),
        )
        op.create_index(op.f("ix_listings_host_id"), "listings", ["host_id"], unique=False)
        op.create_index(op.f("ix_listings_status"), "listings", ["status"], unique=False)

    # ---- STATUS TRANSITIONS (append-only) ----
    if not _table_exists(bind, "status_transitions"):
        op.create_table(
            "status_transitions",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("entity_kind", sa.String(length=16), nullable=False),
            sa.Column("from_status", sa.String(length=16), nullable=False),
            sa.Column("to_status", sa.String(length=16), nullable=False),
            sa.Column("actor_id", sa.String(length=36), nullable=False),
            sa.Column("actor_role", sa.String(length=16), nullable=False),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("occurred_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id", name=op.f("status_transitions_pkey")),
        )
        op.create_index("ix_status_transitions_entity", "status_transitions",
                        ["entity_kind", "entity_id", "occurred_at"], unique=False)
        op.create_index(op.f("ix_status_transitions_actor_id"), "status_transitions", ["actor_id"], unique=False)

    # ---- NOTIFICATIONS ----
    if not _table_exists(bind, "notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("entity_kind", sa.String(length=16), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("from_status", sa.String(length=16), nullable=True),
            sa.Column("to_status", sa.String(length=16), nullable=False),
            sa.Column("message", sa.String(length=1000), nullable=False),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], name=op.f("notifications_user_id_fkey")),
            sa.PrimaryKeyConstraint("id", name=op.f("notifications_pkey")),
        )
        op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)


def downgrade() -> None:
    """Drop the same objects to roll back this revision."""
    # Drop in reverse dependency order
    op.execute("DROP TABLE IF EXISTS notifications")
    op.execute("DROP TABLE IF EXISTS status_transitions")
    op.execute("DROP TABLE IF EXISTS listings")
    op.execute("DROP TABLE IF EXISTS users")
