"""Initial schema: users, items, blacklisted_tokens.

Revision: 001_initial_schema

Append-only: never edit this file after it has been applied to a database.
Schema changes go in a NEW migration file.

Creation order:
  1. users
  2. items (FK users.id ON DELETE CASCADE)
  3. blacklisted_tokens (no FK: keyed by token string)
  4. Indexes
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration: no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── Step 1: users ──────────────────────────────────────────────────────
    # bootstrap_admin: nullable UNIQUE, TRUE only on the first admin, so
    # concurrent first signups cannot both become admin.

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.String(16),
            nullable=False,
            server_default="user",
        ),
        sa.Column("bootstrap_admin", sa.Boolean(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("bootstrap_admin", name="uq_users_bootstrap_admin"),
        sa.CheckConstraint(
            "role IN ('admin', 'user')",
            name="ck_users_role_valid",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    # ── Step 2: items ──────────────────────────────────────────────────────

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column(
            "sold_out",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_items_user"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_items"),
        sa.CheckConstraint("price > 0", name="ck_items_price_positive"),
    )

    # ── Step 3: blacklisted_tokens ─────────────────────────────────────────
    # expires_at is the token's exp claim in epoch seconds.

    op.create_table(
        "blacklisted_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_blacklisted_tokens"),
        sa.UniqueConstraint("token", name="uq_blacklisted_tokens_token"),
    )

    # ── Step 4: Indexes ────────────────────────────────────────────────────

    op.create_index("idx_items_user", "items", ["user_id"])

    # purge-blacklist deletes by expires_at range.
    op.create_index(
        "idx_blacklisted_tokens_expires_at",
        "blacklisted_tokens",
        ["expires_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_blacklisted_tokens_expires_at", table_name="blacklisted_tokens")
    op.drop_index("idx_items_user", table_name="items")

    op.drop_table("blacklisted_tokens")
    op.drop_table("items")
    op.drop_table("users")
