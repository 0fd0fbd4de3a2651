"""
models/user.py: User table definition.

No business logic. No imports from services or routes.

Role invariant: exactly one of Role.ALL at any time, defaulting to "user".
The first user ever created is the bootstrap admin; `bootstrap_admin` is a
nullable UNIQUE marker set only on that row, so two concurrent "first"
signups cannot both become admin (NULLs never collide).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleamarket.app.extensions import db


class Role:
    ADMIN = "admin"
    USER  = "user"

    ALL = (ADMIN, USER)


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'user')",
            name="ck_users_role_valid",
        ),
        # Also enforced by the marshmallow Email field.
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Case-sensitive as stored.
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=Role.USER,
        server_default=Role.USER,
    )

    bootstrap_admin: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Soft delete. Deleted users are invisible to lookups and to the
    # live-user count that decides the bootstrap admin.
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    items: Mapped[list["Item"]] = relationship(  # noqa: F821
        "Item",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
