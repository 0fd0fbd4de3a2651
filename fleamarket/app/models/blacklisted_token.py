"""
models/blacklisted_token.py: BlacklistedToken table definition.

No foreign key to users: revocation is keyed by the raw token string and
keeps working after the owning user is soft-deleted.

expires_at is the token's own exp claim (epoch seconds). Rows stay
authoritative until `flask purge-blacklist` removes those already past it.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from fleamarket.app.extensions import db


class BlacklistedToken(db.Model):
    __tablename__ = "blacklisted_tokens"

    id: Mapped[int] = mapped_column(primary_key=True)

    # UNIQUE is the concurrency guard for refresh rotation: only one
    # concurrent rotation of the same token records the entry.
    token: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
    )

    expires_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<BlacklistedToken id={self.id} expires_at={self.expires_at}>"
