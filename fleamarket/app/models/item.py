"""
models/item.py: Item (marketplace listing) table definition.

FK policy: user_id ON DELETE CASCADE: listings are owned by their seller.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleamarket.app.extensions import db


class Item(db.Model):
    __tablename__ = "items"

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_items_price_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Whole currency units (yen); no fractional prices.
    price: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    sold_out: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="items",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Item id={self.id} name={self.name!r} user_id={self.user_id}>"
