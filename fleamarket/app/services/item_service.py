"""
services/item_service.py: Marketplace item listing logic.

Ownership rules:
  - Anyone may list items (public catalogue).
  - Reading a single item, updating it: owner only. Non-owners get
    ITEM_NOT_FOUND (404), not 403, so listing ids are not probeable.
  - Deleting: the owner, or any admin.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility: only flush here.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from fleamarket.app.errors import AppError, ErrorCode
from fleamarket.app.models.item import Item
from fleamarket.app.models.user import Role, User

_UPDATABLE_FIELDS = ("name", "price", "description", "sold_out")


# ── Private helpers ────────────────────────────────────────────────────────

def _item_not_found(item_id: int) -> AppError:
    return AppError(
        ErrorCode.ITEM_NOT_FOUND,
        f"Item {item_id} does not exist.",
        404,
    )


def _get_owned_item_or_404(item_id: int, user_id: int, session: Session) -> Item:
    """Returns the Item if it exists and belongs to user_id, else 404."""
    item = session.execute(
        select(Item).where(Item.id == item_id, Item.user_id == user_id)
    ).scalar_one_or_none()
    if item is None:
        raise _item_not_found(item_id)
    return item


# ── Public service functions ───────────────────────────────────────────────

def list_items(session: Session) -> list[Item]:
    return list(
        session.execute(select(Item).order_by(Item.id.asc())).scalars().all()
    )


def get_item(item_id: int, user_id: int, session: Session) -> Item:
    return _get_owned_item_or_404(item_id, user_id, session)


def create_item(data: dict, user_id: int, session: Session) -> Item:
    """
    Args:
        data:    validated CreateItemSchema output.
        user_id: the authenticated seller (g.current_user.id).
    """
    item = Item(
        name=data["name"],
        price=data["price"],
        description=data.get("description"),
        sold_out=False,
        user_id=user_id,
    )
    session.add(item)
    session.flush()
    return item


def update_item(item_id: int, user_id: int, data: dict, session: Session) -> Item:
    """
    Partial update. Only keys present in `data` are written.

    Raises:
      AppError(NO_FIELDS_TO_UPDATE, 400)
      AppError(ITEM_NOT_FOUND, 404)
    """
    updates = {k: v for k, v in data.items() if k in _UPDATABLE_FIELDS}
    if not updates:
        raise AppError(
            ErrorCode.NO_FIELDS_TO_UPDATE,
            "Provide at least one field to update.",
            400,
        )

    item = _get_owned_item_or_404(item_id, user_id, session)
    for field, value in updates.items():
        setattr(item, field, value)
    session.flush()
    return item


def delete_item(item_id: int, user: User, session: Session) -> None:
    """Admins may delete any item; everyone else only their own."""
    if user.role == Role.ADMIN:
        item = session.get(Item, item_id)
        if item is None:
            raise _item_not_found(item_id)
    else:
        item = _get_owned_item_or_404(item_id, user.id, session)

    session.delete(item)
    session.flush()
