"""
stores/user_store.py: Credential Store: persistence of User records.

The Auth Service depends on the UserStore protocol only. Two implementations:
  - SqlAlchemyUserStore: the production store, bound to a SQLAlchemy session.
    Writes are flushed, never committed: commits are the route's job.
  - InMemoryUserStore:   dict-backed, used by DB-free unit tests.

Both enforce the same two uniqueness rules and report them with distinct
exceptions so the service can tell a duplicate email from a lost race for
the bootstrap admin slot.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fleamarket.app.models.user import Role, User

logger = logging.getLogger(__name__)


class EmailTakenError(Exception):
    """The email is already registered (live or soft-deleted)."""


class BootstrapSlotTakenError(Exception):
    """Another signup already claimed the bootstrap admin slot."""


class UserStore(Protocol):

    def create(self, *, email: str, password_hash: str, role: str) -> User: ...
    def find_by_email(self, email: str) -> User | None: ...
    def find_by_id(self, user_id: int) -> User | None: ...
    def count_live_users(self) -> int: ...
    def list_users(self) -> list[User]: ...
    def set_role(self, user_id: int, role: str) -> User | None: ...


class SqlAlchemyUserStore:

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, *, email: str, password_hash: str, role: str) -> User:
        user = User(
            email=email,
            password_hash=password_hash,
            role=role,
            bootstrap_admin=True if role == Role.ADMIN else None,
        )
        self._session.add(user)
        try:
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            # The email check includes soft-deleted rows: the UNIQUE
            # constraint covers them too.
            if self._email_exists(email):
                raise EmailTakenError(email)
            raise BootstrapSlotTakenError(email)
        return user

    def find_by_email(self, email: str) -> User | None:
        return self._session.execute(
            select(User).where(User.email == email, User.deleted_at.is_(None))
        ).scalar_one_or_none()

    def find_by_id(self, user_id: int) -> User | None:
        return self._session.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        ).scalar_one_or_none()

    def count_live_users(self) -> int:
        count = self._session.execute(
            select(func.count(User.id)).where(User.deleted_at.is_(None))
        ).scalar_one()
        logger.debug("count_live_users: %d live users", count)
        return count

    def list_users(self) -> list[User]:
        return list(
            self._session.execute(
                select(User).where(User.deleted_at.is_(None)).order_by(User.id.asc())
            ).scalars().all()
        )

    def set_role(self, user_id: int, role: str) -> User | None:
        user = self.find_by_id(user_id)
        if user is None:
            return None
        user.role = role
        self._session.flush()
        return user

    def _email_exists(self, email: str) -> bool:
        return self._session.execute(
            select(User.id).where(User.email == email)
        ).first() is not None


class InMemoryUserStore:
    """Dict-backed UserStore. Users are transient ORM instances."""

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._next_id = 1
        self._bootstrap_claimed = False

    def create(self, *, email: str, password_hash: str, role: str) -> User:
        if any(u.email == email for u in self._users.values()):
            raise EmailTakenError(email)
        if role == Role.ADMIN:
            if self._bootstrap_claimed:
                raise BootstrapSlotTakenError(email)
            self._bootstrap_claimed = True

        user = User(
            id=self._next_id,
            email=email,
            password_hash=password_hash,
            role=role,
            bootstrap_admin=True if role == Role.ADMIN else None,
            created_at=datetime.now(timezone.utc),
            deleted_at=None,
        )
        self._users[user.id] = user
        self._next_id += 1
        return user

    def find_by_email(self, email: str) -> User | None:
        for user in self._users.values():
            if user.email == email and user.deleted_at is None:
                return user
        return None

    def find_by_id(self, user_id: int) -> User | None:
        user = self._users.get(user_id)
        if user is None or user.deleted_at is not None:
            return None
        return user

    def count_live_users(self) -> int:
        return sum(1 for u in self._users.values() if u.deleted_at is None)

    def list_users(self) -> list[User]:
        return [u for _, u in sorted(self._users.items()) if u.deleted_at is None]

    def set_role(self, user_id: int, role: str) -> User | None:
        user = self.find_by_id(user_id)
        if user is not None:
            user.role = role
        return user

    def soft_delete(self, user_id: int) -> None:
        """Test helper: marks a user deleted without removing the row."""
        self._users[user_id].deleted_at = datetime.now(timezone.utc)
