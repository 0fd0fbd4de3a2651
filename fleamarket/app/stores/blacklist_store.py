"""
stores/blacklist_store.py: Token Blacklist Store: persisted revocations.

Abstraction over where revoked token strings live. The Auth Service only
sees the TokenBlacklistStore protocol, so the backing (shared DB, separate
DB, in-memory) can change without touching service code.

Contract:
  add(token, expires_at)   -> True if recorded, False if already present.
                              Duplicates are logged, never retried.
  is_blacklisted(token)    -> existence check. Absence means "not revoked",
                              not "never issued".
  purge_expired(now)       -> deletes rows with expires_at < now, returns
                              the count. Maintenance only, never called on
                              the request path.

All times are epoch seconds.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fleamarket.app.errors import AppError, ErrorCode
from fleamarket.app.models.blacklisted_token import BlacklistedToken

logger = logging.getLogger(__name__)


class TokenBlacklistStore(Protocol):

    def add(self, token: str, expires_at: int) -> bool: ...
    def is_blacklisted(self, token: str) -> bool: ...
    def purge_expired(self, now: int) -> int: ...


class SqlAlchemyBlacklistStore:
    """
    Blacklist backed by the blacklisted_tokens table.

    Unlike the other stores, writes here commit immediately: a revocation
    record must persist on its own, independent of whatever the surrounding
    request later does with its transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, token: str, expires_at: int) -> bool:
        self._session.add(BlacklistedToken(token=token, expires_at=expires_at))
        try:
            self._session.commit()
        except IntegrityError:
            self._session.rollback()
            logger.info("Token already blacklisted (expires_at=%d); duplicate ignored.", expires_at)
            return False
        except SQLAlchemyError:
            self._session.rollback()
            logger.exception("Failed to record blacklisted token (expires_at=%d).", expires_at)
            raise AppError(
                ErrorCode.STORE_UNAVAILABLE,
                "The token store is temporarily unavailable. Please try again later.",
                500,
            )
        return True

    def is_blacklisted(self, token: str) -> bool:
        return self._session.execute(
            select(BlacklistedToken.id).where(BlacklistedToken.token == token)
        ).first() is not None

    def purge_expired(self, now: int) -> int:
        result = self._session.execute(
            delete(BlacklistedToken).where(BlacklistedToken.expires_at < now)
        )
        self._session.commit()
        deleted = result.rowcount or 0
        logger.info("Blacklist purge: cutoff=%d, entries_deleted=%d", now, deleted)
        return deleted


class InMemoryBlacklistStore:
    """Dict-backed blacklist for unit tests. Token -> expires_at."""

    def __init__(self) -> None:
        self._entries: dict[str, int] = {}

    def add(self, token: str, expires_at: int) -> bool:
        if token in self._entries:
            logger.info("Token already blacklisted (expires_at=%d); duplicate ignored.", expires_at)
            return False
        self._entries[token] = expires_at
        return True

    def is_blacklisted(self, token: str) -> bool:
        return token in self._entries

    def purge_expired(self, now: int) -> int:
        expired = [t for t, exp in self._entries.items() if exp < now]
        for token in expired:
            del self._entries[token]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
