"""
tests/unit/conftest.py: DB-free fixtures for service and codec tests.

The AuthService is wired to in-memory stores and a codec driven by a
controllable clock, so expiry can be tested without sleeping.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fleamarket.app.services.auth_service import AuthService
from fleamarket.app.services.token_codec import TokenCodec
from fleamarket.app.stores.blacklist_store import InMemoryBlacklistStore
from fleamarket.app.stores.user_store import InMemoryUserStore

SECRET = "unit-test-secret-key-with-enough-length"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def codec(clock) -> TokenCodec:
    return TokenCodec(SECRET, clock=clock)


@pytest.fixture
def users() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def blacklist() -> InMemoryBlacklistStore:
    return InMemoryBlacklistStore()


@pytest.fixture
def service(users, blacklist, codec) -> AuthService:
    return AuthService(users, blacklist, codec, bcrypt_rounds=4)
