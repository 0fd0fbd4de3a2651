"""
tests/integration/conftest.py: Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing"), which
    points at in-memory SQLite unless TEST_DATABASE_URL says otherwise.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so every test starts
    from an empty user table (the first signup is always the admin).

Helper functions (not fixtures):
  - signup(client, ...)      → user dict
  - login(client, ...)       → {"accessToken", "refreshToken"}
  - auth_headers(token)      → {"Authorization": "Bearer <token>"}
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from fleamarket.app import create_app
from fleamarket.app.extensions import db as _db


@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def clean_tables(app):
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        _db.session.execute(text("DELETE FROM items"))
        _db.session.execute(text("DELETE FROM blacklisted_tokens"))
        _db.session.execute(text("DELETE FROM users"))
        _db.session.commit()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def cli_runner(app):
    return app.test_cli_runner()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def signup(client, email: str = "a@x.com", password: str = "password1") -> dict:
    resp = client.post("/auth/signup", json={"email": email, "password": password})
    assert resp.status_code == 201, f"signup failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, email: str = "a@x.com", password: str = "password1") -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
