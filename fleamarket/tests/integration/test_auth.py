"""
tests/integration/test_auth.py: Integration tests for authentication endpoints.

Endpoints covered:
  POST /auth/signup   → 201
  POST /auth/login    → 200
  POST /auth/refresh  → 200
  POST /auth/logout   → 200
  GET  /auth/me       → 200

Error cases:
  DUPLICATE_EMAIL       409
  INVALID_CREDENTIALS   401: unknown email and wrong password alike
  TOKEN_TYPE_INVALID    401: access token where refresh is required and back
  TOKEN_REVOKED         401: rotated or logged-out token
  TOKEN_EXPIRED         401
  TOKEN_MISSING         401
  TOKEN_INVALID         401
"""

from __future__ import annotations

import time

import jwt
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from fleamarket.app.extensions import db
from fleamarket.app.models.blacklisted_token import BlacklistedToken

from .conftest import auth_headers, login, signup


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/signup
# ═══════════════════════════════════════════════════════════════════════════

class TestSignup:

    def test_first_signup_is_admin_second_is_user(self, client):
        first = signup(client, "a@x.com", "password1")
        second = signup(client, "b@x.com", "password2")

        assert first["role"] == "admin"
        assert second["role"] == "user"

    def test_response_never_contains_password(self, client):
        user = signup(client)
        assert "password" not in user
        assert "password_hash" not in user
        assert isinstance(user["id"], int)

    def test_duplicate_email_returns_409(self, client):
        signup(client, "a@x.com")
        resp = client.post("/auth/signup", json={"email": "a@x.com", "password": "password9"})

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "DUPLICATE_EMAIL"

    def test_invalid_email_returns_400(self, client):
        resp = client.post("/auth/signup", json={"email": "nope", "password": "password1"})

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "email"

    def test_missing_fields_return_400(self, client):
        resp = client.post("/auth/signup", json={})
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"

    def test_non_json_body_returns_400(self, client):
        resp = client.post("/auth/signup", data="not json", content_type="text/plain")
        assert resp.status_code == 400

    def test_racing_first_signups_create_single_admin(self, client, monkeypatch):
        """Both signups believe the table is empty; the DB admits one admin."""
        from fleamarket.app.stores.user_store import SqlAlchemyUserStore
        monkeypatch.setattr(SqlAlchemyUserStore, "count_live_users", lambda self: 0)

        first = signup(client, "a@x.com")
        second = signup(client, "b@x.com")

        assert first["role"] == "admin"
        assert second["role"] == "user"


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/login
# ═══════════════════════════════════════════════════════════════════════════

class TestLogin:

    def test_login_returns_token_pair(self, client):
        signup(client)
        data = login(client)

        assert set(data) == {"accessToken", "refreshToken"}

    def test_wrong_password_returns_401(self, client):
        signup(client)
        resp = client.post("/auth/login", json={"email": "a@x.com", "password": "wrong-pass"})

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "INVALID_CREDENTIALS"

    def test_unknown_email_returns_same_401(self, client):
        resp = client.post("/auth/login", json={"email": "ghost@x.com", "password": "password1"})

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "INVALID_CREDENTIALS"

    def test_overlong_password_is_a_credential_mismatch(self, client):
        signup(client)
        known = client.post("/auth/login", json={"email": "a@x.com", "password": "p" * 100})
        unknown = client.post("/auth/login", json={"email": "ghost@x.com", "password": "p" * 100})

        assert known.status_code == unknown.status_code == 401
        assert known.get_json() == unknown.get_json()
        assert known.get_json()["error"]["code"] == "INVALID_CREDENTIALS"


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/refresh
# ═══════════════════════════════════════════════════════════════════════════

class TestRefresh:

    def test_refresh_rotates_pair(self, client):
        signup(client)
        tokens = login(client)

        resp = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

        assert resp.status_code == 200
        new = resp.get_json()["data"]
        assert new["refreshToken"] != tokens["refreshToken"]
        assert new["accessToken"] != tokens["accessToken"]

    def test_rotated_refresh_token_cannot_be_reused(self, client):
        signup(client)
        tokens = login(client)
        client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

        resp = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_REVOKED"

    def test_access_token_rejected_as_refresh(self, client):
        signup(client)
        tokens = login(client)

        resp = client.post("/auth/refresh", json={"refreshToken": tokens["accessToken"]})

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_TYPE_INVALID"

    def test_expired_refresh_token_returns_401(self, app, client):
        user = signup(client)
        token = jwt.encode(
            {"sub": str(user["id"]), "email": "a@x.com", "role": "admin",
             "type": "refresh", "exp": int(time.time()) - 10},
            app.config["JWT_SECRET_KEY"],
            algorithm="HS256",
        )

        resp = client.post("/auth/refresh", json={"refreshToken": token})

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_EXPIRED"

    def test_garbage_refresh_token_returns_401(self, client):
        resp = client.post("/auth/refresh", json={"refreshToken": "garbage"})
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_missing_refresh_token_returns_400(self, client):
        resp = client.post("/auth/refresh", json={})
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/logout and GET /auth/me
# ═══════════════════════════════════════════════════════════════════════════

class TestLogout:

    def test_logout_then_access_token_is_rejected(self, client):
        signup(client)
        tokens = login(client)
        headers = auth_headers(tokens["accessToken"])

        assert client.get("/auth/me", headers=headers).status_code == 200
        assert client.post("/auth/logout", headers=headers).status_code == 200

        resp = client.get("/auth/me", headers=headers)
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_REVOKED"

    def test_logout_with_refresh_token_blocks_refresh(self, client):
        signup(client)
        tokens = login(client)
        client.post("/auth/logout", headers=auth_headers(tokens["refreshToken"]))

        resp = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert resp.get_json()["error"]["code"] == "TOKEN_REVOKED"

    def test_logout_records_token_expiry(self, app, client):
        signup(client)
        tokens = login(client)
        client.post("/auth/logout", headers=auth_headers(tokens["accessToken"]))

        exp = jwt.decode(tokens["accessToken"], options={"verify_signature": False})["exp"]
        with app.app_context():
            row = db.session.query(BlacklistedToken).one()
            assert row.token == tokens["accessToken"]
            assert row.expires_at == exp

    def test_logout_twice_is_ok(self, client):
        signup(client)
        headers = auth_headers(login(client)["accessToken"])

        assert client.post("/auth/logout", headers=headers).status_code == 200
        assert client.post("/auth/logout", headers=headers).status_code == 200

    def test_logout_without_header_returns_401(self, client):
        resp = client.post("/auth/logout")
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_MISSING"

    def test_logout_with_malformed_header_returns_401(self, client):
        resp = client.post("/auth/logout", headers={"Authorization": "Token abc"})
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_store_failure_returns_500_without_sql(self, client, monkeypatch):
        signup(client)
        headers = auth_headers(login(client)["accessToken"])

        def failing_commit(self):
            raise OperationalError(
                "INSERT INTO blacklisted_tokens (token, expires_at) VALUES (?, ?)",
                {},
                Exception("database is locked"),
            )

        monkeypatch.setattr(Session, "commit", failing_commit)

        resp = client.post("/auth/logout", headers=headers)

        assert resp.status_code == 500
        body = resp.get_json()
        assert body["error"]["code"] == "STORE_UNAVAILABLE"
        assert "INSERT" not in resp.get_data(as_text=True)
        assert "blacklisted_tokens" not in resp.get_data(as_text=True)


class TestMe:

    def test_me_returns_profile(self, client):
        signup(client)
        tokens = login(client)

        resp = client.get("/auth/me", headers=auth_headers(tokens["accessToken"]))

        assert resp.status_code == 200
        user = resp.get_json()["data"]
        assert user["email"] == "a@x.com"
        assert user["role"] == "admin"

    def test_refresh_token_rejected_as_access(self, client):
        signup(client)
        tokens = login(client)

        resp = client.get("/auth/me", headers=auth_headers(tokens["refreshToken"]))

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_TYPE_INVALID"

    def test_me_without_token_returns_401(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_MISSING"


# ═══════════════════════════════════════════════════════════════════════════
# End-to-end scenario
# ═══════════════════════════════════════════════════════════════════════════

def test_full_session_lifecycle(client):
    assert signup(client, "a@x.com", "password1")["role"] == "admin"
    assert signup(client, "b@x.com", "password2")["role"] == "user"

    t1 = login(client, "a@x.com", "password1")

    resp = client.post("/auth/refresh", json={"refreshToken": t1["refreshToken"]})
    assert resp.status_code == 200
    t2 = resp.get_json()["data"]

    resp = client.post("/auth/refresh", json={"refreshToken": t1["refreshToken"]})
    assert resp.get_json()["error"]["code"] == "TOKEN_REVOKED"

    assert client.post("/auth/logout", headers=auth_headers(t2["accessToken"])).status_code == 200

    resp = client.get("/auth/me", headers=auth_headers(t2["accessToken"]))
    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "TOKEN_REVOKED"


def test_error_envelope_has_no_internals(client):
    resp = client.post("/auth/login", json={"email": "nobody@x.com", "password": "password1"})
    body = resp.get_json()

    assert set(body["error"]) >= {"code", "message"}
    assert "Traceback" not in str(body)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
