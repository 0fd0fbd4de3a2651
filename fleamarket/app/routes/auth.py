"""
routes/auth.py: Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service method
  - Commit the DB session where the service wrote through it
  - Return the standard response envelope: {"data": {...}, "warnings": []}

AppError propagates to the global error handler in app/__init__.py: routes
never catch it.

Endpoints (url_prefix=/auth):
  POST   /auth/signup   → 201
  POST   /auth/login    → 200
  POST   /auth/refresh  → 200
  POST   /auth/logout   → 200
  GET    /auth/me       → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from fleamarket.app.extensions import db
from fleamarket.app.middleware.auth_middleware import bearer_token_from_header, require_auth
from fleamarket.app.schemas.auth_schema import LoginSchema, RefreshTokenSchema, SignupSchema
from fleamarket.app.services.auth_service import auth_service_for_request, build_user_dict

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/signup", methods=["POST"])
def signup():
    """POST /auth/signup: Create account. The first account becomes admin."""
    data = SignupSchema().load(request.get_json(force=True, silent=True) or {})
    user = auth_service_for_request().signup(
        email=data["email"],
        password=data["password"],
    )
    db.session.commit()
    return jsonify({"data": build_user_dict(user), "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login: Authenticate; return an access + refresh pair."""
    data = LoginSchema().load(request.get_json(force=True, silent=True) or {})
    pair = auth_service_for_request().login(
        email=data["email"],
        password=data["password"],
    )
    return jsonify({"data": pair.to_dict(), "warnings": []}), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh: Rotate a refresh token into a new pair."""
    data = RefreshTokenSchema().load(request.get_json(force=True, silent=True) or {})
    pair = auth_service_for_request().refresh_token(data["refresh_token"])
    return jsonify({"data": pair.to_dict(), "warnings": []}), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """POST /auth/logout: Blacklist the bearer token (access or refresh)."""
    token = bearer_token_from_header(request.headers.get("Authorization"))
    auth_service_for_request().logout(token)
    return jsonify({"data": {"message": "Successfully logged out."}, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me: Return the caller's profile, role read fresh from the DB."""
    return jsonify({"data": build_user_dict(g.current_user), "warnings": []}), 200
