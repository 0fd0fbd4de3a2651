"""
routes/users.py: Administrative user listing.

  GET /users → 200, admin only (403 for role "user")
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from fleamarket.app.extensions import db
from fleamarket.app.middleware.auth_middleware import require_auth, require_role
from fleamarket.app.models.user import Role
from fleamarket.app.services.auth_service import build_user_dict
from fleamarket.app.stores.user_store import SqlAlchemyUserStore

users_bp = Blueprint("users", __name__)


@users_bp.route("", methods=["GET"])
@require_auth
@require_role(Role.ADMIN)
def list_users():
    users = SqlAlchemyUserStore(db.session).list_users()
    return jsonify({"data": [build_user_dict(u) for u in users], "warnings": []}), 200
