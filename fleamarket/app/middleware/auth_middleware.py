"""
middleware/auth_middleware.py: Authentication and role-gate decorators.

@require_auth:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Resolves the caller via AuthService.get_user_from_token: signature,
     kind, blacklist and expiry checks, then a fresh read from the store
  3. Attaches the User to flask.g.current_user for the request
  4. Any failure is a 401

@require_role(*roles):
  Must be stacked below @require_auth. Compares the caller's role,
  lower-cased and stripped, against the allow-list. Mismatch is a 403.

Both raise AppError; the global error handler renders the response.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

from flask import g, request

from fleamarket.app.errors import AppError, ErrorCode
from fleamarket.app.services.auth_service import auth_service_for_request

logger = logging.getLogger(__name__)


def bearer_token_from_header(auth_header: str | None) -> str:
    """
    Extracts the token from an Authorization header value.

    Raises:
      AppError(TOKEN_MISSING, 401): header absent or empty
      AppError(TOKEN_INVALID, 401): not "Bearer <token>"
    """
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )
    return parts[1]


def normalize_role(role: str) -> str:
    return role.strip().lower()


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces access-token authentication.

    Usage:
        @items_bp.route("", methods=["POST"])
        @require_auth
        def create_item():
            user = g.current_user
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_role(*allowed_roles: str) -> Callable:
    """
    Route decorator factory restricting a route to the given roles.

    Usage:
        @users_bp.route("", methods=["GET"])
        @require_auth
        @require_role("admin")
        def list_users(): ...
    """
    allowed = {normalize_role(r) for r in allowed_roles}

    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = g.get("current_user")
            if user is None:
                raise AppError(
                    ErrorCode.TOKEN_MISSING,
                    "Authentication required.",
                    401,
                )
            if normalize_role(user.role) not in allowed:
                logger.warning(
                    "Access denied: user_id=%d role=%s required=%s",
                    user.id,
                    user.role,
                    sorted(allowed),
                )
                raise AppError(
                    ErrorCode.FORBIDDEN,
                    "You do not have permission to perform this action.",
                    403,
                )
            return f(*args, **kwargs)

        return decorated

    return decorator


def _authenticate_request() -> None:
    """
    Performs the full authentication sequence and sets flask.g.current_user.

    Every AppError from token resolution is already a 401; store failures
    propagate to the generic 500 handler.
    """
    token = bearer_token_from_header(request.headers.get("Authorization"))
    g.current_user = auth_service_for_request().get_user_from_token(token)
