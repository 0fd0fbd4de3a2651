"""
services/auth_service.py: Authentication business logic.

Responsibilities:
  - User signup (bcrypt hashing, first-user-is-admin bootstrap)
  - Credential validation and issuance of access + refresh token pairs
  - Refresh-token rotation (the consumed refresh token is blacklisted)
  - Resolution of the caller behind an access token
  - Logout (blacklisting of the presented token)

Layer rules:
  - AuthService has no Flask imports. It receives its collaborators
    (UserStore, TokenBlacklistStore, TokenCodec) at construction.
  - auth_service_for_request() is the single Flask-aware wiring point: it
    binds SQLAlchemy-backed stores to db.session and reuses the codec that
    create_app() built from configuration.

Token lifecycle:
  issued → (refreshed: new pair + old refresh token blacklisted)
         → used while valid → revoked (blacklisted) or naturally expired.
  Nothing is stored for live tokens; revocation is the only server state.

Role policy:
  The role embedded in a token is never trusted. Both the access-token
  resolution and the refresh path re-read the user from the store, so a
  role change takes effect on the caller's very next request.

Login error policy:
  Unknown email and wrong password are the same INVALID_CREDENTIALS error.

Known limitation:
  Two concurrent refreshes of the same refresh token can both mint a new
  pair before either records the blacklist entry. The UNIQUE constraint
  lets only one insert win; the other is logged and ignored.
"""

from __future__ import annotations

import logging

import bcrypt
from flask import current_app, g

from fleamarket.app.errors import AppError, ErrorCode
from fleamarket.app.extensions import db
from fleamarket.app.models.user import Role, User
from fleamarket.app.services.token_codec import TokenClaims, TokenCodec, TokenKind, TokenPair
from fleamarket.app.stores.blacklist_store import SqlAlchemyBlacklistStore, TokenBlacklistStore
from fleamarket.app.stores.user_store import (
    BootstrapSlotTakenError,
    EmailTakenError,
    SqlAlchemyUserStore,
    UserStore,
)

logger = logging.getLogger(__name__)

_DEFAULT_LOGOUT_FALLBACK_TTL = 3600
_BCRYPT_MAX_PASSWORD_BYTES = 72


class AuthService:

    def __init__(
            self,
            users: UserStore,
            blacklist: TokenBlacklistStore,
            codec: TokenCodec,
            *,
            bcrypt_rounds: int = 12,
            logout_fallback_ttl: int = _DEFAULT_LOGOUT_FALLBACK_TTL,
    ) -> None:
        self._users = users
        self._blacklist = blacklist
        self._codec = codec
        self._bcrypt_rounds = bcrypt_rounds
        self._logout_fallback_ttl = logout_fallback_ttl

    # ── Signup / login ─────────────────────────────────────────────────────

    def signup(self, email: str, password: str) -> User:
        """
        Creates a user. Format checks already happened in SignupSchema.

        The first live user becomes admin. If a concurrent signup claims the
        bootstrap slot first, this one is created as a plain user instead.

        Raises:
          AppError(DUPLICATE_EMAIL, 409)
        """
        password_hash = bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=self._bcrypt_rounds),
        ).decode("utf-8")

        user_count = self._users.count_live_users()
        role = Role.ADMIN if user_count == 0 else Role.USER
        logger.info("Signup: %d live users, assigning role=%s", user_count, role)

        try:
            return self._create_user(email, password_hash, role)
        except BootstrapSlotTakenError:
            logger.info("Signup: bootstrap admin already claimed, assigning role=%s", Role.USER)
            return self._create_user(email, password_hash, Role.USER)

    def login(self, email: str, password: str) -> TokenPair:
        """
        Raises:
          AppError(INVALID_CREDENTIALS, 401): unknown email or wrong password.
        """
        user = self._users.find_by_email(email)
        password_bytes = password.encode("utf-8")

        # No stored hash can match a password bcrypt refuses to hash.
        # bcrypt.checkpw compares in constant time.
        if (
                user is None
                or len(password_bytes) > _BCRYPT_MAX_PASSWORD_BYTES
                or not bcrypt.checkpw(password_bytes, user.password_hash.encode("utf-8"))
        ):
            raise AppError(
                ErrorCode.INVALID_CREDENTIALS,
                "The email or password is incorrect.",
                401,
            )

        return self._codec.issue_pair(user.id, user.email, user.role)

    # ── Token operations ───────────────────────────────────────────────────

    def refresh_token(self, refresh_token: str) -> TokenPair:
        """
        Exchanges a refresh token for a new pair and blacklists the old one.

        Raises:
          AppError(TOKEN_INVALID | TOKEN_MALFORMED, 401): undecodable
          AppError(TOKEN_TYPE_INVALID, 401): an access token was presented
          AppError(TOKEN_REVOKED, 401)     : already used or logged out
          AppError(TOKEN_EXPIRED, 401)
          AppError(USER_NOT_FOUND, 401)    : the subject no longer exists
        """
        claims = self._validate(refresh_token, TokenKind.REFRESH)
        user = self._resolve_user(claims)

        pair = self._codec.issue_pair(user.id, user.email, user.role)

        # Issuance already succeeded; a failed blacklist write must not undo it.
        try:
            self._blacklist.add(refresh_token, claims.expires_at)
        except AppError:
            logger.warning(
                "Failed to blacklist rotated refresh token for user_id=%d",
                user.id,
                exc_info=True,
            )

        return pair

    def get_user_from_token(self, access_token: str) -> User:
        """
        Resolves the caller behind an access token, fresh from the store.

        Raises the same token errors as refresh_token(), with the kind
        check reversed.
        """
        claims = self._validate(access_token, TokenKind.ACCESS)
        user = self._resolve_user(claims)
        logger.debug("get_user_from_token: user_id=%d role=%s", user.id, user.role)
        return user

    def logout(self, token: str) -> None:
        """
        Blacklists the presented token (either kind) until its own expiry.

        Expired tokens are accepted. A token whose signature does not verify
        is rejected with TOKEN_INVALID; a signed token whose claims cannot be
        read falls back to now + logout_fallback_ttl.
        """
        try:
            expires_at = self._codec.decode(token, verify_expiry=False).expires_at
        except AppError as err:
            if err.code != ErrorCode.TOKEN_MALFORMED:
                raise
            expires_at = self._codec.read_unverified_expiry(token)
            if expires_at is None:
                expires_at = self._codec.now() + self._logout_fallback_ttl

        # A duplicate (already logged out) is a successful no-op.
        self._blacklist.add(token, expires_at)

    def purge_expired_tokens(self) -> int:
        """Deletes blacklist entries whose token has expired. Maintenance only."""
        return self._blacklist.purge_expired(self._codec.now())

    # ── Private helpers ────────────────────────────────────────────────────

    def _create_user(self, email: str, password_hash: str, role: str) -> User:
        try:
            return self._users.create(email=email, password_hash=password_hash, role=role)
        except EmailTakenError:
            raise AppError(
                ErrorCode.DUPLICATE_EMAIL,
                f"The email address '{email}' is already registered.",
                409,
                field="email",
            )

    def _validate(self, token: str, expected_kind: str) -> TokenClaims:
        """
        Signature/claims → kind → blacklist → expiry.

        The blacklist is consulted before expiry so that a revoked token
        always reports TOKEN_REVOKED, even once it has also expired.
        """
        claims = self._codec.decode(token, verify_expiry=False)

        if claims.kind != expected_kind:
            raise AppError(
                ErrorCode.TOKEN_TYPE_INVALID,
                f"A {expected_kind} token is required.",
                401,
            )

        if self._blacklist.is_blacklisted(token):
            raise AppError(
                ErrorCode.TOKEN_REVOKED,
                "The token has been revoked.",
                401,
            )

        self._codec.ensure_not_expired(claims)
        return claims

    def _resolve_user(self, claims: TokenClaims) -> User:
        user = self._users.find_by_email(claims.email)
        if user is None:
            raise AppError(
                ErrorCode.USER_NOT_FOUND,
                "The user for this token no longer exists.",
                401,
            )
        return user


def build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. Never includes the password hash."""
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ── Flask wiring ───────────────────────────────────────────────────────────

def auth_service_for_request() -> AuthService:
    """
    Returns the AuthService for the current request, creating it on first use.

    The codec is the one create_app() built at startup (so a missing secret
    has already stopped the app); stores are bound to db.session.
    """
    service = g.get("auth_service")
    if service is None:
        session = db.session
        service = AuthService(
            users=SqlAlchemyUserStore(session),
            blacklist=SqlAlchemyBlacklistStore(session),
            codec=current_app.extensions["token_codec"],
            bcrypt_rounds=current_app.config.get("BCRYPT_LOG_ROUNDS", 12),
            logout_fallback_ttl=int(
                current_app.config["LOGOUT_FALLBACK_TTL"].total_seconds()
            ),
        )
        g.auth_service = service
    return service
