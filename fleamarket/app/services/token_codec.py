"""
services/token_codec.py: Signing and verification of bearer tokens.

Token design:
  - JWT, symmetric HMAC (HS256 by default), one process-wide secret injected
    at construction. The codec never reads the environment itself.
  - Claims: sub (user id as str), email, role, type ("access" | "refresh"),
    exp (epoch seconds), iat, jti (random nonce: two tokens minted in the
    same second for the same user must still differ).
  - Access tokens live 1 hour, refresh tokens 7 days unless configured.

Decode failures, in the order they are checked:
  TOKEN_INVALID   : not a JWT, bad signature, or unexpected algorithm
  TOKEN_MALFORMED : signature fine but claims missing / wrong type
  TOKEN_EXPIRED   : now > exp (only when verify_expiry=True)

Expiry is checked here rather than by PyJWT so an expired but validly
signed token is still distinguishable from a forged one, and so callers can
order the expiry check after their own checks.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from fleamarket.app.errors import AppError, ErrorCode


class TokenKind:
    ACCESS  = "access"
    REFRESH = "refresh"

    ALL = (ACCESS, REFRESH)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: int
    email: str
    role: str
    kind: str
    expires_at: int  # epoch seconds
    jti: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def to_dict(self) -> dict:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _invalid_token() -> AppError:
    return AppError(
        ErrorCode.TOKEN_INVALID,
        "The token is invalid or has been tampered with.",
        401,
    )


def _malformed_claims() -> AppError:
    return AppError(
        ErrorCode.TOKEN_MALFORMED,
        "The token claims could not be read.",
        401,
    )


class TokenCodec:

    def __init__(
            self,
            secret: str,
            *,
            algorithm: str = "HS256",
            access_ttl: timedelta = timedelta(hours=1),
            refresh_ttl: timedelta = timedelta(days=7),
            clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("A signing secret is required to issue or verify tokens.")
        if not algorithm.upper().startswith("HS"):
            raise ValueError(f"Only symmetric HMAC algorithms are supported, got {algorithm!r}.")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = {
            TokenKind.ACCESS: access_ttl,
            TokenKind.REFRESH: refresh_ttl,
        }
        self._clock = clock

    def now(self) -> int:
        """Current time in epoch seconds, as seen by this codec."""
        return int(self._clock().timestamp())

    def issue(self, kind: str, subject_id: int, email: str, role: str) -> str:
        if kind not in TokenKind.ALL:
            raise ValueError(f"Unknown token kind {kind!r}.")
        now = self._clock()
        payload = {
            "sub": str(subject_id),
            "email": email,
            "role": role,
            "type": kind,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl[kind]).timestamp()),
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_pair(self, subject_id: int, email: str, role: str) -> TokenPair:
        return TokenPair(
            access_token=self.issue(TokenKind.ACCESS, subject_id, email, role),
            refresh_token=self.issue(TokenKind.REFRESH, subject_id, email, role),
        )

    def decode(self, token: str, *, verify_expiry: bool = True) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidAlgorithmError:
            raise _invalid_token()
        except jwt.DecodeError:
            # InvalidSignatureError is a DecodeError subclass. PyJWT also
            # raises DecodeError for a signed payload that is not a JSON
            # object, which is a claims problem, not a forgery.
            if self._signature_verifies(token):
                raise _malformed_claims()
            raise _invalid_token()
        except jwt.InvalidTokenError:
            raise _malformed_claims()

        claims = self._parse_claims(payload)
        if verify_expiry:
            self.ensure_not_expired(claims)
        return claims

    def ensure_not_expired(self, claims: TokenClaims) -> None:
        if self.now() > claims.expires_at:
            raise AppError(
                ErrorCode.TOKEN_EXPIRED,
                "The token has expired.",
                401,
            )

    def _signature_verifies(self, token: str) -> bool:
        try:
            jwt.PyJWS().decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.InvalidTokenError:
            return False
        return True

    @staticmethod
    def _parse_claims(payload: dict) -> TokenClaims:
        email = payload.get("email")
        role = payload.get("role")
        kind = payload.get("type")
        exp = payload.get("exp")
        if not isinstance(email, str) or not isinstance(role, str) or not isinstance(kind, str):
            raise _malformed_claims()
        # bool is an int subclass; a boolean exp is not a timestamp.
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise _malformed_claims()

        try:
            subject_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            raise _malformed_claims()

        jti = payload.get("jti")
        return TokenClaims(
            subject_id=subject_id,
            email=email,
            role=role,
            kind=kind,
            expires_at=int(exp),
            jti=jti if isinstance(jti, str) else None,
        )

    @staticmethod
    def read_unverified_expiry(token: str) -> int | None:
        """
        Returns the exp claim of a token whose signature has already been
        checked, or None if it cannot be read. Used by logout only.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None
        exp = payload.get("exp")
        if isinstance(exp, (int, float)) and not isinstance(exp, bool):
            return int(exp)
        return None
