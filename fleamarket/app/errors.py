"""
errors.py: AppError base class and error code registry.

Every error returned by the Fleamarket API uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They never carry internals
    (SQL, stack traces, token contents).
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    NO_FIELDS_TO_UPDATE        = "NO_FIELDS_TO_UPDATE"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    ITEM_NOT_FOUND             = "ITEM_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but your role is not allowed
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    USER_NOT_FOUND             = "USER_NOT_FOUND"         # 401: token subject is gone
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401: bad signature / not a JWT
    TOKEN_MALFORMED            = "TOKEN_MALFORMED"        # 401: claims unreadable
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    TOKEN_TYPE_INVALID         = "TOKEN_TYPE_INVALID"     # 401: access vs refresh
    TOKEN_REVOKED              = "TOKEN_REVOKED"          # 401: blacklisted
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    STORE_UNAVAILABLE          = "STORE_UNAVAILABLE"
    INTERNAL_ERROR             = "INTERNAL_ERROR"
