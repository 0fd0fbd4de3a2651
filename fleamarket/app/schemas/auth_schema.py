"""
schemas/auth_schema.py: Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field presence, types, lengths, formats.
  - services/auth_service.py: DUPLICATE_EMAIL (requires the store) and
    credential checks.

Schemas inherit from marshmallow.Schema directly so they can be
instantiated without a Flask application context (unit tests).
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


class SignupSchema(Schema):
    """
    POST /auth/signup

    Field rules:
      email    : valid email format, max 255 chars
      password : 8–72 chars (72 bytes in UTF-8)
    """

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
            raise ValidationError("Password must be at most 72 bytes long.")


class LoginSchema(Schema):
    """
    POST /auth/login

    Only presence and basic shape are checked. Whether the credentials are
    right is the service's call (INVALID_CREDENTIALS, 401).
    """

    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))


class RefreshTokenSchema(Schema):
    """
    POST /auth/refresh

    Body: {"refreshToken": "<jwt>"}. Token validity is checked in the service.
    """

    refresh_token = fields.Str(
        required=True,
        data_key="refreshToken",
        validate=validate.Length(min=1),
    )
