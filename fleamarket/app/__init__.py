"""
app/__init__.py: Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time: this enables:
           - Multiple isolated test app instances
           - `flask db` / Alembic tooling without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name] and fail fast when
     the signing secret is missing
  2. Build the process-wide TokenCodec from that configuration
  3. Initialise extensions (SQLAlchemy) via init_app()
  4. Register route blueprints
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register maintenance CLI commands
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify
from marshmallow import ValidationError

from fleamarket.config import config_by_name, validate_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development", **overrides) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
        overrides:   Config keys applied after the config class (tests).

    Raises:
        ValueError: if JWT_SECRET_KEY is missing. No code path that signs or
                    verifies tokens can run without it.
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    app.config.update(overrides)

    validate_config(app, production=(config_name == "production"))

    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    # ── Token codec ────────────────────────────────────────────────────────
    from fleamarket.app.services.token_codec import TokenCodec
    app.extensions["token_codec"] = TokenCodec(
        app.config["JWT_SECRET_KEY"],
        algorithm=app.config.get("JWT_ALGORITHM", "HS256"),
        access_ttl=app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=app.config["JWT_REFRESH_TOKEN_EXPIRES"],
    )

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from fleamarket.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Populates SQLAlchemy's MetaData for create_all() and Alembic.
    with app.app_context():
        from fleamarket.app.models import blacklisted_token, item, user  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    from fleamarket.app.routes.auth import auth_bp
    from fleamarket.app.routes.health import health_bp
    from fleamarket.app.routes.items import items_bp
    from fleamarket.app.routes.users import users_bp

    app.register_blueprint(auth_bp,   url_prefix="/auth")
    app.register_blueprint(items_bp,  url_prefix="/items")
    app.register_blueprint(users_bp,  url_prefix="/users")
    app.register_blueprint(health_bp)


def _register_commands(app: Flask) -> None:
    from fleamarket.app.commands import purge_blacklist_command, set_role_command

    app.cli.add_command(purge_blacklist_command)
    app.cli.add_command(set_role_command)


def _register_error_handlers(app: Flask) -> None:
    """
    Handlers:
      AppError        → structured JSON error envelope with the correct status
      ValidationError → marshmallow errors as MISSING_FIELD / INVALID_FIELD (400)
      Exception       → generic INTERNAL_ERROR (500); traceback logged

    Stack traces never leave the server.
    """
    from werkzeug.exceptions import HTTPException

    from fleamarket.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Returns the FIRST field error only: one error, not many.
        """
        messages = error.messages

        field = None
        message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None
                if isinstance(field_errors, list):
                    message = field_errors[0] if field_errors else "Invalid value."
                else:
                    message = str(field_errors)
                break
        elif isinstance(messages, list) and messages:
            message = messages[0]

        if str(message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD

        body = {"error": {"code": code, "message": str(message)}}
        if field is not None:
            body["error"]["field"] = field
        return jsonify(body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        # 404 / 405 from routing keep their status, in the standard envelope.
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500
