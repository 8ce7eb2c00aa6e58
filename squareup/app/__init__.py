"""
app/__init__.py — Flask application factory.

create_app(config_name) builds a configured app; nothing is initialised at
import time, so tests can create isolated instances and Alembic can import
the models without starting a server.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow)
  4. Register every blueprint under /api
  5. Register global error handlers (AppError, ValidationError, HTTP errors,
     anything else → 500). Each handler rolls the session back first, so a
     failed request never leaves half a write behind.
  6. Serialise Decimal as string: amounts never travel as JSON numbers.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from squareup.config import config_by_name, validate_production_config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class DecimalJSONProvider(DefaultJSONProvider):
    """jsonify() support for Decimal: Decimal("10.50") → "10.50"."""

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: "development", "testing" or "production".
                     Unknown names fall back to development.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    from squareup.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # Populate SQLAlchemy's MetaData for create_all() and Alembic.
    with app.app_context():
        from squareup.app.models import (  # noqa: F401
            contribution,
            delete_vote,
            friend,
            group,
            membership,
            one_time_code,
            receiver_share,
            refresh_token,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    app.logger.debug("Square Up API created with %s config", config_name)
    return app


def _configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    package_logger = logging.getLogger("squareup")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)

    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Every route file owns a slice of the flat /api namespace
    (/api/login, /api/add-contribution, ...), so all share one prefix.
    """
    from squareup.app.routes.auth import auth_bp
    from squareup.app.routes.contributions import contributions_bp
    from squareup.app.routes.friends import friends_bp
    from squareup.app.routes.transactions import transactions_bp
    from squareup.app.routes.users import users_bp

    app.register_blueprint(auth_bp,          url_prefix="/api")
    app.register_blueprint(transactions_bp,  url_prefix="/api")
    app.register_blueprint(contributions_bp, url_prefix="/api")
    app.register_blueprint(friends_bp,       url_prefix="/api")
    app.register_blueprint(users_bp,         url_prefix="/api")


def _register_error_handlers(app: Flask) -> None:
    """
    Handlers:
      AppError        → its own code, status and optional field
      ValidationError → 400 with the FIRST field error only
      HTTPException   → werkzeug's status, code derived from its name
      Exception       → INTERNAL_ERROR (500); traceback logged, never returned
    """
    from squareup.app.errors import AppError, ErrorCode
    from squareup.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        db.session.rollback()
        if error.http_status >= 500:
            app.logger.error("%r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        db.session.rollback()
        field, raw_message = _first_validation_error(error.messages)

        if raw_message in vars(ErrorCode).values():
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        payload = {"code": code, "message": message}
        if field is not None:
            payload["field"] = field
        return jsonify({"error": payload}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        db.session.rollback()
        return jsonify({
            "error": {
                "code": (error.name or "HTTP_ERROR").upper().replace(" ", "_"),
                "message": error.description or "",
            }
        }), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        db.session.rollback()
        app.logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.path,
            error,
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _first_validation_error(messages) -> tuple[str | None, str]:
    """
    Walks marshmallow's messages down to the first leaf.

    Nested dict errors (receiver_amounts → {"7": {"value": [...]}}) are
    reported against the top-level field name.
    """
    if isinstance(messages, dict):
        for field_name, field_errors in messages.items():
            _, message = _first_validation_error(field_errors)
            return (None if field_name == "_schema" else str(field_name)), message
        return None, "Invalid input."
    if isinstance(messages, list):
        if not messages:
            return None, "Invalid input."
        return _first_validation_error(messages[0])
    return None, str(messages)


def _register_cors(app: Flask) -> None:
    """
    CORS headers for local development: enabled when DEBUG or TESTING is on,
    so a web client on another port can send Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        if app.config.get("DEBUG") or app.config.get("TESTING"):
            origin = request.headers.get("Origin")
            response.headers["Access-Control-Allow-Origin"] = origin or "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
        return response


def _code_to_message(code: str) -> str:
    """Default prose for validation errors whose message is a bare code."""
    _messages = {
        "INVALID_AMOUNT": "Amounts must be greater than zero.",
        "INVALID_AMOUNT_PRECISION": "Amounts must have at most 2 decimal places.",
        "MISSING_FIELD": "A required field is missing.",
        "INVALID_OTP": "The verification code must be 6 digits.",
    }
    return _messages.get(code, "Invalid input.")
