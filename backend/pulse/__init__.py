"""
pulse/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to import the metadata without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name] (+ test overrides)
  2. Configure logging from LOG_LEVEL
  3. Initialise SQLAlchemy via init_app() and install the SQLite pragmas
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError, ValidationError,
     HTTPException → JSON envelope; anything else → 500)
  6. Register a JSON provider that writes datetimes as ISO-8601

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before db.create_all() or Alembic inspects it. They
  are not used directly here — the import side-effect is sufficient.
"""

from __future__ import annotations

import logging
import traceback
from datetime import date, datetime, time

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default provider renders datetimes as RFC 822 strings
# ("Wed, 01 Oct 2025 18:30:00 GMT"). Clients parse ISO-8601.

class IsoJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise date / time /
    datetime as ISO-8601.

    Example: datetime(2025, 10, 1, 18, 30) → "2025-10-01T18:30:00"
    """

    def default(self, o):
        if isinstance(o, (datetime, date, time)):
            return o.isoformat()
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development", test_config: dict | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
        test_config: Optional mapping applied over the config class, e.g.
                     {"SQLALCHEMY_DATABASE_URI": "sqlite:///<tmp>/pulse.db"}.

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    app = Flask(__name__)
    app.json_provider_class = IsoJSONProvider
    app.json = IsoJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    if test_config:
        app.config.update(test_config)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.pulse.extensions import db, ensure_sqlite_directory, register_sqlite_pragmas
    ensure_sqlite_directory(app)
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from backend.pulse.models import (  # noqa: F401
            flag_report,
            group,
            group_member,
            sport,
            user,
            user_rating,
        )
        register_sqlite_pragmas(app)

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers / request hooks ─────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)
    _register_request_logging(app)

    app.logger.info("Pulse API created (config=%s)", config_name)
    return app


def _configure_logging(app: Flask) -> None:
    """
    Sets app.logger's level from LOG_LEVEL. Service modules log through
    logging.getLogger(__name__); their names ("backend.pulse.services.*")
    sit under app.logger ("backend.pulse"), so they inherit its handler
    and level.
    """
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Blueprint names match the route files in pulse/routes/.
    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "" and "/<int:id>").
    """
    from backend.pulse.routes.admin import admin_bp
    from backend.pulse.routes.auth import auth_bp
    from backend.pulse.routes.groups import groups_bp
    from backend.pulse.routes.health import health_bp
    from backend.pulse.routes.sports import sports_bp
    from backend.pulse.routes.users import users_bp

    app.register_blueprint(auth_bp,   url_prefix="/api/v1/auth")
    app.register_blueprint(sports_bp, url_prefix="/api/v1/sports")
    app.register_blueprint(groups_bp, url_prefix="/api/v1/groups")
    app.register_blueprint(users_bp,  url_prefix="/api/v1/users")
    app.register_blueprint(admin_bp,  url_prefix="/api/v1/admin")
    app.register_blueprint(health_bp, url_prefix="/api/v1")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD / registered-code responses (400)
      HTTPException   → routing and protocol errors (404, 405, bad JSON) in
                        the same envelope, keeping their status
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server. Only
    {"error": {"code": "INTERNAL_ERROR", "message": "..."}} is returned.
    """
    from backend.pulse.errors import CODE_MESSAGES, AppError, ErrorCode

    known_codes = set(vars(ErrorCode).values())

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST error is reported ("one error, not many"). Any missing
        required field is reported as MISSING_FIELD "Missing required fields"
        ahead of other problems. A message that is itself a registered error
        code (e.g. INVALID_RATING) is kept as the code and given its default
        reason string.
        """
        messages = error.messages

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                if any(
                    str(m).startswith("Missing data for required field")
                    for m in (field_errors if isinstance(field_errors, list) else [field_errors])
                ):
                    return jsonify({
                        "error": {
                            "code": ErrorCode.MISSING_FIELD,
                            "message": CODE_MESSAGES[ErrorCode.MISSING_FIELD],
                            "field": field_name,
                        }
                    }), 400

        field = None
        raw_message = "Invalid input."

        if isinstance(messages, dict) and messages:
            field_name, field_errors = next(iter(messages.items()))
            field = field_name if field_name != "_schema" else None
            if isinstance(field_errors, list):
                raw_message = field_errors[0] if field_errors else "Invalid value."
            elif isinstance(field_errors, dict):
                # Nested / per-item errors: surface the first leaf message.
                raw_message = str(next(iter(field_errors.values()), "Invalid value."))
            else:
                raw_message = str(field_errors)
        elif isinstance(messages, list) and messages:
            raw_message = messages[0]

        if raw_message in known_codes:
            code = raw_message
            message = CODE_MESSAGES.get(code, "Invalid input.")
        else:
            code = ErrorCode.INVALID_FIELD
            message = str(raw_message)

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        """Werkzeug errors keep their status but use the standard envelope."""
        codes = {
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
        }
        code = codes.get(error.code, ErrorCode.BAD_REQUEST)
        status = error.code or 400
        if status >= 500:
            code = ErrorCode.INTERNAL_ERROR
        return jsonify({
            "error": {
                "code": code,
                "message": error.name,
            }
        }), status

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger. The response
        body never carries it.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "Internal server error",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser clients.

    Origins listed in CORS_ORIGINS are always allowed. When DEBUG or TESTING
    is true any origin is reflected so a frontend served from another local
    port can call the API with Authorization headers.
    """
    allowed = set(app.config.get("CORS_ORIGINS", ()))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if origin and (allow_all or origin in allowed):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _register_request_logging(app: Flask) -> None:
    """One DEBUG line per request: METHOD path -> status."""

    @app.after_request
    def log_request(response):
        app.logger.debug("%s %s -> %s", request.method, request.path, response.status_code)
        return response
