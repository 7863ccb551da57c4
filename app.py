"""Application factory."""

import json
import logging
import os
import uuid

from flask import Flask, jsonify, g, request
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import Config, is_production, validate_config
from extensions import jwt, limiter, mail, migrate
from models import db, utcnow
from routes.admin import admin_bp
from routes.auth import auth_bp
from routes.metrics import metrics_bp
from routes.reports import reports_bp
from utils.errors import DatabaseUnavailable, error_payload


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    _configure_logging(app)
    _check_config(app)

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
        expose_headers=["X-Request-ID", "X-Report-Id", "Content-Disposition"],
    )

    # Rate limiting
    limiter.init_app(app)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(reports_bp)
    app.register_blueprint(metrics_bp)

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        checks = {}
        try:
            db.session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except SQLAlchemyError as exc:
            db.session.rollback()
            app.logger.error("Health check database failure", extra={"error": str(exc)})
            checks["database"] = "error"

        healthy = all(value == "ok" for value in checks.values())
        response = jsonify(
            {
                "status": "healthy" if healthy else "degraded",
                "timestamp": utcnow().isoformat() + "Z",
                "environment": app.config.get("APP_ENV"),
                "version": app.config.get("APP_VERSION"),
                "checks": checks,
            }
        )
        response.status_code = 200 if healthy else 503
        response.headers["Cache-Control"] = "no-store"
        return response

    # Errors
    _register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    logging.getLogger().setLevel(level)
    app.logger.setLevel(level)


def _check_config(app: Flask) -> None:
    """Abort on configuration errors in production; warn elsewhere."""

    errors, warnings = validate_config(app.config)
    for warning in warnings:
        app.logger.warning("Configuration warning: %s", warning)
    if not errors:
        return
    if is_production(app.config):
        raise RuntimeError("Invalid configuration: " + "; ".join(errors))
    for error in errors:
        app.logger.warning("Configuration problem: %s", error)


def _error_response(status: int, name: str, detail: str, extra: dict | None = None):
    request_id = g.get("request_id") or str(uuid.uuid4())
    payload = {"error": name, "detail": detail, "request_id": request_id}
    payload.update(extra or {})
    response = jsonify(payload)
    response.status_code = status
    response.headers.setdefault("X-Request-ID", request_id)
    return response


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return _error_response(401, "Unauthorized", "Unauthorized. Please log in.")

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return _error_response(401, "Unauthorized", f"Invalid access token: {reason}")

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return _error_response(401, "Unauthorized", "Access token has expired. Please log in again.")

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        payload.update(error_payload(error))
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(SQLAlchemyError)
    def _handle_database_error(error: SQLAlchemyError):
        db.session.rollback()
        app.logger.exception("Database error", exc_info=error)
        return _handle_http_exception(DatabaseUnavailable())

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        app.logger.exception("Unhandled application error", exc_info=error)
        return _error_response(500, "Internal Server Error", "An unexpected error occurred.")


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
