"""Application factory."""

import os
import uuid

from flask import Flask, g, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.auth import auth_bp
from routes.products import products_bp
from routes.users import users_bp
from utils.auth import register_token_callbacks
from utils.errors import json_error

migrate = Migrate()
jwt = JWTManager()
register_token_callbacks(jwt)


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting; one limiter per app so test apps never share counters
    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[app.config.get("RATE_LIMIT", "120 per minute")],
        storage_uri=app.config.get("RATELIMIT_STORAGE_URI", "memory://"),
        headers_enabled=app.config.get("RATELIMIT_HEADERS_ENABLED", True),
        key_prefix=key_prefix,
    )
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix
    app.extensions["storefront_limiter"] = limiter

    # Ensure uploads directory exists
    upload_dir = app.config.get("UPLOAD_DIR")
    if upload_dir:
        os.makedirs(upload_dir, exist_ok=True)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(products_bp, url_prefix="/products")

    @app.route("/uploads/<path:filename>", methods=["GET"])
    def uploaded_file(filename: str):
        return send_from_directory(os.path.abspath(app.config["UPLOAD_DIR"]), filename)

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            app.logger.error("Health check failed: %s", exc)
            return jsonify({"status": "unhealthy", "database": "disconnected"}), 503
        return jsonify({"status": "healthy", "database": "connected"})

    # Errors
    _register_error_handlers(app)

    return app


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

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        response = json_error(
            error.description or getattr(error, "name", "Error"),
            error.code or 500,
            getattr(error, "details", None),
        )
        for header, value in error.get_headers():
            if header.lower() != "content-type":
                response.headers.setdefault(header, value)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        db.session.rollback()
        app.logger.exception("Unhandled application error", exc_info=error)
        return json_error("An unexpected error occurred.", 500)


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=application.config["PORT"])
