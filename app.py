"""Application factory."""

import os
import time
import traceback
import uuid

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.analytics import analytics_bp
from routes.auth import auth_bp
from routes.marketplace import marketplace_bp
from routes.panelists import panelists_bp
from routes.rewards import rewards_bp
from routes.settings import settings_bp
from routes.survey_responses import survey_responses_bp
from routes.surveys import surveys_bp
from routes.users import users_bp
from routes.vendor import vendor_bp
from utils.auth import is_token_revoked
from utils.responses import failure

migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    if app.config.get("OTP_TEST_MODE") and app.config.get("APP_ENV") == "production":
        raise RuntimeError("OTP_TEST_MODE must not be enabled when APP_ENV is production.")

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    _register_jwt_callbacks()

    # Errors; request ids are assigned before the rate limiter runs
    _register_error_handlers(app)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting
    storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    headers_enabled = app.config.get("RATELIMIT_HEADERS_ENABLED", True)
    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())

    global limiter
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[lambda: app.config.get("RATE_LIMIT", "120 per minute")],
        storage_uri=storage_uri,
        headers_enabled=headers_enabled,
        key_prefix=key_prefix,
    )
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(panelists_bp, url_prefix="/api/panelists")
    app.register_blueprint(surveys_bp, url_prefix="/api/surveys")
    app.register_blueprint(survey_responses_bp, url_prefix="/api/survey-responses")
    app.register_blueprint(rewards_bp, url_prefix="/api/rewards")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")
    app.register_blueprint(analytics_bp, url_prefix="/api/analytics")
    app.register_blueprint(vendor_bp, url_prefix="/api/vendor")
    app.register_blueprint(marketplace_bp, url_prefix="/api/vendor")

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok", "environment": app.config.get("APP_ENV")})

    return app


def _register_jwt_callbacks() -> None:
    """Map token failures onto the JSON envelope."""

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return failure("Access token required", 401)

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return failure("Invalid token", 403)

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return failure("Invalid token", 403)

    @jwt.token_in_blocklist_loader
    def _check_revoked(jwt_header, jwt_payload) -> bool:
        return is_token_revoked(jwt_payload)

    @jwt.revoked_token_loader
    def _revoked_token(jwt_header, jwt_payload):
        return failure("Session has been revoked", 403)


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs and request logging."""

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        started = g.get("request_started")
        if started is not None:
            app.logger.info(
                "%s %s %s %.1fms request_id=%s",
                request.method,
                request.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                request_id,
            )
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        response = failure(
            error.description or error.name,
            error.code or 500,
            errors=getattr(error, "errors", None),
        )
        for header, value in error.get_headers():
            if header.lower() != "content-type":
                response.headers.setdefault(header, value)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled application error", exc_info=error)
        extra = {}
        if app.config.get("APP_ENV") != "production":
            extra["stack"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        return failure("Internal server error", 500, **extra)


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
