import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from sqlalchemy import event

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
cache = Cache()
migrate = Migrate()
csrf = CSRFProtect()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Use Redis for rate limiting when available so limits are shared across workers
limiter_storage_uri = "memory://"
redis_url = os.environ.get("REDIS_URL") or os.environ.get("CACHE_REDIS_URL")
if redis_url:
    try:
        import redis

        redis_client = redis.Redis.from_url(redis_url)
        redis_client.ping()
        limiter_storage_uri = redis_url
        logger.info(f"Rate limiter using Redis storage at {redis_url}")
    except (ImportError, redis.exceptions.ConnectionError) as e:
        logger.warning(f"Redis not available for rate limiter, using memory storage: {e}")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=limiter_storage_uri,
)


def create_app(config_name=None):
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SECURE"] = (
        False
        if app.config.get("DEBUG")
        else app.config.get("FLASK_ENV") == "production"
    )
    app.config["PERMANENT_SESSION_LIFETIME"] = 86400  # 24 hours
    app.config["WTF_CSRF_TIME_LIMIT"] = None

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    from predictor.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    from predictor.routes.main import bp as main_bp

    app.register_blueprint(main_bp)

    from predictor.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/admin")

    register_error_handlers(app)

    from predictor.utils.logging_config import setup_logging

    setup_logging(app)

    show_config_warnings(app, config_name)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            enable_sqlite_savepoints(db.engine)
        db.create_all()

    return app


def enable_sqlite_savepoints(engine):
    """Let SQLAlchemy own transactions on pysqlite connections

    pysqlite does not emit BEGIN before a SAVEPOINT, so releasing the
    outermost savepoint would commit it. Emitting BEGIN ourselves keeps
    savepoints nested inside a transaction that rollback can undo.
    """

    @event.listens_for(engine, "connect")
    def disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    import warnings

    app.logger.info(f"Matchday Predictor starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        warnings.warn("DEBUG mode is enabled in production!", UserWarning)

    if not os.environ.get("SECRET_KEY") and not app.config.get("TESTING"):
        app.logger.warning(
            "Using auto-generated SECRET_KEY (sessions will reset on restart)"
        )

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        if "memory" in db_url:
            app.logger.info("Using SQLite database (in-memory)")
        else:
            app.logger.info("Using SQLite database (development mode)")
    elif "postgresql" in db_url:
        # Only show host and database name, never the password
        import re

        match = re.search(r"postgresql.*?://.*?@([^:/]+):?(\d+)?/([^?]+)", db_url)
        if match:
            host, port, dbname = match.groups()
            app.logger.info(f"Using PostgreSQL database {dbname} at {host}:{port or '5432'}")
        else:
            app.logger.info("Using PostgreSQL database")
    else:
        app.logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )


def register_error_handlers(app):
    """Register global error handlers"""
    from flask_wtf.csrf import CSRFError

    from predictor.errors import PredictionError

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    @app.errorhandler(PredictionError)
    def handle_prediction_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        app.logger.warning(f"CSRF Error: {error.description} - Path: {request.path}")
        return jsonify({"error": "Security token expired or invalid"}), 400

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({"error": "Access forbidden"}), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500


from predictor import models  # noqa: F401, E402 - imported for model registration
