"""Flask application factory."""

import logging
import os
import secrets
import time
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, g, request
from flask_session import Session
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from werkzeug.exceptions import HTTPException

from .config import Settings, get_settings
from .extensions import db
from .services.email_service import EmailService
from .services.marketplace_service import MarketplaceError, MarketplaceService
from .services.storage_service import StorageService
from .utils.auth import AuthError

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}
SESSION_TABLE = "sessions"


def _resolve_secret_key() -> str:
    """Session signing key: `FLASK_SECRET_KEY`, then `SECRET_KEY`, else a throwaway token.

    With the throwaway token admin sessions are lost on every restart.
    """

    configured = os.environ.get("FLASK_SECRET_KEY") or os.environ.get("SECRET_KEY")
    return configured or secrets.token_hex(32)


def _bool_from_env(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    return default if raw is None else raw.strip().lower() in TRUTHY


def _resolve_database_uri(app: Flask, settings: Settings, is_production: bool) -> str:
    """SQLAlchemy URI: `DATABASE_URL`, then `LOCAL_DATABASE_URI`, then instance SQLite."""

    uri = settings.database_url
    if not uri and is_production:
        raise RuntimeError("DATABASE_URL is required in production.")
    if not uri:
        uri = os.environ.get("LOCAL_DATABASE_URI") or f"sqlite:///{Path(app.instance_path) / 'advisor_hub.db'}"

    # SQLAlchemy 2 only accepts the postgresql:// scheme.
    if uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)

    if uri.startswith("sqlite:///"):
        Path(uri[len("sqlite:///"):]).expanduser().parent.mkdir(parents=True, exist_ok=True)

    sslmode = os.environ.get("DATABASE_SSLMODE")
    if sslmode and "sslmode=" not in uri:
        uri += ("&" if "?" in uri else "?") + f"sslmode={sslmode}"
    return uri


def _session_config(is_production: bool) -> dict:
    """Flask-Session settings: server-side sessions in the app database."""

    samesite = os.environ.get("SESSION_COOKIE_SAMESITE") or "Lax"
    if samesite.lower() == "none":
        samesite = "None"
    return {
        "SESSION_TYPE": "sqlalchemy",
        "SESSION_SQLALCHEMY": db,
        "SESSION_SQLALCHEMY_TABLE": os.environ.get("SESSION_TABLE", SESSION_TABLE),
        "SESSION_PERMANENT": True,
        "SESSION_USE_SIGNER": False,
        "PERMANENT_SESSION_LIFETIME": timedelta(days=int(os.environ.get("SESSION_LIFETIME_DAYS", "7"))),
        "SESSION_COOKIE_NAME": os.environ.get("SESSION_COOKIE_NAME", "advisor_hub_session"),
        "SESSION_COOKIE_SECURE": _bool_from_env("SESSION_COOKIE_SECURE", is_production),
        "SESSION_COOKIE_SAMESITE": samesite,
        "SESSION_COOKIE_HTTPONLY": True,
    }


def _init_database(app: Flask, is_production: bool) -> None:
    # Table classes have to be imported before create_all().
    from . import models  # noqa: F401

    db.init_app(app)

    if is_production:
        # Fail the cold start, not the first request, when the database is unreachable.
        try:
            with app.app_context():
                db.engine.connect().close()
        except SQLAlchemyError as exc:  # pragma: no cover - network dependent
            raise RuntimeError("Database connectivity failed at startup") from exc

    # Flask-Session declares its own sessions table on db.metadata; a second
    # app in the same process would otherwise collide with it.
    session_table = app.config["SESSION_SQLALCHEMY_TABLE"]
    if session_table in db.metadata.tables:
        db.metadata.remove(db.metadata.tables[session_table])
    Session(app)

    # Production schemas are managed outside the app.
    if not is_production:
        with app.app_context():
            db.create_all()


def _validation_details(exc: ValidationError) -> list:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return {"error": "Validation failed", "details": _validation_details(exc)}, 400

    @app.errorhandler(AuthError)
    def handle_auth_error(exc: AuthError):
        return {"error": exc.message}, exc.status_code

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(exc: MarketplaceError):
        return {"error": exc.message}, exc.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return {"error": exc.description}, exc.code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return {"error": "Internal server error"}, 500


def _register_request_logging(app: Flask) -> None:
    @app.before_request
    def start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    def log_api_request(response):
        if request.path.startswith("/api"):
            started = g.get("request_started")
            duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
            logger.info(
                "%s %s %s %.0fms", request.method, request.path, response.status_code, duration_ms
            )
        return response


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Build the API app.

    ``settings`` defaults to the environment (and ``.env``). Services hang off
    the app object so views reach them through ``current_app``.
    """

    load_dotenv()
    settings = settings or get_settings()

    on_vercel = _bool_from_env("VERCEL") or bool(os.environ.get("VERCEL_ENV"))
    is_production = on_vercel or os.environ.get("FLASK_ENV", "").lower() in {"production", "prod"}

    app = Flask(__name__)
    app.settings = settings
    app.storage_service = StorageService()
    app.email_service = EmailService.from_settings(settings)
    app.marketplace_service = MarketplaceService(offer_ttl_hours=settings.offer_ttl_hours)

    app.config.update(
        SECRET_KEY=_resolve_secret_key(),
        UPLOAD_DIR=str(settings.upload_dir),
        SQLALCHEMY_DATABASE_URI=_resolve_database_uri(app, settings, is_production),
        # Serverless instances cannot hold a connection pool between invocations.
        SQLALCHEMY_ENGINE_OPTIONS={"pool_pre_ping": True, **({"poolclass": NullPool} if on_vercel else {})},
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        **_session_config(is_production),
    )

    _init_database(app, is_production)
    _register_error_handlers(app)
    _register_request_logging(app)

    from .marketplace_routes import marketplace_bp
    from .routes import main_bp

    for blueprint in (main_bp, marketplace_bp):
        app.register_blueprint(blueprint)

    return app
