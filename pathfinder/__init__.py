"""
HR Path-Finder
Flask Application Factory.

Usage:
    from pathfinder import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from pathfinder.auth import init_auth
from pathfinder.config import config
from pathfinder.core.exceptions import (
    ConflictError,
    ConflictStateError,
    MailDeliveryError,
    NotFoundError,
    PermissionDenied,
    ProjectLockedError,
    TokenExhaustedError,
    TokenExpiredError,
    ValidationError,
)
from pathfinder.middleware.logging_config import configure_logging
from pathfinder.middleware.rate_limiter import init_rate_limits
from pathfinder.middleware.timing import init_request_timing
from pathfinder.models import db
from pathfinder.services.mail_queue import MailQueue
from pathfinder.utils.errors import E, api_error

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _register_error_handlers(app):
    """Translate service-layer exceptions to the standard error body."""

    @app.errorhandler(NotFoundError)
    def _not_found(exc):
        logger.info("Not found: %s", exc)
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @app.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_RULE, str(exc), details=exc.details)

    @app.errorhandler(ConflictError)
    def _conflict(exc):
        return api_error(E.CONFLICT_DUPLICATE, str(exc), details={exc.field: str(exc)})

    @app.errorhandler(ProjectLockedError)
    def _project_locked(exc):
        return api_error(E.PROJECT_LOCKED, str(exc))

    @app.errorhandler(ConflictStateError)
    def _conflict_state(exc):
        return api_error(E.CONFLICT_STATE, str(exc),
                         details={"entity": exc.entity, "current": exc.current, "target": exc.target})

    @app.errorhandler(PermissionDenied)
    def _forbidden(exc):
        logger.warning("Permission denied on %s %s: %s", request.method, request.path, exc,
                       extra={"event_type": "auth.forbidden"})
        return api_error(E.FORBIDDEN, str(exc) or "You do not have permission to perform this action")

    @app.errorhandler(TokenExpiredError)
    def _token_expired(exc):
        return api_error(E.TOKEN_EXPIRED, str(exc))

    @app.errorhandler(TokenExhaustedError)
    def _token_exhausted(exc):
        return api_error(E.TOKEN_EXHAUSTED, str(exc))

    @app.errorhandler(MailDeliveryError)
    def _mail_delivery(exc):
        logger.error("Mail delivery failed: %s (%s)", exc, exc.reason,
                     extra={"event_type": "mail.failed"})
        return api_error(E.MAIL_DELIVERY, str(exc))

    @app.errorhandler(404)
    def _route_not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def _rate_limited(e):
        return {"error": "Too many requests", "code": "ERR_RATE_LIMITED", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def _server_error(e):
        db.session.rollback()
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    init_auth(app)
    init_request_timing(app)
    MailQueue.init_app(app)

    # ── Models (register tables before create_all) ──────────────────────
    from pathfinder.models import audit as _audit_models            # noqa: F401
    from pathfinder.models import auth as _auth_models              # noqa: F401
    from pathfinder.models import catalog as _catalog_models        # noqa: F401
    from pathfinder.models import invitation as _invitation_models  # noqa: F401
    from pathfinder.models import kpi as _kpi_models                # noqa: F401
    from pathfinder.models import notification as _notification_models  # noqa: F401
    from pathfinder.models import project as _project_models        # noqa: F401

    # ── Blueprints ───────────────────────────────────────────────────────
    from pathfinder.blueprints.admin_bp import admin_bp
    from pathfinder.blueprints.auth_bp import auth_bp
    from pathfinder.blueprints.ceo_role_bp import ceo_role_bp
    from pathfinder.blueprints.dashboard_bp import dashboard_bp
    from pathfinder.blueprints.health_bp import health_bp
    from pathfinder.blueprints.invitation_bp import invitation_bp
    from pathfinder.blueprints.kpi_review_bp import kpi_review_bp
    from pathfinder.blueprints.philosophy_bp import philosophy_bp
    from pathfinder.blueprints.project_bp import project_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(philosophy_bp)
    app.register_blueprint(invitation_bp)
    app.register_blueprint(ceo_role_bp)
    app.register_blueprint(kpi_review_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── Dev/test schema bootstrap; production uses Flask-Migrate ─────────
    if config_name in ("development", "testing", "default"):
        if config_name != "testing":
            os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()

    logger.info("HR Path-Finder started (config=%s)", config_name)
    return app
