"""
Activity Tracker
Flask Application Factory.

Usage:
    from activity_tracker import create_app
    app = create_app()           # APP_ENV / NODE_ENV, defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from activity_tracker.config import config as config_by_name
from activity_tracker.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    TransitionError,
    ValidationError,
)
from activity_tracker.middleware.jwt_auth import init_jwt_middleware
from activity_tracker.middleware.logging_config import configure_logging
from activity_tracker.middleware.rate_limiter import init_rate_limits
from activity_tracker.middleware.security_headers import init_security_headers
from activity_tracker.middleware.tenant_context import init_tenant_context
from activity_tracker.middleware.timing import init_request_timing
from activity_tracker.models import db
from activity_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


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
    default_limits=[],  # credential endpoints only, see middleware/rate_limiter.py
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV (or NODE_ENV), else "development".

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV") or os.getenv("NODE_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start on missing settings
    app.config.from_object(config_by_name.get(config_name, config_by_name["default"])())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "")
    if cors_origins == "*":
        CORS(app)
    else:
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Security headers (CSP, HSTS, X-Frame-Options, etc.) ─────────────
    init_security_headers(app)

    # ── JWT auth middleware (sets g.jwt_*) ───────────────────────────────
    init_jwt_middleware(app)

    # ── Tenant context middleware (sets g.current_user / g.organization_id) ─
    init_tenant_context(app)

    # ── Request guard (Content-Type) ─────────────────────────────────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.content_length:
            if not request.is_json:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from activity_tracker.models import auth as _auth_models                   # noqa: F401
    from activity_tracker.models import project as _project_models             # noqa: F401
    from activity_tracker.models import task as _task_models                   # noqa: F401
    from activity_tracker.models import activity as _activity_models           # noqa: F401
    from activity_tracker.models import status_configuration as _status_models  # noqa: F401
    from activity_tracker.models import audit as _audit_models                 # noqa: F401
    from activity_tracker.models import comment as _comment_models             # noqa: F401

    # ── Blueprints ───────────────────────────────────────────────────────
    from activity_tracker.blueprints.activities_bp import activities_bp, approvals_bp
    from activity_tracker.blueprints.audit_bp import audit_bp
    from activity_tracker.blueprints.auth_bp import auth_bp
    from activity_tracker.blueprints.comments_bp import comments_bp
    from activity_tracker.blueprints.health_bp import health_bp
    from activity_tracker.blueprints.organization_bp import organization_bp
    from activity_tracker.blueprints.projects_bp import projects_bp
    from activity_tracker.blueprints.reports_bp import reports_bp
    from activity_tracker.blueprints.status_configuration_bp import status_configuration_bp
    from activity_tracker.blueprints.tasks_bp import tasks_bp
    from activity_tracker.blueprints.users_bp import users_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(organization_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(activities_bp)
    app.register_blueprint(approvals_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(status_configuration_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(reports_bp)

    _register_error_handlers(app)
    _register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


# ═══════════════════════════════════════════════════════════════
# Error handlers
# ═══════════════════════════════════════════════════════════════
def _register_error_handlers(app):
    # Domain errors abandon the request's pending changes before the response
    @app.errorhandler(ValidationError)
    def _validation_error(e):
        db.session.rollback()
        code = E.VALIDATION_REQUIRED if "required" in (e.details or {}).values() else E.VALIDATION_INVALID
        return api_error(code, str(e), details=e.details)

    @app.errorhandler(AuthenticationError)
    def _authentication_error(e):
        db.session.rollback()
        return api_error(E.UNAUTHORIZED, str(e))

    @app.errorhandler(PermissionDenied)
    def _permission_denied(e):
        db.session.rollback()
        return api_error(E.FORBIDDEN, "Insufficient permissions")

    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        db.session.rollback()
        logger.debug("Not found: %s", e)
        return api_error(E.NOT_FOUND, e.public_message)

    @app.errorhandler(ConflictError)
    def _conflict_error(e):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, str(e))

    @app.errorhandler(TransitionError)
    def _transition_error(e):
        db.session.rollback()
        return api_error(E.CONFLICT_STATE, str(e))

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Endpoint not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def payload_too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": "Content-Type must be application/json"}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        db.session.rollback()
        original = getattr(e, "original_exception", None) or e
        logger.error("500 error on %s %s: %s", request.method, request.path, original,
                     exc_info=original)
        return api_error(E.INTERNAL, "Internal server error")


# ═══════════════════════════════════════════════════════════════
# CLI commands
# ═══════════════════════════════════════════════════════════════
def _register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Create all tables that do not exist yet."""
        db.create_all()
        logger.info("Database tables created.")

    @app.cli.command("seed-defaults")
    def seed_defaults_cmd():
        """Seed missing default status configurations for every organization."""
        from activity_tracker.models.auth import Organization
        from activity_tracker.services.status_configuration_service import initialize_defaults

        total = 0
        for org in Organization.query.order_by(Organization.id).all():
            total += initialize_defaults(org.id)
        db.session.commit()
        logger.info("Seeded %s default status configurations.", total)
