"""
SciSubmit Review Core

    from scisubmit import create_app

    app = create_app()                                  # APP_ENV or "development"
    app = create_app("testing", clock=FixedClock(now))  # frozen time for tests
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from scisubmit.config import config
from scisubmit.core.clock import init_clock
from scisubmit.middleware.logging_config import configure_logging
from scisubmit.models import db

logger = logging.getLogger(__name__)


# SQLite ignores ON DELETE rules unless foreign keys are switched on per connection.
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()


def _cors_origins(raw):
    if not raw or raw == "*":
        return "*"
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(config_name=None, *, clock=None):
    """Build the review-core app.

    Args:
        config_name: "development", "testing" or "production"; APP_ENV when omitted.
        clock: Clock shared by all services; SystemClock when omitted.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name or os.getenv("APP_ENV", "development")]())

    # Logging before anything that might log.
    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    CORS(app, origins=_cors_origins(app.config.get("CORS_ORIGINS")))
    init_clock(app, clock)

    # Register every table on db.metadata (create_all and `flask db migrate`).
    from scisubmit.models import conference, identity, keyword, notification, review, submission  # noqa: F401

    if app.config.get("AUTO_CREATE_TABLES"):
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()

    from scisubmit.blueprints.health_bp import health_bp
    from scisubmit.blueprints.review_bp import review_bp
    from scisubmit.blueprints.submission_bp import submission_bp

    for bp in (health_bp, submission_bp, review_bp):
        app.register_blueprint(bp)

    @app.cli.command("dispatch-notifications")
    @click.option("--limit", type=int, default=None, help="Max outbox rows to deliver in this run.")
    def dispatch_notifications_cmd(limit):
        """Deliver queued notifications through the logging emitter."""
        from scisubmit.services.notification import NotificationService

        result = NotificationService.dispatch_pending(limit=limit)
        click.echo(f"Notifications sent={result['sent']} failed={result['failed']}")

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed", "code": "ERR_METHOD_NOT_ALLOWED"}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    return app
