"""
Health probes.

    GET /api/v1/health/ready   process is up (no dependencies touched)
    GET /api/v1/health/live    database round trip plus notification backlog;
                               503 when the database cannot be reached
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from scisubmit.models import db
from scisubmit.models.notification import EmailNotification

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


def _outbox_backlog() -> dict:
    counts = dict(
        db.session.query(EmailNotification.status, func.count(EmailNotification.id))
        .group_by(EmailNotification.status)
        .all()
    )
    return {"pending": counts.get("pending", 0), "failed": counts.get("failed", 0)}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    result = {
        "app": {
            "name": "SciSubmit Review Core",
            "testing": current_app.testing,
            "server_timezone": current_app.config.get("SERVER_TIMEZONE"),
        },
    }
    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
        result["database"] = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        }
        result["outbox"] = {"status": "ok", **_outbox_backlog()}
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness probe: database unreachable: %s", exc)
        result["database"] = {"status": "error", "detail": str(exc)}
        return jsonify({"status": "degraded", "checks": result}), 503

    return jsonify({"status": "ok", "checks": result}), 200
