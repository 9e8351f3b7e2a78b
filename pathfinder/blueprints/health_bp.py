"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — liveness, always 200 while the app runs
    GET /api/v1/health/ready  — readiness: database reachable, mail queue state
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from pathfinder.models import db
from pathfinder.services.email_service import EmailService
from pathfinder.services.mail_queue import MailQueue

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def live():
    """Liveness check."""
    return jsonify({"status": "ok", "app": "HR Path-Finder"}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Readiness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except SQLAlchemyError as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Mail ─────────────────────────────────────────────────────────
    checks["mail"] = {
        "status": "ok" if EmailService.is_configured() else "log_only",
        "queue_mode": "eager" if MailQueue.is_eager() else "worker",
        "pending": MailQueue.pending(),
    }

    checks["app"] = {
        "name": "HR Path-Finder",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
