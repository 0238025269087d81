"""
Health check blueprint.

Endpoints:
    GET /health   — liveness: always 200 while the process serves requests
    GET /db-test  — database round trip (SELECT 1); 500 when it fails
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from activity_tracker.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": current_app.config.get("ENV_NAME", "development"),
    }), 200


@health_bp.route("/db-test", methods=["GET"])
def db_test():
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Health check — database failed: %s", exc)
        return jsonify({"status": "error", "database": "unreachable"}), 500
    return jsonify({"status": "ok", "database": "connected", "latency_ms": round(db_ms, 1)}), 200
