# backend/wms/routes/system.py
"""
System health endpoint.

Reports process liveness plus a round-trip to the database so load
balancers can tell a running-but-disconnected instance apart.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
        }
    except SQLAlchemyError as e:
        current_app.logger.warning("Database health check failed: %s", e)
        db.session.rollback()
        return {"status": "unhealthy", "error": type(e).__name__}


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "ok" if healthy else "degraded",
        "time": to_utc_z(utcnow()),
        "database": database,
    }), (200 if healthy else 503)
