# Overview: Liveness and build information endpoints (outside the /api prefix).

import sys
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..models import User, Order
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database() -> dict:
    """Round-trip the database and count accounts and orders."""
    started = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
        counts = {
            "users": db.session.query(User).count(),
            "orders": db.session.query(Order).count(),
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "error": "Database error",
        }

    return {
        "status": "healthy",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "details": counts,
    }


@system_bp.get("/health")
def health():
    """200 while the database answers, 503 otherwise."""
    check = check_database()
    body = {
        "status": check["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": check},
    }
    return jsonify(body), 200 if check["status"] == "healthy" else 503


@system_bp.get("/version")
def version():
    return jsonify({
        "api_version": API_VERSION,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }), 200
