# backend/festdesk/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import TierPassRegistration, EventRegistration, AdminSession
from festdesk.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Count rows in both registration sources; any error marks the store unhealthy."""
    start_time = time.time()
    try:
        tier_pass_count = db.session.query(TierPassRegistration).count()
        event_count = db.session.query(EventRegistration).count()
        active_sessions = db.session.query(AdminSession).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tier_pass_registrations": tier_pass_count,
                "event_registrations": event_count,
                "active_admin_sessions": active_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_email_health() -> dict:
    configured = bool(current_app.config.get("BREVO_API_KEY"))
    return {
        "status": "healthy" if configured else "degraded",
        "details": {"brevo_configured": configured},
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (email not configured)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    email_health = check_email_health()

    if database_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif email_health["status"] == "degraded":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "email": email_health,
        }
    }
    return response, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
