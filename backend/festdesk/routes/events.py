# Overview: Public event catalogue routes.

from flask import Blueprint, jsonify, current_app

from ..services import submission_service


events_bp = Blueprint("events", __name__, url_prefix="/api/events")


@events_bp.get("/")
def list_events_route():
    """Active events with price and remaining spots."""
    try:
        return jsonify({"events": submission_service.list_active_events()}), 200
    except Exception:
        current_app.logger.exception("Failed to list events")
        return jsonify({"error": "Internal server error"}), 500
