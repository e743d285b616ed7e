# Overview: Public registration routes; submission and status lookup.

"""
Registrant-facing API

POST /api/registrations/tier-pass   new delegate (tier/pass) group
POST /api/registrations/event       new event group from approved USER- ids
GET  /api/registrations/status      status lookup by email, GRP- or USER- id

New groups are always created as pending; only the admin review flow moves
them on.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import ConflictError, StoreUnavailableError, ValidationError, ERROR_HTTP_STATUS
from ..services import identity_service
from ..services import submission_service


registrations_bp = Blueprint("registrations", __name__, url_prefix="/api/registrations")


@registrations_bp.post("/tier-pass")
def submit_tier_pass_route():
    """
    Request body:
    {
        "members": [
            {"name": "...", "email": "...", "phone": "9876543210", "college": "...",
             "selection_type": "tier", "tier": "Issue #1"},
            {"name": "...", ..., "selection_type": "pass",
             "pass_type": "Nexus Forum", "pass_tier": "Premium"}
        ],
        "contact": {"name": "...", "email": "...", "phone": "..."},   (optional)
        "payment_transaction_id": "UTR123...",
        "payment_screenshot_path": "uploads/..."                        (optional)
    }

    Returns:
        201: group id, member user ids, total
        400: invalid input
        409: duplicate member or transaction id
        503: database unavailable
    """
    try:
        data = request.get_json(silent=True) or {}
        registration = submission_service.submit_tier_pass(data)
        current_app.logger.info(
            "Tier/pass registration %s submitted (%s members, Rs. %s)",
            registration.group_id, registration.member_count, registration.total_amount,
        )
        return jsonify({
            "group_id": registration.group_id,
            "status": registration.status,
            "total_amount": registration.total_amount,
            "members": [
                {"user_id": m.user_id, "name": m.name, "amount": m.amount}
                for m in registration.members
            ],
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except StoreUnavailableError:
        current_app.logger.exception("Store unavailable during tier/pass submission")
        return jsonify({"error": "Registration service unavailable, please retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to submit tier/pass registration")
        return jsonify({"error": "Internal server error"}), 500


@registrations_bp.post("/event")
def submit_event_route():
    """
    Request body:
    {
        "event_id": 3,
        "members": ["USER-AB12-CD34", "USER-EF56-GH78"],
        "contact_user_id": "USER-AB12-CD34",                  (optional)
        "payment_transaction_id": "UTR123..."
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        registration = submission_service.submit_event(data)
        current_app.logger.info(
            "Event registration %s submitted for %s (%s participants)",
            registration.group_id, registration.event_name, registration.member_count,
        )
        return jsonify({
            "group_id": registration.group_id,
            "status": registration.status,
            "event_name": registration.event_name,
            "total_amount": registration.total_amount,
            "member_count": registration.member_count,
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except StoreUnavailableError:
        current_app.logger.exception("Store unavailable during event submission")
        return jsonify({"error": "Registration service unavailable, please retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to submit event registration")
        return jsonify({"error": "Internal server error"}), 500


@registrations_bp.get("/status")
def status_route():
    """Public status view for every group matching ?key= (email, GRP- or USER- id)."""
    try:
        outcome = identity_service.resolve(request.args.get("key"))
        if not outcome.ok:
            return jsonify({"error": outcome.error, "message": outcome.message}), ERROR_HTTP_STATUS[outcome.error]

        return jsonify({
            "registrations": [r.to_public_dict() for r in outcome.value.records],
        }), 200

    except StoreUnavailableError:
        current_app.logger.exception("Store unavailable during status lookup")
        return jsonify({"error": "Registration service unavailable, please retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to look up registration status")
        return jsonify({"error": "Internal server error"}), 500
