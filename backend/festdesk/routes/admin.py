# Overview: Flask API routes for the admin console; review, listing, export, events, admin accounts and email.

# backend/festdesk/routes/admin.py
"""
Admin console API

Every route requires a live admin session (@require_auth) and a permission
from the installed AuthorizationPolicy (@require_permission).

ERROR MAPPING:
    validation_error    -> 400
    not_found           -> 404
    invalid_transition  -> 409
    store unavailable   -> 503 (the whole operation failed; retry)
    anything else       -> 500 (logged with traceback)
"""

from flask import Blueprint, request, jsonify, g, current_app, Response

from ..errors import ConflictError, StoreUnavailableError, ValidationError, ERROR_HTTP_STATUS
from ..services import aggregation_service
from ..services import auth_service
from ..services import approval_service
from ..services import event_service
from ..services import export_service
from ..services import identity_service
from ..services import notification_service
from ..services import session_service
from ..services import submission_service
from ..services.aggregation_service import RegistrationFilter
from ..services.auth_service import AdminAccountError, PasswordValidationError
from ..services.authorization import (
    VIEW_REGISTRATIONS,
    REVIEW_REGISTRATIONS,
    DELETE_REGISTRATIONS,
    EXPORT_REGISTRATIONS,
    SEND_EMAIL,
    MANAGE_EMAIL_TEMPLATES,
    MANAGE_EVENTS,
    MANAGE_ADMINS,
    ROLE_COORDINATOR,
)
from ..decorators import require_auth, require_permission
from festdesk.time_utils import utcnow


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _failure_response(outcome):
    return jsonify({"error": outcome.error, "message": outcome.message}), ERROR_HTTP_STATUS[outcome.error]


def _store_unavailable(action: str):
    current_app.logger.exception("Store unavailable during %s", action)
    return jsonify({
        "error": "store_unavailable",
        "message": "Registration data could not be loaded. Please retry.",
    }), 503


def _reviewer() -> str:
    return g.current_user.email


# =============================================================================
# LISTING, STATS, SEARCH
# =============================================================================

@admin_bp.get("/registrations")
@require_auth
@require_permission(VIEW_REGISTRATIONS)
def list_registrations_route():
    """
    Unified listing of tier/pass and event groups.

    Query params:
        status: pending | approved | rejected | all
        kind: tier_pass | event | all
        event: event name
        q: free-text search over ids, names, emails and phones
        sort: newest (default) | oldest | name | status | amount
        stats: 1 to include statistics for the filtered rows

    Returns:
        200: registrations, count, integrity_issues (+ stats, event_names)
        400: invalid filter or sort
        503: either source failed; nothing is returned
    """
    try:
        flt = RegistrationFilter.from_args(request.args)
        sort = request.args.get("sort", aggregation_service.SORT_NEWEST)
        include_stats = request.args.get("stats", "").lower() in ("1", "true", "yes")

        listing = aggregation_service.build_listing(flt, sort=sort, include_stats=include_stats)
        payload = listing.to_dict()
        payload["event_names"] = aggregation_service.event_names(listing.records)
        return jsonify(payload), 200

    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except StoreUnavailableError:
        return _store_unavailable("registration listing")
    except Exception:
        current_app.logger.exception("Failed to list registrations")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/registrations/stats")
@require_auth
@require_permission(VIEW_REGISTRATIONS)
def registration_stats_route():
    """Dashboard counters over every registration; revenue counts approved groups only."""
    try:
        return jsonify({"stats": aggregation_service.dashboard_stats().to_dict()}), 200
    except StoreUnavailableError:
        return _store_unavailable("dashboard stats")
    except Exception:
        current_app.logger.exception("Failed to compute registration stats")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/registrations/search")
@require_auth
@require_permission(VIEW_REGISTRATIONS)
def search_registrations_route():
    """
    Search by email, group id (GRP-...) or user id (USER-...).

    Returns:
        200: key_kind, count, registrations
        400: key is none of the three shapes
        404: well-formed key with no matches
        503: a source failed
    """
    try:
        outcome = identity_service.resolve(request.args.get("q"))
        if not outcome.ok:
            return _failure_response(outcome)
        return jsonify(outcome.value.to_dict()), 200

    except StoreUnavailableError:
        return _store_unavailable("registration search")
    except Exception:
        current_app.logger.exception("Failed to search registrations")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/registrations/<group_id>")
@require_auth
@require_permission(VIEW_REGISTRATIONS)
def get_registration_route(group_id: str):
    try:
        outcome = approval_service.locate_group(group_id, request.args.get("kind") or None)
        if not outcome.ok:
            return _failure_response(outcome)
        return jsonify({"registration": outcome.value.to_dict()}), 200

    except StoreUnavailableError:
        return _store_unavailable("registration detail")
    except Exception:
        current_app.logger.exception("Failed to get registration %s", group_id)
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# REVIEW
# =============================================================================

@admin_bp.post("/registrations/<group_id>/approve")
@require_auth
@require_permission(REVIEW_REGISTRATIONS)
def approve_registration_route(group_id: str):
    """
    Approve a pending group. The reviewer is the logged-in admin's email.

    Request body (optional):
    {
        "kind": "tier_pass" | "event"
    }

    Returns:
        200: group approved; confirmation email sent best effort
        400: not a GRP- id / bad kind
        404: no such group
        409: group is not pending (already approved or rejected)
    """
    try:
        data = request.get_json(silent=True) or {}
        outcome = approval_service.approve(group_id, _reviewer(), kind=data.get("kind"))
        if not outcome.ok:
            return _failure_response(outcome)

        return jsonify({
            "group_id": outcome.value.group_id,
            "status": outcome.value.status,
            "message": outcome.message,
            "registration": outcome.value.to_dict(),
        }), 200

    except StoreUnavailableError:
        return _store_unavailable("approve")
    except Exception:
        current_app.logger.exception("Failed to approve registration %s", group_id)
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/registrations/<group_id>/reject")
@require_auth
@require_permission(REVIEW_REGISTRATIONS)
def reject_registration_route(group_id: str):
    """
    Reject a pending group.

    Request body:
    {
        "rejection_reason": "Transaction id not found in bank statement",
        "kind": "tier_pass" | "event"     (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = data.get("rejection_reason") or data.get("reason")
        outcome = approval_service.reject(group_id, _reviewer(), reason, kind=data.get("kind"))
        if not outcome.ok:
            return _failure_response(outcome)

        return jsonify({
            "group_id": outcome.value.group_id,
            "status": outcome.value.status,
            "message": outcome.message,
            "registration": outcome.value.to_dict(),
        }), 200

    except StoreUnavailableError:
        return _store_unavailable("reject")
    except Exception:
        current_app.logger.exception("Failed to reject registration %s", group_id)
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/registrations/approve-batch")
@require_auth
@require_permission(REVIEW_REGISTRATIONS)
def approve_batch_route():
    """Request body: {"group_ids": ["GRP-...", ...]}. Each group is approved independently."""
    try:
        data = request.get_json(silent=True) or {}
        group_ids = data.get("group_ids")
        if not isinstance(group_ids, list) or not group_ids:
            return jsonify({"error": "validation_error", "message": "group_ids required"}), 400

        result = approval_service.approve_batch([str(gid) for gid in group_ids], _reviewer())
        return jsonify(result), 200

    except StoreUnavailableError:
        return _store_unavailable("batch approve")
    except Exception:
        current_app.logger.exception("Failed to batch approve registrations")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/registrations/<group_id>")
@require_auth
@require_permission(DELETE_REGISTRATIONS)
def delete_registration_route(group_id: str):
    """
    Delete a pending or rejected group (?kind= required).

    Returns:
        200: deleted
        400: missing/invalid kind
        404: no such group
        409: group is approved
    """
    try:
        kind = request.args.get("kind", "")
        if not submission_service.delete_registration(group_id, kind):
            return jsonify({"error": "not_found", "message": f"Registration {group_id} not found"}), 404

        current_app.logger.info("Registration %s (%s) deleted by %s", group_id, kind, _reviewer())
        return jsonify({"group_id": group_id, "message": f"Registration {group_id} deleted"}), 200

    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409
    except StoreUnavailableError:
        return _store_unavailable("delete")
    except Exception:
        current_app.logger.exception("Failed to delete registration %s", group_id)
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# EXPORT
# =============================================================================

@admin_bp.get("/registrations/export")
@require_auth
@require_permission(EXPORT_REGISTRATIONS)
def export_registrations_route():
    """
    CSV download of the filtered listing.

    Query params: the listing filters plus mode=group (default) | member.
    """
    try:
        flt = RegistrationFilter.from_args(request.args)
        mode = request.args.get("mode", export_service.MODE_GROUP)
        sort = request.args.get("sort", aggregation_service.SORT_NEWEST)

        listing = aggregation_service.build_listing(flt, sort=sort)
        body = export_service.export_csv(listing.records, mode)
        filename = export_service.export_filename(f"registrations_{mode}", utcnow())

        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except StoreUnavailableError:
        return _store_unavailable("export")
    except Exception:
        current_app.logger.exception("Failed to export registrations")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# EVENT CATALOGUE
# =============================================================================

@admin_bp.get("/events")
@require_auth
@require_permission(MANAGE_EVENTS)
def list_admin_events_route():
    """Every event, including inactive ones."""
    try:
        return jsonify({"events": event_service.list_events()}), 200
    except Exception:
        current_app.logger.exception("Failed to list events")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/events")
@require_auth
@require_permission(MANAGE_EVENTS)
def create_event_route():
    """
    Request body:
    {
        "name": "Debate",
        "category": "Literary",
        "price": 150,
        "max_participants": 40,    // optional, omit for no limit
        "description": "...",      // optional
        "venue": "...",            // optional
        "is_active": true          // optional
    }

    Returns:
        201: event
        400: invalid field
        409: name already taken
    """
    try:
        event = event_service.create_event(request.get_json(silent=True) or {})
        current_app.logger.info("Event %s created by %s", event.name, _reviewer())
        return jsonify({"event": event.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409
    except StoreUnavailableError:
        return _store_unavailable("event create")
    except Exception:
        current_app.logger.exception("Failed to create event")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/events/<int:event_id>")
@require_auth
@require_permission(MANAGE_EVENTS)
def update_event_route(event_id: int):
    """Partial update; existing registrations keep their price snapshot."""
    try:
        event = event_service.update_event(event_id, request.get_json(silent=True) or {})
        if event is None:
            return jsonify({"error": "not_found", "message": f"Event {event_id} not found"}), 404
        current_app.logger.info("Event %s updated by %s", event.id, _reviewer())
        return jsonify({"event": event.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409
    except StoreUnavailableError:
        return _store_unavailable("event update")
    except Exception:
        current_app.logger.exception("Failed to update event %s", event_id)
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/events/<int:event_id>")
@require_auth
@require_permission(MANAGE_EVENTS)
def delete_event_route(event_id: int):
    """
    Returns:
        200: deleted
        404: no such event
        409: the event has registrations (deactivate it instead)
    """
    try:
        if not event_service.delete_event(event_id):
            return jsonify({"error": "not_found", "message": f"Event {event_id} not found"}), 404
        current_app.logger.info("Event %s deleted by %s", event_id, _reviewer())
        return jsonify({"deleted": event_id}), 200

    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409
    except StoreUnavailableError:
        return _store_unavailable("event delete")
    except Exception:
        current_app.logger.exception("Failed to delete event %s", event_id)
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ADMIN ACCOUNTS
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_permission(MANAGE_ADMINS)
def list_admin_users_route():
    """Query params: include_inactive=true to list deactivated accounts too."""
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    try:
        users = auth_service.list_admins(include_inactive=include_inactive)
        return jsonify({"users": [u.to_dict() for u in users]}), 200
    except Exception:
        current_app.logger.exception("Failed to list admin users")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users")
@require_auth
@require_permission(MANAGE_ADMINS)
def create_admin_user_route():
    """
    Request body:
    - email: str (required)
    - name: str (required)
    - password: str (required)
    - role: super_admin | admin | coordinator | finance (default coordinator)
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        name = data.get("name")
        password = data.get("password")

        if not all([email, name, password]):
            return jsonify({"error": "validation_error", "message": "email, name and password required"}), 400

        user = auth_service.create_admin(email, name, password, role=data.get("role") or ROLE_COORDINATOR)
        current_app.logger.info("Admin %s (%s) created by %s", user.email, user.role, _reviewer())
        return jsonify({"user": user.to_dict()}), 201

    except (PasswordValidationError, AdminAccountError) as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create admin user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users/<int:user_id>/deactivate")
@require_auth
@require_permission(MANAGE_ADMINS)
def deactivate_admin_user_route(user_id: int):
    """
    Deactivate an admin account and revoke every open session, so the
    account is logged out immediately.
    """
    try:
        user = auth_service.get_admin(user_id)
        if user is None:
            return jsonify({"error": "not_found", "message": "User not found"}), 404
        if user.id == g.current_user.id:
            return jsonify({"error": "validation_error", "message": "Cannot deactivate your own account"}), 400
        if not user.is_active:
            return jsonify({"error": "validation_error", "message": "User is already deactivated"}), 400

        auth_service.set_active(user.id, False)
        revoked = session_service.revoke_all_user_sessions(user.id, reason="Account deactivated by admin")
        current_app.logger.warning("Admin %s deactivated by %s", user.email, _reviewer())

        return jsonify({
            "message": f"User {user.email} deactivated",
            "sessions_revoked": revoked,
        }), 200

    except Exception:
        current_app.logger.exception("Failed to deactivate admin user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users/<int:user_id>/reactivate")
@require_auth
@require_permission(MANAGE_ADMINS)
def reactivate_admin_user_route(user_id: int):
    try:
        user = auth_service.get_admin(user_id)
        if user is None:
            return jsonify({"error": "not_found", "message": "User not found"}), 404
        if user.is_active:
            return jsonify({"error": "validation_error", "message": "User is already active"}), 400

        user = auth_service.set_active(user.id, True)
        current_app.logger.info("Admin %s reactivated by %s", user.email, _reviewer())
        return jsonify({"message": f"User {user.email} reactivated", "user": user.to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to reactivate admin user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# EMAIL
# =============================================================================

@admin_bp.get("/email-templates")
@require_auth
@require_permission(MANAGE_EMAIL_TEMPLATES)
def list_email_templates_route():
    try:
        return jsonify({"templates": notification_service.list_templates()}), 200
    except Exception:
        current_app.logger.exception("Failed to list email templates")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/email-templates/<template_key>")
@require_auth
@require_permission(MANAGE_EMAIL_TEMPLATES)
def get_email_template_route(template_key: str):
    try:
        return jsonify({"template": notification_service.get_template(template_key)}), 200
    except ValidationError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get email template %s", template_key)
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/email-templates/<template_key>")
@require_auth
@require_permission(MANAGE_EMAIL_TEMPLATES)
def update_email_template_route(template_key: str):
    """Request body: {"subject": "...", "body": "<p>... {{name}} ...</p>"}"""
    try:
        data = request.get_json(silent=True) or {}
        template = notification_service.update_template(
            template_key,
            data.get("subject"),
            data.get("body"),
            edited_by=_reviewer(),
        )
        return jsonify({"template": template}), 200

    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update email template %s", template_key)
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/emails/bulk")
@require_auth
@require_permission(SEND_EMAIL)
def send_bulk_email_route():
    """
    Email the contact of every group in a filtered listing.

    Request body:
    {
        "template_key": "general",
        "filters": {"status": "approved", "kind": "event", "event": "...", "q": "..."},
        "variables": {"subject": "...", "message": "..."}
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        template_key = data.get("template_key")
        if not template_key:
            return jsonify({"error": "validation_error", "message": "template_key required"}), 400

        notification_service.get_template(template_key)
        flt = RegistrationFilter.from_args(data.get("filters") or {})
        listing = aggregation_service.build_listing(flt)

        result = notification_service.send_bulk(listing.records, template_key, data.get("variables") or {})
        current_app.logger.info(
            "Bulk email %s by %s: %s sent, %s failed",
            template_key, _reviewer(), result["sent"], result["failed"],
        )
        return jsonify(result), 200

    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except StoreUnavailableError:
        return _store_unavailable("bulk email")
    except Exception:
        current_app.logger.exception("Failed to send bulk email")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/email-logs")
@require_auth
@require_permission(SEND_EMAIL)
def list_email_logs_route():
    try:
        limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
        logs = notification_service.list_email_logs(
            group_id=request.args.get("group_id") or None,
            email_type=request.args.get("email_type") or None,
            limit=limit,
        )
        return jsonify({"logs": logs, "count": len(logs)}), 200
    except Exception:
        current_app.logger.exception("Failed to list email logs")
        return jsonify({"error": "Internal server error"}), 500
