# Overview: Request and permission decorators for admin API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service
from .services.authorization import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a live admin session.

    Sets on flask.g:
    - g.current_user: the authenticated AdminUser
    - g.session_context: the full SessionContext

    Returns 401 when the Authorization header is missing, the token is
    unknown, expired, idle too long, revoked, or the account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission from the installed AuthorizationPolicy. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            policy = current_app.extensions["authorization_policy"]
            try:
                policy.require(g.current_user, permission_code)
            except PermissionDeniedError as e:
                current_app.logger.warning(
                    "Permission denied: %s -> %s %s", g.current_user.email, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
