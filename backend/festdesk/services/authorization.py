# Overview: Single authorization policy for every admin operation.

"""
Authorization policy

One object decides what an admin account may do. Routes never compare emails
or roles themselves; the require_permission decorator asks the policy installed
on app.extensions["authorization_policy"].

ROLES:
    super_admin  everything, including managing admin accounts
    admin        review, delete, export, email, event catalogue
    coordinator  view and review registrations
    finance      view registrations, statistics and exports
"""

from __future__ import annotations

from dataclasses import dataclass, field


ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN = "admin"
ROLE_COORDINATOR = "coordinator"
ROLE_FINANCE = "finance"
VALID_ROLES = {ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_COORDINATOR, ROLE_FINANCE}

VIEW_REGISTRATIONS = "VIEW_REGISTRATIONS"
REVIEW_REGISTRATIONS = "REVIEW_REGISTRATIONS"
DELETE_REGISTRATIONS = "DELETE_REGISTRATIONS"
EXPORT_REGISTRATIONS = "EXPORT_REGISTRATIONS"
SEND_EMAIL = "SEND_EMAIL"
MANAGE_EMAIL_TEMPLATES = "MANAGE_EMAIL_TEMPLATES"
MANAGE_EVENTS = "MANAGE_EVENTS"
MANAGE_ADMINS = "MANAGE_ADMINS"

ALL_PERMISSIONS = {
    VIEW_REGISTRATIONS,
    REVIEW_REGISTRATIONS,
    DELETE_REGISTRATIONS,
    EXPORT_REGISTRATIONS,
    SEND_EMAIL,
    MANAGE_EMAIL_TEMPLATES,
    MANAGE_EVENTS,
    MANAGE_ADMINS,
}

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_SUPER_ADMIN: set(ALL_PERMISSIONS),
    ROLE_ADMIN: ALL_PERMISSIONS - {MANAGE_ADMINS},
    ROLE_COORDINATOR: {VIEW_REGISTRATIONS, REVIEW_REGISTRATIONS},
    ROLE_FINANCE: {VIEW_REGISTRATIONS, EXPORT_REGISTRATIONS},
}


class PermissionDeniedError(Exception):
    """Raised when an admin lacks the required permission."""
    pass


@dataclass
class AuthorizationPolicy:
    role_permissions: dict = field(default_factory=lambda: {
        role: set(perms) for role, perms in DEFAULT_ROLE_PERMISSIONS.items()
    })

    def permissions_for(self, user) -> set[str]:
        if user is None or not getattr(user, "is_active", False):
            return set()
        return set(self.role_permissions.get(user.role, set()))

    def allows(self, user, permission_code: str) -> bool:
        return permission_code in self.permissions_for(user)

    def require(self, user, permission_code: str) -> None:
        if not self.allows(user, permission_code):
            role = getattr(user, "role", None)
            raise PermissionDeniedError(f"Role '{role}' lacks {permission_code}")
