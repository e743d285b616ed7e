# Overview: Service-layer operations for admin accounts; bcrypt password hashing and login.

"""
Admin account service

Passwords are hashed with bcrypt (cost factor 12) after a strength check.
Login verifies the hash and opens a session (see session_service.py).
"""

import re

import bcrypt

from ..extensions import db
from ..models import AdminUser
from .authorization import VALID_ROLES, ROLE_COORDINATOR
from .identity_service import is_valid_email
from festdesk.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AdminAccountError(ValueError):
    """Invalid admin account data (bad email, unknown role, duplicate)."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with upper case, lower case and a digit.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password or "") < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")
    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")
    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one number")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_admin(email: str, name: str, password: str, role: str = ROLE_COORDINATOR) -> AdminUser:
    email = (email or "").strip().lower()
    if not is_valid_email(email):
        raise AdminAccountError("A valid email is required")
    if not (name or "").strip():
        raise AdminAccountError("Name is required")
    if role not in VALID_ROLES:
        raise AdminAccountError(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")
    if db.session.query(AdminUser).filter_by(email=email).first():
        raise AdminAccountError(f"Admin {email} already exists")

    user = AdminUser(email=email, name=name.strip(), password_hash=hash_password(password), role=role)
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> AdminUser | None:
    """The active admin with these credentials, or None."""
    user = db.session.query(AdminUser).filter_by(email=(email or "").strip().lower()).first()
    if user is None or not user.is_active:
        return None
    if not verify_password(password or "", user.password_hash):
        return None
    user.last_login_at = utcnow()
    db.session.commit()
    return user


def set_active(user_id: int, is_active: bool) -> AdminUser | None:
    user = db.session.query(AdminUser).filter_by(id=user_id).first()
    if user is None:
        return None
    user.is_active = is_active
    db.session.commit()
    return user


def get_admin(user_id: int) -> AdminUser | None:
    return db.session.query(AdminUser).filter_by(id=user_id).first()


def list_admins(include_inactive: bool = False) -> list[AdminUser]:
    q = db.session.query(AdminUser)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(AdminUser.email).all()
