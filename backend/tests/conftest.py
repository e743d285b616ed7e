"""
Pytest fixtures for festdesk backend tests.

Provides the app on in-memory SQLite, a fresh database per test, registration
factories, admin accounts with session tokens, and fakes for outgoing email.
"""

from datetime import datetime

import httpx
import pytest

from festdesk import create_app
from festdesk.extensions import db
from festdesk.models import (
    TierPassRegistration,
    TierPassMember,
    Event,
    EventRegistration,
    EventRegistrationMember,
    AdminUser,
)
from festdesk.services import pricing_service
from festdesk.services import session_service
from festdesk.services.auth_service import hash_password
from festdesk.services.notification_service import NotificationResult


BASE_TIME = datetime(2025, 1, 10, 9, 0, 0)
ADMIN_PASSWORD = "Password123!"


def brevo_ok_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(201, json={"messageId": "<test-message@brevo>"})


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BREVO_API_KEY': 'test-brevo-key',
        'BREVO_API_URL': 'https://brevo.test/v3',
        'NOTIFY_ON_REJECT': False,
    })
    # No test talks to the real Brevo API.
    app.extensions["email_transport"] = httpx.MockTransport(brevo_ok_handler)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


# =============================================================================
# REGISTRATION FACTORIES
# =============================================================================

_counter = {"n": 0}


def _next(prefix: str) -> str:
    _counter["n"] += 1
    return f"{prefix}{_counter['n']:04d}"


def _phone() -> str:
    _counter["n"] += 1
    return f"9{_counter['n']:09d}"


def tier_member(name, email, phone=None, *, tier=None, pass_type=None, pass_tier=None, user_id=None):
    """Member data for make_tier_pass_group."""
    return {
        "name": name,
        "email": email,
        "phone": phone or _phone(),
        "tier": tier,
        "pass_type": pass_type,
        "pass_tier": pass_tier,
        "user_id": user_id,
    }


@pytest.fixture
def make_tier_pass_group(db_session):
    def _make(
        group_id=None,
        members=None,
        *,
        status="pending",
        stored_total=None,
        created_at=None,
        contact=None,
        transaction_id=None,
        reviewed_by=None,
        rejection_reason=None,
    ):
        group_id = group_id or _next("GRP-T")
        members = members or [tier_member("Asha Rao", f"{group_id.lower()}@example.com", tier="Issue #1")]

        rows = []
        for order, data in enumerate(members, start=1):
            selection_type = "tier" if data.get("tier") else "pass"
            amount = pricing_service.member_amount(
                selection_type, tier=data.get("tier"),
                pass_type=data.get("pass_type"), pass_tier=data.get("pass_tier"),
            )
            rows.append(TierPassMember(
                group_id=group_id,
                user_id=data.get("user_id") or _next("USER-TEST-"),
                name=data["name"],
                email=data["email"],
                phone=data.get("phone") or _phone(),
                college="JIPMER",
                selection_type=selection_type,
                tier=data.get("tier"),
                pass_type=data.get("pass_type"),
                pass_tier=data.get("pass_tier"),
                amount=amount,
                member_order=order,
            ))

        contact = contact or {"name": members[0]["name"], "email": members[0]["email"], "phone": "9876543210"}
        reviewed = status in ("approved", "rejected")
        registration = TierPassRegistration(
            group_id=group_id,
            contact_name=contact["name"],
            contact_email=contact["email"],
            contact_phone=contact["phone"],
            total_amount=sum(r.amount for r in rows) if stored_total is None else stored_total,
            member_count=len(rows),
            payment_transaction_id=transaction_id or _next("UTR"),
            status=status,
            reviewed_by=(reviewed_by or "seed@festdesk.test") if reviewed else None,
            reviewed_at=BASE_TIME if reviewed else None,
            rejection_reason=(rejection_reason or "Payment not received") if status == "rejected" else None,
            created_at=created_at or BASE_TIME,
        )
        db_session.add(registration)
        db_session.add_all(rows)
        db_session.commit()
        return registration

    return _make


@pytest.fixture
def make_event(db_session):
    def _make(name=None, *, price=200, category="Cultural", max_participants=None, is_active=True):
        event = Event(
            name=name or _next("Event "),
            category=category,
            price=price,
            max_participants=max_participants,
            is_active=is_active,
        )
        db_session.add(event)
        db_session.commit()
        return event

    return _make


@pytest.fixture
def make_event_group(db_session, make_event):
    def _make(
        group_id=None,
        participants=None,
        *,
        event=None,
        status="pending",
        stored_total=None,
        created_at=None,
        transaction_id=None,
        reviewed_by=None,
        rejection_reason=None,
    ):
        group_id = group_id or _next("GRP-E")
        event = event or make_event()
        participants = participants or [("Ravi Kumar", f"{group_id.lower()}@example.com", _next("USER-EVT-"))]

        reviewed = status in ("approved", "rejected")
        first_name, first_email, first_user = participants[0]
        registration = EventRegistration(
            group_id=group_id,
            event_id=event.id,
            event_name=event.name,
            event_price=event.price,
            contact_user_id=first_user,
            contact_name=first_name,
            contact_email=first_email,
            contact_phone="9876500000",
            total_amount=event.price * len(participants) if stored_total is None else stored_total,
            member_count=len(participants),
            payment_transaction_id=transaction_id or _next("UTR"),
            status=status,
            reviewed_by=(reviewed_by or "seed@festdesk.test") if reviewed else None,
            reviewed_at=BASE_TIME if reviewed else None,
            rejection_reason=(rejection_reason or "Payment not received") if status == "rejected" else None,
            created_at=created_at or BASE_TIME,
        )
        db_session.add(registration)
        for order, (name, email, user_id) in enumerate(participants, start=1):
            db_session.add(EventRegistrationMember(
                group_id=group_id,
                user_id=user_id,
                name=name,
                email=email,
                phone="9876500000",
                college="JIPMER",
                member_order=order,
            ))
        db_session.commit()
        return registration

    return _make


# =============================================================================
# ADMIN ACCOUNTS
# =============================================================================

@pytest.fixture
def make_admin(db_session):
    """Create an admin with the given role; returns (user, bearer token)."""
    def _make(role="admin", email=None):
        user = AdminUser(
            email=email or f"{role}@festdesk.test",
            name=role.replace("_", " ").title(),
            password_hash=hash_password(ADMIN_PASSWORD),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        _, token = session_service.create_session(user.id)
        return user, token

    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(make_admin):
    _, token = make_admin("admin")
    return auth_headers(token)


@pytest.fixture
def coordinator_headers(make_admin):
    _, token = make_admin("coordinator")
    return auth_headers(token)


@pytest.fixture
def finance_headers(make_admin):
    _, token = make_admin("finance")
    return auth_headers(token)


# =============================================================================
# NOTIFICATION FAKES
# =============================================================================

class RecordingNotifier:
    """Stand-in for send_approval_notice that records every call."""

    def __init__(self, *, ok=True, raises=None):
        self.calls = []
        self.ok = ok
        self.raises = raises

    def __call__(self, contact_email, template_key, variables):
        self.calls.append((contact_email, template_key, variables))
        if self.raises is not None:
            raise self.raises
        return NotificationResult(
            ok=self.ok,
            email=contact_email,
            template_key=template_key,
            error=None if self.ok else "delivery failed",
        )


@pytest.fixture
def notifier():
    return RecordingNotifier()


class BrevoRecorder:
    """MockTransport handler that keeps every request sent to Brevo."""

    def __init__(self):
        self.requests = []
        self.handler = brevo_ok_handler

    def respond_with(self, handler):
        self.handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def brevo(app, monkeypatch):
    recorder = BrevoRecorder()
    monkeypatch.setitem(app.extensions, "email_transport", httpx.MockTransport(recorder))
    return recorder
