# Overview: Service-layer operations for registration submission; creates pending groups.

"""
Registration submission

Creates new groups in the pending state. This is the only code that inserts
into the group tables; the review engine only reads and transitions them.

TIER/PASS GROUPS:
- Every member needs name, email, phone (10-digit Indian mobile), college and
  exactly one selection (tier, or pass with a tier only for Nexus Forum).
- Member amounts come from the price table; the stored total is their sum.
- A member email or phone already in a non-rejected tier/pass group is a
  duplicate, as is a transaction id already used by any non-rejected group.

EVENT GROUPS:
- The event must exist and be active.
- Every participant (and the contact) must be a USER- id from an approved
  tier/pass group; names and emails are copied from that member record.
- Capacity counts participants of non-rejected registrations.
- Total = event price x participants; the price is snapshotted.
"""

from __future__ import annotations

import re
import secrets
import string

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ConflictError, StoreUnavailableError, ValidationError
from ..extensions import db
from ..models import (
    TierPassRegistration,
    TierPassMember,
    Event,
    EventRegistration,
    EventRegistrationMember,
)
from . import pricing_service, store
from .identity_service import is_valid_email
from festdesk.records import (
    GROUP_ID_PREFIX,
    USER_ID_PREFIX,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    KIND_TIER_PASS,
    KIND_EVENT,
)


_ID_ALPHABET = string.ascii_uppercase + string.digits
_PHONE_RE = re.compile(r"^[6-9]\d{9}$")

MAX_GROUP_SIZE = 10
_ID_ATTEMPTS = 10


def _random_token(length: int) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_group_id() -> str:
    """GRP- plus six characters, unused in either source."""
    for _ in range(_ID_ATTEMPTS):
        candidate = f"{GROUP_ID_PREFIX}{_random_token(6)}"
        if not store.group_exists(candidate):
            return candidate
    raise ConflictError("Could not allocate a unique group id; please retry")


def generate_user_id(taken: set[str] | None = None) -> str:
    """USER-XXXX-XXXX, unused by any tier/pass member."""
    taken = taken or set()
    for _ in range(_ID_ATTEMPTS):
        candidate = f"{USER_ID_PREFIX}{_random_token(4)}-{_random_token(4)}"
        if candidate in taken:
            continue
        if db.session.query(TierPassMember.id).filter_by(user_id=candidate).first() is None:
            return candidate
    raise ConflictError("Could not allocate a unique user id; please retry")


def normalize_phone(phone: str | None) -> str:
    return re.sub(r"\D", "", phone or "")


def _require_text(data: dict, key: str, label: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def _validate_person(data: dict, label: str) -> dict:
    name = _require_text(data, "name", f"{label}: name")
    email = _require_text(data, "email", f"{label}: email").lower()
    if not is_valid_email(email):
        raise ValidationError(f"{label}: please enter a valid email address")
    phone = normalize_phone(_require_text(data, "phone", f"{label}: phone"))
    if not _PHONE_RE.match(phone):
        raise ValidationError(f"{label}: please enter a valid 10-digit mobile number (6-9 starting)")
    return {"name": name, "email": email, "phone": phone}


def _validate_payment(payload: dict) -> tuple[str, str | None]:
    transaction_id = _require_text(payload, "payment_transaction_id", "payment_transaction_id")
    screenshot = payload.get("payment_screenshot_path")
    if screenshot is not None and not isinstance(screenshot, str):
        raise ValidationError("payment_screenshot_path must be a string")
    return transaction_id, (screenshot or None)


def _members_list(payload: dict) -> list:
    members = payload.get("members")
    if not isinstance(members, list) or not members:
        raise ValidationError("At least one member is required")
    if len(members) > MAX_GROUP_SIZE:
        raise ValidationError(f"A group can have at most {MAX_GROUP_SIZE} members")
    return members


def check_transaction_id_unused(transaction_id: str) -> None:
    for model in (TierPassRegistration, EventRegistration):
        hit = (
            db.session.query(model.group_id)
            .filter(model.payment_transaction_id == transaction_id)
            .filter(model.status != STATUS_REJECTED)
            .first()
        )
        if hit is not None:
            raise ConflictError(f"Transaction ID already used by registration {hit[0]}")


def find_duplicate_member(email: str, phone: str) -> str | None:
    """Group id of a non-rejected tier/pass group already holding this email or phone."""
    hit = (
        db.session.query(TierPassMember.group_id)
        .join(TierPassRegistration, TierPassRegistration.group_id == TierPassMember.group_id)
        .filter(TierPassRegistration.status != STATUS_REJECTED)
        .filter((func.lower(TierPassMember.email) == email.lower()) | (TierPassMember.phone == phone))
        .first()
    )
    return hit[0] if hit else None


def submit_tier_pass(payload: dict) -> TierPassRegistration:
    """
    Create a pending tier/pass group.

    Raises:
        ValidationError: missing/invalid fields or selections
        ConflictError: duplicate member or transaction id
        StoreUnavailableError: database failure
    """
    members_in = _members_list(payload)
    transaction_id, screenshot = _validate_payment(payload)

    members = []
    seen_emails: set[str] = set()
    seen_phones: set[str] = set()
    for index, raw in enumerate(members_in, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Member {index}: invalid member data")
        person = _validate_person(raw, f"Member {index}")
        college = _require_text(raw, "college", f"Member {index}: college")

        selection_type = raw.get("selection_type") or ("tier" if raw.get("tier") else "pass")
        tier = raw.get("tier") or None
        pass_type = raw.get("pass_type") or None
        pass_tier = raw.get("pass_tier") or None
        try:
            pricing_service.validate_selection(selection_type, tier=tier, pass_type=pass_type, pass_tier=pass_tier)
        except ValidationError as exc:
            raise ValidationError(f"Member {index}: {exc}")

        if person["email"] in seen_emails or person["phone"] in seen_phones:
            raise ValidationError(f"Member {index}: duplicate email or phone within the group")
        seen_emails.add(person["email"])
        seen_phones.add(person["phone"])

        members.append({
            **person,
            "college": college,
            "college_location": (raw.get("college_location") or "").strip() or None,
            "selection_type": selection_type,
            "tier": tier,
            "pass_type": pass_type,
            "pass_tier": pass_tier,
            "amount": pricing_service.member_amount(
                selection_type, tier=tier, pass_type=pass_type, pass_tier=pass_tier,
            ),
        })

    contact_in = payload.get("contact")
    contact = _validate_person(contact_in, "Contact") if isinstance(contact_in, dict) else {
        k: members[0][k] for k in ("name", "email", "phone")
    }

    try:
        for index, member in enumerate(members, start=1):
            existing = find_duplicate_member(member["email"], member["phone"])
            if existing:
                raise ConflictError(f"Member {index} is already registered in group {existing}")
        check_transaction_id_unused(transaction_id)

        group_id = generate_group_id()
        registration = TierPassRegistration(
            group_id=group_id,
            contact_name=contact["name"],
            contact_email=contact["email"],
            contact_phone=contact["phone"],
            total_amount=sum(m["amount"] for m in members),
            member_count=len(members),
            payment_transaction_id=transaction_id,
            payment_screenshot_path=screenshot,
            status=STATUS_PENDING,
        )
        db.session.add(registration)

        taken: set[str] = set()
        for order, member in enumerate(members, start=1):
            user_id = generate_user_id(taken)
            taken.add(user_id)
            db.session.add(TierPassMember(group_id=group_id, user_id=user_id, member_order=order, **member))

        db.session.commit()
        return registration
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailableError(f"submit_tier_pass failed: {exc.__class__.__name__}") from exc


def approved_member(user_id: str) -> TierPassMember | None:
    """The tier/pass member behind user_id, if their group is approved."""
    return (
        db.session.query(TierPassMember)
        .join(TierPassRegistration, TierPassRegistration.group_id == TierPassMember.group_id)
        .filter(TierPassMember.user_id == user_id)
        .filter(TierPassRegistration.status == STATUS_APPROVED)
        .first()
    )


def event_spots_taken(event_id: int) -> int:
    return (
        db.session.query(func.count(EventRegistrationMember.id))
        .join(EventRegistration, EventRegistration.group_id == EventRegistrationMember.group_id)
        .filter(EventRegistration.event_id == event_id)
        .filter(EventRegistration.status != STATUS_REJECTED)
        .scalar()
    ) or 0


def submit_event(payload: dict) -> EventRegistration:
    """
    Create a pending event group from approved delegate ids.

    Raises:
        ValidationError: unknown/inactive event, unapproved ids, bad payload
        ConflictError: capacity exceeded, participant already registered for
            the event, or transaction id reuse
        StoreUnavailableError: database failure
    """
    event_id = payload.get("event_id")
    if not isinstance(event_id, int) or isinstance(event_id, bool):
        raise ValidationError("event_id must be an integer")
    members_in = _members_list(payload)
    transaction_id, screenshot = _validate_payment(payload)

    user_ids = []
    for index, raw in enumerate(members_in, start=1):
        user_id = raw.get("user_id") if isinstance(raw, dict) else raw
        if not isinstance(user_id, str) or not user_id.strip().startswith(USER_ID_PREFIX):
            raise ValidationError(f"Participant {index}: a USER- id is required")
        user_ids.append(user_id.strip())
    if len(set(user_ids)) != len(user_ids):
        raise ValidationError("A participant cannot be listed twice")

    contact_user_id = payload.get("contact_user_id") or user_ids[0]
    if not isinstance(contact_user_id, str) or not contact_user_id.strip().startswith(USER_ID_PREFIX):
        raise ValidationError("contact_user_id must be a USER- id")
    contact_user_id = contact_user_id.strip()

    try:
        event = db.session.query(Event).filter_by(id=event_id).first()
        if event is None or not event.is_active:
            raise ValidationError("Event not found")

        contact = approved_member(contact_user_id)
        if contact is None:
            raise ValidationError("Contact person is not an approved user")

        participants = []
        for user_id in user_ids:
            member = approved_member(user_id)
            if member is None:
                raise ValidationError(f"{user_id} is not an approved user")
            participants.append(member)

        already = (
            db.session.query(EventRegistrationMember.user_id)
            .join(EventRegistration, EventRegistration.group_id == EventRegistrationMember.group_id)
            .filter(EventRegistration.event_id == event.id)
            .filter(EventRegistration.status != STATUS_REJECTED)
            .filter(EventRegistrationMember.user_id.in_(user_ids))
            .first()
        )
        if already is not None:
            raise ConflictError(f"{already[0]} is already registered for {event.name}")

        if event.max_participants is not None:
            if event_spots_taken(event.id) + len(participants) > event.max_participants:
                raise ConflictError(f"{event.name} does not have enough spots left")

        check_transaction_id_unused(transaction_id)

        group_id = generate_group_id()
        registration = EventRegistration(
            group_id=group_id,
            event_id=event.id,
            event_name=event.name,
            event_price=event.price,
            contact_user_id=contact.user_id,
            contact_name=contact.name,
            contact_email=contact.email,
            contact_phone=contact.phone,
            total_amount=pricing_service.event_total(event.price, len(participants)),
            member_count=len(participants),
            payment_transaction_id=transaction_id,
            payment_screenshot_path=screenshot,
            status=STATUS_PENDING,
        )
        db.session.add(registration)
        for order, member in enumerate(participants, start=1):
            db.session.add(EventRegistrationMember(
                group_id=group_id,
                user_id=member.user_id,
                original_group_id=member.group_id,
                name=member.name,
                email=member.email,
                phone=member.phone,
                college=member.college,
                member_order=order,
            ))

        db.session.commit()
        return registration
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailableError(f"submit_event failed: {exc.__class__.__name__}") from exc


def list_active_events() -> list[dict]:
    events = db.session.query(Event).filter_by(is_active=True).order_by(Event.category, Event.name).all()
    payload = []
    for event in events:
        data = event.to_dict()
        if event.max_participants is not None:
            data["spots_left"] = max(event.max_participants - event_spots_taken(event.id), 0)
        else:
            data["spots_left"] = None
        payload.append(data)
    return payload


def delete_registration(group_id: str, kind: str) -> bool:
    """
    Admin delete. Approved groups are kept for the record; only pending or
    rejected groups may be removed.
    """
    if kind not in (KIND_TIER_PASS, KIND_EVENT):
        raise ValidationError(f"Unknown registration kind '{kind}'")
    record = store.fetch_group(group_id, kind)
    if record is None:
        return False
    if record.status == STATUS_APPROVED:
        raise ConflictError(f"Registration {group_id} is approved and cannot be deleted")
    return store.delete_group(group_id, kind)
