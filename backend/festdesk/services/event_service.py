# Overview: Service-layer operations for the event catalogue; admin create, update and delete.

"""
Event catalogue management

Registrations snapshot event name and price at submission, so edits here never
reprice an existing group. An event that already has registrations cannot be
deleted; it is deactivated instead (is_active=False hides it from the public
catalogue and blocks new registrations).
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import ConflictError, StoreUnavailableError, ValidationError
from ..extensions import db
from ..models import Event, EventRegistration


NAME_MAX = 255
CATEGORY_MAX = 32

_EDITABLE = ("name", "description", "category", "price", "max_participants", "venue", "is_active")


def _text(data: dict, key: str, *, required: bool, max_len: int | None = None) -> str | None:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{key} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if max_len is not None and len(value) > max_len:
        raise ValidationError(f"{key} must be at most {max_len} characters")
    return value


def _non_negative_int(data: dict, key: str, *, allow_none: bool) -> int | None:
    value = data.get(key)
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{key} is required")
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValidationError(f"{key} must be a non-negative integer")
    return value


def _clean(data: dict, *, partial: bool) -> dict:
    unknown = set(data) - set(_EDITABLE)
    if unknown:
        raise ValidationError(f"Unknown event field(s): {', '.join(sorted(unknown))}")

    cleaned = {}
    if not partial or "name" in data:
        cleaned["name"] = _text(data, "name", required=True, max_len=NAME_MAX)
    if not partial or "category" in data:
        cleaned["category"] = _text(data, "category", required=True, max_len=CATEGORY_MAX)
    if not partial or "price" in data:
        cleaned["price"] = _non_negative_int(data, "price", allow_none=False)
    if "max_participants" in data:
        max_participants = _non_negative_int(data, "max_participants", allow_none=True)
        if max_participants == 0:
            raise ValidationError("max_participants must be positive (omit it for no limit)")
        cleaned["max_participants"] = max_participants
    for key in ("description", "venue"):
        if key in data:
            cleaned[key] = _text(data, key, required=False)
    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            raise ValidationError("is_active must be true or false")
        cleaned["is_active"] = data["is_active"]
    return cleaned


def _commit(op_name: str, name: str | None = None) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"An event named '{name}' already exists") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailableError(f"{op_name} failed: {exc.__class__.__name__}") from exc


def list_events() -> list[dict]:
    """Every event, active or not, for the admin catalogue."""
    events = db.session.query(Event).order_by(Event.category, Event.name).all()
    return [event.to_dict() for event in events]


def get_event(event_id: int) -> Event | None:
    return db.session.query(Event).filter_by(id=event_id).first()


def create_event(data: dict) -> Event:
    """
    Create a catalogue event.

    Raises:
        ValidationError: missing or malformed field
        ConflictError: name already taken
        StoreUnavailableError: database failure
    """
    cleaned = _clean(data or {}, partial=False)
    event = Event(**cleaned)
    db.session.add(event)
    _commit("create_event", cleaned["name"])
    return event


def update_event(event_id: int, data: dict) -> Event | None:
    """Apply a partial update; returns None when the event does not exist."""
    cleaned = _clean(data or {}, partial=True)
    if not cleaned:
        raise ValidationError("No event fields to update")

    event = get_event(event_id)
    if event is None:
        return None
    for key, value in cleaned.items():
        setattr(event, key, value)
    _commit("update_event", cleaned.get("name", event.name))
    return event


def delete_event(event_id: int) -> bool:
    """
    Delete an event with no registrations. Returns False when it does not exist.

    Raises:
        ConflictError: registrations reference the event
    """
    event = get_event(event_id)
    if event is None:
        return False

    registered = db.session.query(EventRegistration.id).filter_by(event_id=event_id).first()
    if registered is not None:
        raise ConflictError(f"Event '{event.name}' has registrations; deactivate it instead")

    db.session.delete(event)
    _commit("delete_event")
    return True
