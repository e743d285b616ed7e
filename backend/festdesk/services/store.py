# Overview: Storage adapter for both registration sources; review reads and writes go through here.

"""
Registration store adapter.

Reads return fully populated RegistrationRecord values (members included) and
status changes go through guarded_transition only. Any SQLAlchemy failure rolls the
session back and surfaces as StoreUnavailableError so callers fail the whole
operation instead of acting on a partial result.

The state transition is a single conditional UPDATE:

    UPDATE <group table>
       SET status = :new, reviewed_by = :by, reviewed_at = :at, rejection_reason = :reason
     WHERE group_id = :group_id AND status = :expected

Status and review metadata change in one statement, and the WHERE clause is the
precondition, so two concurrent approvals of one pending group can never both
apply.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreUnavailableError
from ..extensions import db
from ..models import (
    TierPassRegistration,
    TierPassMember,
    EventRegistration,
    EventRegistrationMember,
)
from festdesk import records
from festdesk.records import KIND_TIER_PASS, KIND_EVENT, RegistrationRecord


APPLIED = "applied"
PRECONDITION_FAILED = "precondition_failed"
MISSING = "missing"


@dataclass(frozen=True)
class ReviewMetadata:
    reviewed_by: str
    reviewed_at: datetime
    rejection_reason: Optional[str] = None


_SOURCES = {
    KIND_TIER_PASS: (TierPassRegistration, TierPassMember, records.from_tier_pass),
    KIND_EVENT: (EventRegistration, EventRegistrationMember, records.from_event),
}


def _source(kind: str):
    try:
        return _SOURCES[kind]
    except KeyError:
        raise ValueError(f"Unknown registration kind '{kind}'")


def _read(op_name: str, func_):
    try:
        return func_()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailableError(f"{op_name} failed: {exc.__class__.__name__}") from exc


def fetch_group(group_id: str, kind: str) -> RegistrationRecord | None:
    """Point lookup; None when the group does not exist in this source."""
    group_model, _, normalise = _source(kind)

    def _op():
        row = db.session.query(group_model).filter_by(group_id=group_id).first()
        return normalise(row) if row is not None else None

    return _read("fetch_group", _op)


def _fetch_groups(group_model, normalise, group_ids: list[str]) -> list[RegistrationRecord]:
    if not group_ids:
        return []
    rows = (
        db.session.query(group_model)
        .filter(group_model.group_id.in_(group_ids))
        .order_by(group_model.created_at.desc(), group_model.id.desc())
        .all()
    )
    return [normalise(row) for row in rows]


def fetch_by_email(email: str, kind: str) -> list[RegistrationRecord]:
    """
    Every group in this source with a member (or contact) whose email matches,
    case-insensitively. Whole groups are returned, each once.
    """
    group_model, member_model, normalise = _source(kind)
    needle = (email or "").strip().lower()

    def _op():
        member_hits = (
            db.session.query(member_model.group_id)
            .filter(func.lower(member_model.email) == needle)
            .distinct()
            .all()
        )
        contact_hits = (
            db.session.query(group_model.group_id)
            .filter(func.lower(group_model.contact_email) == needle)
            .all()
        )
        group_ids = list(dict.fromkeys([r[0] for r in member_hits] + [r[0] for r in contact_hits]))
        return _fetch_groups(group_model, normalise, group_ids)

    return _read("fetch_by_email", _op)


def fetch_by_user_id(user_id: str, kind: str) -> list[RegistrationRecord]:
    """Groups in this source that list user_id as a member."""
    group_model, member_model, normalise = _source(kind)

    def _op():
        hits = (
            db.session.query(member_model.group_id)
            .filter(member_model.user_id == user_id)
            .distinct()
            .all()
        )
        return _fetch_groups(group_model, normalise, [r[0] for r in hits])

    return _read("fetch_by_user_id", _op)


def fetch_all(kind: str, status: str | None = None) -> list[RegistrationRecord]:
    """All groups of one source, newest first."""
    group_model, _, normalise = _source(kind)

    def _op():
        q = db.session.query(group_model)
        if status is not None:
            q = q.filter_by(status=status)
        q = q.order_by(group_model.created_at.desc(), group_model.id.desc())
        return [normalise(row) for row in q.all()]

    return _read("fetch_all", _op)


def group_exists(group_id: str) -> bool:
    """True if group_id is taken in either source."""
    def _op():
        for group_model, _, _ in _SOURCES.values():
            if db.session.query(group_model.id).filter_by(group_id=group_id).first() is not None:
                return True
        return False

    return _read("group_exists", _op)


def guarded_transition(
    group_id: str,
    kind: str,
    expected_status: str,
    new_status: str,
    review: ReviewMetadata,
) -> str:
    """
    Move group_id from expected_status to new_status in one statement.

    Returns:
        APPLIED when exactly one row changed and the commit succeeded,
        PRECONDITION_FAILED when the group exists but is not in expected_status,
        MISSING when the group does not exist in this source.

    Raises:
        StoreUnavailableError: the update or commit failed (nothing applied).
    """
    group_model, _, _ = _source(kind)

    stmt = (
        update(group_model)
        .where(group_model.group_id == group_id)
        .where(group_model.status == expected_status)
        .values(
            status=new_status,
            reviewed_by=review.reviewed_by,
            reviewed_at=review.reviewed_at,
            rejection_reason=review.rejection_reason,
            updated_at=review.reviewed_at,
        )
        .execution_options(synchronize_session=False)
    )

    try:
        result = db.session.execute(stmt)
        if result.rowcount == 1:
            db.session.commit()
            # Rows loaded earlier in this session must not mask the new state.
            db.session.expire_all()
            return APPLIED

        db.session.rollback()
        exists = db.session.query(group_model.id).filter_by(group_id=group_id).first() is not None
        return PRECONDITION_FAILED if exists else MISSING
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailableError(f"guarded_transition failed: {exc.__class__.__name__}") from exc


def delete_group(group_id: str, kind: str) -> bool:
    """Remove a group and its members. Returns False if it did not exist."""
    group_model, _, _ = _source(kind)
    try:
        row = db.session.query(group_model).filter_by(group_id=group_id).first()
        if row is None:
            return False
        db.session.delete(row)
        db.session.commit()
        return True
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailableError(f"delete_group failed: {exc.__class__.__name__}") from exc
