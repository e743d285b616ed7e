"""
Unified registration view.

Tier/pass groups and event groups live in separate tables. Everything above
the store adapter works against RegistrationRecord only; the two normalisers
below are the single place where a source row becomes a record.

Totals are recomputed here from the members. The stored total is kept on the
record as stored_total so a stale cache can be reported instead of trusted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from festdesk.services import pricing_service
from festdesk.time_utils import to_utc_z


KIND_TIER_PASS = "tier_pass"
KIND_EVENT = "event"
VALID_KINDS = {KIND_TIER_PASS, KIND_EVENT}

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
VALID_STATUSES = {STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED}
TERMINAL_STATUSES = {STATUS_APPROVED, STATUS_REJECTED}

GROUP_ID_PREFIX = "GRP-"
USER_ID_PREFIX = "USER-"


@dataclass(frozen=True)
class Contact:
    name: str
    email: str
    phone: str

    def to_dict(self):
        return {"name": self.name, "email": self.email, "phone": self.phone}


@dataclass(frozen=True)
class Member:
    user_id: str
    name: str
    email: str
    phone: str
    college: str
    selection: str
    amount: int
    selection_type: Optional[str] = None
    tier: Optional[str] = None
    pass_type: Optional[str] = None
    pass_tier: Optional[str] = None

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "college": self.college,
            "selection": self.selection,
            "selection_type": self.selection_type,
            "tier": self.tier,
            "pass_type": self.pass_type,
            "pass_tier": self.pass_tier,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class RegistrationRecord:
    group_id: str
    kind: str
    contact: Contact
    members: tuple[Member, ...]
    total_amount: int
    stored_total: int
    payment_transaction_id: str
    payment_screenshot_path: Optional[str]
    status: str
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    event_name: Optional[str] = None
    event_category: Optional[str] = None
    integrity_issues: tuple[str, ...] = field(default_factory=tuple)

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def total_mismatch(self) -> bool:
        return self.stored_total != self.total_amount

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    def search_text(self) -> str:
        parts = [self.group_id, self.contact.name, self.contact.email, self.contact.phone]
        for m in self.members:
            parts.extend([m.user_id, m.name, m.email, m.phone])
        return " ".join(p for p in parts if p).lower()

    def to_dict(self):
        return {
            "group_id": self.group_id,
            "kind": self.kind,
            "contact": self.contact.to_dict(),
            "members": [m.to_dict() for m in self.members],
            "member_count": self.member_count,
            "total_amount": self.total_amount,
            "stored_total": self.stored_total,
            "total_mismatch": self.total_mismatch,
            "payment_transaction_id": self.payment_transaction_id,
            "payment_screenshot_path": self.payment_screenshot_path,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "reviewed_at": to_utc_z(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
            "rejection_reason": self.rejection_reason,
            "event_name": self.event_name,
            "event_category": self.event_category,
            "integrity_issues": list(self.integrity_issues),
        }

    def to_public_dict(self):
        """Reduced view for the registrant-facing status page."""
        return {
            "group_id": self.group_id,
            "kind": self.kind,
            "status": self.status,
            "total_amount": self.total_amount,
            "event_name": self.event_name,
            "members": [{"name": m.name, "user_id": m.user_id, "selection": m.selection} for m in self.members],
            "created_at": to_utc_z(self.created_at),
            "reviewed_at": to_utc_z(self.reviewed_at),
            "rejection_reason": self.rejection_reason,
        }


def _review_issues(row) -> list[str]:
    issues = []
    if row.status not in VALID_STATUSES:
        issues.append(f"unknown status '{row.status}'")
    elif row.status == STATUS_PENDING:
        if row.reviewed_at is not None or row.reviewed_by:
            issues.append("pending record carries review metadata")
    else:
        if row.reviewed_at is None or not row.reviewed_by:
            issues.append(f"{row.status} record is missing review metadata")
    has_reason = bool((row.rejection_reason or "").strip())
    if row.status == STATUS_REJECTED and not has_reason:
        issues.append("rejected record has no rejection reason")
    if row.status != STATUS_REJECTED and has_reason:
        issues.append("rejection reason set on a non-rejected record")
    return issues


def from_tier_pass(row) -> RegistrationRecord:
    """Normalise a TierPassRegistration row (with members loaded)."""
    members = []
    for m in row.members:
        members.append(Member(
            user_id=m.user_id,
            name=m.name,
            email=m.email,
            phone=m.phone,
            college=m.college,
            selection=pricing_service.selection_label(
                m.selection_type, tier=m.tier, pass_type=m.pass_type, pass_tier=m.pass_tier,
            ),
            amount=pricing_service.member_amount(
                m.selection_type, tier=m.tier, pass_type=m.pass_type, pass_tier=m.pass_tier,
            ),
            selection_type=m.selection_type,
            tier=m.tier,
            pass_type=m.pass_type,
            pass_tier=m.pass_tier,
        ))

    total = sum(m.amount for m in members)
    stored_total = int(row.total_amount or 0)
    issues = _review_issues(row)
    if stored_total != total:
        issues.append(f"stored total {stored_total} differs from recomputed total {total}")
    if not members:
        issues.append("group has no members")

    return RegistrationRecord(
        group_id=row.group_id,
        kind=KIND_TIER_PASS,
        contact=Contact(name=row.contact_name, email=row.contact_email, phone=row.contact_phone),
        members=tuple(members),
        total_amount=total,
        stored_total=stored_total,
        payment_transaction_id=row.payment_transaction_id,
        payment_screenshot_path=row.payment_screenshot_path,
        status=row.status,
        created_at=row.created_at,
        reviewed_at=row.reviewed_at,
        reviewed_by=row.reviewed_by,
        rejection_reason=row.rejection_reason,
        integrity_issues=tuple(issues),
    )


def from_event(row) -> RegistrationRecord:
    """Normalise an EventRegistration row (with members loaded)."""
    price = int(row.event_price or 0)
    members = tuple(
        Member(
            user_id=m.user_id,
            name=m.name,
            email=m.email,
            phone=m.phone,
            college=m.college,
            selection=row.event_name,
            amount=price,
        )
        for m in row.members
    )

    total = pricing_service.event_total(price, len(members))
    stored_total = int(row.total_amount or 0)
    issues = _review_issues(row)
    if stored_total != total:
        issues.append(f"stored total {stored_total} differs from recomputed total {total}")
    if not members:
        issues.append("group has no members")

    category = row.event.category if getattr(row, "event", None) is not None else None

    return RegistrationRecord(
        group_id=row.group_id,
        kind=KIND_EVENT,
        contact=Contact(name=row.contact_name, email=row.contact_email, phone=row.contact_phone),
        members=members,
        total_amount=total,
        stored_total=stored_total,
        payment_transaction_id=row.payment_transaction_id,
        payment_screenshot_path=row.payment_screenshot_path,
        status=row.status,
        created_at=row.created_at,
        reviewed_at=row.reviewed_at,
        reviewed_by=row.reviewed_by,
        rejection_reason=row.rejection_reason,
        event_name=row.event_name,
        event_category=category,
        integrity_issues=tuple(issues),
    )
