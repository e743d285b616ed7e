from __future__ import annotations

from ..extensions import db
from festdesk.time_utils import to_utc_z, utcnow


class TierPassRegistration(db.Model):
    """
    Delegate-level registration group (one payment, one approval decision).

    total_amount is a cache written at submission; readers recompute it from
    the members' selections and report any disagreement.
    """
    __tablename__ = "tier_pass_registrations"
    __table_args__ = (
        db.Index("ix_tier_pass_registrations_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.String(32), nullable=False, unique=True, index=True)

    contact_name = db.Column(db.String(255), nullable=False)
    contact_email = db.Column(db.String(255), nullable=False, index=True)
    contact_phone = db.Column(db.String(32), nullable=False)

    total_amount = db.Column(db.Integer, nullable=False, default=0)
    member_count = db.Column(db.Integer, nullable=False, default=0)

    payment_transaction_id = db.Column(db.String(128), nullable=False, index=True)
    payment_screenshot_path = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)  # pending, approved, rejected
    reviewed_by = db.Column(db.String(255), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    members = db.relationship(
        "TierPassMember",
        backref="registration",
        order_by="TierPassMember.member_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self):
        return {
            "group_id": self.group_id,
            "contact_name": self.contact_name,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "total_amount": self.total_amount,
            "member_count": self.member_count,
            "payment_transaction_id": self.payment_transaction_id,
            "payment_screenshot_path": self.payment_screenshot_path,
            "status": self.status,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TierPassMember(db.Model):
    """
    One delegate inside a tier/pass group.

    selection_type is "tier" (tier set) or "pass" (pass_type set, pass_tier
    only for Nexus Forum).
    """
    __tablename__ = "tier_pass_members"
    __table_args__ = (
        db.UniqueConstraint("group_id", "user_id", name="uq_tier_pass_member_group_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(
        db.String(32),
        db.ForeignKey("tier_pass_registrations.group_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.String(32), nullable=False, unique=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=False, index=True)
    college = db.Column(db.String(255), nullable=False)
    college_location = db.Column(db.String(255), nullable=True)

    selection_type = db.Column(db.String(8), nullable=False)  # tier, pass
    tier = db.Column(db.String(64), nullable=True)
    pass_type = db.Column(db.String(64), nullable=True)
    pass_tier = db.Column(db.String(32), nullable=True)

    amount = db.Column(db.Integer, nullable=False, default=0)
    member_order = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "group_id": self.group_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "college": self.college,
            "college_location": self.college_location,
            "selection_type": self.selection_type,
            "tier": self.tier,
            "pass_type": self.pass_type,
            "pass_tier": self.pass_tier,
            "amount": self.amount,
            "member_order": self.member_order,
        }
