from __future__ import annotations

from ..extensions import db
from festdesk.time_utils import to_utc_z, utcnow


class Event(db.Model):
    """Catalogue entry for a single festival event, priced per participant."""
    __tablename__ = "events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(32), nullable=False)  # Cultural, Sports, Fine Arts, Literary, Academic
    price = db.Column(db.Integer, nullable=False, default=0)
    max_participants = db.Column(db.Integer, nullable=True)  # None = unlimited
    venue = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "max_participants": self.max_participants,
            "venue": self.venue,
            "is_active": self.is_active,
        }


class EventRegistration(db.Model):
    """
    Registration group for one event.

    event_name and event_price are snapshots taken at submission so later
    catalogue edits never reprice an existing group.
    """
    __tablename__ = "event_registrations"
    __table_args__ = (
        db.Index("ix_event_registrations_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.String(32), nullable=False, unique=True, index=True)

    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    event_name = db.Column(db.String(255), nullable=False)
    event_price = db.Column(db.Integer, nullable=False, default=0)

    contact_user_id = db.Column(db.String(32), nullable=False)
    contact_name = db.Column(db.String(255), nullable=False)
    contact_email = db.Column(db.String(255), nullable=False, index=True)
    contact_phone = db.Column(db.String(32), nullable=False)

    total_amount = db.Column(db.Integer, nullable=False, default=0)
    member_count = db.Column(db.Integer, nullable=False, default=0)

    payment_transaction_id = db.Column(db.String(128), nullable=False, index=True)
    payment_screenshot_path = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    reviewed_by = db.Column(db.String(255), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    event = db.relationship("Event", lazy="joined")
    members = db.relationship(
        "EventRegistrationMember",
        backref="registration",
        order_by="EventRegistrationMember.member_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self):
        return {
            "group_id": self.group_id,
            "event_id": self.event_id,
            "event_name": self.event_name,
            "event_price": self.event_price,
            "contact_user_id": self.contact_user_id,
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


class EventRegistrationMember(db.Model):
    """
    Participant in an event group. user_id is the participant's delegate id
    from an approved tier/pass group (original_group_id).
    """
    __tablename__ = "event_registration_members"
    __table_args__ = (
        db.UniqueConstraint("group_id", "user_id", name="uq_event_member_group_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(
        db.String(32),
        db.ForeignKey("event_registrations.group_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.String(32), nullable=False, index=True)
    original_group_id = db.Column(db.String(32), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=False)
    college = db.Column(db.String(255), nullable=False)

    member_order = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "group_id": self.group_id,
            "original_group_id": self.original_group_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "college": self.college,
            "member_order": self.member_order,
        }
