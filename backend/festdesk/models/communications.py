from __future__ import annotations

from ..extensions import db
from festdesk.time_utils import to_utc_z, utcnow


class EmailTemplate(db.Model):
    """
    Editable email template keyed by type (approval_tier_pass, approval_event, ...).

    subject and body use {{variable}} placeholders.
    """
    __tablename__ = "email_templates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(64), nullable=False, unique=True, index=True)
    subject = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)
    last_edited_by = db.Column(db.String(255), nullable=True)
    last_edited = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "type": self.type,
            "subject": self.subject,
            "body": self.body,
            "last_edited_by": self.last_edited_by,
            "last_edited": to_utc_z(self.last_edited),
        }


class EmailLog(db.Model):
    """One row per dispatch attempt, sent or failed."""
    __tablename__ = "email_logs"
    __table_args__ = (
        db.Index("ix_email_logs_type_sent", "email_type", "sent_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.String(32), nullable=True, index=True)
    email_type = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False)  # sent, failed
    message_id = db.Column(db.String(255), nullable=True)
    error = db.Column(db.Text, nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "group_id": self.group_id,
            "email_type": self.email_type,
            "email": self.email,
            "status": self.status,
            "message_id": self.message_id,
            "error": self.error,
            "sent_at": to_utc_z(self.sent_at),
        }
