# Overview: Service-layer operations for email notifications; templates, Brevo dispatch and email log.

"""
Email notifications

Templates live in the email_templates table and fall back to the built-in
DEFAULT_TEMPLATES. Placeholders are {{name}} style; values are HTML-escaped.

Dispatch goes through Brevo's transactional email endpoint
(POST {BREVO_API_URL}/smtp/email) with httpx. Every attempt, successful or
not, is written to email_logs.

send_approval_notice never raises for delivery problems: it returns a
NotificationResult and the caller decides what to log. Approval callers treat
email as best effort.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotificationError, ValidationError
from ..extensions import db
from ..models import EmailTemplate, EmailLog
from festdesk.records import RegistrationRecord, KIND_TIER_PASS
from festdesk.time_utils import format_day_month_year


TEMPLATE_APPROVAL_TIER_PASS = "approval_tier_pass"
TEMPLATE_APPROVAL_EVENT = "approval_event"
TEMPLATE_REJECTION = "rejection"
TEMPLATE_GENERAL = "general"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")

DEFAULT_TEMPLATES = {
    TEMPLATE_APPROVAL_TIER_PASS: {
        "subject": "Registration Confirmed - Spandan 2025 Delegate Pass ({{group_id}})",
        "body": (
            "<p>Dear <strong>{{name}}</strong>,</p>"
            "<p>Your delegate registration <strong>{{group_id}}</strong> has been approved.</p>"
            "<p><strong>Members:</strong><br>{{members}}</p>"
            "<p><strong>Total paid:</strong> Rs. {{total_amount}}<br>"
            "<strong>Registration date:</strong> {{created_at}}</p>"
            "<p>Use your delegate ID to complete event registrations. "
            "Carry this email and your college ID during the festival.</p>"
            "<p>Best regards,<br><strong>Team Spandan 2025</strong></p>"
        ),
    },
    TEMPLATE_APPROVAL_EVENT: {
        "subject": "Event Registration Confirmed - {{event_name}} ({{group_id}})",
        "body": (
            "<p>Dear <strong>{{name}}</strong>,</p>"
            "<p>Your registration for <strong>{{event_name}}</strong> "
            "(group <strong>{{group_id}}</strong>) has been approved.</p>"
            "<p><strong>Participants:</strong><br>{{members}}</p>"
            "<p><strong>Total paid:</strong> Rs. {{total_amount}}</p>"
            "<p>Best regards,<br><strong>Team Spandan 2025</strong></p>"
        ),
    },
    TEMPLATE_REJECTION: {
        "subject": "Registration Update - {{group_id}}",
        "body": (
            "<p>Dear <strong>{{name}}</strong>,</p>"
            "<p>We could not approve registration <strong>{{group_id}}</strong>.</p>"
            "<p><strong>Reason:</strong> {{rejection_reason}}</p>"
            "<p>You may submit a new registration with corrected payment details.</p>"
            "<p>Best regards,<br><strong>Team Spandan 2025</strong></p>"
        ),
    },
    TEMPLATE_GENERAL: {
        "subject": "{{subject}}",
        "body": "<p>Dear <strong>{{name}}</strong>,</p><p>{{message}}</p>",
    },
}


@dataclass(frozen=True)
class NotificationResult:
    ok: bool
    email: str
    template_key: str
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self):
        return {
            "ok": self.ok,
            "email": self.email,
            "template_key": self.template_key,
            "message_id": self.message_id,
            "error": self.error,
        }


# ================================================================================
# TEMPLATES
# ================================================================================

def render(text: str, variables: dict) -> str:
    """Replace {{key}} placeholders; unknown keys render as empty strings."""
    def _sub(match):
        value = variables.get(match.group(1))
        if value is None:
            return ""
        # members is pre-rendered HTML built from escaped parts
        if match.group(1) == "members":
            return str(value)
        return html.escape(str(value))
    return _PLACEHOLDER_RE.sub(_sub, text)


def get_template(template_key: str) -> dict:
    row = db.session.query(EmailTemplate).filter_by(type=template_key).first()
    if row is not None:
        return {"type": row.type, "subject": row.subject, "body": row.body}
    default = DEFAULT_TEMPLATES.get(template_key)
    if default is None:
        raise ValidationError(f"Unknown email template '{template_key}'")
    return {"type": template_key, **default}


def list_templates() -> list[dict]:
    stored = {row.type: row.to_dict() for row in db.session.query(EmailTemplate).all()}
    merged = []
    for key, default in DEFAULT_TEMPLATES.items():
        merged.append(stored.pop(key, {"type": key, **default, "last_edited": None, "last_edited_by": None}))
    merged.extend(stored.values())
    return merged


def update_template(template_key: str, subject: str, body: str, *, edited_by: str | None = None) -> dict:
    if not template_key or not template_key.strip():
        raise ValidationError("template type is required")
    if not (subject or "").strip() or not (body or "").strip():
        raise ValidationError("subject and body are required")

    row = db.session.query(EmailTemplate).filter_by(type=template_key).first()
    if row is None:
        row = EmailTemplate(type=template_key, subject=subject, body=body, last_edited_by=edited_by)
        db.session.add(row)
    else:
        row.subject = subject
        row.body = body
        row.last_edited_by = edited_by
    db.session.commit()
    return row.to_dict()


def ensure_default_templates() -> int:
    """Insert any missing default templates. Returns the number created."""
    existing = {t for (t,) in db.session.query(EmailTemplate.type).all()}
    created = 0
    for key, default in DEFAULT_TEMPLATES.items():
        if key in existing:
            continue
        db.session.add(EmailTemplate(type=key, subject=default["subject"], body=default["body"]))
        created += 1
    db.session.commit()
    return created


def approval_template_key(record: RegistrationRecord) -> str:
    return TEMPLATE_APPROVAL_TIER_PASS if record.kind == KIND_TIER_PASS else TEMPLATE_APPROVAL_EVENT


def record_variables(record: RegistrationRecord) -> dict:
    members_html = "<br>".join(
        f"{html.escape(m.name)} ({html.escape(m.user_id)}) - {html.escape(m.selection)}"
        for m in record.members
    )
    return {
        "name": record.contact.name,
        "email": record.contact.email,
        "group_id": record.group_id,
        "members": members_html,
        "member_count": record.member_count,
        "total_amount": record.total_amount,
        "event_name": record.event_name or "",
        "created_at": format_day_month_year(record.created_at),
        "rejection_reason": record.rejection_reason or "",
        "status": record.status,
    }


# ================================================================================
# DISPATCH
# ================================================================================

def _http_client() -> httpx.Client:
    # Tests install an httpx.MockTransport under this key.
    transport = current_app.extensions.get("email_transport")
    return httpx.Client(
        timeout=current_app.config.get("EMAIL_TIMEOUT_SECONDS", 10),
        transport=transport,
    )


def _post_brevo(to_email: str, subject: str, html_content: str, *, to_name: str | None = None) -> str | None:
    """
    Send one email through Brevo. Returns Brevo's messageId.

    Raises:
        NotificationError: not configured, transport failure, or non-2xx response.
    """
    api_key = current_app.config.get("BREVO_API_KEY")
    if not api_key:
        raise NotificationError("Email service not configured (BREVO_API_KEY missing)")

    recipient = {"email": to_email}
    if to_name:
        recipient["name"] = to_name

    payload = {
        "sender": {
            "name": current_app.config.get("EMAIL_SENDER_NAME"),
            "email": current_app.config.get("EMAIL_SENDER_ADDRESS"),
        },
        "to": [recipient],
        "subject": subject,
        "htmlContent": html_content,
    }
    url = f"{current_app.config.get('BREVO_API_URL', '').rstrip('/')}/smtp/email"

    try:
        with _http_client() as client:
            response = client.post(
                url,
                json=payload,
                headers={"api-key": api_key, "Accept": "application/json"},
            )
    except httpx.HTTPError as exc:
        raise NotificationError(f"Email transport error: {exc}") from exc

    if response.status_code >= 300:
        raise NotificationError(f"Brevo API error: {response.status_code} - {response.text}")

    try:
        return response.json().get("messageId")
    except ValueError:
        return None


def _log_attempt(*, email: str, template_key: str, group_id: str | None, ok: bool,
                 message_id: str | None = None, error: str | None = None) -> None:
    try:
        db.session.add(EmailLog(
            group_id=group_id,
            email_type=template_key,
            email=email,
            status="sent" if ok else "failed",
            message_id=message_id,
            error=error,
        ))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to write email log for %s", email)


def send_template(
    email: str,
    template_key: str,
    variables: dict,
    *,
    group_id: str | None = None,
) -> NotificationResult:
    """Render template_key with variables and send it to email."""
    try:
        template = get_template(template_key)
        subject = render(template["subject"], variables)
        body = render(template["body"], variables)
        message_id = _post_brevo(email, subject, body, to_name=variables.get("name"))
    except (NotificationError, ValidationError) as exc:
        _log_attempt(email=email, template_key=template_key, group_id=group_id, ok=False, error=str(exc))
        return NotificationResult(ok=False, email=email, template_key=template_key, error=str(exc))

    _log_attempt(email=email, template_key=template_key, group_id=group_id, ok=True, message_id=message_id)
    current_app.logger.info("Sent %s email to %s (group %s)", template_key, email, group_id)
    return NotificationResult(ok=True, email=email, template_key=template_key, message_id=message_id)


def send_approval_notice(contact_email: str, template_key: str, variables: dict) -> NotificationResult:
    """Approval/rejection notice for one group's contact."""
    return send_template(contact_email, template_key, variables, group_id=variables.get("group_id"))


def send_bulk(records: Iterable[RegistrationRecord], template_key: str, extra_variables: dict | None = None) -> dict:
    """
    Send template_key to the contact of every record, one email per group.

    Returns counts plus per-recipient failures; delivery problems never abort
    the loop.
    """
    sent = 0
    failures = []
    for record in records:
        # Record fields win over caller variables; members is trusted HTML.
        variables = dict(extra_variables or {})
        variables.update(record_variables(record))
        result = send_template(record.contact.email, template_key, variables, group_id=record.group_id)
        if result.ok:
            sent += 1
        else:
            failures.append({"group_id": record.group_id, "email": record.contact.email, "error": result.error})
    return {"sent": sent, "failed": len(failures), "failures": failures}


def list_email_logs(*, group_id: str | None = None, email_type: str | None = None, limit: int = 100) -> list[dict]:
    q = db.session.query(EmailLog)
    if group_id:
        q = q.filter_by(group_id=group_id)
    if email_type:
        q = q.filter_by(email_type=email_type)
    q = q.order_by(EmailLog.sent_at.desc(), EmailLog.id.desc())
    return [row.to_dict() for row in q.limit(limit).all()]
