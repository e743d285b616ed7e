# Overview: Service-layer operations for registration review; pending -> approved | rejected.

"""
Registration Approval State Machine

================================================================================
STATE MACHINE:
    PENDING -> APPROVED
    PENDING -> REJECTED

    APPROVED and REJECTED are terminal. There is no un-approve and no re-review;
    a registrant who was rejected submits a new group.

RULES:
1. The precondition (status == pending) and the write are one guarded UPDATE
   (see store.guarded_transition). A read-then-write pair is never used.
2. Review metadata (reviewed_by, reviewed_at, rejection_reason) is written in
   the same statement as the status.
3. A second approve/reject on the same group returns INVALID_TRANSITION and
   changes nothing, including no second email.
4. The approval email is sent after the commit. Its failure is logged and
   never undoes the approval.
================================================================================
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from flask import current_app

from ..errors import ErrorKind, Outcome, StoreUnavailableError
from . import store
from . import notification_service
from .identity_service import SOURCE_ORDER
from festdesk.records import (
    GROUP_ID_PREFIX,
    VALID_KINDS,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    RegistrationRecord,
)
from festdesk.time_utils import utcnow


Notifier = Callable[[str, str, dict], "notification_service.NotificationResult"]


def can_transition(from_status: str, to_status: str) -> bool:
    return from_status == STATUS_PENDING and to_status in (STATUS_APPROVED, STATUS_REJECTED)


def locate_group(group_id: str, kind: Optional[str]) -> Outcome:
    """
    Find which source holds group_id.

    Returns Outcome.success(RegistrationRecord) or a validation / not-found
    failure. A group id present in both sources needs an explicit kind.
    """
    if not group_id or not group_id.startswith(GROUP_ID_PREFIX):
        return Outcome.failure(ErrorKind.VALIDATION, f"'{group_id}' is not a group id (GRP-...)")
    if kind is not None and kind not in VALID_KINDS:
        return Outcome.failure(ErrorKind.VALIDATION, f"Unknown registration kind '{kind}'")

    kinds = (kind,) if kind else SOURCE_ORDER
    found = [r for r in (store.fetch_group(group_id, k) for k in kinds) if r is not None]

    if not found:
        return Outcome.failure(ErrorKind.NOT_FOUND, f"Registration {group_id} not found")
    if len(found) > 1:
        current_app.logger.error("Group id %s exists in both registration sources", group_id)
        return Outcome.failure(
            ErrorKind.VALIDATION,
            f"Group {group_id} exists in more than one source; specify kind",
        )
    return Outcome.success(found[0])


def _transition(
    group_id: str,
    reviewer_id: str,
    new_status: str,
    *,
    kind: Optional[str],
    reason: Optional[str] = None,
) -> Outcome:
    located = locate_group(group_id, kind)
    if not located.ok:
        return located
    record: RegistrationRecord = located.value

    if not record.is_pending:
        return _invalid_transition(record, new_status)

    review = store.ReviewMetadata(reviewed_by=reviewer_id, reviewed_at=utcnow(), rejection_reason=reason)
    write = store.guarded_transition(record.group_id, record.kind, STATUS_PENDING, new_status, review)

    if write == store.MISSING:
        return Outcome.failure(ErrorKind.NOT_FOUND, f"Registration {group_id} not found")

    if write == store.PRECONDITION_FAILED:
        # Someone else reviewed it between our read and our write.
        current = store.fetch_group(record.group_id, record.kind) or record
        return _invalid_transition(current, new_status)

    # The write is committed; the response is built from what was written, not re-read.
    updated = replace(
        record,
        status=new_status,
        reviewed_by=review.reviewed_by,
        reviewed_at=review.reviewed_at,
        rejection_reason=review.rejection_reason,
    )
    current_app.logger.info(
        "Registration %s (%s) %s by %s", record.group_id, record.kind, new_status, reviewer_id,
    )
    return Outcome.success(updated, message=f"Registration {record.group_id} {new_status}")


def _invalid_transition(record: RegistrationRecord, new_status: str) -> Outcome:
    verb = "approve" if new_status == STATUS_APPROVED else "reject"
    reviewed = f" by {record.reviewed_by}" if record.reviewed_by else ""
    return Outcome.failure(
        ErrorKind.INVALID_TRANSITION,
        f"Cannot {verb} registration {record.group_id}: already {record.status}{reviewed}",
    )


def _notify(record: RegistrationRecord, template_key: str, notifier: Optional[Notifier]) -> None:
    """Best-effort email; every failure path ends in a log line, never an exception."""
    send = notifier or notification_service.send_approval_notice
    try:
        result = send(record.contact.email, template_key, notification_service.record_variables(record))
    except Exception:
        current_app.logger.exception(
            "Notification for %s to %s raised", record.group_id, record.contact.email,
        )
        return

    if result is not None and not result.ok:
        current_app.logger.warning(
            "Notification for %s to %s failed: %s", record.group_id, record.contact.email, result.error,
        )


def approve(
    group_id: str,
    reviewer_id: str,
    *,
    kind: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Outcome:
    """
    Approve a pending registration group.

    Args:
        group_id: GRP- identifier of the group
        reviewer_id: who approved (admin email), stamped into reviewed_by
        kind: restrict the lookup to one source
        notifier: replacement for notification_service.send_approval_notice

    Returns:
        Outcome.success(updated RegistrationRecord), or a failure with
        validation_error / not_found / invalid_transition.

    Raises:
        StoreUnavailableError: the database could not be read or written.
    """
    if not (reviewer_id or "").strip():
        return Outcome.failure(ErrorKind.VALIDATION, "reviewer is required")

    outcome = _transition(group_id, reviewer_id, STATUS_APPROVED, kind=kind)
    if outcome.ok:
        record = outcome.value
        _notify(record, notification_service.approval_template_key(record), notifier)
    return outcome


def reject(
    group_id: str,
    reviewer_id: str,
    reason: str | None,
    *,
    kind: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Outcome:
    """
    Reject a pending registration group with a stated reason.

    A blank reason is a validation failure and nothing is written. A rejection
    email is only sent when NOTIFY_ON_REJECT is enabled.
    """
    reason = (reason or "").strip()
    if not reason:
        return Outcome.failure(ErrorKind.VALIDATION, "rejection_reason is required")
    if not (reviewer_id or "").strip():
        return Outcome.failure(ErrorKind.VALIDATION, "reviewer is required")

    outcome = _transition(group_id, reviewer_id, STATUS_REJECTED, kind=kind, reason=reason)
    if outcome.ok and current_app.config.get("NOTIFY_ON_REJECT"):
        _notify(outcome.value, notification_service.TEMPLATE_REJECTION, notifier)
    return outcome


def approve_batch(group_ids: list[str], reviewer_id: str, *, notifier: Optional[Notifier] = None) -> dict:
    """
    Approve several groups independently. One group's failure does not stop
    the rest; each group still goes through its own guarded update.

    Every group appears in exactly one of approved / failed, including groups
    whose store access failed (error "store_unavailable").
    """
    approved = []
    failed = []
    for group_id in group_ids:
        try:
            outcome = approve(group_id, reviewer_id, notifier=notifier)
        except StoreUnavailableError as exc:
            current_app.logger.warning("Batch approve of %s hit the store: %s", group_id, exc)
            failed.append({
                "group_id": group_id,
                "error": "store_unavailable",
                "message": "Registration store unavailable, please retry",
            })
            continue
        if outcome.ok:
            approved.append(outcome.value.to_dict())
        else:
            failed.append({"group_id": group_id, "error": outcome.error, "message": outcome.message})
    return {"approved": approved, "failed": failed}
