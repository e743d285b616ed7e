"""
Approval state machine tests.

Verifies:
- pending -> approved / rejected, nothing else
- A second review of the same group is invalid_transition and changes nothing
- The guarded update refuses a write when another reviewer got there first
- Rejection needs a reason
- The approval email is sent once, after the write, and its failure never
  undoes the approval
"""

import pytest
from sqlalchemy import update

from festdesk.errors import ErrorKind, StoreUnavailableError
from festdesk.extensions import db
from festdesk.models import TierPassRegistration, EmailLog
from festdesk.records import KIND_TIER_PASS, KIND_EVENT
from festdesk.services import approval_service, store


def _stored(group_id, kind=KIND_TIER_PASS):
    return store.fetch_group(group_id, kind)


class TestApprove:

    def test_approve_pending_group(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-200")

        outcome = approval_service.approve("GRP-200", "admin1", notifier=notifier)

        assert outcome.ok
        assert outcome.value.status == "approved"
        assert outcome.value.reviewed_by == "admin1"
        assert outcome.value.reviewed_at is not None
        assert "GRP-200" in outcome.message
        assert _stored("GRP-200").status == "approved"

    def test_second_approve_is_invalid_transition_and_keeps_first_reviewer(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-200")

        first = approval_service.approve("GRP-200", "admin1", notifier=notifier)
        second = approval_service.approve("GRP-200", "admin2", notifier=notifier)

        assert first.ok
        assert not second.ok
        assert second.error == ErrorKind.INVALID_TRANSITION
        assert "already approved by admin1" in second.message
        assert _stored("GRP-200").reviewed_by == "admin1"

    def test_double_approve_leaves_same_state_as_single(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-201")

        approval_service.approve("GRP-201", "admin1", notifier=notifier)
        after_one = _stored("GRP-201")
        approval_service.approve("GRP-201", "admin1", notifier=notifier)
        after_two = _stored("GRP-201")

        assert after_one == after_two
        assert len(notifier.calls) == 1

    def test_approve_event_group(self, make_event_group, notifier):
        make_event_group("GRP-EV200")

        outcome = approval_service.approve("GRP-EV200", "admin1", notifier=notifier)

        assert outcome.ok
        assert outcome.value.kind == KIND_EVENT
        assert notifier.calls[0][1] == "approval_event"

    def test_unknown_group_is_not_found(self, db_session, notifier):
        outcome = approval_service.approve("GRP-NOPE00", "admin1", notifier=notifier)

        assert outcome.error == ErrorKind.NOT_FOUND
        assert notifier.calls == []

    @pytest.mark.parametrize("group_id", ["", "USER-AAAA-BBBB", "banana"])
    def test_non_group_id_is_validation_error(self, db_session, notifier, group_id):
        outcome = approval_service.approve(group_id, "admin1", notifier=notifier)
        assert outcome.error == ErrorKind.VALIDATION

    def test_reviewer_required(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-202")

        outcome = approval_service.approve("GRP-202", "  ", notifier=notifier)

        assert outcome.error == ErrorKind.VALIDATION
        assert _stored("GRP-202").status == "pending"

    def test_group_id_in_both_sources_needs_kind(self, make_tier_pass_group, make_event_group, notifier):
        make_tier_pass_group("GRP-BOTH00")
        make_event_group("GRP-BOTH00")

        ambiguous = approval_service.approve("GRP-BOTH00", "admin1", notifier=notifier)
        explicit = approval_service.approve("GRP-BOTH00", "admin1", kind=KIND_EVENT, notifier=notifier)

        assert ambiguous.error == ErrorKind.VALIDATION
        assert explicit.ok
        assert _stored("GRP-BOTH00", KIND_EVENT).status == "approved"
        assert _stored("GRP-BOTH00", KIND_TIER_PASS).status == "pending"


class TestGuardedTransition:

    def test_concurrent_reviewer_wins_race(self, make_tier_pass_group, notifier, monkeypatch):
        """Another reviewer approves between our read and our write."""
        make_tier_pass_group("GRP-RACE01")
        original = store.guarded_transition

        def _racing(group_id, kind, expected_status, new_status, review):
            db.session.execute(
                update(TierPassRegistration)
                .where(TierPassRegistration.group_id == group_id)
                .values(status="approved", reviewed_by="other-admin", reviewed_at=review.reviewed_at)
            )
            db.session.commit()
            return original(group_id, kind, expected_status, new_status, review)

        monkeypatch.setattr(store, "guarded_transition", _racing)

        outcome = approval_service.reject("GRP-RACE01", "admin1", "Bad UTR", notifier=notifier)

        assert outcome.error == ErrorKind.INVALID_TRANSITION
        db.session.expire_all()
        record = _stored("GRP-RACE01")
        assert record.status == "approved"
        assert record.reviewed_by == "other-admin"
        assert record.rejection_reason is None
        assert notifier.calls == []

    def test_store_failure_raises_and_writes_nothing(self, make_tier_pass_group, notifier, monkeypatch):
        make_tier_pass_group("GRP-DOWN01")

        def _down(*args, **kwargs):
            raise StoreUnavailableError("guarded_transition failed: OperationalError")

        monkeypatch.setattr(store, "guarded_transition", _down)

        with pytest.raises(StoreUnavailableError):
            approval_service.approve("GRP-DOWN01", "admin1", notifier=notifier)

        assert notifier.calls == []
        monkeypatch.undo()
        assert _stored("GRP-DOWN01").status == "pending"

    def test_committed_approval_is_reported_without_rereading(self, make_tier_pass_group, notifier, monkeypatch):
        """Once the guarded update commits, a failing store read cannot turn it into an error."""
        make_tier_pass_group("GRP-READ01")
        original_transition = store.guarded_transition
        original_fetch = store.fetch_group
        committed = {"done": False}

        def _transition(*args, **kwargs):
            result = original_transition(*args, **kwargs)
            committed["done"] = True
            return result

        def _fetch(group_id, kind):
            if committed["done"]:
                raise StoreUnavailableError("fetch_group failed: OperationalError")
            return original_fetch(group_id, kind)

        monkeypatch.setattr(store, "guarded_transition", _transition)
        monkeypatch.setattr(store, "fetch_group", _fetch)

        outcome = approval_service.approve("GRP-READ01", "admin1", notifier=notifier)

        assert outcome.ok
        assert outcome.value.status == "approved"
        assert outcome.value.reviewed_by == "admin1"
        assert len(notifier.calls) == 1
        monkeypatch.undo()
        assert _stored("GRP-READ01").status == "approved"

    def test_transition_table(self):
        assert approval_service.can_transition("pending", "approved")
        assert approval_service.can_transition("pending", "rejected")
        assert not approval_service.can_transition("approved", "rejected")
        assert not approval_service.can_transition("rejected", "approved")
        assert not approval_service.can_transition("approved", "pending")


class TestReject:

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reason_required_and_nothing_written(self, make_tier_pass_group, notifier, reason):
        make_tier_pass_group("GRP-300")
        before = _stored("GRP-300")

        outcome = approval_service.reject("GRP-300", "admin1", reason, notifier=notifier)

        assert outcome.error == ErrorKind.VALIDATION
        assert _stored("GRP-300") == before

    def test_reject_records_reason(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-301")

        outcome = approval_service.reject("GRP-301", "admin1", "  UTR not in statement ", notifier=notifier)

        assert outcome.ok
        record = _stored("GRP-301")
        assert record.status == "rejected"
        assert record.rejection_reason == "UTR not in statement"
        assert record.reviewed_by == "admin1"
        assert record.integrity_issues == ()

    def test_reviewed_groups_never_change_again(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-302")
        approval_service.reject("GRP-302", "admin1", "Duplicate", notifier=notifier)
        settled = _stored("GRP-302")

        assert approval_service.approve("GRP-302", "admin2", notifier=notifier).error == ErrorKind.INVALID_TRANSITION
        assert approval_service.reject("GRP-302", "admin2", "Other", notifier=notifier).error == ErrorKind.INVALID_TRANSITION
        assert _stored("GRP-302") == settled

    def test_no_rejection_email_by_default(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-303")

        approval_service.reject("GRP-303", "admin1", "Duplicate", notifier=notifier)

        assert notifier.calls == []

    def test_rejection_email_when_enabled(self, app, make_tier_pass_group, notifier, monkeypatch):
        monkeypatch.setitem(app.config, "NOTIFY_ON_REJECT", True)
        make_tier_pass_group("GRP-304")

        approval_service.reject("GRP-304", "admin1", "Duplicate", notifier=notifier)

        assert len(notifier.calls) == 1
        assert notifier.calls[0][1] == "rejection"
        assert notifier.calls[0][2]["rejection_reason"] == "Duplicate"


class TestApprovalNotification:

    def test_notice_goes_to_contact_with_group_details(self, make_tier_pass_group, notifier):
        make_tier_pass_group(
            "GRP-400",
            contact={"name": "Lead", "email": "lead@example.com", "phone": "9876543210"},
        )

        approval_service.approve("GRP-400", "admin1", notifier=notifier)

        email, template_key, variables = notifier.calls[0]
        assert email == "lead@example.com"
        assert template_key == "approval_tier_pass"
        assert variables["group_id"] == "GRP-400"
        assert variables["status"] == "approved"

    def test_notifier_exception_does_not_undo_approval(self, make_tier_pass_group, caplog):
        from conftest import RecordingNotifier
        failing = RecordingNotifier(raises=RuntimeError("SMTP down"))
        make_tier_pass_group("GRP-401")

        outcome = approval_service.approve("GRP-401", "admin1", notifier=failing)

        assert outcome.ok
        assert _stored("GRP-401").status == "approved"
        assert "Notification for GRP-401" in caplog.text

    def test_failed_delivery_result_is_logged(self, make_tier_pass_group, caplog):
        from conftest import RecordingNotifier
        failing = RecordingNotifier(ok=False)
        make_tier_pass_group("GRP-402")

        outcome = approval_service.approve("GRP-402", "admin1", notifier=failing)

        assert outcome.ok
        assert "delivery failed" in caplog.text

    def test_default_notifier_sends_through_brevo(self, make_tier_pass_group, brevo):
        make_tier_pass_group("GRP-403")

        outcome = approval_service.approve("GRP-403", "admin1")

        assert outcome.ok
        assert len(brevo.requests) == 1
        log = db.session.query(EmailLog).filter_by(group_id="GRP-403").one()
        assert log.status == "sent"
        assert log.email_type == "approval_tier_pass"

    def test_brevo_outage_keeps_approval(self, make_tier_pass_group, brevo):
        import httpx
        brevo.respond_with(lambda request: httpx.Response(503, text="unavailable"))
        make_tier_pass_group("GRP-404")

        outcome = approval_service.approve("GRP-404", "admin1")

        assert outcome.ok
        assert _stored("GRP-404").status == "approved"
        log = db.session.query(EmailLog).filter_by(group_id="GRP-404").one()
        assert log.status == "failed"
        assert "503" in log.error


class TestApproveBatch:

    def test_each_group_independent(self, make_tier_pass_group, notifier):
        make_tier_pass_group("GRP-500")
        make_tier_pass_group("GRP-501", status="approved")

        result = approval_service.approve_batch(["GRP-500", "GRP-501", "GRP-NOPE01"], "admin1", notifier=notifier)

        assert [r["group_id"] for r in result["approved"]] == ["GRP-500"]
        assert {f["group_id"]: f["error"] for f in result["failed"]} == {
            "GRP-501": ErrorKind.INVALID_TRANSITION,
            "GRP-NOPE01": ErrorKind.NOT_FOUND,
        }

    def test_store_failure_on_one_group_is_reported_not_raised(self, make_tier_pass_group, notifier, monkeypatch):
        make_tier_pass_group("GRP-901")
        make_tier_pass_group("GRP-902")
        make_tier_pass_group("GRP-903")
        original = store.guarded_transition

        def _flaky(group_id, kind, expected_status, new_status, review):
            if group_id == "GRP-902":
                raise StoreUnavailableError("guarded_transition failed: OperationalError")
            return original(group_id, kind, expected_status, new_status, review)

        monkeypatch.setattr(store, "guarded_transition", _flaky)

        result = approval_service.approve_batch(["GRP-901", "GRP-902", "GRP-903"], "admin1", notifier=notifier)

        assert [r["group_id"] for r in result["approved"]] == ["GRP-901", "GRP-903"]
        assert result["failed"] == [{
            "group_id": "GRP-902",
            "error": "store_unavailable",
            "message": "Registration store unavailable, please retry",
        }]
        monkeypatch.undo()
        assert _stored("GRP-901").status == "approved"
        assert _stored("GRP-902").status == "pending"
        assert _stored("GRP-903").status == "approved"
