"""
Registration submission tests.

Verifies:
- Tier/pass groups are created pending with server-side prices
- Field, selection and duplicate checks
- Event groups only accept approved delegates, respect capacity and snapshot price
- Approved groups cannot be deleted
"""

import re

import pytest

from conftest import tier_member
from festdesk.errors import ConflictError, ValidationError
from festdesk.records import KIND_TIER_PASS, KIND_EVENT
from festdesk.services import store, submission_service


def _member(name="Asha Rao", email="asha@example.com", phone="9876543210", **selection):
    data = {"name": name, "email": email, "phone": phone, "college": "JIPMER"}
    data.update(selection or {"selection_type": "tier", "tier": "Issue #1"})
    return data


def _tier_payload(*members, transaction_id="UTR0001"):
    return {"members": list(members), "payment_transaction_id": transaction_id}


class TestSubmitTierPass:

    def test_creates_pending_group_with_computed_total(self, db_session):
        registration = submission_service.submit_tier_pass(_tier_payload(
            _member(),
            _member("Kiran", "kiran@example.com", "8123456789",
                    selection_type="pass", pass_type="Nexus Forum", pass_tier="Premium"),
        ))

        assert re.fullmatch(r"GRP-[A-Z0-9]{6}", registration.group_id)
        assert registration.status == "pending"
        assert registration.total_amount == 375 + 750
        assert all(re.fullmatch(r"USER-[A-Z0-9]{4}-[A-Z0-9]{4}", m.user_id) for m in registration.members)
        assert registration.contact_email == "asha@example.com"

        record = store.fetch_group(registration.group_id, KIND_TIER_PASS)
        assert record.total_amount == 1125
        assert record.integrity_issues == ()

    def test_client_amounts_are_ignored(self, db_session):
        payload = _tier_payload(_member())
        payload["members"][0]["amount"] = 1
        payload["total_amount"] = 1

        registration = submission_service.submit_tier_pass(payload)

        assert registration.total_amount == 375

    def test_phone_normalised(self, db_session):
        registration = submission_service.submit_tier_pass(_tier_payload(_member(phone="98765 43210")))
        assert registration.members[0].phone == "9876543210"

    @pytest.mark.parametrize("override", [
        {"email": "not-an-email"},
        {"phone": "12345"},
        {"phone": "5876543210"},
        {"name": "  "},
        {"college": ""},
        {"selection_type": "tier", "tier": "Issue #1", "pass_type": "Nexus Arena"},
        {"selection_type": "pass", "pass_type": "Nexus Forum"},
    ])
    def test_invalid_member(self, db_session, override):
        member = _member()
        member.update(override)
        with pytest.raises(ValidationError):
            submission_service.submit_tier_pass(_tier_payload(member))

    def test_members_and_transaction_id_required(self, db_session):
        with pytest.raises(ValidationError):
            submission_service.submit_tier_pass({"members": [], "payment_transaction_id": "UTR1"})
        with pytest.raises(ValidationError):
            submission_service.submit_tier_pass({"members": [_member()]})

    def test_duplicate_within_group(self, db_session):
        with pytest.raises(ValidationError):
            submission_service.submit_tier_pass(_tier_payload(_member(), _member(name="Other")))

    def test_member_already_registered(self, make_tier_pass_group):
        make_tier_pass_group("GRP-OLD001", [tier_member("Asha", "ASHA@example.com", tier="Issue #1")])

        with pytest.raises(ConflictError):
            submission_service.submit_tier_pass(_tier_payload(_member()))

    def test_rejected_registrant_can_resubmit(self, make_tier_pass_group):
        make_tier_pass_group("GRP-OLD002", [tier_member("Asha", "asha@example.com", tier="Issue #1")],
                             status="rejected", transaction_id="UTR0001")

        registration = submission_service.submit_tier_pass(_tier_payload(_member()))

        assert registration.status == "pending"

    def test_transaction_id_reuse(self, make_event_group):
        make_event_group(transaction_id="UTR0001")

        with pytest.raises(ConflictError):
            submission_service.submit_tier_pass(_tier_payload(_member()))


@pytest.fixture
def delegate(make_tier_pass_group):
    make_tier_pass_group("GRP-DEL001", [
        tier_member("Ravi", "ravi@example.com", tier="Issue #1", user_id="USER-RAVI-0001"),
        tier_member("Meena", "meena@example.com", tier="Issue #1", user_id="USER-MEEN-0001"),
    ], status="approved")
    make_tier_pass_group("GRP-PEN001", [
        tier_member("Pending", "pending@example.com", tier="Issue #1", user_id="USER-PEND-0001"),
    ])


def _event_payload(event, *user_ids, transaction_id="UTR-EV-1"):
    return {"event_id": event.id, "members": list(user_ids), "payment_transaction_id": transaction_id}


class TestSubmitEvent:

    def test_creates_group_from_approved_delegates(self, delegate, make_event):
        event = make_event("Debate", price=150)

        registration = submission_service.submit_event(
            _event_payload(event, "USER-RAVI-0001", {"user_id": "USER-MEEN-0001"}),
        )

        assert registration.status == "pending"
        assert registration.total_amount == 300
        assert registration.event_price == 150
        assert registration.contact_user_id == "USER-RAVI-0001"
        assert [m.original_group_id for m in registration.members] == ["GRP-DEL001", "GRP-DEL001"]

        record = store.fetch_group(registration.group_id, KIND_EVENT)
        assert record.event_name == "Debate"
        assert record.total_amount == 300

    def test_unapproved_delegate_rejected(self, delegate, make_event):
        event = make_event()
        with pytest.raises(ValidationError):
            submission_service.submit_event(_event_payload(event, "USER-PEND-0001"))

    def test_inactive_or_missing_event(self, delegate, make_event):
        event = make_event(is_active=False)
        with pytest.raises(ValidationError):
            submission_service.submit_event(_event_payload(event, "USER-RAVI-0001"))
        with pytest.raises(ValidationError):
            submission_service.submit_event({"event_id": 99999, "members": ["USER-RAVI-0001"],
                                             "payment_transaction_id": "UTR-X"})

    def test_event_id_must_be_integer(self, delegate):
        with pytest.raises(ValidationError):
            submission_service.submit_event({"event_id": "1", "members": ["USER-RAVI-0001"],
                                             "payment_transaction_id": "UTR-X"})

    @pytest.mark.parametrize("contact_user_id", [12345, ["USER-RAVI-0001"], "RAVI-0001"])
    def test_contact_user_id_must_be_a_user_id(self, delegate, make_event, contact_user_id):
        event = make_event()
        payload = _event_payload(event, "USER-RAVI-0001")
        payload["contact_user_id"] = contact_user_id
        with pytest.raises(ValidationError):
            submission_service.submit_event(payload)

    def test_capacity_enforced(self, delegate, make_event):
        event = make_event(max_participants=1)
        submission_service.submit_event(_event_payload(event, "USER-RAVI-0001"))

        with pytest.raises(ConflictError):
            submission_service.submit_event(_event_payload(event, "USER-MEEN-0001", transaction_id="UTR-EV-2"))

    def test_same_delegate_twice_for_event(self, delegate, make_event):
        event = make_event()
        submission_service.submit_event(_event_payload(event, "USER-RAVI-0001"))

        with pytest.raises(ConflictError):
            submission_service.submit_event(_event_payload(event, "USER-RAVI-0001", transaction_id="UTR-EV-2"))

    def test_spots_left_in_catalogue(self, delegate, make_event):
        event = make_event("Chess", max_participants=5)
        submission_service.submit_event(_event_payload(event, "USER-RAVI-0001", "USER-MEEN-0001"))

        listed = {e["name"]: e for e in submission_service.list_active_events()}

        assert listed["Chess"]["spots_left"] == 3


class TestDeleteRegistration:

    def test_pending_group_deleted(self, make_tier_pass_group):
        make_tier_pass_group("GRP-DEL100")
        assert submission_service.delete_registration("GRP-DEL100", KIND_TIER_PASS) is True
        assert store.fetch_group("GRP-DEL100", KIND_TIER_PASS) is None

    def test_approved_group_kept(self, make_tier_pass_group):
        make_tier_pass_group("GRP-DEL101", status="approved")
        with pytest.raises(ConflictError):
            submission_service.delete_registration("GRP-DEL101", KIND_TIER_PASS)

    def test_missing_group(self, db_session):
        assert submission_service.delete_registration("GRP-NONE00", KIND_TIER_PASS) is False

    def test_unknown_kind(self, db_session):
        with pytest.raises(ValidationError):
            submission_service.delete_registration("GRP-DEL100", "workshop")
