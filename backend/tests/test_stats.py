"""
Dashboard statistics tests.

Only approved records count toward revenue; counts always describe exactly the
records passed in.
"""

from datetime import datetime

from festdesk.records import Contact, Member, RegistrationRecord, KIND_TIER_PASS
from festdesk.services.stats_service import compute_stats


def _record(group_id, status, amount):
    member = Member(
        user_id=f"USER-{group_id[-4:]}-0001",
        name="Member",
        email=f"{group_id.lower()}@example.com",
        phone="9876543210",
        college="JIPMER",
        selection="Issue #1",
        amount=amount,
    )
    return RegistrationRecord(
        group_id=group_id,
        kind=KIND_TIER_PASS,
        contact=Contact(name="Member", email=member.email, phone=member.phone),
        members=(member,),
        total_amount=amount,
        stored_total=amount,
        payment_transaction_id=f"UTR-{group_id}",
        payment_screenshot_path=None,
        status=status,
        created_at=datetime(2025, 1, 10),
    )


class TestComputeStats:

    def test_mixed_dashboard(self):
        stats = compute_stats([
            _record("GRP-0001", "approved", 1000),
            _record("GRP-0002", "pending", 500),
            _record("GRP-0003", "rejected", 2000),
        ])

        assert stats.to_dict() | {"revenue_by_status": None} == {
            "total": 3,
            "pending": 1,
            "approved": 1,
            "rejected": 1,
            "total_revenue": 1000,
            "revenue_by_status": None,
        }

    def test_pending_and_rejected_amounts_never_change_revenue(self):
        base = [_record("GRP-0001", "approved", 1000), _record("GRP-0002", "approved", 250)]
        before = compute_stats(base).total_revenue

        after = compute_stats(base + [
            _record("GRP-0003", "pending", 5000),
            _record("GRP-0004", "rejected", 7000),
        ]).total_revenue

        assert before == after == 1250

    def test_revenue_by_status_is_informational(self):
        stats = compute_stats([
            _record("GRP-0002", "pending", 500),
            _record("GRP-0003", "rejected", 2000),
        ])
        assert stats.total_revenue == 0
        assert stats.revenue_by_status == {"pending": 500, "approved": 0, "rejected": 2000}

    def test_empty(self):
        stats = compute_stats([])
        assert (stats.total, stats.pending, stats.approved, stats.rejected, stats.total_revenue) == (0, 0, 0, 0, 0)
