# Overview: Dashboard statistics derived from a list of registration records.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from festdesk.records import (
    RegistrationRecord,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
)


@dataclass(frozen=True)
class RegistrationStats:
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total_revenue: int = 0
    revenue_by_status: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            "total": self.total,
            "pending": self.pending,
            "approved": self.approved,
            "rejected": self.rejected,
            "total_revenue": self.total_revenue,
            "revenue_by_status": dict(self.revenue_by_status),
        }


def compute_stats(records: Iterable[RegistrationRecord]) -> RegistrationStats:
    """
    Counts and revenue per status.

    Only approved records contribute to total_revenue; pending and rejected
    amounts are reported under revenue_by_status for information only.
    No counters are kept anywhere else, so the numbers always match the list.
    """
    counts = {STATUS_PENDING: 0, STATUS_APPROVED: 0, STATUS_REJECTED: 0}
    revenue = {STATUS_PENDING: 0, STATUS_APPROVED: 0, STATUS_REJECTED: 0}
    total = 0

    for record in records:
        total += 1
        if record.status in counts:
            counts[record.status] += 1
            revenue[record.status] += record.total_amount

    return RegistrationStats(
        total=total,
        pending=counts[STATUS_PENDING],
        approved=counts[STATUS_APPROVED],
        rejected=counts[STATUS_REJECTED],
        total_revenue=revenue[STATUS_APPROVED],
        revenue_by_status=revenue,
    )
