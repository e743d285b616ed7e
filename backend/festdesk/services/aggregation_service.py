# Overview: Unified listing of tier/pass and event registrations for the admin dashboard.

"""
Aggregator (unified view builder)

Fetches both registration sources, works only with RegistrationRecord from
there on, and applies filters, sorting and (optionally) statistics.

FAILURE MODE:
    If either source fails the whole listing fails with StoreUnavailableError.
    Returning one source alone would produce misleading dashboard numbers.

SORTING:
    newest (default), oldest, name, status, amount. Python's sort is stable, so
    records with equal keys keep their fetch order (tier/pass first, then
    event, each newest first).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from flask import current_app

from ..errors import ValidationError
from . import store
from .identity_service import SOURCE_ORDER, merge_unique
from .stats_service import RegistrationStats, compute_stats
from festdesk.records import (
    RegistrationRecord,
    VALID_KINDS,
    VALID_STATUSES,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
)


SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_NAME = "name"
SORT_STATUS = "status"
SORT_AMOUNT = "amount"
VALID_SORTS = {SORT_NEWEST, SORT_OLDEST, SORT_NAME, SORT_STATUS, SORT_AMOUNT}

_STATUS_RANK = {STATUS_PENDING: 0, STATUS_APPROVED: 1, STATUS_REJECTED: 2}


@dataclass(frozen=True)
class RegistrationFilter:
    status: Optional[str] = None
    kind: Optional[str] = None
    event_name: Optional[str] = None
    search: Optional[str] = None

    @classmethod
    def from_args(cls, args) -> "RegistrationFilter":
        """Build from a request.args-like mapping; blank and 'all' mean no filter."""
        def _clean(name):
            value = (args.get(name) or "").strip()
            return None if not value or value.lower() == "all" else value

        flt = cls(
            status=_clean("status"),
            kind=_clean("kind"),
            event_name=_clean("event"),
            search=_clean("q"),
        )
        flt.validate()
        return flt

    def validate(self) -> None:
        if self.status is not None and self.status not in VALID_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(VALID_STATUSES))}")
        if self.kind is not None and self.kind not in VALID_KINDS:
            raise ValidationError(f"kind must be one of: {', '.join(sorted(VALID_KINDS))}")

    def matches(self, record: RegistrationRecord) -> bool:
        if self.status is not None and record.status != self.status:
            return False
        if self.kind is not None and record.kind != self.kind:
            return False
        if self.event_name is not None:
            if (record.event_name or "").lower() != self.event_name.lower():
                return False
        if self.search is not None:
            if self.search.lower() not in record.search_text():
                return False
        return True


@dataclass(frozen=True)
class RegistrationListing:
    records: list
    stats: Optional[RegistrationStats] = None
    integrity_issues: list = field(default_factory=list)

    def to_dict(self):
        payload = {
            "registrations": [r.to_dict() for r in self.records],
            "count": len(self.records),
            "integrity_issues": list(self.integrity_issues),
        }
        if self.stats is not None:
            payload["stats"] = self.stats.to_dict()
        return payload


def sort_records(records: list[RegistrationRecord], sort: str = SORT_NEWEST) -> list[RegistrationRecord]:
    if sort not in VALID_SORTS:
        raise ValidationError(f"sort must be one of: {', '.join(sorted(VALID_SORTS))}")

    if sort == SORT_NEWEST:
        return sorted(records, key=lambda r: r.created_at or datetime.min, reverse=True)
    if sort == SORT_OLDEST:
        return sorted(records, key=lambda r: r.created_at or datetime.min)
    if sort == SORT_NAME:
        return sorted(records, key=lambda r: (r.contact.name or "").lower())
    if sort == SORT_STATUS:
        return sorted(records, key=lambda r: _STATUS_RANK.get(r.status, len(_STATUS_RANK)))
    return sorted(records, key=lambda r: r.total_amount, reverse=True)


def collect_integrity_issues(records: list[RegistrationRecord]) -> list[dict]:
    """
    Per-record problems (stale totals, review metadata out of step with status)
    plus group ids that appear in both sources.
    """
    issues = []
    kinds_by_group: dict[str, set] = {}
    for record in records:
        kinds_by_group.setdefault(record.group_id, set()).add(record.kind)
        for problem in record.integrity_issues:
            issues.append({"group_id": record.group_id, "kind": record.kind, "issue": problem})

    for group_id, kinds in kinds_by_group.items():
        if len(kinds) > 1:
            issues.append({
                "group_id": group_id,
                "kind": ",".join(sorted(kinds)),
                "issue": "group id used by more than one registration source",
            })
    return issues


def fetch_all_records() -> list[RegistrationRecord]:
    """Both sources merged; raises StoreUnavailableError if either fetch fails."""
    batches = [store.fetch_all(kind) for kind in SOURCE_ORDER]
    return merge_unique(batches)


def build_listing(
    flt: RegistrationFilter | None = None,
    *,
    sort: str = SORT_NEWEST,
    include_stats: bool = False,
) -> RegistrationListing:
    """
    Produce the admin listing.

    Stats are computed over the filtered records so the numbers on screen
    always describe the rows on screen.
    """
    flt = flt or RegistrationFilter()
    flt.validate()

    all_records = fetch_all_records()
    issues = collect_integrity_issues(all_records)
    for issue in issues:
        current_app.logger.error(
            "Registration integrity issue [%s %s]: %s",
            issue["kind"], issue["group_id"], issue["issue"],
        )

    selected = sort_records([r for r in all_records if flt.matches(r)], sort)

    return RegistrationListing(
        records=selected,
        stats=compute_stats(selected) if include_stats else None,
        integrity_issues=issues,
    )


def dashboard_stats() -> RegistrationStats:
    return compute_stats(fetch_all_records())


def event_names(records: list[RegistrationRecord]) -> list[str]:
    """Distinct event names in listing order, for filter dropdowns."""
    return list(dict.fromkeys(r.event_name for r in records if r.event_name))
