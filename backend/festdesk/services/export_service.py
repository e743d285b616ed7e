# Overview: CSV export of registration records, one row per group or per member.

from __future__ import annotations

import csv
import io
from typing import Iterable

from ..errors import ValidationError
from festdesk.records import RegistrationRecord
from festdesk.time_utils import format_day_month_year


MODE_GROUP = "group"
MODE_MEMBER = "member"
VALID_MODES = {MODE_GROUP, MODE_MEMBER}

GROUP_COLUMNS = [
    "Group ID", "Kind", "Event", "Contact Name", "Contact Email", "Contact Phone",
    "Member Count", "Members", "Total Amount", "Transaction ID", "Status",
    "Created At", "Reviewed At", "Reviewed By", "Rejection Reason",
]

MEMBER_COLUMNS = [
    "Group ID", "Kind", "User ID", "Name", "Email", "Phone", "College",
    "Selection", "Amount", "Total Amount", "Transaction ID", "Status",
    "Created At", "Reviewed At", "Reviewed By", "Rejection Reason", "Member Count",
]


def _common(record: RegistrationRecord) -> dict:
    return {
        "Group ID": record.group_id,
        "Kind": record.kind,
        "Total Amount": record.total_amount,
        "Transaction ID": record.payment_transaction_id,
        "Status": record.status,
        "Created At": format_day_month_year(record.created_at),
        "Reviewed At": format_day_month_year(record.reviewed_at),
        "Reviewed By": record.reviewed_by or "",
        "Rejection Reason": record.rejection_reason or "",
        "Member Count": record.member_count,
    }


def group_rows(records: Iterable[RegistrationRecord]) -> list[dict]:
    rows = []
    for record in records:
        row = _common(record)
        row.update({
            "Event": record.event_name or "",
            "Contact Name": record.contact.name,
            "Contact Email": record.contact.email,
            "Contact Phone": record.contact.phone,
            "Members": "; ".join(f"{m.name} ({m.selection})" for m in record.members),
        })
        rows.append(row)
    return rows


def member_rows(records: Iterable[RegistrationRecord]) -> list[dict]:
    rows = []
    for record in records:
        for member in record.members:
            row = _common(record)
            row.update({
                "User ID": member.user_id,
                "Name": member.name,
                "Email": member.email,
                "Phone": member.phone,
                "College": member.college,
                "Selection": member.selection,
                "Amount": member.amount,
            })
            rows.append(row)
    return rows


def export_csv(records: Iterable[RegistrationRecord], mode: str = MODE_GROUP) -> str:
    """
    Flatten records into CSV text. Every field is quoted; None becomes ''.

    Raises:
        ValidationError: unknown mode.
    """
    if mode not in VALID_MODES:
        raise ValidationError(f"mode must be one of: {', '.join(sorted(VALID_MODES))}")

    columns = GROUP_COLUMNS if mode == MODE_GROUP else MEMBER_COLUMNS
    rows = group_rows(records) if mode == MODE_GROUP else member_rows(records)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, quoting=csv.QUOTE_ALL, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def export_filename(prefix: str, today) -> str:
    return f"{prefix}_{today.strftime('%Y-%m-%d')}.csv"
