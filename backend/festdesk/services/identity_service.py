# Overview: Resolve an operator search key to every matching registration group.

from __future__ import annotations

import re
from dataclasses import dataclass

from flask import current_app

from ..errors import ErrorKind, Outcome
from . import store
from festdesk.records import (
    GROUP_ID_PREFIX,
    USER_ID_PREFIX,
    KIND_TIER_PASS,
    KIND_EVENT,
    RegistrationRecord,
)


KEY_EMAIL = "email"
KEY_GROUP_ID = "group_id"
KEY_USER_ID = "user_id"
KEY_UNKNOWN = "unknown"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Fetch order for both sources; also the order results are returned in.
SOURCE_ORDER = (KIND_TIER_PASS, KIND_EVENT)


@dataclass(frozen=True)
class SearchResult:
    key_kind: str
    records: list

    def to_dict(self):
        return {
            "key_kind": self.key_kind,
            "count": len(self.records),
            "registrations": [r.to_dict() for r in self.records],
        }


def is_valid_email(value: str | None) -> bool:
    return bool(value) and EMAIL_RE.match(value) is not None


def classify_search_key(key: str | None) -> str:
    """
    Classify a trimmed search key. First match wins:
    email shape, then GRP- prefix, then USER- prefix.
    """
    key = (key or "").strip()
    if "@" in key and is_valid_email(key):
        return KEY_EMAIL
    if key.startswith(GROUP_ID_PREFIX):
        return KEY_GROUP_ID
    if key.startswith(USER_ID_PREFIX):
        return KEY_USER_ID
    return KEY_UNKNOWN


def merge_unique(batches) -> list[RegistrationRecord]:
    """
    Concatenate record batches keeping the first occurrence of each group.

    Groups are keyed by (kind, group_id). A group_id present in both sources is
    a data-integrity problem: both records are kept and the collision is logged.
    """
    seen: set[tuple[str, str]] = set()
    kinds_by_group: dict[str, str] = {}
    merged = []
    for batch in batches:
        for record in batch:
            key = (record.kind, record.group_id)
            if key in seen:
                continue
            seen.add(key)
            other_kind = kinds_by_group.get(record.group_id)
            if other_kind is not None and other_kind != record.kind:
                current_app.logger.error(
                    "Group id %s exists in both %s and %s registrations",
                    record.group_id, other_kind, record.kind,
                )
            kinds_by_group.setdefault(record.group_id, record.kind)
            merged.append(record)
    return merged


def resolve(search_key: str | None) -> Outcome:
    """
    Find every registration group matching search_key across both sources.

    Returns:
        Outcome.success(SearchResult) with at least one record,
        Outcome.failure(validation_error) for an unrecognised key (no query is run),
        Outcome.failure(not_found) for a well-formed key with no matches.

    Raises:
        StoreUnavailableError: either source could not be read.
    """
    key = (search_key or "").strip()
    key_kind = classify_search_key(key)

    if key_kind == KEY_UNKNOWN:
        return Outcome.failure(
            ErrorKind.VALIDATION,
            "Enter an email address, a group id (GRP-...) or a user id (USER-...)",
        )

    if key_kind == KEY_EMAIL:
        batches = [store.fetch_by_email(key.lower(), kind) for kind in SOURCE_ORDER]
    elif key_kind == KEY_GROUP_ID:
        batches = []
        for kind in SOURCE_ORDER:
            record = store.fetch_group(key, kind)
            batches.append([record] if record is not None else [])
    else:
        batches = [store.fetch_by_user_id(key, kind) for kind in SOURCE_ORDER]

    results = merge_unique(batches)
    if not results:
        return Outcome.failure(ErrorKind.NOT_FOUND, f"No registrations found for '{key}'")

    return Outcome.success(SearchResult(key_kind=key_kind, records=results))
