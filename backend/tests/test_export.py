"""CSV export tests."""

import csv
import io
from datetime import date

import pytest

from conftest import tier_member
from festdesk.errors import ValidationError
from festdesk.records import KIND_TIER_PASS
from festdesk.services import export_service, store


def _rows(text):
    return list(csv.DictReader(io.StringIO(text)))


@pytest.fixture
def group(make_tier_pass_group):
    make_tier_pass_group("GRP-CSV001", [
        tier_member("Asha, Rao", "asha@example.com", tier="Issue #1"),
        tier_member('Kiran "K"', "kiran@example.com", pass_type="Nexus Forum", pass_tier="Standard"),
    ], status="rejected", rejection_reason="UTR mismatch")
    return store.fetch_group("GRP-CSV001", KIND_TIER_PASS)


class TestExportCsv:

    def test_group_mode_one_row_per_group(self, group):
        rows = _rows(export_service.export_csv([group]))

        assert len(rows) == 1
        row = rows[0]
        assert row["Group ID"] == "GRP-CSV001"
        assert row["Total Amount"] == "625"
        assert row["Member Count"] == "2"
        assert row["Created At"] == "10/01/2025"
        assert row["Rejection Reason"] == "UTR mismatch"
        assert row["Members"] == 'Asha, Rao (Issue #1); Kiran "K" (Nexus Forum (Standard))'

    def test_member_mode_one_row_per_member(self, group):
        rows = _rows(export_service.export_csv([group], mode="member"))

        assert [r["Name"] for r in rows] == ["Asha, Rao", 'Kiran "K"']
        assert [r["Amount"] for r in rows] == ["375", "250"]
        assert {r["Group ID"] for r in rows} == {"GRP-CSV001"}

    def test_every_field_quoted(self, group):
        text = export_service.export_csv([group])
        header = text.splitlines()[0]
        assert header.startswith('"Group ID","Kind"')

    def test_empty_export_has_header_only(self):
        text = export_service.export_csv([])
        assert _rows(text) == []
        assert text.startswith('"Group ID"')

    def test_unknown_mode(self, group):
        with pytest.raises(ValidationError):
            export_service.export_csv([group], mode="xlsx")

    def test_filename(self):
        assert export_service.export_filename("registrations_group", date(2025, 2, 3)) == "registrations_group_2025-02-03.csv"
