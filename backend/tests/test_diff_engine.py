"""
Unit Tests for the Strict Diff Engine

Run with: pytest tests/test_diff_engine.py -v
"""

from sweep.models import CaseRecord, IncomingFields
from sweep.diff_engine import build_activity_entries, compute_diff


def _record(**fields) -> CaseRecord:
    defaults = {
        "status": "Scheduled",
        "amount_due": 350.0,
        "hearing_date": "2026-05-06T00:00:00.000Z",
    }
    defaults.update(fields)
    return CaseRecord(id="s1", summons_number="000123456X", **defaults)


class TestComputeDiff:

    def test_no_changes(self):
        diff = compute_diff(_record(), IncomingFields("Scheduled", 350.0, "2026-05-06T00:00:00.000Z"))

        assert diff.has_changes is False
        assert diff.summary == ""
        assert diff.changes == []

    def test_status_and_amount_in_fixed_order(self):
        diff = compute_diff(_record(), IncomingFields("Default Judgment", 525.0, "2026-05-06T00:00:00.000Z"))

        assert diff.has_changes is True
        assert diff.summary == "Status: 'Scheduled' → 'Default Judgment'; Amount Due: $350.00 → $525.00"
        assert [c.field for c in diff.changes] == ["status", "amount_due"]

    def test_hearing_date_change(self):
        diff = compute_diff(_record(), IncomingFields("Scheduled", 350.0, "2026-06-10T00:00:00.000Z"))
        assert diff.summary == "Hearing Date: 5/6/2026 → 6/10/2026"

    def test_hearing_date_cleared(self):
        diff = compute_diff(_record(), IncomingFields("Scheduled", 350.0, None))
        assert diff.summary == "Hearing Date: 5/6/2026 → None"

    def test_missing_status_compares_as_unknown(self):
        diff = compute_diff(_record(status=None), IncomingFields("Unknown", 350.0, "2026-05-06T00:00:00.000Z"))
        assert diff.has_changes is False

    def test_amount_compared_at_two_decimals(self):
        diff = compute_diff(_record(amount_due=350.001), IncomingFields("Scheduled", 350.0, "2026-05-06T00:00:00.000Z"))
        assert diff.has_changes is False

    def test_equivalent_date_representations_are_not_a_change(self):
        diff = compute_diff(
            _record(hearing_date="2026-05-06T00:00:00+00:00"),
            IncomingFields("Scheduled", 350.0, "2026-05-06T00:00:00.000Z")
        )
        assert diff.has_changes is False


class TestActivityEntries:

    def test_one_entry_per_change_in_diff_order(self):
        diff = compute_diff(
            _record(hearing_date=None),
            IncomingFields("Docketed", 0, "2026-06-10T00:00:00.000Z")
        )

        entries = [e.to_dict() for e in build_activity_entries(diff, "2026-10-01T00:00:00+00:00")]

        assert [e["type"] for e in entries] == ["STATUS_CHANGE", "AMOUNT_CHANGE", "RESCHEDULE"]
        assert {e["date"] for e in entries} == {"2026-10-01T00:00:00+00:00"}
        assert entries[1]["old_value"] == "350.00"
        assert entries[1]["new_value"] == "0.00"
        assert entries[2]["old_value"] is None
        assert entries[2]["description"] == "Hearing Date: None → 6/10/2026"

    def test_no_changes_no_entries(self):
        diff = compute_diff(_record(), IncomingFields("Scheduled", 350.0, "2026-05-06T00:00:00.000Z"))
        assert build_activity_entries(diff, "2026-10-01T00:00:00+00:00") == []
