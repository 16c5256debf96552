"""
Unit Tests for the Field Normalizer

Run with: pytest tests/test_field_normalizer.py -v
"""

from datetime import datetime, timezone

import pytest

from sweep.field_normalizer import (
    normalize_amount,
    format_amount,
    ensure_iso_format,
    normalize_date,
    parse_timestamp,
    format_audit_date,
    dates_equal,
    build_respondent_name,
    build_violation_location,
    resolve_status
)


class TestAmounts:

    @pytest.mark.parametrize("value,expected", [
        ("350", 350.0),
        (" 12.5 ", 12.5),
        (350, 350.0),
        (None, 0.0),
        ("", 0.0),
        ("N/A", 0.0),
        ("nan", 0.0),
        (True, 0.0),
    ])
    def test_normalize_amount(self, value, expected):
        assert normalize_amount(value) == expected

    def test_format_amount_two_decimals(self):
        assert format_amount("350") == "350.00"
        assert format_amount(None) == "0.00"


class TestDates:

    def test_floating_timestamp_gets_utc_suffix(self):
        assert ensure_iso_format("2026-05-06T00:00:00.000") == "2026-05-06T00:00:00.000Z"

    def test_zoned_timestamps_unchanged(self):
        assert ensure_iso_format("2026-05-06T00:00:00.000Z") == "2026-05-06T00:00:00.000Z"
        assert ensure_iso_format("2026-05-06T00:00:00-05:00") == "2026-05-06T00:00:00-05:00"

    @pytest.mark.parametrize("value", [
        "2026-05-06T00:00:00+0000",
        "2026-05-06T00:00:00-0500",
        "2026-05-06T00:00:00.000z",
    ])
    def test_compact_offset_and_lowercase_z_unchanged(self, value):
        assert ensure_iso_format(value) == value
        assert parse_timestamp(normalize_date(value)) is not None

    def test_compact_offset_compares_equal_to_utc(self):
        assert dates_equal("2026-05-06T05:00:00+0000", "2026-05-06T00:00:00-05:00")

    def test_normalize_date_empty_is_none(self):
        assert normalize_date(None) is None
        assert normalize_date("") is None

    def test_normalize_date_naive_datetime_is_utc(self):
        assert normalize_date(datetime(2026, 5, 6)) == "2026-05-06T00:00:00+00:00"

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2026-05-06T00:00:00.000Z")
        assert parsed == datetime(2026, 5, 6, tzinfo=timezone.utc)

    def test_parse_timestamp_unparseable(self):
        assert parse_timestamp("not a date") is None

    def test_format_audit_date(self):
        assert format_audit_date("2026-05-06T00:00:00.000Z") == "5/6/2026"
        assert format_audit_date(None) == "None"

    def test_dates_equal_across_representations(self):
        assert dates_equal("2026-05-06T00:00:00.000", "2026-05-06T00:00:00.000Z")
        assert dates_equal("2026-05-06T00:00:00Z", "2026-05-05T19:00:00-05:00")

    def test_null_versus_value_differs(self):
        assert not dates_equal(None, "2026-05-06T00:00:00.000Z")
        assert dates_equal(None, "")


class TestSourceRecordHelpers:

    def test_respondent_name_trimmed(self):
        assert build_respondent_name({"respondent_first_name": "", "respondent_last_name": "ACME CORP"}) == "ACME CORP"
        assert build_respondent_name({}) == ""

    def test_violation_location_skips_blanks(self):
        raw = {
            "violation_location_house": "12",
            "violation_location_street_name": "MAIN ST",
            "violation_location_city": " ",
            "violation_location_zip_code": "11201",
        }
        assert build_violation_location(raw) == "12, MAIN ST, 11201"

    def test_status_fallbacks(self):
        assert resolve_status({"hearing_status": "Scheduled", "hearing_result": "Paid"}) == "Scheduled"
        assert resolve_status({"hearing_result": "Paid"}) == "Paid"
        assert resolve_status({}) == "Unknown"
