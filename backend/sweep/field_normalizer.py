"""
Field Normalizer

Canonical forms for the values the sweep compares and stores:
- Amounts: float, 0.0 for anything missing or non-numeric
- Dates: ISO 8601 strings that always carry a timezone designation

The Open Data API returns floating timestamps such as
"2026-05-06T00:00:00.000" with no zone; they are UTC and are stored as
"2026-05-06T00:00:00.000Z".
"""

import math
import re
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

_TZ_DESIGNATOR_PATTERN = re.compile(r"(?:[Zz]|[+-]\d{2}:?\d{2})$")


def normalize_amount(value: Any) -> float:
    """Parse a monetary value; None, blank or non-numeric input is 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0

    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0

    if not math.isfinite(amount):
        return 0.0

    return amount


def format_amount(value: Any) -> str:
    """Two-decimal rendering used for comparison and audit text."""
    return f"{normalize_amount(value):.2f}"


def ensure_iso_format(date_string: Optional[str]) -> Optional[str]:
    """
    Append a UTC 'Z' to a timestamp that has no zone designation.

    Strings already ending in Z (either case) or a +HH:MM, +HHMM style
    offset are returned unchanged.
    """
    if not date_string:
        return None

    date_string = date_string.strip()
    if not date_string:
        return None

    if _TZ_DESIGNATOR_PATTERN.search(date_string):
        return date_string

    return f"{date_string}Z"


def normalize_date(value: Any) -> Optional[str]:
    """Falsy -> None; otherwise an ISO string with an explicit zone."""
    if not value:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

    return ensure_iso_format(str(value))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored or incoming date into an aware datetime.

    Returns None for empty or unparseable values; naive results are UTC.
    """
    if not value:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text_value = str(value).strip()
        try:
            parsed = date_parser.isoparse(text_value)
        except ValueError:
            try:
                parsed = date_parser.parse(text_value)
            except (ValueError, OverflowError):
                logger.debug(f"Unparseable date value: {text_value!r}")
                return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_audit_date(value: Any) -> str:
    """Render a date as M/D/YYYY (UTC) for change summaries, 'None' if absent."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return "None" if not value else str(value)

    parsed = parsed.astimezone(timezone.utc)
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def dates_equal(left: Any, right: Any) -> bool:
    """Compare two dates after normalization; null vs non-null is unequal."""
    left_norm = normalize_date(left)
    right_norm = normalize_date(right)

    if left_norm is None or right_norm is None:
        return left_norm is None and right_norm is None

    left_ts = parse_timestamp(left_norm)
    right_ts = parse_timestamp(right_norm)
    if left_ts is not None and right_ts is not None:
        return left_ts == right_ts

    return left_norm == right_norm


# ==================== SOURCE RECORD HELPERS ====================

def build_respondent_name(raw: Dict[str, Any]) -> str:
    """'<first> <last>' from the source record, trimmed."""
    first = raw.get("respondent_first_name") or ""
    last = raw.get("respondent_last_name") or ""
    return f"{first} {last}".strip()


def build_violation_location(raw: Dict[str, Any]) -> str:
    """House, street, city and zip joined with ', ', blanks skipped."""
    parts = [
        raw.get("violation_location_house"),
        raw.get("violation_location_street_name"),
        raw.get("violation_location_city"),
        raw.get("violation_location_zip_code"),
    ]
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip())


def resolve_status(raw: Dict[str, Any]) -> str:
    """Hearing status, falling back to hearing result, then 'Unknown'."""
    return raw.get("hearing_status") or raw.get("hearing_result") or "Unknown"
