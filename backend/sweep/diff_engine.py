"""
Strict Diff Engine

Compares a stored summons with freshly normalized source fields. Exactly
three fields are checked, always in this order:

1. Status       - exact string equality, missing treated as 'Unknown'
2. Amount Due   - equality of the two-decimal renderings
3. Hearing Date - equality after normalization, null vs value is a change

The summary is the human-readable audit line stored on the record, e.g.
"Status: 'Scheduled' → 'Default Judgment'; Amount Due: $350.00 → $525.00"
"""

from dataclasses import dataclass, field
from typing import List, Optional

from sweep.models import ActivityLogEntry, ActivityType, CaseRecord, IncomingFields
from sweep.field_normalizer import (
    format_amount,
    format_audit_date,
    dates_equal,
)

UNKNOWN_STATUS = "Unknown"
SUMMARY_SEPARATOR = "; "

ACTIVITY_TYPES = {
    "status": ActivityType.STATUS_CHANGE,
    "amount_due": ActivityType.AMOUNT_CHANGE,
    "hearing_date": ActivityType.RESCHEDULE,
}


@dataclass
class FieldChange:
    """One differing field."""
    field: str
    old_value: object
    new_value: object
    description: str


@dataclass
class DiffResult:
    """Outcome of a diff; has_changes False means the caller must not write."""
    has_changes: bool
    summary: str
    changes: List[FieldChange] = field(default_factory=list)


def compute_diff(existing: CaseRecord, incoming: IncomingFields) -> DiffResult:
    """
    Diff a stored record against incoming source fields.

    Args:
        existing: The stored summons
        incoming: Normalized status, amount due and hearing date

    Returns:
        DiffResult with the semicolon-joined change summary
    """
    changes: List[FieldChange] = []

    old_status = existing.status or UNKNOWN_STATUS
    new_status = incoming.status or UNKNOWN_STATUS
    if old_status != new_status:
        changes.append(FieldChange(
            field="status",
            old_value=old_status,
            new_value=new_status,
            description=f"Status: '{old_status}' → '{new_status}'"
        ))

    old_amount = format_amount(existing.amount_due)
    new_amount = format_amount(incoming.amount_due)
    if old_amount != new_amount:
        changes.append(FieldChange(
            field="amount_due",
            old_value=existing.amount_due,
            new_value=incoming.amount_due,
            description=f"Amount Due: ${old_amount} → ${new_amount}"
        ))

    if not dates_equal(existing.hearing_date, incoming.hearing_date):
        changes.append(FieldChange(
            field="hearing_date",
            old_value=existing.hearing_date,
            new_value=incoming.hearing_date,
            description=(
                f"Hearing Date: {format_audit_date(existing.hearing_date)}"
                f" → {format_audit_date(incoming.hearing_date)}"
            )
        ))

    return DiffResult(
        has_changes=bool(changes),
        summary=SUMMARY_SEPARATOR.join(c.description for c in changes),
        changes=changes
    )


def _activity_value(field_name: str, value: object) -> Optional[str]:
    if value is None:
        return None
    if field_name == "amount_due":
        return format_amount(value)
    return str(value)


def build_activity_entries(diff: DiffResult, timestamp: str) -> List[ActivityLogEntry]:
    """One activity_log entry per changed field, in diff order."""
    return [
        ActivityLogEntry(
            date=timestamp,
            type=ACTIVITY_TYPES[change.field],
            description=change.description,
            old_value=_activity_value(change.field, change.old_value),
            new_value=_activity_value(change.field, change.new_value)
        )
        for change in diff.changes
    ]
