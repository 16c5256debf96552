"""
Sweep Domain Models

Plain dataclasses passed between the sweep, the stores and the
enrichment queue. Rows from the database are converted into these at the
repository boundary so the engine never touches SQLAlchemy objects.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional


# Enrichment output fields; only a completed enrichment pass writes these
ENRICHMENT_OUTPUT_FIELDS = (
    "violation_narrative",
    "license_plate_ocr",
    "id_number",
    "vehicle_type_ocr",
    "prior_offense_status",
    "idling_duration_ocr",
    "critical_flags_ocr",
    "name_on_summons_ocr",
    "video_created_date",
    "lag_days",
)


class ActivityType(str, Enum):
    """Kinds of case history entry kept in a summons activity_log."""
    CREATED = "CREATED"
    STATUS_CHANGE = "STATUS_CHANGE"
    RESCHEDULE = "RESCHEDULE"
    AMOUNT_CHANGE = "AMOUNT_CHANGE"


@dataclass
class ActivityLogEntry:
    """One line of case history. Values are rendered as text, or None."""
    date: str
    type: ActivityType
    description: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "type": ActivityType(self.type).value,
            "description": self.description,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass
class Client:
    """Roster entry: canonical name plus the aliases it is known by."""
    id: str
    name: str
    akas: List[str] = field(default_factory=list)
    owner: Optional[str] = None


@dataclass
class CaseRecord:
    """
    A stored summons.

    summons_number is the unique reference number from the source.
    enrichment_status is '' (unset), 'pending', 'complete' or 'failed'.
    activity_log is append-only case history (see ActivityLogEntry).
    last_metadata_sync is stamped each time a sweep sees the summons.
    """
    id: str
    summons_number: str
    client_id: str = ""
    owner: Optional[str] = None
    respondent_name: str = ""
    hearing_date: Optional[str] = None
    status: Optional[str] = None
    license_plate: str = ""
    base_fine: float = 0.0
    amount_due: float = 0.0
    violation_date: Optional[str] = None
    violation_location: str = ""
    summons_pdf_link: Optional[str] = None
    video_link: Optional[str] = None

    added_to_calendar: bool = False
    evidence_reviewed: bool = False
    evidence_requested: bool = False
    evidence_received: bool = False

    enrichment_status: Optional[str] = ""
    enrichment_failure_count: int = 0
    enrichment_failure_reason: Optional[str] = None
    last_scan_date: Optional[str] = None

    violation_narrative: Optional[str] = None
    license_plate_ocr: Optional[str] = None
    id_number: Optional[str] = None
    vehicle_type_ocr: Optional[str] = None
    prior_offense_status: Optional[str] = None
    idling_duration_ocr: Optional[str] = None
    critical_flags_ocr: Optional[List[str]] = None
    name_on_summons_ocr: Optional[str] = None
    video_created_date: Optional[str] = None
    lag_days: Optional[int] = None

    last_change_summary: Optional[str] = None
    last_change_at: Optional[str] = None
    activity_log: List[Dict[str, Any]] = field(default_factory=list)
    last_metadata_sync: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class IncomingFields:
    """The source-owned fields of a summons after normalization."""
    status: str
    amount_due: float
    hearing_date: Optional[str]


@dataclass
class SweepResult:
    """Aggregate counters for one sweep run."""
    run_id: str
    matched: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    source_count: int = 0
    message: str = "Daily sweep completed successfully"
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    finished_at: Optional[str] = None

    def counters(self) -> Dict[str, int]:
        return {
            "matched": self.matched,
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
