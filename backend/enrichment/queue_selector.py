"""
Enrichment Candidate Selector (self-healing queue)

Decides which stored summonses need a (re)run of the data extractor.
A record is selected when any of these hold:

- pending:          status 'pending', queued and not yet attempted
- never_attempted:  no status and no narrative
- retry:            status 'failed'
- repair:           status 'complete' but a critical field is empty
- orphaned:         no status, narrative present, critical field empty
                    (extraction ran but the status flag was never saved;
                    legacy data only)

Critical fields are license_plate_ocr and id_number.
"""

from enum import Enum
from typing import Iterable, List, Optional

from database.summons_models import EnrichmentStatus
from sweep.models import CaseRecord

CRITICAL_FIELDS = ("license_plate_ocr", "id_number")


class QueueReason(str, Enum):
    """Why a record is in the queue."""
    PENDING = "pending"
    NEVER_ATTEMPTED = "never_attempted"
    RETRY = "retry"
    REPAIR = "repair"
    ORPHANED = "orphaned"


def _status(record: CaseRecord) -> str:
    return record.enrichment_status or ""


def _has_narrative(record: CaseRecord) -> bool:
    return bool(record.violation_narrative)


def get_missing_fields(record: CaseRecord) -> List[str]:
    """Critical fields that are empty, in fixed order."""
    return [name for name in CRITICAL_FIELDS if not getattr(record, name, None)]


def is_missing_critical_fields(record: CaseRecord) -> bool:
    """
    True when extraction has run at least once (a narrative exists) and a
    critical field is still empty.
    """
    if not _has_narrative(record):
        return False
    return bool(get_missing_fields(record))


def classify_candidate(record: CaseRecord) -> Optional[QueueReason]:
    """The reason a record belongs in the queue, or None."""
    status = _status(record)
    has_narrative = _has_narrative(record)

    if status == EnrichmentStatus.PENDING:
        return QueueReason.PENDING

    if not status and not has_narrative:
        return QueueReason.NEVER_ATTEMPTED

    if status == EnrichmentStatus.FAILED:
        return QueueReason.RETRY

    if status == EnrichmentStatus.COMPLETE and is_missing_critical_fields(record):
        return QueueReason.REPAIR

    # TODO: drop once the legacy rows without enrichment_status are backfilled
    if not status and has_narrative and is_missing_critical_fields(record):
        return QueueReason.ORPHANED

    return None


def is_record_needing_repair(record: CaseRecord) -> bool:
    """Repair jobs and orphaned records; used for logging and metrics only."""
    return classify_candidate(record) in (QueueReason.REPAIR, QueueReason.ORPHANED)


def select_candidates(records: Iterable[CaseRecord]) -> List[CaseRecord]:
    """Records that need enrichment, in input order."""
    return [record for record in records if classify_candidate(record) is not None]
