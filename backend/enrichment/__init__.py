"""
Enrichment Queue Module

Self-healing queue feeding the external data extractor:
- Candidate selection (pending, never attempted, retry, repair, orphaned)
- Hearing date floor and future-first ordering
- Fire-and-forget dispatch
"""

from enrichment.queue_selector import (
    CRITICAL_FIELDS,
    QueueReason,
    classify_candidate,
    get_missing_fields,
    is_missing_critical_fields,
    is_record_needing_repair,
    select_candidates
)
from enrichment.priority import (
    DEFAULT_HEARING_DATE_FLOOR,
    apply_hearing_date_floor,
    sort_by_hearing_date_desc
)

__all__ = [
    'CRITICAL_FIELDS',
    'QueueReason',
    'classify_candidate',
    'get_missing_fields',
    'is_missing_critical_fields',
    'is_record_needing_repair',
    'select_candidates',
    'DEFAULT_HEARING_DATE_FLOOR',
    'apply_hearing_date_floor',
    'sort_by_hearing_date_desc'
]
