"""
Enrichment Queue Service

Builds and drains the self-healing enrichment queue:
1. Load every stored summons
2. Select candidates (pending, never attempted, retry, repair, orphaned)
3. Drop records that have hit the failure cap
4. Drop records heard before the floor date
5. Order by hearing date, latest first, undated last
6. Truncate to the batch size and dispatch each
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from sweep.models import CaseRecord
from sweep.repositories import SummonsRepository
from enrichment.queue_selector import (
    QueueReason,
    classify_candidate,
    get_missing_fields,
    select_candidates
)
from enrichment.priority import (
    DEFAULT_HEARING_DATE_FLOOR,
    apply_hearing_date_floor,
    sort_by_hearing_date_desc
)
from enrichment.dispatcher import EnrichmentDispatcher, get_enrichment_dispatcher

logger = logging.getLogger(__name__)

REPAIR_REASONS = (QueueReason.REPAIR, QueueReason.ORPHANED)


@dataclass
class QueueBuildResult:
    """Ordered queue plus the counts of each filtering stage."""
    queue: List[CaseRecord] = field(default_factory=list)
    total_records: int = 0
    selected: int = 0
    excluded_max_failures: int = 0
    excluded_by_floor: int = 0
    repair_jobs: int = 0
    dispatched: int = 0

    def counts(self) -> Dict[str, int]:
        return {
            "total_records": self.total_records,
            "selected": self.selected,
            "excluded_max_failures": self.excluded_max_failures,
            "excluded_by_floor": self.excluded_by_floor,
            "repair_jobs": self.repair_jobs,
            "queued": len(self.queue),
            "dispatched": self.dispatched,
        }


def describe_queue_entry(record: CaseRecord) -> Dict[str, Any]:
    """Preview row for one queued summons."""
    reason = classify_candidate(record)
    return {
        "summons_id": record.id,
        "summons_number": record.summons_number,
        "hearing_date": record.hearing_date,
        "enrichment_status": record.enrichment_status or None,
        "enrichment_failure_count": record.enrichment_failure_count or 0,
        "reason": reason.value if reason else None,
        "missing_fields": get_missing_fields(record),
    }


class EnrichmentQueueService:
    """Self-healing enrichment queue over the summons store."""

    def __init__(
        self,
        summons_repo,
        dispatcher,
        batch_size: int = 50,
        max_failures: int = 3,
        floor: str = DEFAULT_HEARING_DATE_FLOOR
    ):
        self.summons_repo = summons_repo
        self.dispatcher = dispatcher
        self.batch_size = batch_size
        self.max_failures = max_failures
        self.floor = floor

    def _under_failure_cap(self, record: CaseRecord) -> bool:
        if not self.max_failures:
            return True
        return (record.enrichment_failure_count or 0) < self.max_failures

    def build_queue(self, records: List[CaseRecord]) -> QueueBuildResult:
        """Run selection, cap, floor, sort and batch over a record set."""
        result = QueueBuildResult(total_records=len(records))

        candidates = select_candidates(records)
        result.selected = len(candidates)

        under_cap = [r for r in candidates if self._under_failure_cap(r)]
        result.excluded_max_failures = len(candidates) - len(under_cap)

        in_range = apply_hearing_date_floor(under_cap, self.floor)
        result.excluded_by_floor = len(under_cap) - len(in_range)

        ordered = sort_by_hearing_date_desc(in_range)
        if self.batch_size and self.batch_size > 0:
            ordered = ordered[:self.batch_size]

        result.queue = ordered
        result.repair_jobs = sum(1 for r in ordered if classify_candidate(r) in REPAIR_REASONS)
        return result

    async def preview_queue(self) -> QueueBuildResult:
        records = await self.summons_repo.list_all()
        return self.build_queue(records)

    async def process_queue(self) -> QueueBuildResult:
        """Build the queue from the store and dispatch every entry."""
        started_at = datetime.now(timezone.utc)
        records = await self.summons_repo.list_all()
        result = self.build_queue(records)

        logger.info(
            f"Enrichment queue built: {len(result.queue)} queued of {result.selected} selected "
            f"({result.excluded_max_failures} at failure cap, {result.excluded_by_floor} before floor)"
        )

        for record in result.queue:
            if classify_candidate(record) in REPAIR_REASONS:
                logger.info(
                    f"Repair job for summons {record.summons_number}: "
                    f"missing {', '.join(get_missing_fields(record))}"
                )

            if await self.dispatcher.dispatch(record):
                result.dispatched += 1

        duration = (datetime.now(timezone.utc) - started_at).total_seconds()
        logger.info(
            "Enrichment queue processed",
            extra={"event": "enrichment.queue_processed", "details": result.counts(), "duration_seconds": duration}
        )
        return result


def build_queue_service(
    db: AsyncSession,
    settings: Optional[Settings] = None,
    dispatcher: Optional[EnrichmentDispatcher] = None
) -> EnrichmentQueueService:
    """Wire an EnrichmentQueueService against PostgreSQL."""
    settings = settings or get_settings()

    return EnrichmentQueueService(
        summons_repo=SummonsRepository(db),
        dispatcher=dispatcher or get_enrichment_dispatcher(),
        batch_size=settings.ENRICHMENT_BATCH_SIZE,
        max_failures=settings.MAX_ENRICHMENT_FAILURES,
        floor=settings.HEARING_DATE_FLOOR
    )
