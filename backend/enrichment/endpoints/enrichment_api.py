"""
Enrichment Queue API Endpoints

- GET /api/enrichment/queue - Preview the ordered queue
- POST /api/enrichment/queue/process - Dispatch the next batch
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import get_db
from middleware.internal_auth import InternalService, require_internal_service
from enrichment.services.queue_service import (
    EnrichmentQueueService,
    build_queue_service,
    describe_queue_entry
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrichment", tags=["Enrichment"])


class QueueEntryResponse(BaseModel):
    summons_id: str
    summons_number: str
    hearing_date: Optional[str]
    enrichment_status: Optional[str]
    enrichment_failure_count: int
    reason: Optional[str]
    missing_fields: List[str]


class QueueCountsResponse(BaseModel):
    total_records: int
    selected: int
    excluded_max_failures: int
    excluded_by_floor: int
    repair_jobs: int
    queued: int
    dispatched: int


class QueuePreviewResponse(BaseModel):
    counts: QueueCountsResponse
    queue: List[QueueEntryResponse]


async def get_queue_service(db: AsyncSession = Depends(get_db)) -> EnrichmentQueueService:
    return build_queue_service(db)


@router.get("/queue", response_model=QueuePreviewResponse, summary="Preview enrichment queue")
async def preview_queue(service: EnrichmentQueueService = Depends(get_queue_service)):
    """Ordered queue as the next process call would dispatch it."""
    try:
        result = await service.preview_queue()
    except Exception as e:
        logger.error(f"Failed to build enrichment queue: {e}")
        raise HTTPException(status_code=500, detail="Failed to build enrichment queue")

    return QueuePreviewResponse(
        counts=QueueCountsResponse(**result.counts()),
        queue=[QueueEntryResponse(**describe_queue_entry(r)) for r in result.queue]
    )


@router.post("/queue/process", response_model=QueueCountsResponse, summary="Process enrichment queue")
async def process_queue(
    caller: InternalService = Depends(require_internal_service),
    service: EnrichmentQueueService = Depends(get_queue_service)
):
    """
    Dispatch the next batch of the self-healing queue.

    Requires internal API key authentication.
    """
    logger.info(f"Enrichment queue run requested by {caller.name}")

    try:
        result = await service.process_queue()
    except Exception as e:
        logger.error(f"Enrichment queue run failed: {e}")
        raise HTTPException(status_code=500, detail="Enrichment queue run failed")

    return QueueCountsResponse(**result.counts())
