"""
Enrichment Dispatcher

Fires data extractor requests without waiting for them. The extractor
(video page scrape + summons PDF OCR) is an external worker; this module
only knows its request contract:

    {
        "summons_id": "...",
        "summons_number": "...",
        "pdf_link": "...",
        "video_link": "...",
        "violation_date": "..."
    }

Dispatch failures are logged and swallowed. They never fail the record
creation that triggered them; the self-healing queue picks the record up
again on its next run.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Optional, Set

import httpx
from pydantic import BaseModel, Field

from config import get_settings
from sweep.models import CaseRecord

logger = logging.getLogger(__name__)


class EnrichmentRequest(BaseModel):
    """Request contract of the data extractor worker."""
    summons_id: str = Field(..., description="Internal summons id")
    summons_number: str = Field(..., description="Source reference number")
    pdf_link: Optional[str] = Field(default=None, description="Summons document image URL")
    video_link: Optional[str] = Field(default=None, description="Video evidence page URL")
    violation_date: Optional[str] = Field(default=None, description="ISO violation date")


class EnrichmentDispatcher:
    """
    Fire-and-forget client for the data extractor.

    Each dispatch schedules a background POST and returns immediately.
    In-flight tasks are tracked so shutdown can drain them.
    """

    def __init__(
        self,
        worker_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.worker_url = worker_url
        self.timeout = timeout
        self.transport = transport
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @staticmethod
    def build_payload(record: CaseRecord) -> EnrichmentRequest:
        """Minimal payload for the worker."""
        return EnrichmentRequest(
            summons_id=record.id,
            summons_number=record.summons_number,
            pdf_link=record.summons_pdf_link,
            video_link=record.video_link,
            violation_date=record.violation_date
        )

    async def dispatch(self, record: CaseRecord) -> bool:
        """
        Schedule an enrichment request for a record.

        Returns:
            True if the request was scheduled, False otherwise. Never raises.
        """
        if not self.worker_url:
            logger.warning(f"Enrichment worker URL not configured, skipping {record.summons_number}")
            return False

        try:
            payload = self.build_payload(record)
            task = asyncio.get_running_loop().create_task(self._invoke(payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return True
        except Exception as e:
            logger.error(f"Error invoking data extractor for {record.summons_number}: {e}")
            return False

    async def _invoke(self, payload: EnrichmentRequest) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.worker_url,
                    json=payload.model_dump(),
                    headers={"X-Invocation-Type": "Event"}
                )
                response.raise_for_status()
            logger.info(f"Invoked data extractor for summons: {payload.summons_number}")
        except Exception as e:
            logger.error(f"Error invoking data extractor for {payload.summons_number}: {e}")

    async def drain(self) -> None:
        """Wait for in-flight requests (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


@lru_cache(maxsize=1)
def get_enrichment_dispatcher() -> EnrichmentDispatcher:
    """Process-wide dispatcher so in-flight requests survive the request scope."""
    settings = get_settings()
    return EnrichmentDispatcher(
        worker_url=settings.ENRICHMENT_WORKER_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS
    )
