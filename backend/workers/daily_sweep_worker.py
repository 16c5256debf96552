"""
Daily Sweep Worker

Runs the sweep followed by one enrichment queue pass, either once or on a
fixed interval.

Usage:
- API trigger: POST /api/sweep/run, POST /api/enrichment/queue/process
- Standalone: python -m workers.daily_sweep_worker [--once]

A failed sweep does not stop the loop; the next interval retries the
whole run.
"""

import sys
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from sweep.services.sweep_service import build_sweep_service
from enrichment.services.queue_service import build_queue_service

logger = logging.getLogger(__name__)


class DailySweepWorker:
    """
    Background worker for the daily sweep.

    Each iteration:
    1. Runs the sweep in its own session
    2. Runs one enrichment queue pass in a fresh session
    3. Sleeps until the next interval
    """

    def __init__(
        self,
        db_session_factory,
        interval_seconds: int = 86400,
        process_queue: bool = True,
        sweep_factory=build_sweep_service,
        queue_factory=build_queue_service
    ):
        self.db_session_factory = db_session_factory
        self.interval_seconds = interval_seconds
        self.process_queue = process_queue
        self.sweep_factory = sweep_factory
        self.queue_factory = queue_factory
        self._running = False

    async def process_once(self) -> dict:
        """
        Run one sweep and one queue pass.

        Returns:
            Processing statistics
        """
        stats = {"sweep": None, "queue": None, "timestamp": datetime.now(timezone.utc).isoformat()}

        async with self.db_session_factory() as db:
            service = self.sweep_factory(db)
            result = await service.run_sweep(trigger="scheduler")
            stats["sweep"] = {"run_id": result.run_id, "message": result.message, **result.counters()}

        if self.process_queue:
            async with self.db_session_factory() as db:
                queue_service = self.queue_factory(db)
                queue_result = await queue_service.process_queue()
                stats["queue"] = queue_result.counts()

        return stats

    async def run_continuous(self):
        """Run until stop() is called."""
        self._running = True
        logger.info(f"Starting daily sweep worker (interval={self.interval_seconds}s)")

        while self._running:
            try:
                stats = await self.process_once()
                sweep_stats = stats["sweep"]
                logger.info(
                    f"Sweep {sweep_stats['run_id']}: {sweep_stats['matched']} matched, "
                    f"{sweep_stats['created']} created, {sweep_stats['updated']} updated, "
                    f"{sweep_stats['errors']} errors"
                )
            except Exception as e:
                logger.error(f"Worker error: {e}")

            await asyncio.sleep(self.interval_seconds)

    def stop(self):
        """Stop the continuous worker."""
        self._running = False
        logger.info("Daily sweep worker stopping...")


async def run_worker(once: bool = False, interval_seconds: Optional[int] = None):
    """Run the daily sweep worker as a standalone process."""
    from config import get_settings
    from logging_config import setup_logging
    from sentry_integration import init_sentry
    from database.connection import get_session_factory
    from enrichment.dispatcher import get_enrichment_dispatcher

    settings = get_settings()
    setup_logging(level=settings.LOG_LEVEL, json_format=settings.is_production, service_name="summons-sweep-worker")
    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT, release=settings.API_VERSION)

    worker = DailySweepWorker(
        db_session_factory=get_session_factory(),
        interval_seconds=interval_seconds or settings.SWEEP_INTERVAL_SECONDS
    )

    try:
        if once:
            stats = await worker.process_once()
            logger.info(f"Daily sweep finished: {stats}")
        else:
            await worker.run_continuous()
    except KeyboardInterrupt:
        worker.stop()
    finally:
        await get_enrichment_dispatcher().drain()


if __name__ == "__main__":
    asyncio.run(run_worker(once="--once" in sys.argv[1:]))
