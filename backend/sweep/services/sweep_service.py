"""
Daily Sweep Service

Keeps the local summons store in line with the NYC Open Data snapshot:
1. Load the client roster
2. Build the name/AKA lookup
3. Fetch the category snapshot (hearing_date DESC, capped)
4. For each source record, in order:
   - skip blank respondent names and unmatched respondents
   - new summons_number  -> insert, then fire enrichment
   - known summons_number -> strict diff, update only on change;
     every sighting stamps last_metadata_sync
5. Return matched/created/updated/errors counters

Steps 1-3 are fatal on failure. Step 4 isolates failures per record.
Records are processed sequentially so writes follow source order.
"""

import uuid
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from sentry_integration import capture_exception
from logging_config import set_run_context, clear_run_context
from database.connection import get_engine
from database.summons_models import EnrichmentStatus
from sweep.models import ActivityLogEntry, ActivityType, CaseRecord, Client, IncomingFields, SweepResult
from sweep.exceptions import RosterFetchError, SourceFetchError, SweepFatalError
from sweep.name_matcher import AliasCollisionPolicy, build_client_name_map, match_client
from sweep.field_normalizer import (
    normalize_amount,
    normalize_date,
    build_respondent_name,
    build_violation_location,
    resolve_status,
)
from sweep.diff_engine import build_activity_entries, compute_diff
from sweep.repositories import ClientRepository, SummonsRepository
from sweep.sources.open_data_client import OpenDataClient
from sweep.run_guard import SweepRunGuard, PostgresAdvisoryLock, sweep_run_guard
from enrichment.dispatcher import EnrichmentDispatcher, get_enrichment_dispatcher

logger = logging.getLogger(__name__)


class SweepAuditEvent:
    """Audit event types for sweep operations."""
    RUN_STARTED = "sweep.run_started"
    RUN_COMPLETED = "sweep.run_completed"
    RUN_FAILED = "sweep.run_failed"
    SUMMONS_CREATED = "sweep.summons_created"
    SUMMONS_UPDATED = "sweep.summons_updated"
    RECORD_FAILED = "sweep.record_failed"
    DISPATCH_FAILED = "sweep.dispatch_failed"


def log_sweep_event(
    event_type: str,
    details: Dict[str, Any],
    summons_number: Optional[str] = None,
    level: int = logging.INFO
):
    """Log sweep event for audit trail."""
    log_entry = {
        "event": event_type,
        "summons_number": summons_number,
        "details": details,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    logger.log(level, f"Sweep event: {event_type}", extra=log_entry)


class SweepService:
    """
    Reconciliation engine between the Open Data source and the summons store.

    Collaborators are injected so the same engine runs against PostgreSQL
    in production and in-memory fakes in tests.
    """

    def __init__(
        self,
        client_repo,
        summons_repo,
        source,
        dispatcher,
        page_size: int = 5000,
        category: str = "IDLING",
        pdf_url_template: str = "https://a820-ecbticketfinder.nyc.gov/GetViolationImage?violationNumber={reference_number}",
        video_url_template: str = "https://nycidling.azurewebsites.net/idlingevidence/video/{reference_number}",
        collision_policy: AliasCollisionPolicy = AliasCollisionPolicy.LAST_WINS,
        guard: Optional[SweepRunGuard] = None,
        advisory_lock: Optional[PostgresAdvisoryLock] = None
    ):
        self.client_repo = client_repo
        self.summons_repo = summons_repo
        self.source = source
        self.dispatcher = dispatcher
        self.page_size = page_size
        self.category = category
        self.pdf_url_template = pdf_url_template
        self.video_url_template = video_url_template
        self.collision_policy = AliasCollisionPolicy(collision_policy)
        self.guard = guard
        self.advisory_lock = advisory_lock

    # ==================== PUBLIC ====================

    async def run_sweep(self, trigger: str = "manual") -> SweepResult:
        """
        Run one sweep end to end.

        Raises:
            SweepFatalError: Roster or source unavailable; nothing is processed
            SweepAlreadyRunningError: Another sweep holds the guard
        """
        if self.guard is None:
            return await self._run(trigger)

        async with self.guard.acquire(self.advisory_lock):
            return await self._run(trigger)

    def build_evidence_links(self, summons_number: str) -> Dict[str, str]:
        """Document image and video evidence URLs for a reference number."""
        return {
            "summons_pdf_link": self.pdf_url_template.format(reference_number=summons_number),
            "video_link": self.video_url_template.format(reference_number=summons_number),
        }

    # ==================== RUN ====================

    async def _run(self, trigger: str) -> SweepResult:
        result = SweepResult(run_id=str(uuid.uuid4()))
        set_run_context(result.run_id, trigger)

        log_sweep_event(SweepAuditEvent.RUN_STARTED, {
            "run_id": result.run_id,
            "trigger": trigger,
            "category": self.category,
            "page_size": self.page_size
        })

        try:
            clients = await self._load_roster()
            logger.info(f"Fetched {len(clients)} clients from database")

            if not clients:
                logger.info("No clients found. Exiting sweep.")
                result.message = "No clients to process"
                result.finished_at = datetime.now(timezone.utc).isoformat()
                return result

            name_map = build_client_name_map(clients, self.collision_policy)
            logger.info(f"Built name map with {len(name_map)} unique names")

            snapshot = await self._fetch_snapshot()
            result.source_count = len(snapshot)

            for raw in snapshot:
                await self._process_record(raw, name_map, result)

        except SweepFatalError as e:
            self._report_failure(result, e)
            raise
        except Exception as e:
            fatal = SweepFatalError(f"Daily sweep failed: {e}", cause=e)
            self._report_failure(result, fatal)
            raise fatal from e
        finally:
            clear_run_context()

        result.finished_at = datetime.now(timezone.utc).isoformat()
        log_sweep_event(SweepAuditEvent.RUN_COMPLETED, {
            "run_id": result.run_id,
            "source_count": result.source_count,
            **result.counters()
        })
        return result

    def _report_failure(self, result: SweepResult, error: SweepFatalError):
        logger.error(f"Daily sweep failed: {error}", exc_info=error.cause or error)
        log_sweep_event(
            SweepAuditEvent.RUN_FAILED,
            {"run_id": result.run_id, "error": str(error)},
            level=logging.ERROR
        )
        capture_exception(error.cause or error, run_id=result.run_id)

    async def _load_roster(self):
        try:
            return await self.client_repo.list_clients()
        except Exception as e:
            raise RosterFetchError(f"Failed to fetch clients: {e}", cause=e) from e

    async def _fetch_snapshot(self):
        try:
            return await self.source.fetch_violations(
                limit=self.page_size,
                category=self.category,
                order="hearing_date DESC"
            )
        except SourceFetchError:
            raise
        except Exception as e:
            raise SourceFetchError(f"Failed to fetch Open Data: {e}", cause=e) from e

    # ==================== PER RECORD ====================

    async def _process_record(self, raw: Dict[str, Any], name_map: Dict[str, Client], result: SweepResult):
        summons_number = raw.get("ticket_number")

        try:
            respondent_name = build_respondent_name(raw)
            if not respondent_name:
                return

            client = match_client(name_map, respondent_name)
            if client is None:
                return

            result.matched += 1

            if not summons_number:
                raise ValueError("Source record has no ticket_number")

            existing = await self.summons_repo.get_by_summons_number(summons_number)

            if existing is not None:
                if await self._apply_changes(existing, raw):
                    result.updated += 1
                return

            record = self._build_new_record(raw, client, respondent_name)
            await self.summons_repo.insert(record)
            result.created += 1
            log_sweep_event(
                SweepAuditEvent.SUMMONS_CREATED,
                {"client_id": client.id, "summons_id": record.id},
                summons_number=summons_number
            )

        except Exception as e:
            result.errors += 1
            logger.error(f"Error processing summons {summons_number}: {e}")
            log_sweep_event(
                SweepAuditEvent.RECORD_FAILED,
                {"error": str(e), "error_type": type(e).__name__},
                summons_number=summons_number,
                level=logging.ERROR
            )
            return

        # The record is stored; the enrichment queue retries a lost dispatch
        await self._dispatch(record)

    async def _dispatch(self, record: CaseRecord):
        try:
            await self.dispatcher.dispatch(record)
        except Exception as e:
            logger.warning(f"Enrichment dispatch failed for summons {record.summons_number}: {e}")
            log_sweep_event(
                SweepAuditEvent.DISPATCH_FAILED,
                {"summons_id": record.id, "error": str(e), "error_type": type(e).__name__},
                summons_number=record.summons_number,
                level=logging.WARNING
            )

    async def _apply_changes(self, existing: CaseRecord, raw: Dict[str, Any]) -> bool:
        """
        Write source-owned fields when the diff finds a material change.

        Every sighting stamps last_metadata_sync; an unchanged record gets
        only that stamp and does not count as an update.
        """
        incoming = IncomingFields(
            status=resolve_status(raw),
            amount_due=normalize_amount(raw.get("balance_due")),
            hearing_date=normalize_date(raw.get("hearing_date"))
        )
        now = datetime.now(timezone.utc).isoformat()

        diff = compute_diff(existing, incoming)
        if not diff.has_changes:
            await self.summons_repo.touch_metadata_sync(existing.id, now)
            return False

        activity = list(existing.activity_log or [])
        activity.extend(entry.to_dict() for entry in build_activity_entries(diff, now))

        await self.summons_repo.update_fields(existing.id, {
            "status": incoming.status,
            "amount_due": incoming.amount_due,
            "hearing_date": incoming.hearing_date,
            "last_change_summary": diff.summary,
            "last_change_at": now,
            "activity_log": activity,
            "last_metadata_sync": now,
        })

        logger.info(f"Updated summons {existing.summons_number}: {diff.summary}")
        log_sweep_event(
            SweepAuditEvent.SUMMONS_UPDATED,
            {"summons_id": existing.id, "changes": [c.field for c in diff.changes]},
            summons_number=existing.summons_number
        )
        return True

    def _build_new_record(self, raw: Dict[str, Any], client: Client, respondent_name: str) -> CaseRecord:
        summons_number = raw["ticket_number"]
        now = datetime.now(timezone.utc).isoformat()
        links = self.build_evidence_links(summons_number)

        return CaseRecord(
            id=str(uuid.uuid4()),
            summons_number=summons_number,
            client_id=client.id,
            owner=client.owner,
            respondent_name=respondent_name,
            hearing_date=normalize_date(raw.get("hearing_date")),
            status=resolve_status(raw),
            license_plate=raw.get("license_plate") or "",
            base_fine=normalize_amount(raw.get("total_violation_amount")),
            amount_due=normalize_amount(raw.get("balance_due")),
            violation_date=normalize_date(raw.get("violation_date")),
            violation_location=build_violation_location(raw),
            summons_pdf_link=links["summons_pdf_link"],
            video_link=links["video_link"],
            enrichment_status=EnrichmentStatus.PENDING.value,
            enrichment_failure_count=0,
            activity_log=[ActivityLogEntry(
                date=now,
                type=ActivityType.CREATED,
                description=f"Summons {summons_number} added by daily sweep",
                new_value=resolve_status(raw)
            ).to_dict()],
            last_metadata_sync=now,
            created_at=now,
            updated_at=now
        )


def build_sweep_service(
    db: AsyncSession,
    settings: Optional[Settings] = None,
    dispatcher: Optional[EnrichmentDispatcher] = None
) -> SweepService:
    """Wire a SweepService against PostgreSQL and the live Open Data API."""
    settings = settings or get_settings()

    return SweepService(
        client_repo=ClientRepository(db),
        summons_repo=SummonsRepository(db),
        source=OpenDataClient(
            base_url=settings.OPEN_DATA_URL,
            app_token=settings.OPEN_DATA_APP_TOKEN,
            timeout=settings.HTTP_TIMEOUT_SECONDS
        ),
        dispatcher=dispatcher or get_enrichment_dispatcher(),
        page_size=settings.OPEN_DATA_PAGE_SIZE,
        category=settings.VIOLATION_CATEGORY,
        pdf_url_template=settings.SUMMONS_PDF_URL_TEMPLATE,
        video_url_template=settings.VIDEO_URL_TEMPLATE,
        collision_policy=AliasCollisionPolicy(settings.ALIAS_COLLISION_POLICY),
        guard=sweep_run_guard,
        advisory_lock=PostgresAdvisoryLock(get_engine())
    )
