"""
Shared fixtures for the sweep and enrichment tests.

In-memory stand-ins for the roster, the summons store, the Open Data
source and the enrichment dispatcher let the sweep run end to end
without PostgreSQL or the network.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ.setdefault("DATABASE_SSL", "false")

import copy
from typing import Any, Dict, List, Optional

import pytest

from config import get_settings
from sweep.models import CaseRecord, Client

INTERNAL_HEADERS = {"X-Internal-Api-Key": "test-internal-key", "X-Service-Name": "pytest"}


class InMemoryClientRepository:
    def __init__(self, clients: Optional[List[Client]] = None, error: Optional[Exception] = None):
        self.clients = clients or []
        self.error = error
        self.calls = 0

    async def list_clients(self) -> List[Client]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.clients)


class InMemorySummonsRepository:
    """Summons store with the unique summons_number constraint."""

    def __init__(self, records: Optional[List[CaseRecord]] = None):
        self.records: Dict[str, CaseRecord] = {}
        self.inserts: List[CaseRecord] = []
        self.updates: List[tuple] = []
        self.synced: List[tuple] = []
        self.fail_insert_for = set()
        for record in records or []:
            self.records[record.id] = record

    async def get_by_id(self, summons_id: str) -> Optional[CaseRecord]:
        return self.records.get(summons_id)

    async def get_by_summons_number(self, summons_number: str) -> Optional[CaseRecord]:
        for record in self.records.values():
            if record.summons_number == summons_number:
                return copy.deepcopy(record)
        return None

    async def list_all(self) -> List[CaseRecord]:
        return list(self.records.values())

    async def insert(self, record: CaseRecord) -> CaseRecord:
        if record.summons_number in self.fail_insert_for:
            raise RuntimeError(f"insert failed for {record.summons_number}")
        if any(r.summons_number == record.summons_number for r in self.records.values()):
            raise ValueError(f"duplicate summons_number {record.summons_number}")
        self.records[record.id] = record
        self.inserts.append(record)
        return record

    async def update_fields(self, summons_id: str, updates: Dict[str, Any]) -> None:
        record = self.records.get(summons_id)
        if record is None:
            raise ValueError(f"Summons {summons_id} not found")
        for key, value in updates.items():
            setattr(record, key, value)
        self.updates.append((summons_id, dict(updates)))

    async def touch_metadata_sync(self, summons_id: str, synced_at: str) -> None:
        record = self.records.get(summons_id)
        if record is None:
            raise ValueError(f"Summons {summons_id} not found")
        record.last_metadata_sync = synced_at
        self.synced.append((summons_id, synced_at))

    def by_number(self, summons_number: str) -> Optional[CaseRecord]:
        for record in self.records.values():
            if record.summons_number == summons_number:
                return record
        return None


class StaticSource:
    def __init__(self, records: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.records = records or []
        self.error = error
        self.calls: List[dict] = []

    async def fetch_violations(self, limit: int, category: str, order: str = "hearing_date DESC"):
        self.calls.append({"limit": limit, "category": category, "order": order})
        if self.error:
            raise self.error
        return copy.deepcopy(self.records)


class RecordingDispatcher:
    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.dispatched: List[CaseRecord] = []

    async def dispatch(self, record: CaseRecord) -> bool:
        self.dispatched.append(record)
        if self.error:
            raise self.error
        return self.result


def make_source_record(
    ticket_number: str,
    first: str = "GC",
    last: str = "WAREHOUSE",
    hearing_date: Optional[str] = "2026-05-06T00:00:00.000",
    hearing_status: Optional[str] = "Scheduled",
    balance_due: Any = "350",
    **extra
) -> Dict[str, Any]:
    record = {
        "ticket_number": ticket_number,
        "respondent_first_name": first,
        "respondent_last_name": last,
        "hearing_date": hearing_date,
        "hearing_status": hearing_status,
        "license_plate": "ABC1234",
        "total_violation_amount": "350",
        "balance_due": balance_due,
        "violation_date": "2025-11-02T00:00:00.000",
        "violation_location_house": "12",
        "violation_location_street_name": "MAIN ST",
        "violation_location_city": "BROOKLYN",
        "violation_location_zip_code": "11201",
    }
    record.update(extra)
    return record


def make_case_record(summons_id: str, summons_number: str = None, **fields) -> CaseRecord:
    return CaseRecord(id=summons_id, summons_number=summons_number or f"SN-{summons_id}", **fields)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def gc_warehouse():
    return Client(id="client-gc", name="GC Warehouse LLC", akas=["G.C. Whse", "GC Warehouse"])


@pytest.fixture
def internal_headers():
    return dict(INTERNAL_HEADERS)
