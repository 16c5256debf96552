"""
Sweep Repositories

PostgreSQL access for the client roster and the summons store.
Rows are returned as sweep.models dataclasses.

Store operations used by the sweep and the enrichment queue:
- ClientRepository.list_clients: bulk roster read
- SummonsRepository.get_by_id / get_by_summons_number: point lookups
- SummonsRepository.insert: create a new summons
- SummonsRepository.update_fields: partial update
- SummonsRepository.touch_metadata_sync: sweep proof-of-life stamp
- SummonsRepository.list_all: full scan for the enrichment queue
"""

import json
import logging
from dataclasses import fields as dataclass_fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from sweep.models import CaseRecord, Client

logger = logging.getLogger(__name__)

SUMMONS_COLUMNS = [f.name for f in dataclass_fields(CaseRecord)]
JSON_COLUMNS = {"critical_flags_ocr", "activity_log"}

_SELECT_SUMMONS = f"SELECT {', '.join(SUMMONS_COLUMNS)} FROM public.summonses"


def _decode_json(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def row_to_case_record(row) -> CaseRecord:
    """Map a summonses row (attribute access) to a CaseRecord."""
    values = {}
    for column in SUMMONS_COLUMNS:
        value = getattr(row, column, None)
        if column in JSON_COLUMNS:
            value = _decode_json(value)
        values[column] = value

    values["id"] = str(values["id"])
    values["client_id"] = str(values["client_id"]) if values.get("client_id") else ""
    values["enrichment_status"] = values.get("enrichment_status") or ""
    values["enrichment_failure_count"] = values.get("enrichment_failure_count") or 0
    values["activity_log"] = values.get("activity_log") or []
    values["base_fine"] = float(values.get("base_fine") or 0)
    values["amount_due"] = float(values.get("amount_due") or 0)
    for flag in ("added_to_calendar", "evidence_reviewed", "evidence_requested", "evidence_received"):
        values[flag] = bool(values.get(flag))

    return CaseRecord(**values)


def _bind(column: str, value: Any) -> Any:
    if column in JSON_COLUMNS and value is not None:
        return json.dumps(value)
    return value


def _placeholder(column: str) -> str:
    if column in JSON_COLUMNS:
        return f"CAST(:{column} AS JSON)"
    return f":{column}"


class _Repository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _read(self, query, params: Optional[Dict[str, Any]] = None):
        """
        Execute a read. A failed statement aborts the transaction in
        PostgreSQL, so roll back before re-raising to keep the session usable.
        """
        try:
            return await self.db.execute(query, params or {})
        except Exception:
            await self.db.rollback()
            raise


class ClientRepository(_Repository):
    """Read access to the client roster."""

    async def list_clients(self) -> List[Client]:
        """Return every client with its AKAs."""
        query = text("""
            SELECT id, name, akas, owner
            FROM public.clients
            ORDER BY created_at ASC
        """)

        rows = (await self._read(query)).fetchall()

        clients = []
        for row in rows:
            akas = _decode_json(row.akas) or []
            if not isinstance(akas, list):
                akas = [akas]
            clients.append(Client(
                id=str(row.id),
                name=row.name or "",
                akas=[str(a) for a in akas if a],
                owner=row.owner
            ))

        return clients


class SummonsRepository(_Repository):
    """Summons store keyed by id with a unique summons_number index."""

    async def get_by_id(self, summons_id: str) -> Optional[CaseRecord]:
        """Point lookup by primary key."""
        query = text(f"{_SELECT_SUMMONS} WHERE id = :id")
        row = (await self._read(query, {"id": summons_id})).fetchone()

        if not row:
            return None

        return row_to_case_record(row)

    async def get_by_summons_number(self, summons_number: str) -> Optional[CaseRecord]:
        """Point lookup on the unique reference number index."""
        query = text(f"{_SELECT_SUMMONS} WHERE summons_number = :summons_number LIMIT 1")
        row = (await self._read(query, {"summons_number": summons_number})).fetchone()

        if not row:
            return None

        return row_to_case_record(row)

    async def list_all(self) -> List[CaseRecord]:
        """Every stored summons; the enrichment queue filters in memory."""
        query = text(_SELECT_SUMMONS)
        result = await self._read(query)
        return [row_to_case_record(row) for row in result.fetchall()]

    async def insert(self, record: CaseRecord) -> CaseRecord:
        """Insert a new summons and commit."""
        values = record.to_dict()
        columns = list(values.keys())

        query = text(f"""
            INSERT INTO public.summonses ({', '.join(columns)})
            VALUES ({', '.join(_placeholder(c) for c in columns)})
        """)
        params = {c: _bind(c, values[c]) for c in columns}

        try:
            await self.db.execute(query, params)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return record

    async def update_fields(self, summons_id: str, updates: Dict[str, Any]) -> None:
        """
        Partial update of a summons; updated_at is always refreshed.

        Raises:
            ValueError: Unknown column or missing row
        """
        unknown = set(updates) - set(SUMMONS_COLUMNS)
        if unknown or "id" in updates:
            raise ValueError(f"Cannot update columns: {sorted(unknown | ({'id'} & set(updates)))}")

        updates = dict(updates)
        updates["updated_at"] = datetime.now(timezone.utc).isoformat()

        assignments = ", ".join(f"{c} = {_placeholder(c)}" for c in updates)
        query = text(f"""
            UPDATE public.summonses
            SET {assignments}
            WHERE id = :id
            RETURNING id
        """)
        params = {c: _bind(c, v) for c, v in updates.items()}
        params["id"] = summons_id

        try:
            result = await self.db.execute(query, params)
            row = result.fetchone()
            if not row:
                raise ValueError(f"Summons {summons_id} not found")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def touch_metadata_sync(self, summons_id: str, synced_at: str) -> None:
        """
        Stamp last_metadata_sync only. This is not a material update:
        updated_at and the change audit fields are left alone.
        """
        query = text("""
            UPDATE public.summonses
            SET last_metadata_sync = :synced_at
            WHERE id = :id
        """)

        try:
            await self.db.execute(query, {"id": summons_id, "synced_at": synced_at})
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
