"""
Unit Tests for the sweep repositories

Run with: pytest tests/test_repositories.py -v
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from database.summons_models import ClientDB, SummonsDB
from sweep.models import CaseRecord
from sweep.repositories import (
    ClientRepository,
    SummonsRepository,
    SUMMONS_COLUMNS,
    row_to_case_record
)


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def _summons_row(**overrides):
    row = MagicMock()
    for column in SUMMONS_COLUMNS:
        setattr(row, column, None)
    row.id = "s1"
    row.summons_number = "000123456X"
    row.client_id = "client-gc"
    row.amount_due = 350
    for key, value in overrides.items():
        setattr(row, key, value)
    return row


class TestRowMapping:

    def test_row_to_case_record_defaults(self):
        record = row_to_case_record(_summons_row(critical_flags_ocr='["NO_PLATE"]'))

        assert record.id == "s1"
        assert record.amount_due == 350.0
        assert record.base_fine == 0.0
        assert record.enrichment_status == ""
        assert record.enrichment_failure_count == 0
        assert record.evidence_reviewed is False
        assert record.critical_flags_ocr == ["NO_PLATE"]
        assert record.activity_log == []

    def test_activity_log_decoded(self):
        entry = {"date": "2026-01-01T00:00:00+00:00", "type": "CREATED", "description": "Summons created",
                 "old_value": None, "new_value": None}
        record = row_to_case_record(_summons_row(activity_log=json.dumps([entry]), owner="Jane"))

        assert record.activity_log == [entry]
        assert record.owner == "Jane"

    def test_orm_models_match_repository_columns(self):
        assert {c.name for c in SummonsDB.__table__.columns} == set(SUMMONS_COLUMNS)
        assert {"id", "name", "akas", "owner"} <= {c.name for c in ClientDB.__table__.columns}


class TestClientRepository:

    @pytest.mark.asyncio
    async def test_list_clients_decodes_akas(self, mock_db):
        row = MagicMock()
        row.id = "c1"
        row.name = "GC Warehouse LLC"
        row.akas = json.dumps(["GC Warehouse", ""])
        row.owner = None

        mock_result = MagicMock()
        mock_result.fetchall.return_value = [row]
        mock_db.execute.return_value = mock_result

        clients = await ClientRepository(mock_db).list_clients()

        assert len(clients) == 1
        assert clients[0].name == "GC Warehouse LLC"
        assert clients[0].akas == ["GC Warehouse"]


class TestSummonsRepository:

    @pytest.mark.asyncio
    async def test_get_by_summons_number_miss(self, mock_db):
        mock_result = MagicMock()
        mock_result.fetchone.return_value = None
        mock_db.execute.return_value = mock_result

        assert await SummonsRepository(mock_db).get_by_summons_number("nope") is None

        params = mock_db.execute.call_args[0][1]
        assert params == {"summons_number": "nope"}

    @pytest.mark.asyncio
    async def test_get_by_summons_number_hit(self, mock_db):
        mock_result = MagicMock()
        mock_result.fetchone.return_value = _summons_row()
        mock_db.execute.return_value = mock_result

        record = await SummonsRepository(mock_db).get_by_summons_number("000123456X")

        assert record.summons_number == "000123456X"

    @pytest.mark.asyncio
    async def test_insert_commits(self, mock_db):
        record = CaseRecord(id="s1", summons_number="1", critical_flags_ocr=["A"])

        await SummonsRepository(mock_db).insert(record)

        query, params = mock_db.execute.call_args[0]
        assert "INSERT INTO public.summonses" in str(query)
        assert params["critical_flags_ocr"] == '["A"]'
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insert_rolls_back_on_error(self, mock_db):
        mock_db.execute.side_effect = RuntimeError("unique violation")

        with pytest.raises(RuntimeError):
            await SummonsRepository(mock_db).insert(CaseRecord(id="s1", summons_number="1"))

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_fields_sets_updated_at(self, mock_db):
        mock_result = MagicMock()
        mock_result.fetchone.return_value = MagicMock(id="s1")
        mock_db.execute.return_value = mock_result

        await SummonsRepository(mock_db).update_fields("s1", {"status": "Paid"})

        query, params = mock_db.execute.call_args[0]
        assert "UPDATE public.summonses" in str(query)
        assert params["status"] == "Paid"
        assert params["id"] == "s1"
        assert "updated_at" in params
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_fields_rejects_unknown_columns(self, mock_db):
        with pytest.raises(ValueError):
            await SummonsRepository(mock_db).update_fields("s1", {"nope": 1})

        with pytest.raises(ValueError):
            await SummonsRepository(mock_db).update_fields("s1", {"id": "s2"})

        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_fields_missing_row(self, mock_db):
        mock_result = MagicMock()
        mock_result.fetchone.return_value = None
        mock_db.execute.return_value = mock_result

        with pytest.raises(ValueError):
            await SummonsRepository(mock_db).update_fields("missing", {"status": "Paid"})

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insert_encodes_activity_log(self, mock_db):
        entry = {"date": "d", "type": "CREATED", "description": "x", "old_value": None, "new_value": None}

        await SummonsRepository(mock_db).insert(CaseRecord(id="s1", summons_number="1", activity_log=[entry]))

        query, params = mock_db.execute.call_args[0]
        assert "CAST(:activity_log AS JSON)" in str(query)
        assert json.loads(params["activity_log"]) == [entry]

    @pytest.mark.asyncio
    async def test_touch_metadata_sync_only_sets_stamp(self, mock_db):
        await SummonsRepository(mock_db).touch_metadata_sync("s1", "2026-01-01T00:00:00+00:00")

        query, params = mock_db.execute.call_args[0]
        assert "SET last_metadata_sync = :synced_at" in str(query)
        assert "updated_at" not in str(query)
        assert params == {"id": "s1", "synced_at": "2026-01-01T00:00:00+00:00"}
        mock_db.commit.assert_awaited_once()


class TestReadFailures:
    """A failed read must roll back so the session can serve the next statement."""

    @pytest.mark.asyncio
    async def test_get_by_summons_number_rolls_back(self, mock_db):
        mock_db.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(RuntimeError):
            await SummonsRepository(mock_db).get_by_summons_number("000123456X")

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_by_id_rolls_back(self, mock_db):
        mock_db.execute.side_effect = RuntimeError("statement timeout")

        with pytest.raises(RuntimeError):
            await SummonsRepository(mock_db).get_by_id("s1")

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_all_rolls_back(self, mock_db):
        mock_db.execute.side_effect = RuntimeError("statement timeout")

        with pytest.raises(RuntimeError):
            await SummonsRepository(mock_db).list_all()

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_clients_rolls_back(self, mock_db):
        mock_db.execute.side_effect = RuntimeError("relation does not exist")

        with pytest.raises(RuntimeError):
            await ClientRepository(mock_db).list_clients()

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_usable_after_failed_lookup(self, mock_db):
        hit = MagicMock()
        hit.fetchone.return_value = _summons_row()
        mock_db.execute.side_effect = [RuntimeError("deadlock detected"), hit]
        repo = SummonsRepository(mock_db)

        with pytest.raises(RuntimeError):
            await repo.get_by_summons_number("000123456X")
        record = await repo.get_by_summons_number("000123456X")

        assert record.summons_number == "000123456X"
        mock_db.rollback.assert_awaited_once()
