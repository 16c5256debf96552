"""
Summons Core - Sweep Database Models

Tables:
- clients: Client roster with name aliases (AKAs) used by the sweep matcher
- summonses: One row per OATH summons, keyed uniquely by summons_number
"""

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Text, Float, Boolean, Integer, DateTime,
    ForeignKey, Index, JSON
)

from database.connection import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EnrichmentStatus(str, PyEnum):
    """Enrichment (scrape + OCR) state of a summons. Unset is stored as NULL or ''."""
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"


class ClientDB(Base):
    """Client roster entry. Respondent names are matched against name and akas."""
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(Text, nullable=False)
    akas = Column(JSON, nullable=False, default=list)
    owner = Column(String(128), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class SummonsDB(Base):
    """
    Summons (case record) ledger.

    Contains:
    - Fields mirrored from the Open Data source (status, amounts, dates)
    - Derived evidence links
    - Enrichment output written only by the data extractor worker
    - Change audit fields written only by the sweep diff
    - Case history (activity_log) and the sweep proof-of-life stamp
    """
    __tablename__ = "summonses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    summons_number = Column(String(32), nullable=False)
    owner = Column(String(128), nullable=True)

    # Source fields
    respondent_name = Column(Text, nullable=True)
    hearing_date = Column(String(40), nullable=True)
    status = Column(Text, nullable=True)
    license_plate = Column(String(32), nullable=True)
    base_fine = Column(Float, nullable=False, default=0.0)
    amount_due = Column(Float, nullable=False, default=0.0)
    violation_date = Column(String(40), nullable=True)
    violation_location = Column(Text, nullable=True)

    # Evidence links
    summons_pdf_link = Column(Text, nullable=True)
    video_link = Column(Text, nullable=True)

    # Evidence tracking
    added_to_calendar = Column(Boolean, nullable=False, default=False)
    evidence_reviewed = Column(Boolean, nullable=False, default=False)
    evidence_requested = Column(Boolean, nullable=False, default=False)
    evidence_received = Column(Boolean, nullable=False, default=False)

    # Enrichment state
    enrichment_status = Column(String(16), nullable=True, index=True)
    enrichment_failure_count = Column(Integer, nullable=False, default=0)
    enrichment_failure_reason = Column(Text, nullable=True)
    last_scan_date = Column(String(40), nullable=True)

    # Enrichment output
    violation_narrative = Column(Text, nullable=True)
    license_plate_ocr = Column(String(32), nullable=True)
    id_number = Column(String(32), nullable=True)
    vehicle_type_ocr = Column(Text, nullable=True)
    prior_offense_status = Column(Text, nullable=True)
    idling_duration_ocr = Column(Text, nullable=True)
    critical_flags_ocr = Column(JSON, nullable=True)
    name_on_summons_ocr = Column(Text, nullable=True)
    video_created_date = Column(String(40), nullable=True)
    lag_days = Column(Integer, nullable=True)

    # Change audit
    last_change_summary = Column(Text, nullable=True)
    last_change_at = Column(String(40), nullable=True)
    activity_log = Column(JSON, nullable=False, default=list)
    last_metadata_sync = Column(String(40), nullable=True)
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)

    __table_args__ = (
        Index("ix_summonses_summons_number", "summons_number", unique=True),
        Index("ix_summonses_hearing_date", "hearing_date"),
    )
