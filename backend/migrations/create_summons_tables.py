"""
Database Migration: Create Sweep Tables

Creates the client roster and the summons ledger with its unique
summons_number index.
"""

import asyncio
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text
from database.connection import get_engine


SQL_STATEMENTS = [
    # Client roster
    """
    CREATE TABLE IF NOT EXISTS public.clients (
        id VARCHAR(36) PRIMARY KEY,
        name TEXT NOT NULL,
        akas JSON NOT NULL DEFAULT '[]',
        owner VARCHAR(128),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,

    # Summons ledger
    """
    CREATE TABLE IF NOT EXISTS public.summonses (
        id VARCHAR(36) PRIMARY KEY,
        client_id VARCHAR(36) NOT NULL REFERENCES public.clients(id),
        summons_number VARCHAR(32) NOT NULL,
        owner VARCHAR(128),

        -- Source fields
        respondent_name TEXT,
        hearing_date VARCHAR(40),
        status TEXT,
        license_plate VARCHAR(32),
        base_fine DOUBLE PRECISION NOT NULL DEFAULT 0,
        amount_due DOUBLE PRECISION NOT NULL DEFAULT 0,
        violation_date VARCHAR(40),
        violation_location TEXT,

        -- Evidence links
        summons_pdf_link TEXT,
        video_link TEXT,

        -- Evidence tracking
        added_to_calendar BOOLEAN NOT NULL DEFAULT false,
        evidence_reviewed BOOLEAN NOT NULL DEFAULT false,
        evidence_requested BOOLEAN NOT NULL DEFAULT false,
        evidence_received BOOLEAN NOT NULL DEFAULT false,

        -- Enrichment state
        enrichment_status VARCHAR(16),
        enrichment_failure_count INTEGER NOT NULL DEFAULT 0,
        enrichment_failure_reason TEXT,
        last_scan_date VARCHAR(40),

        -- Enrichment output
        violation_narrative TEXT,
        license_plate_ocr VARCHAR(32),
        id_number VARCHAR(32),
        vehicle_type_ocr TEXT,
        prior_offense_status TEXT,
        idling_duration_ocr TEXT,
        critical_flags_ocr JSON,
        name_on_summons_ocr TEXT,
        video_created_date VARCHAR(40),
        lag_days INTEGER,

        -- Change audit
        last_change_summary TEXT,
        last_change_at VARCHAR(40),
        activity_log JSON NOT NULL DEFAULT '[]',
        last_metadata_sync VARCHAR(40),
        created_at VARCHAR(40) NOT NULL,
        updated_at VARCHAR(40) NOT NULL,

        CONSTRAINT summonses_enrichment_status_check
            CHECK (enrichment_status IS NULL OR enrichment_status IN ('', 'pending', 'complete', 'failed'))
    )
    """,

    # Columns added after the first release
    "ALTER TABLE public.summonses ADD COLUMN IF NOT EXISTS owner VARCHAR(128)",
    "ALTER TABLE public.summonses ADD COLUMN IF NOT EXISTS activity_log JSON NOT NULL DEFAULT '[]'",
    "ALTER TABLE public.summonses ADD COLUMN IF NOT EXISTS last_metadata_sync VARCHAR(40)",

    "CREATE UNIQUE INDEX IF NOT EXISTS ix_summonses_summons_number ON public.summonses(summons_number)",
    "CREATE INDEX IF NOT EXISTS ix_summonses_hearing_date ON public.summonses(hearing_date)",
    "CREATE INDEX IF NOT EXISTS ix_summonses_client_id ON public.summonses(client_id)",
    "CREATE INDEX IF NOT EXISTS ix_summonses_enrichment_status ON public.summonses(enrichment_status)",
]


async def create_tables():
    """Create the sweep tables."""
    print("Creating sweep tables...")

    async with get_engine().begin() as conn:
        for i, sql in enumerate(SQL_STATEMENTS):
            try:
                await conn.execute(text(sql))
                print(f"  ✓ Statement {i+1}/{len(SQL_STATEMENTS)} executed")
            except Exception as e:
                if "already exists" in str(e).lower():
                    print(f"  ✓ Statement {i+1}/{len(SQL_STATEMENTS)} (already exists)")
                else:
                    print(f"  ✗ Statement {i+1}/{len(SQL_STATEMENTS)} failed: {e}")
                    raise

        print("\n✅ Sweep tables created successfully!")


if __name__ == "__main__":
    asyncio.run(create_tables())
