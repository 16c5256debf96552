"""
Sweep API Endpoints

- POST /api/sweep/run - Run the daily sweep now
- GET /api/sweep/status - Module status and configuration summary
"""

import logging
from typing import Optional
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database.connection import get_db
from middleware.internal_auth import InternalService, require_internal_service
from sweep.exceptions import SweepAlreadyRunningError
from sweep.run_guard import sweep_run_guard
from sweep.services.sweep_service import SweepService, build_sweep_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sweep", tags=["Sweep"])


# ==================== Request/Response Models ====================

class RunSweepRequest(BaseModel):
    """Request to run a sweep."""
    trigger: str = Field(default="manual", description="Who triggered the run (manual, scheduler)")


class SweepRunResponse(BaseModel):
    """Counters for a completed sweep."""
    success: bool = True
    message: str
    run_id: str
    matched: int
    created: int
    updated: int
    errors: int
    source_count: int = 0
    started_at: Optional[str] = None
    finished_at: Optional[str] = None


# ==================== Dependencies ====================

async def get_sweep_service(db: AsyncSession = Depends(get_db)) -> SweepService:
    return build_sweep_service(db)


# ==================== Endpoints ====================

@router.get("/status", summary="Module status")
async def get_module_status():
    """Sweep configuration and whether a run is in flight."""
    settings = get_settings()
    return {
        "module": "sweep",
        "status": "operational",
        "version": settings.API_VERSION,
        "running": sweep_run_guard.is_running,
        "config": {
            "source_url": settings.OPEN_DATA_URL,
            "violation_category": settings.VIOLATION_CATEGORY,
            "page_size": settings.OPEN_DATA_PAGE_SIZE,
            "alias_collision_policy": settings.ALIAS_COLLISION_POLICY,
            "enrichment_dispatch_enabled": bool(settings.ENRICHMENT_WORKER_URL),
            "sweep_interval_seconds": settings.SWEEP_INTERVAL_SECONDS
        },
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.post("/run", response_model=SweepRunResponse, summary="Run daily sweep")
async def run_sweep(
    request: Optional[RunSweepRequest] = None,
    caller: InternalService = Depends(require_internal_service),
    service: SweepService = Depends(get_sweep_service)
):
    """
    Run one sweep against the Open Data snapshot.

    This will:
    1. Load clients and build the name/AKA map
    2. Fetch the category snapshot
    3. Insert new matched summonses and dispatch enrichment
    4. Update known summonses whose status, amount or hearing date changed

    Requires internal API key authentication.
    """
    trigger = request.trigger if request else "manual"
    logger.info(f"Sweep requested by {caller.name} (trigger={trigger})")

    try:
        result = await service.run_sweep(trigger=trigger)
    except SweepAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Daily sweep failed: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Daily sweep failed",
                "message": str(e)
            }
        )

    return SweepRunResponse(
        success=True,
        message=result.message,
        run_id=result.run_id,
        source_count=result.source_count,
        started_at=result.started_at,
        finished_at=result.finished_at,
        **result.counters()
    )
