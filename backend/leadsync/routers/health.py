"""Health and readiness endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.database import get_db
from leadsync.models import Lead, LeadRemark, SyncCheckpoint

router = APIRouter(tags=["health"])
settings = get_settings()


class SyncStatus(BaseModel):
    """Progress of the lead sync."""

    last_run: datetime | None
    last_synced_at: datetime | None
    last_synced_id: int | None
    records_synced: int
    lead_count: int
    remark_count: int
    newest_lead: datetime | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    leads: SyncStatus


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """
    Health check endpoint with sync status.

    Returns the stored cursor and record counts for the lead sync.
    """
    checkpoint_result = await db.execute(
        select(SyncCheckpoint).where(SyncCheckpoint.source_type == settings.sync_source_type)
    )
    checkpoint = checkpoint_result.scalar_one_or_none()

    lead_count = (await db.execute(select(func.count(Lead.id)))).scalar() or 0
    remark_count = (await db.execute(select(func.count(LeadRemark.id)))).scalar() or 0
    newest_lead = (await db.execute(select(func.max(Lead.created_date)))).scalar()

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        leads=SyncStatus(
            last_run=checkpoint.last_run_at if checkpoint else None,
            last_synced_at=checkpoint.last_synced_at if checkpoint else None,
            last_synced_id=checkpoint.last_synced_id if checkpoint else None,
            records_synced=checkpoint.records_count if checkpoint else 0,
            lead_count=lead_count,
            remark_count=remark_count,
            newest_lead=newest_lead,
        ),
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
