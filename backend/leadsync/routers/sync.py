"""Lead sync trigger endpoints for cron callers and operators."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.database import get_db
from leadsync.errors import SourceUnavailableError, SyncAlreadyRunningError, SyncFatalError
from leadsync.rate_limit import limiter
from leadsync.schemas.sync import CheckpointOut, SyncRunOut, SyncSummary
from leadsync.security import bearer_token_matches
from leadsync.services.checkpoint_store import CheckpointStore
from leadsync.services.lead_sync import LeadSyncService, SyncReport
from leadsync.services.run_log import SyncRunLog
from leadsync.services.source_client import SourceClient

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/sync/leads", tags=["sync"])

TRIGGER_RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"


async def require_sync_secret(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Bearer auth for sync endpoints; open when no secret is configured."""
    secret = get_settings().sync_api_secret
    if not secret:
        return
    if not bearer_token_matches(authorization, secret):
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_source_client() -> SourceClient:
    """Dependency for the source database client."""
    return SourceClient()


def _fatal_to_http(exc: SyncFatalError) -> HTTPException:
    if isinstance(exc, SyncAlreadyRunningError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, SourceUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.api_route(
    "/daily",
    methods=["GET", "POST"],
    response_model=SyncSummary,
    response_model_by_alias=True,
    dependencies=[Depends(require_sync_secret)],
)
@limiter.limit(TRIGGER_RATE_LIMIT)
async def trigger_daily_sync(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    source: Annotated[SourceClient, Depends(get_source_client)],
) -> SyncSummary:
    """
    Sync one page of yesterday's leads.

    Intended for a once-a-day cron; GET is accepted for schedulers that
    cannot send POST.
    """
    service = LeadSyncService(db, source)
    try:
        report: SyncReport = await service.run_daily()
    except SyncFatalError as e:
        raise _fatal_to_http(e) from e
    return report.to_summary()


@router.api_route(
    "",
    methods=["GET", "POST"],
    response_model=SyncSummary,
    response_model_by_alias=True,
    dependencies=[Depends(require_sync_secret)],
)
@limiter.limit(TRIGGER_RATE_LIMIT)
async def trigger_incremental_sync(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    source: Annotated[SourceClient, Depends(get_source_client)],
) -> SyncSummary:
    """Resume from the checkpoint and sync until caught up or the time budget runs out."""
    service = LeadSyncService(db, source)
    try:
        report = await service.run_incremental()
    except SyncFatalError as e:
        raise _fatal_to_http(e) from e
    return report.to_summary()


@router.get(
    "/checkpoint",
    response_model=CheckpointOut,
    response_model_by_alias=True,
    dependencies=[Depends(require_sync_secret)],
)
async def get_checkpoint(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CheckpointOut:
    """Show the stored sync cursor."""
    checkpoint = await CheckpointStore(db).get(settings.sync_source_type)
    if checkpoint is None:
        raise HTTPException(status_code=404, detail="No checkpoint stored")
    return CheckpointOut(
        source_type=checkpoint.source_type,
        last_synced_at=checkpoint.last_synced_at,
        last_synced_id=checkpoint.last_synced_id,
        records_count=checkpoint.records_count,
        last_run_at=checkpoint.last_run_at,
    )


@router.delete("/checkpoint", dependencies=[Depends(require_sync_secret)])
async def clear_checkpoint(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Clear the lead sync checkpoint.

    WARNING: The next incremental run starts from the initial lookback.
    """
    deleted = await CheckpointStore(db).reset(settings.sync_source_type)
    logger.warning(f"Checkpoint {settings.sync_source_type} cleared (deleted={deleted})")
    return {
        "message": "Lead sync checkpoint cleared",
        "deleted": deleted,
    }


@router.get(
    "/runs",
    response_model=list[SyncRunOut],
    response_model_by_alias=True,
    dependencies=[Depends(require_sync_secret)],
)
async def list_runs(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(20, ge=1, le=100, description="Number of runs to return"),
) -> list[SyncRunOut]:
    """Recent sync runs, newest first, including failed ones."""
    runs = await SyncRunLog(db).recent(settings.sync_source_type, limit=limit)
    return [SyncRunOut.model_validate(run) for run in runs]
