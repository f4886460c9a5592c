"""Background task scheduler for lead sync."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from leadsync.config import get_settings
from leadsync.database import async_session_maker
from leadsync.services.lead_sync import LeadSyncService
from leadsync.services.source_client import SourceClient

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def daily_lead_sync_job() -> None:
    """Background job syncing yesterday's leads."""
    logger.info("Starting scheduled daily lead sync")
    try:
        async with async_session_maker() as db:
            service = LeadSyncService(db, SourceClient())
            report = await service.run_daily()
            logger.info(
                f"Daily lead sync complete: {report.created} created, "
                f"{report.updated} updated, {report.error_count} errors"
            )
    except Exception as e:
        logger.error(f"Daily lead sync failed: {e}", exc_info=True)


async def incremental_lead_sync_job() -> None:
    """Background job resuming the lead sync from its checkpoint."""
    logger.info("Starting scheduled incremental lead sync")
    try:
        async with async_session_maker() as db:
            service = LeadSyncService(db, SourceClient())
            report = await service.run_incremental()
            logger.info(
                f"Incremental lead sync complete: {report.processed} processed "
                f"in {report.batches} pages"
            )
    except Exception as e:
        logger.error(f"Incremental lead sync failed: {e}", exc_info=True)


def setup_scheduler() -> AsyncIOScheduler:
    """Set up and start the background task scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler(timezone=settings.sync_timezone)

    # Daily sync shortly after local midnight
    scheduler.add_job(
        daily_lead_sync_job,
        trigger=CronTrigger(
            hour=settings.daily_sync_hour,
            minute=settings.daily_sync_minute,
            timezone=settings.sync_timezone,
        ),
        id="daily_lead_sync",
        name="Sync yesterday's leads",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    if settings.incremental_poll_interval_minutes:
        scheduler.add_job(
            incremental_lead_sync_job,
            trigger=IntervalTrigger(minutes=settings.incremental_poll_interval_minutes),
            id="incremental_lead_sync",
            name="Sync new leads since the checkpoint",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    scheduler.start()
    logger.info("Scheduler started")

    return scheduler


def shutdown_scheduler() -> None:
    """Shut down the scheduler gracefully."""
    global scheduler

    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")
        scheduler = None
