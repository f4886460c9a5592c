"""
Historic lead backfill.

Usage:
    leadsync-historic [YYYY-MM-DD]
    python -m leadsync.historic [YYYY-MM-DD]

The start date comes from the argument, else HISTORIC_SYNC_FROM_DATE, else
2025-12-01. Pages through the source until it is exhausted; safe to re-run
because existing leads are skipped or updated, never duplicated.
"""

import asyncio
import logging
import sys
from datetime import datetime

from leadsync.config import get_settings
from leadsync.database import async_session_maker
from leadsync.errors import SyncError
from leadsync.services.lead_sync import LeadSyncService, SyncReport
from leadsync.services.source_client import SourceClient

logger = logging.getLogger(__name__)

DEFAULT_FROM_DATE = "2025-12-01"


def parse_from_date(value: str | None) -> datetime:
    """
    Resolve the backfill start date.

    Invalid values fall back to the configured or default date with a warning.
    """
    fallback = get_settings().historic_sync_from_date or DEFAULT_FROM_DATE
    for candidate in (value, fallback, DEFAULT_FROM_DATE):
        if not candidate:
            continue
        try:
            return datetime.strptime(candidate.strip(), "%Y-%m-%d")
        except ValueError:
            logger.warning(f"Invalid start date '{candidate}', expected YYYY-MM-DD")
    raise ValueError("No valid start date")


async def run_historic_sync(from_date: datetime) -> SyncReport:
    source = SourceClient()
    try:
        async with async_session_maker() as db:
            service = LeadSyncService(db, source)
            return await service.run_historic(from_date)
    finally:
        await source.close()


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = sys.argv[1:] if argv is None else argv
    from_date = parse_from_date(args[0] if args else None)
    logger.info(f"Historic lead sync from {from_date.date()}")

    try:
        report = asyncio.run(run_historic_sync(from_date))
    except SyncError as e:
        logger.error(f"Historic sync aborted: {e}")
        return 1
    except Exception as e:
        logger.error(f"Historic sync failed: {e}", exc_info=True)
        return 1

    logger.info(
        f"Historic sync finished in {report.execution_time_ms / 1000:.1f}s: "
        f"{report.processed} processed, {report.created} created, "
        f"{report.updated} updated, {report.unchanged} unchanged, "
        f"{report.error_count} errors, {report.remarks_synced} remarks"
    )
    if report.cursor:
        logger.info(f"Checkpoint at {report.cursor.synced_at} / {report.cursor.synced_id}")
    if report.error_count:
        logger.warning(f"Sample of failed lead ids: {report.failed_ids}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
