"""
Lead sync orchestration: page through the source, map, diff, write, checkpoint.

Every mode runs the same page pipeline:

    FETCHING_PAGE -> PROCESSING -> WRITING -> COMMITTING

and differs only in where it starts and when it stops. The cursor is
committed strictly after a page's writes, so a crash re-reads at most one
page and the create path skips rows that were already written.
"""

import enum
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.errors import NoSystemActorError, SourceUnavailableError, SyncFatalError
from leadsync.models import Account, AccountRole
from leadsync.schemas.lead import CanonicalLead
from leadsync.schemas.sync import ErrorDetail, SyncSummary
from leadsync.services.batch_writer import BatchWriter
from leadsync.services.change_detector import ChangeKind, detect_change, fetch_snapshots
from leadsync.services.checkpoint_store import CheckpointStore, SyncCursor
from leadsync.services.lead_mapper import LeadMapper
from leadsync.services.owner_resolver import OwnerResolver
from leadsync.services.remark_sync import RemarkSynchronizer
from leadsync.services.run_log import RunStatus, SyncRunLog
from leadsync.services.source_client import SourceClient, SourceClientError
from leadsync.services.sync_lease import SyncLeaseManager
from leadsync.services.worker_pool import run_bounded

logger = logging.getLogger(__name__)
settings = get_settings()


class SyncMode(str, enum.Enum):
    DAILY = "daily"
    HISTORIC = "historic"
    INCREMENTAL = "incremental"


class SyncState(str, enum.Enum):
    IDLE = "idle"
    FETCHING_PAGE = "fetching_page"
    PROCESSING = "processing"
    WRITING = "writing"
    COMMITTING = "committing"
    DONE = "done"
    FAILED_FATAL = "failed_fatal"


@dataclass
class PlannedWrite:
    kind: ChangeKind
    record: CanonicalLead


@dataclass
class PageResult:
    fetched: int
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: list[ErrorDetail] = field(default_factory=list)
    remarks_synced: int = 0
    cursor: SyncCursor | None = None


@dataclass
class SyncReport:
    """Running totals for one sync invocation."""

    mode: SyncMode
    from_date: datetime | None = None
    to_date: datetime | None = None
    processed: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    error_count: int = 0
    remarks_synced: int = 0
    batches: int = 0
    cursor: SyncCursor | None = None
    approx_total: int | None = None
    errors: deque[ErrorDetail] = field(
        default_factory=lambda: deque(maxlen=settings.error_sample_size)
    )
    started: float = field(default_factory=time.monotonic)
    stopped_early: bool = False

    @property
    def execution_time_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)

    @property
    def failed_ids(self) -> list[int | None]:
        return [detail.lead_id for detail in self.errors]

    def add_page(self, page: PageResult) -> None:
        self.batches += 1
        self.processed += page.fetched
        self.created += page.created
        self.updated += page.updated
        self.unchanged += page.unchanged
        self.error_count += len(page.errors)
        self.remarks_synced += page.remarks_synced
        self.errors.extend(page.errors)
        if page.cursor is not None:
            self.cursor = page.cursor.max(self.cursor)

    def to_summary(self, details_limit: int = settings.error_details_limit) -> SyncSummary:
        if self.processed == 0:
            message = "No new leads to sync"
        else:
            message = (
                f"Synced {self.created} new and {self.updated} updated leads "
                f"from {self.processed} rows"
            )
        return SyncSummary(
            mode=self.mode.value,
            message=message,
            from_date=self.from_date,
            to_date=self.to_date,
            processed=self.processed,
            synced=self.created,
            updated=self.updated,
            unchanged=self.unchanged,
            errors=self.error_count,
            remarks_synced=self.remarks_synced,
            batches=self.batches,
            last_synced_date=self.cursor.synced_at if self.cursor else None,
            last_synced_id=self.cursor.synced_id if self.cursor else None,
            execution_time_ms=self.execution_time_ms,
            error_details=list(self.errors)[:details_limit],
        )


def daily_window(now: datetime | None = None, tz_name: str = settings.sync_timezone) -> tuple[datetime, datetime]:
    """
    Yesterday 00:00 to today 00:00 in the given zone, as naive wall-clock times.

    The source stores local wall-clock times, so the bounds carry no zone.
    """
    tz = ZoneInfo(tz_name)
    if now is None:
        local_now = datetime.now(tz)
    elif now.tzinfo is None:
        local_now = now
    else:
        local_now = now.astimezone(tz)
    today = local_now.date()
    start = datetime.combine(today - timedelta(days=1), datetime.min.time())
    end = datetime.combine(today, datetime.min.time())
    return start, end


def page_cursor(rows: Sequence[dict[str, Any]]) -> SyncCursor | None:
    """Largest (effective_ts, id) among every row read, failed rows included."""
    cursor: SyncCursor | None = None
    for row in rows:
        ts = row.get("effective_ts")
        if ts is None:
            continue
        candidate = SyncCursor(ts, int(row["id"]))
        cursor = candidate.max(cursor)
    return cursor


class LeadSyncService:
    """
    Service for syncing leads from the external lead database.

    Features:
    - Compound (timestamp, id) cursor with monotonic checkpoints
    - Bounded concurrent mapping and owner resolution
    - Chunked idempotent writes and remark sync
    - One active run per source via an expiring lease
    """

    def __init__(
        self,
        db: AsyncSession,
        source: SourceClient | None = None,
        source_type: str = settings.sync_source_type,
        concurrency: int = settings.sync_concurrency,
        auto_create_owners: bool = settings.auto_create_owners,
    ):
        self.db = db
        self.source = source or SourceClient()
        self.source_type = source_type
        self.concurrency = concurrency
        self.auto_create_owners = auto_create_owners

        self.checkpoints = CheckpointStore(db)
        self.writer = BatchWriter(db)
        self.remarks = RemarkSynchronizer(db, self.source)
        self.runs = SyncRunLog(db)
        self.state = SyncState.IDLE

    def _transition(self, state: SyncState) -> None:
        logger.debug(f"Sync {self.source_type}: {self.state.value} -> {state.value}")
        self.state = state

    async def run_daily(self, now: datetime | None = None) -> SyncReport:
        """Sync one page of leads received in yesterday's calendar day."""
        window_start, window_end = daily_window(now)
        report = SyncReport(mode=SyncMode.DAILY, from_date=window_start, to_date=window_end)
        logger.info(f"Daily sync window {window_start} -> {window_end}")

        async def start() -> SyncCursor:
            stored = await self.checkpoints.load(self.source_type, window_start)
            return stored.max(SyncCursor(window_start, None))

        return await self._run(
            report,
            start,
            limit=settings.daily_batch_size,
            until=window_end,
            single_page=True,
        )

    async def run_historic(self, from_date: datetime, batch_size: int | None = None) -> SyncReport:
        """Backfill from `from_date` until the source is exhausted."""
        report = SyncReport(mode=SyncMode.HISTORIC, from_date=from_date)

        async def start() -> SyncCursor:
            report.approx_total = await self.source.count_leads_since(from_date)
            if report.approx_total is not None:
                logger.info(f"About {report.approx_total} source leads since {from_date}")
            return SyncCursor(from_date, None)

        return await self._run(report, start, limit=batch_size or settings.historic_batch_size)

    async def run_incremental(
        self, max_seconds: float | None = None, batch_size: int | None = None
    ) -> SyncReport:
        """Resume from the checkpoint and page until caught up or out of time."""
        budget = max_seconds if max_seconds is not None else settings.incremental_max_seconds
        default_since = datetime.now(ZoneInfo(settings.sync_timezone)).replace(tzinfo=None) - timedelta(
            days=settings.initial_lookback_days
        )
        report = SyncReport(mode=SyncMode.INCREMENTAL)

        async def start() -> SyncCursor:
            cursor = await self.checkpoints.load(self.source_type, default_since)
            report.from_date = cursor.synced_at
            return cursor

        return await self._run(
            report,
            start,
            limit=batch_size or settings.daily_batch_size,
            deadline=time.monotonic() + budget,
        )

    async def _run(
        self,
        report: SyncReport,
        start: Callable[[], Awaitable[SyncCursor]],
        limit: int,
        until: datetime | None = None,
        single_page: bool = False,
        deadline: float | None = None,
    ) -> SyncReport:
        lease = SyncLeaseManager(self.db, self.source_type)
        try:
            async with lease.hold():
                actor_id = await self._preflight()
                cursor = await start()
                mapper = LeadMapper(OwnerResolver(self.db, auto_create=self.auto_create_owners))

                while True:
                    self._transition(SyncState.FETCHING_PAGE)
                    try:
                        rows = await self.source.fetch_leads(cursor, limit, until=until)
                    except SourceClientError as e:
                        raise SourceUnavailableError(str(e)) from e
                    if not rows:
                        break

                    page_started = time.monotonic()
                    page = await self._process_page(rows, actor_id, mapper)
                    report.add_page(page)
                    if page.cursor is not None:
                        cursor = page.cursor
                    self._log_page(report, page, time.monotonic() - page_started)

                    await lease.renew()
                    if single_page or len(rows) < limit:
                        break
                    if deadline is not None and time.monotonic() >= deadline:
                        logger.info(f"Time budget spent after {report.batches} pages; stopping")
                        report.stopped_early = True
                        break

        except SyncFatalError as e:
            self._transition(SyncState.FAILED_FATAL)
            logger.error(f"{report.mode.value} sync aborted: {e}", exc_info=True)
            await self._record_run(report, RunStatus.FAILED, e)
            raise
        except Exception as e:
            logger.error(f"{report.mode.value} sync failed: {e}", exc_info=True)
            await self._record_run(report, RunStatus.FAILED, e)
            raise

        self._transition(SyncState.DONE)
        await self._record_run(report, RunStatus.SUCCESS)
        logger.info(
            f"{report.mode.value} sync complete: {report.processed} processed, "
            f"{report.created} created, {report.updated} updated, "
            f"{report.unchanged} unchanged, {report.error_count} errors, "
            f"{report.remarks_synced} remarks in {report.execution_time_ms}ms"
        )
        return report

    async def _record_run(
        self, report: SyncReport, status: RunStatus, error: BaseException | None = None
    ) -> None:
        """Persist the run; a failure here is logged and never replaces the run's outcome."""
        try:
            await self.runs.record(self.source_type, report, status, error)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not record {report.mode.value} run: {e}", exc_info=True)

    async def _preflight(self) -> int:
        """Fatal checks before any page is read. Returns the system actor id."""
        if not await self.source.test_connection():
            raise SourceUnavailableError("Cannot connect to the source lead database")
        return await self._system_actor_id()

    async def _system_actor_id(self) -> int:
        """First admin account, else any account."""
        result = await self.db.execute(
            select(Account.id)
            .where(Account.role == AccountRole.ADMIN.value)
            .order_by(Account.id)
            .limit(1)
        )
        actor_id = result.scalar_one_or_none()
        if actor_id is None:
            result = await self.db.execute(select(Account.id).order_by(Account.id).limit(1))
            actor_id = result.scalar_one_or_none()
        if actor_id is None:
            raise NoSystemActorError("No account exists to attribute synced leads to")
        return actor_id

    async def _process_page(
        self, rows: list[dict[str, Any]], actor_id: int, mapper: LeadMapper
    ) -> PageResult:
        self._transition(SyncState.PROCESSING)
        refs = [str(row["id"]) for row in rows]
        existing = await fetch_snapshots(self.db, refs)

        async def process(raw: dict[str, Any]) -> PlannedWrite:
            record = await mapper.map(raw, actor_id)
            return PlannedWrite(detect_change(existing.get(record.lead_ref), record), record)

        outcome = await run_bounded(rows, process, self.concurrency, key=lambda row: row.get("id"))
        if outcome.fatal is not None:
            raise outcome.fatal

        page = PageResult(fetched=len(rows), cursor=page_cursor(rows))
        for failure in outcome.failed:
            logger.warning(f"Lead {failure.key} failed: {failure.error}")
            page.errors.append(ErrorDetail(lead_id=failure.key, error=failure.error))

        creates = [p.record for p in outcome.succeeded if p.kind is ChangeKind.CREATE]
        updates = [p.record for p in outcome.succeeded if p.kind is ChangeKind.UPDATE]
        page.unchanged = sum(1 for p in outcome.succeeded if p.kind is ChangeKind.UNCHANGED)

        self._transition(SyncState.WRITING)
        written = await self.writer.write(creates, updates)
        page.created = written.created
        page.updated = written.updated
        for failure in written.failed:
            page.errors.append(ErrorDetail(lead_id=int(failure.lead_ref), error=failure.error))

        page.remarks_synced = await self.remarks.sync(refs)

        self._transition(SyncState.COMMITTING)
        if page.cursor is not None:
            await self.checkpoints.commit(
                self.source_type, page.cursor, written.created + written.updated
            )
        return page

    def _log_page(self, report: SyncReport, page: PageResult, elapsed: float) -> None:
        rate = page.fetched / elapsed if elapsed > 0 else float(page.fetched)
        progress = f"{report.processed}"
        if report.approx_total:
            progress += f"/{report.approx_total}"
        logger.info(
            f"Batch {report.batches}: {page.fetched} rows, {page.created} created, "
            f"{page.updated} updated, {page.unchanged} unchanged, {len(page.errors)} errors "
            f"({rate:.0f} rows/s, {progress} total)"
        )
