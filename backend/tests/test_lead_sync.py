"""Tests for sync orchestration."""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select, update

from leadsync.errors import (
    NoSupervisorError,
    NoSystemActorError,
    SourceUnavailableError,
    SyncAlreadyRunningError,
)
from leadsync.models import Account, AccountRole, Lead, LeadRemark, SyncRun
from leadsync.models.source import source_lead_table
from leadsync.services.checkpoint_store import CheckpointStore, SyncCursor
from leadsync.services.lead_sync import LeadSyncService, SyncState, daily_window, page_cursor
from leadsync.services.sync_lease import SyncLeaseManager

SOURCE = "mysql_leads"
MARCH_1 = datetime(2024, 3, 1)


async def lead_count(db_session) -> int:
    return await db_session.scalar(select(func.count(Lead.id)))


class TestHelpers:
    """Tests for window and cursor helpers."""

    def test_daily_window_uses_local_calendar(self):
        # 20:00 UTC on Feb 29 is already March 1 in Kolkata
        now = datetime.fromisoformat("2024-02-29T20:00:00+00:00")

        start, end = daily_window(now, "Asia/Kolkata")

        assert start == datetime(2024, 2, 29)
        assert end == datetime(2024, 3, 1)

    def test_daily_window_naive_now(self):
        assert daily_window(datetime(2024, 3, 2, 0, 30), "Asia/Kolkata") == (
            datetime(2024, 3, 1),
            datetime(2024, 3, 2),
        )

    def test_page_cursor_includes_every_row(self):
        rows = [
            {"id": 5, "effective_ts": MARCH_1},
            {"id": 9, "effective_ts": MARCH_1},
            {"id": 2, "effective_ts": MARCH_1.replace(hour=1)},
        ]
        assert page_cursor(rows) == SyncCursor(MARCH_1.replace(hour=1), 2)
        assert page_cursor([]) is None


class TestHistoricSync:
    """End-to-end runs against SQLite source and target stores."""

    @pytest.mark.asyncio
    async def test_first_token_owner_and_checkpoint(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        """A lead for "Ravi" lands on "Ravi Kumar" and the cursor stops at (2024-03-01, 1001)."""
        ravi_id = accounts["ravi"].id
        admin_id = accounts["admin"].id
        await seed_leads([make_lead(1001, MARCH_1, BDM="Ravi")])
        service = LeadSyncService(db_session, source_client)

        report = await service.run_historic(datetime(2024, 2, 1))

        assert report.created == 1
        assert service.state is SyncState.DONE
        lead = (await db_session.execute(select(Lead))).scalar_one()
        assert lead.owner_id == ravi_id
        assert lead.created_by_id == admin_id
        assert await db_session.scalar(select(func.count(Account.id))) == 3

        checkpoint = await CheckpointStore(db_session).get(SOURCE)
        assert checkpoint.last_synced_at == MARCH_1
        assert checkpoint.last_synced_id == 1001

    @pytest.mark.asyncio
    async def test_failed_row_is_counted_not_fatal(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        """Three rows with one missing its owner: processed 3, synced 2, errors 1."""
        await seed_leads([
            make_lead(1, MARCH_1),
            make_lead(2, MARCH_1, BDM=None),
            make_lead(3, MARCH_1),
        ])

        report = await LeadSyncService(db_session, source_client).run_historic(datetime(2024, 2, 1))
        summary = report.to_summary()

        assert summary.processed == 3
        assert summary.synced == 2
        assert summary.errors == 1
        assert summary.error_details[0].lead_id == 2
        # The failed row still advances the cursor
        assert summary.last_synced_id == 3

    @pytest.mark.asyncio
    async def test_second_run_writes_nothing(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(i, MARCH_1) for i in range(1, 4)])
        service = LeadSyncService(db_session, source_client)

        await service.run_historic(datetime(2024, 2, 1))
        second = await service.run_historic(datetime(2024, 2, 1))

        assert second.processed == 3
        assert second.created == 0
        assert second.updated == 0
        assert second.unchanged == 3
        assert await lead_count(db_session) == 3

    @pytest.mark.asyncio
    async def test_significant_change_is_updated(
        self, db_session, source_client, source_engine, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(1, MARCH_1), make_lead(2, MARCH_1)])
        service = LeadSyncService(db_session, source_client)
        await service.run_historic(datetime(2024, 2, 1))

        async with source_engine.begin() as conn:
            await conn.execute(
                update(source_lead_table).where(source_lead_table.c.id == 2).values(Status="4")
            )
        report = await service.run_historic(datetime(2024, 2, 1))

        assert report.updated == 1
        assert report.unchanged == 1
        status = await db_session.scalar(select(Lead.status).where(Lead.lead_ref == "2"))
        assert status == "DNP-1"

    @pytest.mark.asyncio
    async def test_pages_until_short_page(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(i, MARCH_1.replace(hour=i)) for i in range(1, 6)])

        report = await LeadSyncService(db_session, source_client).run_historic(
            datetime(2024, 2, 1), batch_size=2
        )

        assert report.batches == 3
        assert report.processed == 5
        assert report.created == 5
        assert report.cursor == SyncCursor(MARCH_1.replace(hour=5), 5)

    @pytest.mark.asyncio
    async def test_overlapping_backfill_keeps_checkpoint(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(1, MARCH_1)])
        store = CheckpointStore(db_session)
        await store.commit(SOURCE, SyncCursor(datetime(2024, 6, 1), 9000), records_delta=0)

        await LeadSyncService(db_session, source_client).run_historic(datetime(2024, 2, 1))

        checkpoint = await store.get(SOURCE)
        assert checkpoint.last_synced_at == datetime(2024, 6, 1)
        assert checkpoint.last_synced_id == 9000

    @pytest.mark.asyncio
    async def test_remarks_synced_with_leads(
        self, db_session, source_client, accounts, seed_leads, seed_remarks, make_lead
    ):
        await seed_leads([make_lead(1001, MARCH_1)])
        await seed_remarks([
            {"id": 1, "RefId": 1001, "Remarks": "Called twice", "UpdateDate": MARCH_1.replace(hour=9)},
        ])
        service = LeadSyncService(db_session, source_client)

        first = await service.run_historic(datetime(2024, 2, 1))
        second = await service.run_historic(datetime(2024, 2, 1))

        assert first.remarks_synced == 1
        assert second.remarks_synced == 0
        assert await db_session.scalar(select(func.count(LeadRemark.id))) == 1

    @pytest.mark.asyncio
    async def test_unknown_owners_created_once(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        """100 rows for one unknown owner create a single account."""
        await seed_leads([make_lead(i, MARCH_1, BDM="Kavya Menon") for i in range(1, 101)])

        report = await LeadSyncService(db_session, source_client).run_historic(datetime(2024, 2, 1))

        assert report.created == 100
        owners = await db_session.scalar(
            select(func.count(Account.id)).where(Account.name == "Kavya Menon")
        )
        assert owners == 1


class TestDailySync:
    """Tests for the daily window run."""

    @pytest.mark.asyncio
    async def test_only_yesterday_is_synced(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([
            make_lead(1, datetime(2024, 2, 29, 23, 0)),
            make_lead(2, datetime(2024, 3, 1, 10, 0)),
            make_lead(3, datetime(2024, 3, 2, 1, 0)),
        ])

        report = await LeadSyncService(db_session, source_client).run_daily(
            now=datetime(2024, 3, 2, 0, 30)
        )
        summary = report.to_summary()

        assert summary.processed == 1
        assert summary.synced == 1
        assert summary.from_date == datetime(2024, 3, 1)
        assert summary.to_date == datetime(2024, 3, 2)
        assert summary.last_synced_id == 2

    @pytest.mark.asyncio
    async def test_starts_after_stored_cursor(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([
            make_lead(1, datetime(2024, 3, 1, 8, 0)),
            make_lead(2, datetime(2024, 3, 1, 12, 0)),
        ])
        await CheckpointStore(db_session).commit(
            SOURCE, SyncCursor(datetime(2024, 3, 1, 9, 0), 50), records_delta=0
        )

        report = await LeadSyncService(db_session, source_client).run_daily(
            now=datetime(2024, 3, 2, 0, 30)
        )

        assert report.processed == 1
        assert report.cursor == SyncCursor(datetime(2024, 3, 1, 12, 0), 2)

    @pytest.mark.asyncio
    async def test_no_rows_succeeds(self, db_session, source_client, accounts):
        report = await LeadSyncService(db_session, source_client).run_daily(
            now=datetime(2024, 3, 2, 0, 30)
        )
        summary = report.to_summary()

        assert summary.processed == 0
        assert summary.synced == 0
        assert summary.message == "No new leads to sync"


class TestIncrementalSync:
    """Tests for the checkpoint-driven run."""

    @pytest.mark.asyncio
    async def test_resumes_from_checkpoint(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(i, MARCH_1.replace(hour=i)) for i in range(1, 4)])
        await CheckpointStore(db_session).commit(
            SOURCE, SyncCursor(MARCH_1.replace(hour=1), 1), records_delta=0
        )

        report = await LeadSyncService(db_session, source_client).run_incremental(batch_size=10)

        assert report.processed == 2
        assert report.from_date == MARCH_1.replace(hour=1)

    @pytest.mark.asyncio
    async def test_stops_when_time_budget_spent(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(i, MARCH_1.replace(hour=i)) for i in range(1, 6)])
        await CheckpointStore(db_session).commit(SOURCE, SyncCursor(datetime(2024, 2, 1)), records_delta=0)

        report = await LeadSyncService(db_session, source_client).run_incremental(
            max_seconds=0, batch_size=2
        )

        assert report.batches == 1
        assert report.stopped_early is True


class TestFatalConditions:
    """Fatal conditions abort before any write."""

    @pytest.mark.asyncio
    async def test_source_unavailable(self, db_session, source_client, accounts):
        source_client.test_connection = AsyncMock(return_value=False)
        service = LeadSyncService(db_session, source_client)

        with pytest.raises(SourceUnavailableError):
            await service.run_daily()

        assert service.state is SyncState.FAILED_FATAL

    @pytest.mark.asyncio
    async def test_no_system_actor(self, db_session, source_client, seed_leads, make_lead):
        await seed_leads([make_lead(1, MARCH_1)])

        with pytest.raises(NoSystemActorError):
            await LeadSyncService(db_session, source_client).run_historic(datetime(2024, 2, 1))

        assert await lead_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_no_supervisor_aborts_page(self, db_session, source_client, seed_leads, make_lead):
        db_session.add(
            Account(name="Admin", email="admin@mediend.local", password_hash="x", role=AccountRole.ADMIN.value)
        )
        await db_session.commit()
        await seed_leads([make_lead(1, MARCH_1, BDM="Unknown Person")])

        with pytest.raises(NoSupervisorError):
            await LeadSyncService(db_session, source_client).run_historic(datetime(2024, 2, 1))

        assert await lead_count(db_session) == 0
        assert await CheckpointStore(db_session).get(SOURCE) is None

    @pytest.mark.asyncio
    async def test_lease_held_elsewhere(self, db_session, source_client, accounts):
        await SyncLeaseManager(db_session, SOURCE, holder="other-process").acquire()

        with pytest.raises(SyncAlreadyRunningError):
            await LeadSyncService(db_session, source_client).run_daily()

    @pytest.mark.asyncio
    async def test_lost_lease_stops_after_current_page(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        """Once another run owns the lease, no further pages are written."""
        await seed_leads([make_lead(i, MARCH_1.replace(hour=i)) for i in range(1, 6)])
        lost = AsyncMock(side_effect=SyncAlreadyRunningError("taken over"))

        with patch.object(SyncLeaseManager, "renew", lost), pytest.raises(SyncAlreadyRunningError):
            await LeadSyncService(db_session, source_client).run_historic(
                datetime(2024, 2, 1), batch_size=2
            )

        assert await lead_count(db_session) == 2
        checkpoint = await CheckpointStore(db_session).get(SOURCE)
        assert checkpoint.last_synced_id == 2


class TestRunLog:
    """Every run leaves a sync_runs row."""

    @pytest.mark.asyncio
    async def test_successful_run_recorded(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(1, MARCH_1), make_lead(2, MARCH_1, BDM=None)])

        await LeadSyncService(db_session, source_client).run_historic(datetime(2024, 2, 1))

        run = (await db_session.execute(select(SyncRun))).scalar_one()
        assert run.source_type == SOURCE
        assert run.mode == "historic"
        assert run.status == "success"
        assert run.processed == 2
        assert run.created == 1
        assert run.error_count == 1
        assert run.last_synced_id == 2
        assert run.error is None
        assert run.message == "Synced 1 new and 0 updated leads from 2 rows"

    @pytest.mark.asyncio
    async def test_fatal_run_recorded(self, db_session, source_client, accounts):
        source_client.test_connection = AsyncMock(return_value=False)

        with pytest.raises(SourceUnavailableError):
            await LeadSyncService(db_session, source_client).run_daily()

        run = (await db_session.execute(select(SyncRun))).scalar_one()
        assert run.mode == "daily"
        assert run.status == "failed"
        assert run.processed == 0
        assert "Cannot connect" in run.error
        assert run.message == "daily sync aborted: SourceUnavailableError"

    @pytest.mark.asyncio
    async def test_unexpected_error_recorded_and_raised(
        self, db_session, source_client, accounts, seed_leads, make_lead
    ):
        await seed_leads([make_lead(1, MARCH_1)])
        service = LeadSyncService(db_session, source_client)
        service.remarks.sync = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await service.run_historic(datetime(2024, 2, 1))

        run = (await db_session.execute(select(SyncRun))).scalar_one()
        assert run.status == "failed"
        assert run.error == "boom"
