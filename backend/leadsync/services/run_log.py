"""Persisted history of sync runs."""

import enum
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.models import SyncRun

if TYPE_CHECKING:
    from leadsync.services.lead_sync import SyncReport

logger = logging.getLogger(__name__)

run_table = SyncRun.__table__

MESSAGE_MAX_LENGTH = 255


class RunStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


class SyncRunLog:
    """Writes one sync_runs row per invocation and reads recent ones back."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        source_type: str,
        report: "SyncReport",
        status: RunStatus,
        error: BaseException | None = None,
    ) -> int:
        """Insert and commit a run row. Returns its id."""
        if error is None:
            message = report.to_summary().message
        else:
            message = f"{report.mode.value} sync aborted: {type(error).__name__}"

        result = await self.db.execute(
            insert(run_table)
            .values(
                source_type=source_type,
                mode=report.mode.value,
                status=status.value,
                duration_ms=report.execution_time_ms,
                processed=report.processed,
                created=report.created,
                updated=report.updated,
                error_count=report.error_count,
                remarks_synced=report.remarks_synced,
                last_synced_at=report.cursor.synced_at if report.cursor else None,
                last_synced_id=report.cursor.synced_id if report.cursor else None,
                message=(message or "")[:MESSAGE_MAX_LENGTH] or None,
                error=str(error) if error is not None else None,
            )
            .returning(run_table.c.id)
        )
        run_id = result.scalar_one()
        await self.db.commit()
        logger.debug(f"Recorded {status.value} {report.mode.value} run {run_id}")
        return run_id

    async def recent(self, source_type: str, limit: int = 20) -> Sequence[SyncRun]:
        """Latest runs first."""
        result = await self.db.execute(
            select(SyncRun)
            .where(SyncRun.source_type == source_type)
            .order_by(SyncRun.id.desc())
            .limit(limit)
        )
        return result.scalars().all()
