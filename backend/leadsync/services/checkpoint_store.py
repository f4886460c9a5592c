"""Durable (timestamp, id) sync cursor per source type."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.models import SyncCheckpoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncCursor:
    """
    Position in the source ordered by (effective timestamp, id).

    synced_id None sorts before every real id, so a fresh cursor at T still
    picks up rows stamped exactly T.
    """

    synced_at: datetime
    synced_id: int | None = None

    def key(self) -> tuple[datetime, int]:
        return self.synced_at, self.synced_id if self.synced_id is not None else -1

    def max(self, other: "SyncCursor | None") -> "SyncCursor":
        if other is None or self.key() >= other.key():
            return self
        return other


class CheckpointStore:
    """Reads and advances SyncCheckpoint rows. Cursors never move backwards."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, source_type: str) -> SyncCheckpoint | None:
        """Get the stored checkpoint row, if any."""
        result = await self.db.execute(
            select(SyncCheckpoint)
            .where(SyncCheckpoint.source_type == source_type)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def load(self, source_type: str, default_since: datetime) -> SyncCursor:
        """
        Get the cursor for a source, creating the checkpoint on first run.

        Args:
            source_type: Checkpoint key
            default_since: Starting point when no checkpoint exists yet
        """
        checkpoint = await self.get(source_type)
        if checkpoint is None:
            logger.info(f"No checkpoint for {source_type}; seeding at {default_since}")
            checkpoint = SyncCheckpoint(
                source_type=source_type,
                last_synced_at=default_since,
                last_synced_id=None,
                records_count=0,
            )
            self.db.add(checkpoint)
            await self.db.commit()

        return SyncCursor(checkpoint.last_synced_at, checkpoint.last_synced_id)

    async def commit(
        self, source_type: str, cursor: SyncCursor, records_delta: int
    ) -> SyncCursor:
        """
        Advance the checkpoint after a page's writes succeeded.

        A cursor behind the stored one (an overlapping backfill) leaves the
        stored cursor in place but still counts the records and the run.

        Returns:
            The cursor now stored
        """
        checkpoint = await self.get(source_type)
        if checkpoint is None:
            self.db.add(
                SyncCheckpoint(
                    source_type=source_type,
                    last_synced_at=cursor.synced_at,
                    last_synced_id=cursor.synced_id,
                    records_count=records_delta,
                )
            )
            await self.db.commit()
            return cursor

        stored = SyncCursor(checkpoint.last_synced_at, checkpoint.last_synced_id)
        advanced = cursor.max(stored)
        if advanced is stored and cursor != stored:
            logger.info(
                f"Checkpoint {source_type} already at {stored}; not moving back to {cursor}"
            )

        await self.db.execute(
            update(SyncCheckpoint)
            .where(SyncCheckpoint.source_type == source_type)
            .values(
                last_synced_at=advanced.synced_at,
                last_synced_id=advanced.synced_id,
                records_count=SyncCheckpoint.records_count + records_delta,
                last_run_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return advanced

    async def reset(self, source_type: str) -> bool:
        """Delete a checkpoint so the next run starts from its default. Operator use only."""
        result = await self.db.execute(
            delete(SyncCheckpoint).where(SyncCheckpoint.source_type == source_type)
        )
        await self.db.commit()
        return result.rowcount > 0
