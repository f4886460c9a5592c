"""Chunked, idempotent writes of canonical leads to the target store."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.database import dialect_insert
from leadsync.models import Lead
from leadsync.schemas.lead import CanonicalLead

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class WriteFailure:
    lead_ref: str
    error: str


@dataclass
class WriteResult:
    created: int = 0
    updated: int = 0
    skipped_existing: int = 0
    failed: list[WriteFailure] = field(default_factory=list)


class BatchWriter:
    """
    Writes leads in chunks, committing after each chunk.

    Creates skip rows whose lead_ref already exists, so re-running a page
    never duplicates. A failing chunk, create or update, is retried one row at a time
    and only the offending rows are reported.
    """

    def __init__(
        self,
        db: AsyncSession,
        create_chunk_size: int = settings.create_chunk_size,
        update_chunk_size: int = settings.update_chunk_size,
    ):
        self.db = db
        self.create_chunk_size = create_chunk_size
        self.update_chunk_size = update_chunk_size

    async def write(
        self, creates: Sequence[CanonicalLead], updates: Sequence[CanonicalLead]
    ) -> WriteResult:
        result = WriteResult()
        await self.write_creates(creates, result)
        await self.write_updates(updates, result)
        return result

    async def write_creates(
        self, records: Sequence[CanonicalLead], result: WriteResult | None = None
    ) -> WriteResult:
        result = result or WriteResult()

        for i in range(0, len(records), self.create_chunk_size):
            chunk = records[i:i + self.create_chunk_size]
            try:
                count = await self._insert(chunk)
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.warning(f"Create chunk of {len(chunk)} failed ({e}); retrying row by row")
                await self._create_individually(chunk, result)
                continue

            result.created += count
            result.skipped_existing += len(chunk) - count
            logger.info(f"Created {count} leads ({len(chunk) - count} already present)")

        return result

    async def _create_individually(
        self, chunk: Sequence[CanonicalLead], result: WriteResult
    ) -> None:
        for record in chunk:
            try:
                count = await self._insert([record])
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to create lead {record.lead_ref}: {e}")
                result.failed.append(WriteFailure(lead_ref=record.lead_ref, error=str(e)))
                continue
            result.created += count
            result.skipped_existing += 1 - count

    async def _insert(self, records: Sequence[CanonicalLead]) -> int:
        """Insert rows, skipping existing lead_refs. Returns the number inserted."""
        table = Lead.__table__
        stmt = (
            dialect_insert(self.db, table)
            .on_conflict_do_nothing(index_elements=["lead_ref"])
            .returning(table.c.lead_ref)
        )
        inserted = await self.db.execute(stmt, [r.insert_values() for r in records])
        return len(inserted.all())

    async def write_updates(
        self, records: Sequence[CanonicalLead], result: WriteResult | None = None
    ) -> WriteResult:
        result = result or WriteResult()

        for i in range(0, len(records), self.update_chunk_size):
            chunk = records[i:i + self.update_chunk_size]
            try:
                for record in chunk:
                    await self._update_one(record)
                await self.db.commit()
                result.updated += len(chunk)
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.warning(f"Update chunk of {len(chunk)} failed ({e}); retrying row by row")
                await self._update_individually(chunk, result)

        if records:
            logger.info(f"Updated {result.updated} leads")
        return result

    async def _update_individually(
        self, chunk: Sequence[CanonicalLead], result: WriteResult
    ) -> None:
        for record in chunk:
            try:
                await self._update_one(record)
                await self.db.commit()
                result.updated += 1
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to update lead {record.lead_ref}: {e}")
                result.failed.append(WriteFailure(lead_ref=record.lead_ref, error=str(e)))

    async def _update_one(self, record: CanonicalLead) -> None:
        table = Lead.__table__
        await self.db.execute(
            update(table)
            .where(table.c.lead_ref == record.lead_ref)
            .values(**record.update_values())
        )
