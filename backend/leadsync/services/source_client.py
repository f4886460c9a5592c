"""Read-only client for the external lead database with retry logic."""

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy import and_, func, or_, select, text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from leadsync.config import get_settings
from leadsync.database import get_source_engine
from leadsync.models.source import (
    effective_timestamp,
    source_lead_table,
    source_remarks_table,
)
from leadsync.schemas.source import SourceRemarkRow
from leadsync.services.checkpoint_store import SyncCursor

logger = logging.getLogger(__name__)
settings = get_settings()

# Keeps IN (...) lists well below driver parameter limits
REMARK_QUERY_CHUNK = 1000


class SourceClientError(Exception):
    """Base exception for source database errors."""

    pass


class SourceClient:
    """
    Client for the source `lead` and `lead_remarks` tables.

    Features:
    - Compound (timestamp, id) cursor paging with no gaps or repeats
    - Exponential backoff retry on connection errors
    - Remark lookup by lead id
    """

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        max_retries: int = settings.source_max_retries,
        retry_base_delay: float = 1.0,
    ):
        self._engine = engine
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = get_source_engine()
        return self._engine

    async def _execute_with_retry(self, stmt: Any) -> list[dict[str, Any]]:
        """Run a query with exponential backoff retry on connection errors."""
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with self.engine.connect() as conn:
                    result = await conn.execute(stmt)
                    return [dict(row) for row in result.mappings().all()]

            except (OperationalError, OSError) as e:
                last_error = e
                wait_time = self.retry_base_delay * 2**attempt
                logger.warning(f"Source connection error: {e}, retry in {wait_time}s")
                await asyncio.sleep(wait_time)

            except DBAPIError as e:
                if not e.connection_invalidated:
                    raise SourceClientError(f"Query failed: {e}") from e
                last_error = e
                wait_time = self.retry_base_delay * 2**attempt
                logger.warning(f"Source connection dropped, retry in {wait_time}s")
                await asyncio.sleep(wait_time)

            except SQLAlchemyError as e:
                raise SourceClientError(f"Query failed: {e}") from e

        raise SourceClientError(f"Failed after {self.max_retries} retries: {last_error}")

    async def test_connection(self) -> bool:
        """Check that the source answers a trivial query."""
        try:
            await self._execute_with_retry(text("SELECT 1 AS ok"))
            return True
        except SourceClientError as e:
            logger.error(f"Source connection test failed: {e}")
            return False

    async def fetch_leads(
        self,
        cursor: SyncCursor,
        limit: int,
        until: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch the next page of leads after a cursor.

        Rows are ordered by (effective_ts, id) and filtered with
        effective_ts > T OR (effective_ts = T AND id > I), so a page boundary
        inside a run of equal timestamps is neither skipped nor re-read.

        Args:
            cursor: Last (timestamp, id) already synced
            limit: Maximum rows per page
            until: Optional exclusive upper bound on effective_ts

        Returns:
            Raw row mappings, each with an extra `effective_ts` key
        """
        after_id = cursor.synced_id if cursor.synced_id is not None else -1
        stmt = select(source_lead_table, effective_timestamp.label("effective_ts")).where(
            or_(
                effective_timestamp > cursor.synced_at,
                and_(
                    effective_timestamp == cursor.synced_at,
                    source_lead_table.c.id > after_id,
                ),
            )
        )
        if until is not None:
            stmt = stmt.where(effective_timestamp < until)
        stmt = stmt.order_by(effective_timestamp.asc(), source_lead_table.c.id.asc()).limit(limit)

        logger.info(f"Fetching leads: after={cursor.synced_at}/{cursor.synced_id}, limit={limit}")
        rows = await self._execute_with_retry(stmt)
        logger.info(f"Fetched {len(rows)} lead rows")
        return rows

    async def count_leads_since(self, since: datetime) -> int | None:
        """Approximate number of leads at or after a date, for progress logging."""
        stmt = (
            select(func.count())
            .select_from(source_lead_table)
            .where(effective_timestamp >= since)
        )
        try:
            rows = await self._execute_with_retry(stmt)
        except SourceClientError as e:
            logger.warning(f"Could not count source leads: {e}")
            return None
        if not rows:
            return None
        return int(next(iter(rows[0].values())))

    async def fetch_remarks(self, lead_ids: Sequence[int]) -> list[SourceRemarkRow]:
        """Fetch remark rows for the given source lead ids, oldest first."""
        remarks: list[SourceRemarkRow] = []
        ids = sorted(set(lead_ids))

        for i in range(0, len(ids), REMARK_QUERY_CHUNK):
            chunk = ids[i:i + REMARK_QUERY_CHUNK]
            stmt = (
                select(source_remarks_table)
                .where(source_remarks_table.c.RefId.in_(chunk))
                .order_by(source_remarks_table.c.UpdateDate.asc(), source_remarks_table.c.id.asc())
            )
            for row in await self._execute_with_retry(stmt):
                try:
                    remarks.append(SourceRemarkRow.model_validate(row))
                except ValidationError as e:
                    logger.warning(f"Skipping malformed remark row {row.get('id')}: {e}")

        logger.info(f"Fetched {len(remarks)} remark rows for {len(ids)} leads")
        return remarks

    async def close(self) -> None:
        """Release pooled source connections."""
        if self._engine is not None:
            await self._engine.dispose()
