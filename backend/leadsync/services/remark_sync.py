"""Copy remark history for synced leads, deduplicated by natural key."""

import hashlib
import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.database import dialect_insert
from leadsync.models import LeadRemark
from leadsync.schemas.source import SourceRemarkRow
from leadsync.services.source_client import SourceClient

logger = logging.getLogger(__name__)
settings = get_settings()


def remark_dedup_key(lead_ref: str, update_date: datetime, remarks: str) -> str:
    """SHA-256 of the natural key (lead_ref, update_date, remarks)."""
    natural_key = f"{lead_ref}|{update_date.replace(microsecond=0).isoformat()}|{remarks}"
    return hashlib.sha256(natural_key.encode("utf-8")).hexdigest()


class RemarkSynchronizer:
    """
    Secondary sync of the source `lead_remarks` table.

    Remark failures are logged and never fail the lead sync that
    triggered them.
    """

    def __init__(
        self,
        db: AsyncSession,
        source: SourceClient,
        lookup_chunk_size: int = settings.remark_lookup_chunk_size,
        insert_chunk_size: int = settings.remark_insert_chunk_size,
    ):
        self.db = db
        self.source = source
        self.lookup_chunk_size = lookup_chunk_size
        self.insert_chunk_size = insert_chunk_size

    async def sync(self, lead_refs: Iterable[str]) -> int:
        """
        Insert remarks not yet stored for the given leads.

        Returns:
            Number of remarks inserted; 0 when anything went wrong
        """
        try:
            return await self._sync(lead_refs)
        except Exception as e:
            logger.error(f"Remark sync failed: {e}", exc_info=True)
            await self.db.rollback()
            return 0

    async def _sync(self, lead_refs: Iterable[str]) -> int:
        lead_ids = sorted({int(ref) for ref in lead_refs if str(ref).isdigit()})
        if not lead_ids:
            return 0

        rows = await self.source.fetch_remarks(lead_ids)
        candidates = self._candidates(rows)
        if not candidates:
            return 0

        existing = await self._existing_keys(list(candidates))
        new_rows = [values for key, values in candidates.items() if key not in existing]
        if not new_rows:
            logger.debug(f"All {len(candidates)} remarks already stored")
            return 0

        table = LeadRemark.__table__
        inserted = 0
        for i in range(0, len(new_rows), self.insert_chunk_size):
            chunk = new_rows[i:i + self.insert_chunk_size]
            stmt = (
                dialect_insert(self.db, table)
                .on_conflict_do_nothing(index_elements=["dedup_key"])
                .returning(table.c.id)
            )
            result = await self.db.execute(stmt, chunk)
            inserted += len(result.all())
            await self.db.commit()

        logger.info(f"Synced {inserted} new remarks for {len(lead_ids)} leads")
        return inserted

    def _candidates(self, rows: list[SourceRemarkRow]) -> dict[str, dict]:
        """Insert values keyed by dedup key; rows without text or date are skipped."""
        candidates: dict[str, dict] = {}
        skipped = 0
        for row in rows:
            if not row.remarks or row.update_date is None:
                skipped += 1
                continue
            lead_ref = str(row.ref_id)
            key = remark_dedup_key(lead_ref, row.update_date, row.remarks)
            candidates.setdefault(
                key,
                {
                    "lead_ref": lead_ref,
                    "remarks": row.remarks,
                    "update_by": row.update_by,
                    "update_date": row.update_date,
                    "ip": row.ip,
                    "lead_status": row.lead_status,
                    "dedup_key": key,
                },
            )
        if skipped:
            logger.debug(f"Skipped {skipped} remarks without text or date")
        return candidates

    async def _existing_keys(self, keys: list[str]) -> set[str]:
        existing: set[str] = set()
        for i in range(0, len(keys), self.lookup_chunk_size):
            chunk = keys[i:i + self.lookup_chunk_size]
            result = await self.db.execute(
                select(LeadRemark.dedup_key).where(LeadRemark.dedup_key.in_(chunk))
            )
            existing.update(result.scalars().all())
        return existing
