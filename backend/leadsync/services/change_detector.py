"""Classify mapped leads as create, update or unchanged against the target store."""

import enum
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.models import Lead
from leadsync.schemas.lead import CanonicalLead

logger = logging.getLogger(__name__)
settings = get_settings()

# Bump the version whenever the field list changes so that anyone comparing
# sync statistics across releases knows "unchanged" meant something else.
SIGNIFICANT_FIELDS_VERSION = 1
SIGNIFICANT_FIELDS = ("patient_name", "status", "owner_id", "updated_date")


class ChangeKind(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class LeadSnapshot:
    """The significant fields of a stored lead, keyed by column name."""

    lead_ref: str
    values: Mapping[str, Any]


def _to_second(value: datetime) -> datetime:
    return value.replace(microsecond=0, tzinfo=None)


def _field_changed(stored: Any, incoming: Any) -> bool:
    if isinstance(incoming, datetime) or isinstance(stored, datetime):
        # A missing new timestamp never counts; a new one against none stored does
        if incoming is None:
            return False
        if stored is None:
            return True
        return _to_second(stored) != _to_second(incoming)
    return stored != incoming


def detect_change(existing: LeadSnapshot | None, record: CanonicalLead) -> ChangeKind:
    """
    Decide what to do with a mapped lead.

    Only SIGNIFICANT_FIELDS count. Timestamps compare at second precision;
    a new timestamp against a missing stored one is a change, a missing new
    timestamp never is.
    """
    if existing is None:
        return ChangeKind.CREATE

    for name in SIGNIFICANT_FIELDS:
        if _field_changed(existing.values.get(name), getattr(record, name)):
            return ChangeKind.UPDATE
    return ChangeKind.UNCHANGED


async def fetch_snapshots(
    db: AsyncSession,
    lead_refs: Sequence[str],
    chunk_size: int = settings.existing_lookup_chunk_size,
) -> dict[str, LeadSnapshot]:
    """Load stored snapshots for the given refs, querying in chunks."""
    snapshots: dict[str, LeadSnapshot] = {}
    refs = list(dict.fromkeys(lead_refs))
    columns = [getattr(Lead, name) for name in SIGNIFICANT_FIELDS]

    for i in range(0, len(refs), chunk_size):
        chunk = refs[i:i + chunk_size]
        result = await db.execute(
            select(Lead.lead_ref, *columns).where(Lead.lead_ref.in_(chunk))
        )
        for row in result.mappings():
            snapshots[row["lead_ref"]] = LeadSnapshot(
                lead_ref=row["lead_ref"],
                values={name: row[name] for name in SIGNIFICANT_FIELDS},
            )

    logger.debug(f"Found {len(snapshots)} of {len(refs)} leads already stored")
    return snapshots
