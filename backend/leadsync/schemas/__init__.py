"""Pydantic schemas for source rows, canonical leads and API responses."""

from leadsync.schemas.lead import CanonicalLead
from leadsync.schemas.source import SourceLeadRow, SourceRemarkRow
from leadsync.schemas.sync import CheckpointOut, ErrorDetail, SyncRunOut, SyncSummary

__all__ = [
    "CanonicalLead",
    "CheckpointOut",
    "ErrorDetail",
    "SourceLeadRow",
    "SourceRemarkRow",
    "SyncRunOut",
    "SyncSummary",
]
