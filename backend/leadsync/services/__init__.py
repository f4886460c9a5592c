"""Services for lead synchronization."""

from leadsync.services.lead_sync import LeadSyncService, SyncReport
from leadsync.services.source_client import SourceClient, SourceClientError

__all__ = ["LeadSyncService", "SourceClient", "SourceClientError", "SyncReport"]
