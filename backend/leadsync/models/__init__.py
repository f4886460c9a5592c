"""Database models."""

from leadsync.models.account import Account, AccountRole, Team
from leadsync.models.lead import Lead
from leadsync.models.lead_remark import LeadRemark
from leadsync.models.sync_checkpoint import SyncCheckpoint
from leadsync.models.sync_lease import SyncLease
from leadsync.models.sync_run import SyncRun

__all__ = [
    "Account",
    "AccountRole",
    "Lead",
    "LeadRemark",
    "SyncCheckpoint",
    "SyncLease",
    "SyncRun",
    "Team",
]
