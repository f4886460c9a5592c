"""SyncLease model: at most one active run per sync source."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from leadsync.database import Base


class SyncLease(Base):
    """Expiring lock row held by the process currently syncing a source."""

    __tablename__ = "sync_leases"

    source_type: Mapped[str] = mapped_column(String(50), primary_key=True)
    holder: Mapped[str] = mapped_column(String(100), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<SyncLease {self.source_type}: {self.holder} until {self.expires_at}>"
