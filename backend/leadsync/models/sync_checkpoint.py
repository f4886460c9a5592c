"""SyncCheckpoint model to track incremental sync progress."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from leadsync.database import Base


class SyncCheckpoint(Base):
    """
    Tracks the compound (timestamp, id) cursor for each sync source.

    The cursor only moves forward, and only after a page's writes succeed.
    """

    __tablename__ = "sync_checkpoints"

    # e.g. 'mysql_leads'
    source_type: Mapped[str] = mapped_column(String(50), primary_key=True)
    # Source wall-clock time, stored without a zone like the source does
    last_synced_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_synced_id: Mapped[int | None] = mapped_column(BigInteger)
    records_count: Mapped[int] = mapped_column(Integer, server_default="0", nullable=False)
    last_run_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<SyncCheckpoint {self.source_type}: {self.last_synced_at}/{self.last_synced_id}>"
