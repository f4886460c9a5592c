"""SyncRun model: one row per sync invocation, successful or not."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from leadsync.database import Base


class SyncRun(Base):
    """Durable record of a sync run for operators and the run history endpoint."""

    __tablename__ = "sync_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    source_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # daily / historic / incremental
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    # success / failed
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    remarks_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_synced_id: Mapped[int | None] = mapped_column(BigInteger)
    message: Mapped[str | None] = mapped_column(String(255))
    error: Mapped[str | None] = mapped_column(Text)

    finished_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<SyncRun {self.id} {self.mode} {self.status}>"
