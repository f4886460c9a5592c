"""LeadRemark model: append-only remark history copied from the source."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from leadsync.database import Base


class LeadRemark(Base):
    """
    Free-text remark attached to a lead by its natural key.

    Joined on lead_ref rather than a foreign key: remarks may arrive before
    the lead row they belong to. dedup_key is the SHA-256 of
    (lead_ref, update_date, remarks) and makes inserts idempotent.
    """

    __tablename__ = "lead_remarks"

    id: Mapped[int] = mapped_column(primary_key=True)
    lead_ref: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    remarks: Mapped[str] = mapped_column(Text, nullable=False)
    update_by: Mapped[int | None] = mapped_column(Integer)
    update_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64))
    lead_status: Mapped[int | None] = mapped_column(Integer)
    dedup_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<LeadRemark {self.lead_ref}@{self.update_date}>"
