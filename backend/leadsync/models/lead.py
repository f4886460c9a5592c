"""Lead model: canonical copy of a lead from the external lead system."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from leadsync.database import Base


class Lead(Base):
    """
    Lead synced from the source `lead` table.

    lead_ref is the source row id and the only join key between the two
    systems. Rows are created once and afterwards only updated.
    """

    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(primary_key=True)
    lead_ref: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    # Ownership
    owner_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False, index=True)
    circle: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    team_lead_id: Mapped[int | None] = mapped_column(Integer)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    sub_status: Mapped[int | None] = mapped_column(Integer)
    pipeline_stage: Mapped[str] = mapped_column(String(30), nullable=False)

    # Patient
    patient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    sex: Mapped[str] = mapped_column(String(30), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)
    alternate_number: Mapped[str | None] = mapped_column(String(30))
    whatsapp: Mapped[str | None] = mapped_column(String(30))
    patient_email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    profession: Mapped[str | None] = mapped_column(String(100))
    attendant_name: Mapped[str | None] = mapped_column(String(255))
    attendant_contact_no: Mapped[str | None] = mapped_column(String(30))

    # Treatment
    category: Mapped[str | None] = mapped_column(String(100))
    treatment: Mapped[str | None] = mapped_column(String(255))
    disease_details: Mapped[str | None] = mapped_column(Text)
    hospital_name: Mapped[str] = mapped_column(String(255), nullable=False)
    opd_hospital: Mapped[str | None] = mapped_column(String(255))
    opd_dr_name: Mapped[str | None] = mapped_column(String(255))
    opd_contact_no: Mapped[str | None] = mapped_column(String(30))
    opd_charges: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    opd_schedule_date: Mapped[datetime | None] = mapped_column(DateTime)
    ipd_admission_date: Mapped[datetime | None] = mapped_column(DateTime)
    ipd_hospital: Mapped[str | None] = mapped_column(String(255))
    ipd_dr_name: Mapped[str | None] = mapped_column(String(255))
    ipd_contact_no: Mapped[str | None] = mapped_column(String(30))
    ipd_total_payment: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    ipd_details: Mapped[str | None] = mapped_column(Text)
    surgery_date: Mapped[datetime | None] = mapped_column(DateTime)
    mode_of_payment: Mapped[str | None] = mapped_column(String(50))
    follow_up_date: Mapped[datetime | None] = mapped_column(DateTime)

    # Acquisition
    source: Mapped[str | None] = mapped_column(String(100))
    lead_source: Mapped[int | None] = mapped_column(Integer)
    month: Mapped[str | None] = mapped_column(String(20))
    website: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    ref_id: Mapped[str | None] = mapped_column(String(100))
    dupl_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ad_id: Mapped[str | None] = mapped_column(String(100))
    campaign_id: Mapped[str | None] = mapped_column(String(100))
    form_id: Mapped[str | None] = mapped_column(String(100))
    remarks: Mapped[str | None] = mapped_column(Text)

    # Notifications already sent by the source system
    notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sms_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    whatsapp_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Source timestamps (source wall-clock, no zone)
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    lead_entry_date: Mapped[datetime | None] = mapped_column(DateTime)
    updated_date: Mapped[datetime | None] = mapped_column(DateTime)

    # Audit
    created_by_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    updated_by_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_leads_created_date", created_date.desc(), id.desc()),)

    def __repr__(self) -> str:
        return f"<Lead {self.lead_ref}: {self.status}>"
