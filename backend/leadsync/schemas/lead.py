"""Canonical lead record produced by the mapper and written by the batch writer."""

from datetime import datetime

from pydantic import BaseModel


class CanonicalLead(BaseModel):
    """Target-store shape of a source lead. Field names match the leads table."""

    lead_ref: str
    owner_id: int
    circle: str
    team_lead_id: int | None = None

    status: str
    sub_status: int | None = None
    pipeline_stage: str = "SALES"

    patient_name: str
    age: int = 0
    sex: str = "Not Specified"
    phone_number: str
    alternate_number: str | None = None
    whatsapp: str | None = None
    patient_email: str | None = None
    address: str | None = None
    city: str = "Not Specified"
    profession: str | None = None
    attendant_name: str | None = None
    attendant_contact_no: str | None = None

    category: str | None = None
    treatment: str | None = None
    disease_details: str | None = None
    hospital_name: str = "Not Specified"
    opd_hospital: str | None = None
    opd_dr_name: str | None = None
    opd_contact_no: str | None = None
    opd_charges: float = 0
    opd_schedule_date: datetime | None = None
    ipd_admission_date: datetime | None = None
    ipd_hospital: str | None = None
    ipd_dr_name: str | None = None
    ipd_contact_no: str | None = None
    ipd_total_payment: float = 0
    ipd_details: str | None = None
    surgery_date: datetime | None = None
    mode_of_payment: str | None = None
    follow_up_date: datetime | None = None

    source: str | None = None
    lead_source: int | None = None
    month: str | None = None
    website: str | None = None
    description: str | None = None
    ref_id: str | None = None
    dupl_count: int = 0
    ad_id: str | None = None
    campaign_id: str | None = None
    form_id: str | None = None
    remarks: str | None = None

    notification: bool = False
    email_sent: bool = False
    sms_sent: bool = False
    whatsapp_sent: bool = False

    created_date: datetime
    lead_entry_date: datetime | None = None
    updated_date: datetime | None = None

    created_by_id: int
    updated_by_id: int

    def insert_values(self) -> dict:
        """Column values for a new leads row."""
        return self.model_dump()

    def update_values(self) -> dict:
        """
        Column values for refreshing an existing row.

        lead_ref is the row's identity and created_by_id belongs to the first
        sync; a missing source update_date never clears the stored one.
        """
        values = self.model_dump(exclude={"lead_ref", "created_by_id"})
        if values["updated_date"] is None:
            del values["updated_date"]
        return values
