"""
Validated shapes of rows read from the external lead database.

The source stores numeric enums as strings or ints, booleans as 0/1 and dates
as anything from DATETIME to free text. Everything is coerced here so the
rest of the engine works with proper Python types.
"""

from datetime import date, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

_DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
]


def parse_loose_datetime(value: Any) -> datetime | None:
    """Parse a source date value; unparseable and zero dates become None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text or text.startswith("0000-00-00"):
        return None
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        return None


def parse_flag(value: Any) -> bool:
    """Parse a nullable MySQL boolean (0/1, '0'/'1', true/false)."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().lower() in ("1", "true", "yes")


def parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def parse_text(value: Any) -> str | None:
    """Stringify a source value; blank strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


LooseDatetime = Annotated[datetime | None, BeforeValidator(parse_loose_datetime)]
LooseFlag = Annotated[bool, BeforeValidator(parse_flag)]
LooseInt = Annotated[int | None, BeforeValidator(parse_int)]
LooseFloat = Annotated[float | None, BeforeValidator(parse_float)]
LooseText = Annotated[str | None, BeforeValidator(parse_text)]


class SourceLeadRow(BaseModel):
    """A row of the source `lead` table."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    effective_ts: LooseDatetime = None

    month: LooseText = None
    lead_date: LooseDatetime = Field(None, alias="Lead_Date")
    lead_entry_date: LooseDatetime = Field(None, alias="LeadEntryDate")
    patient_number: LooseText = Field(None, alias="Patient_Number")
    alternative_phone: LooseText = Field(None, alias="AlternativePhone")
    whatsapp: LooseText = Field(None, alias="Whatsapp")
    patient_name: LooseText = Field(None, alias="Patient_Name")
    patient_email: LooseText = Field(None, alias="PatientEmail")
    age: LooseInt = Field(None, alias="Age")
    sex: LooseText = Field(None, alias="Sex")
    circle: LooseText = Field(None, alias="Circle")
    address: LooseText = None
    category: LooseText = Field(None, alias="Category")
    treatment: LooseText = Field(None, alias="Treatment")
    disease_details: LooseText = Field(None, alias="DiseaseDetails")
    bdm: LooseText = Field(None, alias="BDM")
    team_lead: LooseInt = Field(None, alias="TL")
    remarks: LooseText = Field(None, alias="Remarks")
    last_remarks: LooseText = Field(None, alias="LastRemarks")
    follow_up_date: LooseDatetime = Field(None, alias="Follow_up_Date")
    status: LooseText = Field(None, alias="Status")
    sub_status: LooseInt = Field(None, alias="SubStatus")
    surgery_date: LooseDatetime = Field(None, alias="Surgery_Date")
    opd_hospital: LooseText = Field(None, alias="OPD_Hospital")
    opd_dr_name: LooseText = Field(None, alias="OPD_DrName")
    opd_contact_no: LooseText = Field(None, alias="OPD_ContactNo")
    opd_charges: LooseFloat = Field(None, alias="OPD_Charges")
    opd_schedule_date: LooseDatetime = Field(None, alias="OPD_ScheduleDate")
    ipd_admission_date: LooseDatetime = Field(None, alias="IPD_AdmisisonDate")
    ipd_hospital: LooseText = Field(None, alias="IPD_Hospital")
    ipd_dr_name: LooseText = Field(None, alias="IPD_DrName")
    ipd_contact_no: LooseText = Field(None, alias="IPD_ContactNo")
    ipd_total_payment: LooseFloat = Field(None, alias="IPD_TotalPayment")
    ipd_details: LooseText = Field(None, alias="IPD_Details")
    mop: LooseText = Field(None, alias="MOP")
    attendant_name: LooseText = Field(None, alias="AttendantName")
    attendant_contact_no: LooseText = Field(None, alias="AttendantContactNo")
    source: LooseText = Field(None, alias="Source")
    lead_source: LooseInt = Field(None, alias="Lead_Source")
    notification: LooseFlag = Field(False, alias="Notification")
    city_option: LooseText = None
    email_sent: LooseFlag = Field(False, alias="email")
    sms_sent: LooseFlag = Field(False, alias="sms")
    whatsapp_sent: LooseFlag = Field(False, alias="whatsapp_msg")
    create_date: LooseDatetime = None
    update_date: LooseDatetime = None
    website: LooseText = None
    description: LooseText = None
    refid: LooseText = None
    dupl_count: LooseInt = Field(None, alias="DuplCount")
    profession: LooseText = Field(None, alias="Profession")
    ad_id: LooseText = None
    campaign_id: LooseText = None
    form_id: LooseText = None

    @property
    def received_at(self) -> datetime | None:
        """Business timestamp used for cursor ordering."""
        if self.effective_ts is not None:
            return self.effective_ts
        return self.lead_date or self.lead_entry_date or self.create_date


class SourceRemarkRow(BaseModel):
    """A row of the source `lead_remarks` table."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    ref_id: int = Field(alias="RefId")
    remarks: LooseText = Field(None, alias="Remarks")
    update_by: LooseInt = Field(None, alias="UpdateBy")
    update_date: LooseDatetime = Field(None, alias="UpdateDate")
    ip: LooseText = Field(None, alias="IP")
    lead_status: LooseInt = Field(None, alias="LeadStatus")
