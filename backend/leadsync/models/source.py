"""
Table definitions for the external lead database.

The source is owned by another system and only ever read, so its tables live
in their own MetaData and are never created or migrated from here.
"""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)

source_metadata = MetaData()

source_lead_table = Table(
    "lead",
    source_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("month", String(20)),
    Column("Lead_Date", DateTime),
    Column("LeadEntryDate", DateTime),
    Column("Patient_Number", String(30)),
    Column("AlternativePhone", String(30)),
    Column("Whatsapp", String(30)),
    Column("Patient_Name", String(255)),
    Column("PatientEmail", String(255)),
    Column("Age", Integer),
    Column("Sex", String(30)),
    Column("Circle", String(30)),
    Column("address", Text),
    Column("Category", String(100)),
    Column("Treatment", String(100)),
    Column("DiseaseDetails", Text),
    Column("BDM", String(255)),
    Column("TL", Integer),
    Column("Remarks", Text),
    Column("LastRemarks", Text),
    Column("Follow_up_Date", DateTime),
    Column("Status", String(100)),
    Column("SubStatus", Integer),
    Column("Surgery_Date", DateTime),
    Column("OPD_Hospital", String(255)),
    Column("OPD_DrName", String(255)),
    Column("OPD_ContactNo", String(30)),
    Column("OPD_Charges", Float),
    Column("OPD_ScheduleDate", DateTime),
    Column("IPD_AdmisisonDate", DateTime),
    Column("IPD_Hospital", String(255)),
    Column("IPD_DrName", String(255)),
    Column("IPD_ContactNo", String(30)),
    Column("IPD_TotalPayment", Float),
    Column("IPD_Details", Text),
    Column("MOP", String(50)),
    Column("AttendantName", String(255)),
    Column("AttendantContactNo", String(30)),
    Column("Source", String(50)),
    Column("Lead_Source", Integer),
    Column("Notification", Integer),
    Column("city_option", String(100)),
    Column("email", Integer),
    Column("sms", Integer),
    Column("whatsapp_msg", Integer),
    Column("create_date", DateTime),
    Column("update_date", DateTime),
    Column("website", String(255)),
    Column("description", Text),
    Column("refid", String(100)),
    Column("DuplCount", Integer),
    Column("Profession", String(100)),
    Column("ad_id", String(100)),
    Column("campaign_id", String(100)),
    Column("form_id", String(100)),
)

source_remarks_table = Table(
    "lead_remarks",
    source_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("RefId", BigInteger, nullable=False),
    Column("Remarks", Text),
    Column("UpdateBy", Integer),
    Column("UpdateDate", DateTime),
    Column("IP", String(64)),
    Column("LeadStatus", Integer),
)

# Business date of a lead; older rows miss Lead_Date and fall back to the
# entry date, then to the row creation date.
effective_timestamp = func.coalesce(
    source_lead_table.c.Lead_Date,
    source_lead_table.c.LeadEntryDate,
    source_lead_table.c.create_date,
    type_=DateTime,
)
