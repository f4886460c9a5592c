"""Initial schema for the lead sync service.

Revision ID: 7e1b3c5a9d20
Revises: None
Create Date: 2026-02-02
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7e1b3c5a9d20"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("circle", sa.String(length=20), nullable=False),
        sa.Column("sales_head_id", sa.Integer(), nullable=False),
        _created_at(),
        if_not_exists=True,
    )

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("team_id", sa.Integer(), sa.ForeignKey("teams.id"), nullable=True),
        _created_at(),
        sa.UniqueConstraint("email"),
        if_not_exists=True,
    )

    op.create_table(
        "leads",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("lead_ref", sa.String(length=50), nullable=False),
        # Ownership
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("circle", sa.String(length=20), nullable=False),
        sa.Column("team_lead_id", sa.Integer(), nullable=True),
        # Lifecycle
        sa.Column("status", sa.String(length=100), nullable=False),
        sa.Column("sub_status", sa.Integer(), nullable=True),
        sa.Column("pipeline_stage", sa.String(length=30), nullable=False),
        # Patient
        sa.Column("patient_name", sa.String(length=255), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("sex", sa.String(length=30), nullable=False),
        sa.Column("phone_number", sa.String(length=30), nullable=False),
        sa.Column("alternate_number", sa.String(length=30), nullable=True),
        sa.Column("whatsapp", sa.String(length=30), nullable=True),
        sa.Column("patient_email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("profession", sa.String(length=100), nullable=True),
        sa.Column("attendant_name", sa.String(length=255), nullable=True),
        sa.Column("attendant_contact_no", sa.String(length=30), nullable=True),
        # Treatment
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("treatment", sa.String(length=255), nullable=True),
        sa.Column("disease_details", sa.Text(), nullable=True),
        sa.Column("hospital_name", sa.String(length=255), nullable=False),
        sa.Column("opd_hospital", sa.String(length=255), nullable=True),
        sa.Column("opd_dr_name", sa.String(length=255), nullable=True),
        sa.Column("opd_contact_no", sa.String(length=30), nullable=True),
        sa.Column("opd_charges", sa.Float(), nullable=False),
        sa.Column("opd_schedule_date", sa.DateTime(), nullable=True),
        sa.Column("ipd_admission_date", sa.DateTime(), nullable=True),
        sa.Column("ipd_hospital", sa.String(length=255), nullable=True),
        sa.Column("ipd_dr_name", sa.String(length=255), nullable=True),
        sa.Column("ipd_contact_no", sa.String(length=30), nullable=True),
        sa.Column("ipd_total_payment", sa.Float(), nullable=False),
        sa.Column("ipd_details", sa.Text(), nullable=True),
        sa.Column("surgery_date", sa.DateTime(), nullable=True),
        sa.Column("mode_of_payment", sa.String(length=50), nullable=True),
        sa.Column("follow_up_date", sa.DateTime(), nullable=True),
        # Acquisition
        sa.Column("source", sa.String(length=100), nullable=True),
        sa.Column("lead_source", sa.Integer(), nullable=True),
        sa.Column("month", sa.String(length=20), nullable=True),
        sa.Column("website", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ref_id", sa.String(length=100), nullable=True),
        sa.Column("dupl_count", sa.Integer(), nullable=False),
        sa.Column("ad_id", sa.String(length=100), nullable=True),
        sa.Column("campaign_id", sa.String(length=100), nullable=True),
        sa.Column("form_id", sa.String(length=100), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        # Notifications
        sa.Column("notification", sa.Boolean(), nullable=False),
        sa.Column("email_sent", sa.Boolean(), nullable=False),
        sa.Column("sms_sent", sa.Boolean(), nullable=False),
        sa.Column("whatsapp_sent", sa.Boolean(), nullable=False),
        # Source timestamps
        sa.Column("created_date", sa.DateTime(), nullable=False),
        sa.Column("lead_entry_date", sa.DateTime(), nullable=True),
        sa.Column("updated_date", sa.DateTime(), nullable=True),
        # Audit
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("updated_by_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        _created_at(),
        sa.Column(
            "synced_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.UniqueConstraint("lead_ref"),
        if_not_exists=True,
    )

    op.create_table(
        "lead_remarks",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("lead_ref", sa.String(length=50), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=False),
        sa.Column("update_by", sa.Integer(), nullable=True),
        sa.Column("update_date", sa.DateTime(), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=True),
        sa.Column("lead_status", sa.Integer(), nullable=True),
        sa.Column("dedup_key", sa.String(length=64), nullable=False),
        _created_at(),
        sa.UniqueConstraint("dedup_key"),
        if_not_exists=True,
    )

    op.create_table(
        "sync_checkpoints",
        sa.Column("source_type", sa.String(length=50), primary_key=True, nullable=False),
        sa.Column("last_synced_at", sa.DateTime(), nullable=False),
        sa.Column("last_synced_id", sa.BigInteger(), nullable=True),
        sa.Column("records_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "last_run_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        if_not_exists=True,
    )

    op.create_table(
        "sync_leases",
        sa.Column("source_type", sa.String(length=50), primary_key=True, nullable=False),
        sa.Column("holder", sa.String(length=100), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        if_not_exists=True,
    )

    # Indexes - accounts
    op.create_index("ix_accounts_name", "accounts", ["name"], if_not_exists=True)
    op.create_index("ix_accounts_role", "accounts", ["role"], if_not_exists=True)

    # Indexes - leads
    op.create_index("ix_leads_owner_id", "leads", ["owner_id"], if_not_exists=True)
    op.create_index("ix_leads_circle", "leads", ["circle"], if_not_exists=True)
    op.create_index("ix_leads_status", "leads", ["status"], if_not_exists=True)
    op.create_index(
        "idx_leads_created_date",
        "leads",
        [sa.text("created_date DESC"), sa.text("id DESC")],
        if_not_exists=True,
    )

    # Indexes - remarks
    op.create_index("ix_lead_remarks_lead_ref", "lead_remarks", ["lead_ref"], if_not_exists=True)


def downgrade() -> None:
    op.drop_index("ix_lead_remarks_lead_ref", table_name="lead_remarks", if_exists=True)
    op.drop_index("idx_leads_created_date", table_name="leads", if_exists=True)
    op.drop_index("ix_leads_status", table_name="leads", if_exists=True)
    op.drop_index("ix_leads_circle", table_name="leads", if_exists=True)
    op.drop_index("ix_leads_owner_id", table_name="leads", if_exists=True)
    op.drop_index("ix_accounts_role", table_name="accounts", if_exists=True)
    op.drop_index("ix_accounts_name", table_name="accounts", if_exists=True)

    op.drop_table("sync_leases", if_exists=True)
    op.drop_table("sync_checkpoints", if_exists=True)
    op.drop_table("lead_remarks", if_exists=True)
    op.drop_table("leads", if_exists=True)
    op.drop_table("accounts", if_exists=True)
    op.drop_table("teams", if_exists=True)
