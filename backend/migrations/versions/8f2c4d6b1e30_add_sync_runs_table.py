"""Add sync_runs table.

Revision ID: 8f2c4d6b1e30
Revises: 7e1b3c5a9d20
Create Date: 2026-02-09
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8f2c4d6b1e30"
down_revision: str | None = "7e1b3c5a9d20"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "sync_runs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("source_type", sa.String(length=50), nullable=False),
        sa.Column("mode", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("duration_ms", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("processed", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("updated", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("error_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("remarks_synced", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(), nullable=True),
        sa.Column("last_synced_id", sa.BigInteger(), nullable=True),
        sa.Column("message", sa.String(length=255), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column(
            "finished_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        if_not_exists=True,
    )

    op.create_index("ix_sync_runs_source_type", "sync_runs", ["source_type"], if_not_exists=True)
    op.create_index("ix_sync_runs_finished_at", "sync_runs", ["finished_at"], if_not_exists=True)


def downgrade() -> None:
    op.drop_index("ix_sync_runs_finished_at", table_name="sync_runs", if_exists=True)
    op.drop_index("ix_sync_runs_source_type", table_name="sync_runs", if_exists=True)
    op.drop_table("sync_runs", if_exists=True)
