"""create provenance_entries and weight_configs tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "provenance_entries",
        sa.Column("sequence", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("dataset_id", sa.String(length=64), nullable=False),
        sa.Column("stage", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_ms", sa.Float(), nullable=False),
        sa.Column("input_refs", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("output_ref", sa.String(length=255), nullable=True),
        sa.Column("parameters", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("supersedes", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("sequence"),
    )
    op.create_index("ix_provenance_entries_dataset_id", "provenance_entries", ["dataset_id"], unique=False)
    op.create_index(
        "ix_provenance_entries_dataset_stage",
        "provenance_entries",
        ["dataset_id", "stage"],
        unique=False,
    )
    op.create_index("ix_provenance_entries_recorded_at", "provenance_entries", ["recorded_at"], unique=False)

    op.create_table(
        "weight_configs",
        sa.Column("config_id", sa.String(length=64), nullable=False),
        sa.Column("weights", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("config_id"),
    )


def downgrade() -> None:
    op.drop_table("weight_configs")
    op.drop_index("ix_provenance_entries_recorded_at", table_name="provenance_entries")
    op.drop_index("ix_provenance_entries_dataset_stage", table_name="provenance_entries")
    op.drop_index("ix_provenance_entries_dataset_id", table_name="provenance_entries")
    op.drop_table("provenance_entries")
