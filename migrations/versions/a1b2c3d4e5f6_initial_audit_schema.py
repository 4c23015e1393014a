"""initial_audit_schema

Leads, one table per audit kind (unique per lead) and report snapshots.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

AUDIT_TABLES = ("audits", "design_audits", "seo_audits")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("website_url", sa.String(2048), nullable=True),
        sa.Column("city", sa.String(255), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="NEW"),
        *_timestamps(),
    )
    op.create_index("ix_leads_status", "leads", ["status"])

    for table in AUDIT_TABLES:
        extra = (
            [sa.Column("confidence", sa.Integer(), nullable=False)] if table == "audits" else []
        )
        op.create_table(
            table,
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column(
                "lead_id",
                postgresql.UUID(as_uuid=True),
                sa.ForeignKey("leads.id", ondelete="CASCADE"),
                nullable=False,
                unique=True,
            ),
            sa.Column("score", sa.Integer(), nullable=False),
            *extra,
            sa.Column("findings", postgresql.JSONB(), nullable=False),
            sa.Column("extracted", postgresql.JSONB(), nullable=False),
            sa.Column("error", sa.Text(), nullable=True),
            *_timestamps(),
        )

    op.create_table(
        "reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False),
        sa.Column("public_id", sa.String(64), nullable=False, unique=True),
        sa.Column("viewed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_reports_lead_id", "reports", ["lead_id"])


def downgrade() -> None:
    op.drop_index("ix_reports_lead_id", table_name="reports")
    op.drop_table("reports")
    for table in reversed(AUDIT_TABLES):
        op.drop_table(table)
    op.drop_index("ix_leads_status", table_name="leads")
    op.drop_table("leads")
