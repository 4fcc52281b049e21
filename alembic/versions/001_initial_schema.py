"""Initial schema: deals, quotes, pricing configs, audit log, rating events.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "audit_log",
        sa.Column("event_type", sa.String(100), nullable=False, index=True),
        sa.Column("deal_id", postgresql.UUID(as_uuid=True), index=True),
        sa.Column("partner_id", sa.String(100), index=True),
        sa.Column("actor_id", sa.String(100), comment="User ID or 'system'"),
        sa.Column("actor_role", sa.String(50), comment="sovra_admin, admin, sales, system"),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text())),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "pricing_configs",
        sa.Column("document", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("updated_by", sa.String(100), comment="Sovra admin user ID"),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "rating_events",
        sa.Column("partner_id", sa.String(100), nullable=False, index=True),
        sa.Column("user_id", sa.String(100)),
        sa.Column("deal_id", postgresql.UUID(as_uuid=True)),
        sa.Column("event_type", sa.String(60), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text())),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "deals",
        sa.Column("partner_id", sa.String(100), nullable=False, index=True),
        sa.Column("created_by", sa.String(100), nullable=False),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column("government_level", sa.String(20), nullable=False),
        sa.Column("population", sa.BigInteger(), nullable=False),
        sa.Column("contact_name", sa.String(200), nullable=False),
        sa.Column("contact_role", sa.String(200), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("contact_phone", sa.String(20)),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("partner_generated_lead", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, index=True),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status_changed_by", sa.String(100)),
        sa.Column("status_notes", sa.Text()),
        sa.Column("rejection_reason", sa.Text(), comment="Also holds the info-request message"),
        sa.Column("metrics", sa.SmallInteger()),
        sa.Column("economic_buyer", sa.SmallInteger()),
        sa.Column("decision_criteria", sa.SmallInteger()),
        sa.Column("decision_process", sa.SmallInteger()),
        sa.Column("identify_pain", sa.SmallInteger()),
        sa.Column("champion", sa.SmallInteger()),
        sa.Column("row_version", sa.Integer(), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── Tables with FKs ────────────────────────────────────────────────

    op.create_table(
        "quotes",
        sa.Column("deal_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("deals.id"), nullable=False, index=True),
        sa.Column("partner_id", sa.String(100), nullable=False, index=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("products", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("services", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("discounts", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("subtotal", sa.Float(), nullable=False),
        sa.Column("total_discount", sa.Float(), nullable=False),
        sa.Column("total", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("deal_id", "version", name="uq_quotes_deal_version"),
    )


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("quotes")
    op.drop_table("deals")
    op.drop_table("rating_events")
    op.drop_table("pricing_configs")
    op.drop_table("audit_log")
