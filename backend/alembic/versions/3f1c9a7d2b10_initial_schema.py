"""initial schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(18, 4)


def _flag(name: str, default: str = "0") -> sa.Column:
    return sa.Column(name, sa.Boolean, nullable=False, server_default=sa.text(default))


def _stamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()))
    return cols


def _priced_columns():
    return [
        sa.Column("lines", sa.JSON, nullable=False),
        sa.Column("custom_lines", sa.JSON, nullable=False),
        sa.Column("discount_value", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount_type", sa.String, nullable=False, server_default="percentage"),
        sa.Column("subtotal", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("total", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("overridden_total", MONEY, nullable=True),
        _flag("is_total_overridden"),
        _flag("deleted"),
        *_stamps(),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("email", sa.String, nullable=False),
        sa.Column("password_hash", sa.String, nullable=False),
        sa.Column("full_name", sa.String, nullable=True),
        sa.Column("role_name", sa.String, nullable=False, server_default="employee"),
        _flag("is_active", "1"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uix_user_email"),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("business_name", sa.String, nullable=False),
        sa.Column("business_category", sa.String, nullable=True),
        sa.Column("contact_name", sa.String, nullable=True),
        sa.Column("email", sa.String, nullable=True),
        sa.Column("phone", sa.String, nullable=True),
        sa.Column("website", sa.String, nullable=True),
        sa.Column("status", sa.String, nullable=False, server_default="active"),
        sa.Column("created_by", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _flag("deleted"),
        *_stamps(),
    )
    op.create_index("ix_clients_business_name", "clients", ["business_name"])

    # ---- client-owned ----
    op.create_table(
        "segments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("age_range", sa.JSON, nullable=False),
        sa.Column("gender", sa.JSON, nullable=False),
        sa.Column("area", sa.JSON, nullable=False),
        sa.Column("governorate", sa.JSON, nullable=False),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("product_name", sa.String, nullable=True),
        _flag("deleted"),
        *_stamps(updated=False),
    )
    op.create_index("ix_segments_client", "segments", ["client_id"])

    op.create_table(
        "competitors",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("swot_strengths", sa.JSON, nullable=False),
        sa.Column("swot_weaknesses", sa.JSON, nullable=False),
        sa.Column("swot_opportunities", sa.JSON, nullable=False),
        sa.Column("swot_threats", sa.JSON, nullable=False),
        _flag("deleted"),
        *_stamps(updated=False),
    )
    op.create_index("ix_competitors_client", "competitors", ["client_id"])

    op.create_table(
        "branches",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("address", sa.String, nullable=True),
        sa.Column("phone", sa.String, nullable=True),
        sa.Column("city", sa.String, nullable=True),
        _flag("deleted"),
        *_stamps(updated=False),
    )
    op.create_index("ix_branches_client", "branches", ["client_id"])

    # ---- catalog ----
    op.create_table(
        "services",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name_en", sa.String, nullable=False),
        sa.Column("name_ar", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String, nullable=False, server_default="other"),
        sa.Column("price", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount_type", sa.String, nullable=False, server_default="percentage"),
        _flag("is_global", "1"),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        _flag("deleted"),
        *_stamps(),
        sa.CheckConstraint("price >= 0", name="ck_service_price"),
        sa.CheckConstraint("discount >= 0", name="ck_service_discount"),
    )
    op.create_index("ix_services_category", "services", ["category"])
    op.create_index("ix_services_client", "services", ["client_id"])

    op.create_table(
        "packages",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name_en", sa.String, nullable=False),
        sa.Column("name_ar", sa.String, nullable=False),
        sa.Column("price", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount_type", sa.String, nullable=False, server_default="percentage"),
        sa.Column("features", sa.JSON, nullable=False),
        sa.Column("service_ids", sa.JSON, nullable=False),
        _flag("is_active", "1"),
        _flag("is_global", "1"),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        _flag("deleted"),
        *_stamps(),
        sa.CheckConstraint("price >= 0", name="ck_package_price"),
    )
    op.create_index("ix_packages_active", "packages", ["is_active"])

    op.create_table(
        "contract_terms",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("key", sa.String, nullable=False),
        sa.Column("key_ar", sa.String, nullable=False),
        sa.Column("value", sa.Text, nullable=True),
        sa.Column("value_ar", sa.Text, nullable=True),
        _flag("deleted"),
        *_stamps(updated=False),
    )

    # ---- priced documents ----
    op.create_table(
        "quotations",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("quotation_number", sa.String, nullable=False),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("client_name", sa.String, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("valid_until", sa.Date, nullable=True),
        sa.Column("status", sa.String, nullable=False, server_default="draft"),
        sa.Column("sent_at", sa.DateTime, nullable=True),
        sa.Column("approved_at", sa.DateTime, nullable=True),
        sa.Column("rejected_at", sa.DateTime, nullable=True),
        sa.Column("created_by", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_priced_columns(),
        sa.UniqueConstraint("quotation_number", name="uix_quotation_number"),
    )
    op.create_index("ix_quotations_client_status", "quotations", ["client_id", "status"])
    op.create_index("ix_quotations_client_name", "quotations", ["client_name"])

    op.create_table(
        "campaign_plans",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("plan_number", sa.String, nullable=True),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("segment_ids", sa.JSON, nullable=False),
        sa.Column("competitor_ids", sa.JSON, nullable=False),
        sa.Column("branch_ids", sa.JSON, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("objectives", sa.JSON, nullable=False),
        sa.Column("budget", MONEY, nullable=True),
        sa.Column("status", sa.String, nullable=False, server_default="draft"),
        sa.Column("created_by", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_priced_columns(),
        sa.UniqueConstraint("plan_number", name="uix_plan_number"),
    )
    op.create_index("ix_campaign_plans_client", "campaign_plans", ["client_id"])

    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("contract_number", sa.String, nullable=False),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("client_name", sa.String, nullable=True),
        sa.Column("client_name_ar", sa.String, nullable=True),
        sa.Column("quotation_id", sa.Integer, sa.ForeignKey("quotations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("package_id", sa.Integer, sa.ForeignKey("packages.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "campaign_plan_id", sa.Integer, sa.ForeignKey("campaign_plans.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("contract_body", sa.Text, nullable=True),
        sa.Column("contract_body_ar", sa.Text, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("status", sa.String, nullable=False, server_default="draft"),
        sa.Column("signed_date", sa.Date, nullable=True),
        sa.Column("created_by", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_priced_columns(),
        sa.UniqueConstraint("contract_number", name="uix_contract_number"),
    )
    op.create_index("ix_contracts_client", "contracts", ["client_id"])

    op.create_table(
        "contract_term_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("contract_id", sa.Integer, sa.ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False),
        _flag("is_custom"),
        sa.Column("term_id", sa.Integer, sa.ForeignKey("contract_terms.id", ondelete="SET NULL"), nullable=True),
        sa.Column("custom_key", sa.String, nullable=True),
        sa.Column("custom_key_ar", sa.String, nullable=True),
        sa.Column("custom_value", sa.Text, nullable=True),
        sa.Column("custom_value_ar", sa.Text, nullable=True),
        sa.CheckConstraint("sort_order >= 0", name="ck_term_item_order"),
    )
    op.create_index("ix_term_items_contract", "contract_term_items", ["contract_id"])
    op.create_index("ix_term_items_term", "contract_term_items", ["term_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String, nullable=False),
        sa.Column("entity_type", sa.String, nullable=False),
        sa.Column("entity_id", sa.Integer, nullable=True),
        sa.Column("changes", sa.JSON, nullable=True),
        sa.Column("ip_address", sa.String, nullable=True),
        sa.Column("user_agent", sa.String, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "contract_term_items",
        "contracts",
        "campaign_plans",
        "quotations",
        "contract_terms",
        "packages",
        "services",
        "branches",
        "competitors",
        "segments",
        "clients",
        "users",
    ):
        op.drop_table(table)
