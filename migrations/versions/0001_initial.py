"""initial tenant, inventory, pending sale and cleanup history tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def upgrade() -> None:
    op.create_table(
        "pharmacies",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "branches",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("pharmacy_id", GUID(), sa.ForeignKey("pharmacies.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_branches_pharmacy_id", "branches", ["pharmacy_id"])

    op.create_table(
        "pharmacy_settings",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("pharmacy_id", GUID(), sa.ForeignKey("pharmacies.id"), nullable=False),
        sa.Column("require_sale_short_code", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("short_code_expiry_minutes", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_pharmacy_settings_pharmacy_id", "pharmacy_settings", ["pharmacy_id"], unique=True)

    op.create_table(
        "inventory_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("pharmacy_id", GUID(), nullable=False),
        sa.Column("branch_id", GUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
    )
    op.create_index("ix_inventory_items_pharmacy_id", "inventory_items", ["pharmacy_id"])
    op.create_index("ix_inventory_items_branch_id", "inventory_items", ["branch_id"])

    op.create_table(
        "pending_sales",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("pharmacy_id", GUID(), nullable=False),
        sa.Column("branch_id", GUID(), nullable=False),
        sa.Column("short_code", sa.String(length=32), nullable=True),
        sa.Column("finalized", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_by", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_pending_sales_pharmacy_id", "pending_sales", ["pharmacy_id"])
    op.create_index("ix_pending_sales_branch_id", "pending_sales", ["branch_id"])
    op.create_index(
        "ix_pending_sales_expiry_scan",
        "pending_sales",
        ["pharmacy_id", "finalized", "created_at"],
    )

    op.create_table(
        "pending_sale_lines",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("sale_id", GUID(), sa.ForeignKey("pending_sales.id", ondelete="CASCADE"), nullable=False),
        sa.Column("line_no", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("inventory_item_id", GUID(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity > 0", name="ck_pending_sale_lines_quantity_positive"),
    )
    op.create_index("ix_pending_sale_lines_sale_id", "pending_sale_lines", ["sale_id"])
    op.create_index("ix_pending_sale_lines_inventory_item_id", "pending_sale_lines", ["inventory_item_id"])

    op.create_table(
        "expired_sale_cleanup_runs",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("cleanup_date", sa.DateTime(), nullable=False),
        sa.Column("operation_type", sa.String(length=20), nullable=False),
        sa.Column("triggered_by", sa.String(length=255), nullable=True),
        sa.Column("restored_count", sa.Integer(), nullable=False),
        sa.Column("restored_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("pharmacy_id", GUID(), nullable=True),
        sa.Column("branch_id", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("restored_count >= 0", name="ck_cleanup_runs_restored_count"),
        sa.CheckConstraint(
            "operation_type IN ('manual', 'automatic')",
            name="ck_cleanup_runs_operation_type",
        ),
    )
    op.create_index("ix_cleanup_runs_cleanup_date", "expired_sale_cleanup_runs", ["cleanup_date"])
    op.create_index("ix_cleanup_runs_scope", "expired_sale_cleanup_runs", ["pharmacy_id", "branch_id"])


def downgrade() -> None:
    op.drop_index("ix_cleanup_runs_scope", table_name="expired_sale_cleanup_runs")
    op.drop_index("ix_cleanup_runs_cleanup_date", table_name="expired_sale_cleanup_runs")
    op.drop_table("expired_sale_cleanup_runs")
    op.drop_index("ix_pending_sale_lines_inventory_item_id", table_name="pending_sale_lines")
    op.drop_index("ix_pending_sale_lines_sale_id", table_name="pending_sale_lines")
    op.drop_table("pending_sale_lines")
    op.drop_index("ix_pending_sales_expiry_scan", table_name="pending_sales")
    op.drop_index("ix_pending_sales_branch_id", table_name="pending_sales")
    op.drop_index("ix_pending_sales_pharmacy_id", table_name="pending_sales")
    op.drop_table("pending_sales")
    op.drop_index("ix_inventory_items_branch_id", table_name="inventory_items")
    op.drop_index("ix_inventory_items_pharmacy_id", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_index("ix_pharmacy_settings_pharmacy_id", table_name="pharmacy_settings")
    op.drop_table("pharmacy_settings")
    op.drop_index("ix_branches_pharmacy_id", table_name="branches")
    op.drop_table("branches")
    op.drop_table("pharmacies")
