"""Create voucher, usage, schedule and scanner tables

Revision ID: 3f9c2a7d1e04
Revises:
Create Date: 2026-10-19 09:00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "3f9c2a7d1e04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ─────────────────────────────────────────────
# ✅ UPGRADE
# ─────────────────────────────────────────────
def upgrade() -> None:
    op.create_table(
        "businesses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("business_name", sa.String(length=200), nullable=False),
        sa.Column("owner_user_id", sa.String(length=64), nullable=True),
        sa.Column("subscription_tier", sa.String(length=30), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_businesses_owner_user_id", "businesses", ["owner_user_id"])

    op.create_table(
        "business_vouchers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("business_id", sa.String(length=36), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("voucher_type", sa.String(length=30), nullable=False),
        sa.Column("discount_value", sa.Numeric(10, 2), nullable=True),
        sa.Column("min_purchase_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("current_uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("schedule_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_business_vouchers_business_id", "business_vouchers", ["business_id"])
    op.create_index("ix_business_vouchers_code", "business_vouchers", ["code"])
    op.create_index("ix_business_vouchers_schedule_id", "business_vouchers", ["schedule_id"])

    op.create_table(
        "voucher_usage",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("voucher_id", sa.String(length=36), sa.ForeignKey("business_vouchers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_email", sa.String(length=200), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("amount_saved", sa.Numeric(10, 2), nullable=True),
        sa.Column("scan_key", sa.String(length=120), nullable=True, unique=True),
    )
    op.create_index("ix_voucher_usage_voucher_id", "voucher_usage", ["voucher_id"])

    op.create_table(
        "voucher_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("business_id", sa.String(length=36), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("schedule_name", sa.String(length=200), nullable=False),
        sa.Column("voucher_template", sa.JSON(), nullable=False),
        sa.Column("recurrence_pattern", sa.String(length=20), nullable=False),
        sa.Column("recurrence_details", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("next_trigger_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_voucher_schedules_business_id", "voucher_schedules", ["business_id"])
    op.create_index("ix_voucher_schedules_next_trigger_at", "voucher_schedules", ["next_trigger_at"])

    op.create_table(
        "scheduled_voucher_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("schedule_id", sa.String(length=36), nullable=False),
        sa.Column("voucher_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_scheduled_voucher_logs_schedule_id", "scheduled_voucher_logs", ["schedule_id"])

    op.create_table(
        "scanner_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("business_id", sa.String(length=36), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_id", sa.String(length=120), nullable=False),
        sa.Column("mode", sa.String(length=10), nullable=False, server_default="test"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("business_id", "device_id", name="uq_scanner_settings_business_device"),
    )
    op.create_index("ix_scanner_settings_business_id", "scanner_settings", ["business_id"])


# ─────────────────────────────────────────────
# ⏪ DOWNGRADE
# ─────────────────────────────────────────────
def downgrade() -> None:
    op.drop_table("scanner_settings")
    op.drop_table("scheduled_voucher_logs")
    op.drop_table("voucher_schedules")
    op.drop_table("voucher_usage")
    op.drop_table("business_vouchers")
    op.drop_table("businesses")
