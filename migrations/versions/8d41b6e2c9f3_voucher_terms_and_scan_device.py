"""Voucher terms, spend-get amounts and the scanning device on usage rows

Revision ID: 8d41b6e2c9f3
Revises: 3f9c2a7d1e04
Create Date: 2026-10-20 08:30:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "8d41b6e2c9f3"
down_revision: Union[str, Sequence[str], None] = "3f9c2a7d1e04"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ─────────────────────────────────────────────
# ✅ UPGRADE
# ─────────────────────────────────────────────
def upgrade() -> None:
    with op.batch_alter_table("business_vouchers") as batch:
        batch.add_column(sa.Column("spend_amount", sa.Numeric(10, 2), nullable=True))
        batch.add_column(sa.Column("get_back_amount", sa.Numeric(10, 2), nullable=True))
        batch.add_column(sa.Column("exclusions", sa.Text(), nullable=True))
        batch.add_column(sa.Column("terms", sa.Text(), nullable=True))
        batch.add_column(sa.Column("blackout_days", sa.Text(), nullable=True))

    with op.batch_alter_table("voucher_usage") as batch:
        batch.add_column(sa.Column("device_id", sa.String(length=120), nullable=True))


# ─────────────────────────────────────────────
# ⏪ DOWNGRADE
# ─────────────────────────────────────────────
def downgrade() -> None:
    with op.batch_alter_table("voucher_usage") as batch:
        batch.drop_column("device_id")

    with op.batch_alter_table("business_vouchers") as batch:
        batch.drop_column("blackout_days")
        batch.drop_column("terms")
        batch.drop_column("exclusions")
        batch.drop_column("get_back_amount")
        batch.drop_column("spend_amount")
