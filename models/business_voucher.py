# =============================================================================
# 🎟️ models/business_voucher.py
# -----------------------------------------------------------------------------
# A concrete, time-bounded discount offer. Created by hand from the
# dashboard or materialized from a VoucherSchedule template.
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, event, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
    from models.business import Business
    from models.voucher_usage import VoucherUsage


VOUCHER_TYPES = ("percentage_discount", "fixed_amount", "buy_one_get_one", "spend_get")


def generate_voucher_code() -> str:
    return uuid.uuid4().hex[:8].upper()


class BusinessVoucher(Base):
    __tablename__ = "business_vouchers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    business_id: Mapped[str] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    code: Mapped[str] = mapped_column(
        String(32), index=True, nullable=False, default=generate_voucher_code
    )

    # ---------------------------------------------------------------------
    # 🧾 Offer
    # ---------------------------------------------------------------------
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    voucher_type: Mapped[str] = mapped_column(String(30), nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    min_purchase_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    # spend_get: spend at least spend_amount, get get_back_amount back
    spend_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    get_back_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))

    # free text shown with the voucher
    exclusions: Mapped[Optional[str]] = mapped_column(Text)
    terms: Mapped[Optional[str]] = mapped_column(Text)
    blackout_days: Mapped[Optional[str]] = mapped_column(Text)

    # ---------------------------------------------------------------------
    # 🔢 Usage limits (max_uses NULL = unlimited)
    # ---------------------------------------------------------------------
    max_uses: Mapped[Optional[int]] = mapped_column(Integer)
    current_uses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # ---------------------------------------------------------------------
    # 🕒 Validity window
    # ---------------------------------------------------------------------
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # schedule that produced this voucher; no FK so deleting a schedule never cascades
    schedule_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    business: Mapped["Business"] = relationship("Business", back_populates="vouchers")
    usages: Mapped[list["VoucherUsage"]] = relationship(
        "VoucherUsage", back_populates="voucher", passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<BusinessVoucher(id={self.id}, code='{self.code}', "
            f"uses={self.current_uses}/{self.max_uses}, active={self.is_active})>"
        )


@event.listens_for(BusinessVoucher, "before_insert")  # type: ignore[misc]
def set_voucher_code(mapper: Any, connection: Any, target: BusinessVoucher) -> None:
    """Every voucher gets a code, even when the caller passed an empty one."""
    if not getattr(target, "code", None):
        target.code = generate_voucher_code()
