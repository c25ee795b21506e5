from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
    from models.business_voucher import BusinessVoucher


class VoucherUsage(Base):
    """One live-mode redemption. Rows are never updated or deleted."""

    __tablename__ = "voucher_usage"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    voucher_id: Mapped[str] = mapped_column(
        ForeignKey("business_vouchers.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_email: Mapped[Optional[str]] = mapped_column(String(200))
    used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    amount_saved: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    scan_key: Mapped[Optional[str]] = mapped_column(String(120), unique=True)
    # scanner that recorded the use; rapid rescans are only collapsed per device
    device_id: Mapped[Optional[str]] = mapped_column(String(120))

    voucher: Mapped["BusinessVoucher"] = relationship("BusinessVoucher", back_populates="usages")
