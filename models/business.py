# =============================================================================
# 🏪 models/business.py
# -----------------------------------------------------------------------------
# Tenant record. Only the columns the voucher core reads are mapped here;
# profile, media and listing data live in the directory tables.
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
    from models.business_voucher import BusinessVoucher
    from models.voucher_schedule import VoucherSchedule


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_user_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)

    # free | premium | firstclass
    subscription_tier: Mapped[str] = mapped_column(String(30), default="free")
    # pending | approved | rejected
    status: Mapped[str] = mapped_column(String(30), default="pending")

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    vouchers: Mapped[list["BusinessVoucher"]] = relationship(
        "BusinessVoucher", back_populates="business", passive_deletes=True
    )
    schedules: Mapped[list["VoucherSchedule"]] = relationship(
        "VoucherSchedule", back_populates="business", passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<Business(id={self.id}, name='{self.business_name}', "
            f"tier='{self.subscription_tier}', status='{self.status}')>"
        )
