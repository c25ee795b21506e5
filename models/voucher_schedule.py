# =============================================================================
# ⏰ models/voucher_schedule.py
# -----------------------------------------------------------------------------
# Recurring rule that stamps new BusinessVoucher rows from a template.
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
    from models.business import Business


class VoucherSchedule(Base):
    __tablename__ = "voucher_schedules"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    business_id: Mapped[str] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    schedule_name: Mapped[str] = mapped_column(String(200), nullable=False)

    voucher_template: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    recurrence_pattern: Mapped[str] = mapped_column(String(20), nullable=False)  # daily | weekly | monthly
    recurrence_details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    next_trigger_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    last_triggered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    business: Mapped["Business"] = relationship("Business", back_populates="schedules")

    def __repr__(self) -> str:
        return (
            f"<VoucherSchedule(id={self.id}, name='{self.schedule_name}', "
            f"pattern='{self.recurrence_pattern}', next={self.next_trigger_at}, active={self.is_active})>"
        )
