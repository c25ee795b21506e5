# utils/voucher_validity.py
# =============================================================================
# ✅ Voucher validity
# -----------------------------------------------------------------------------
# Pure function of (end_date, max_uses, current_uses, is_active, now).
# First match wins: expired > max uses reached > inactive > active.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from database import as_utc


class VoucherStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    MAX_USES_REACHED = "max_uses_reached"
    INACTIVE = "inactive"


def evaluate(voucher: Any, now: datetime) -> VoucherStatus:
    end_date = as_utc(voucher.end_date)
    if end_date is not None and as_utc(now) > end_date:
        return VoucherStatus.EXPIRED

    max_uses = voucher.max_uses
    if max_uses is not None and (voucher.current_uses or 0) >= max_uses:
        return VoucherStatus.MAX_USES_REACHED

    if not voucher.is_active:
        return VoucherStatus.INACTIVE

    return VoucherStatus.ACTIVE


def can_toggle(voucher: Any, now: datetime) -> bool:
    """Expired and used-up vouchers must not be switched back on."""
    return evaluate(voucher, now) in (VoucherStatus.ACTIVE, VoucherStatus.INACTIVE)
