from __future__ import annotations

from typing import Any

from utils.voucher_settings import voucher_tiers


def _normalized(value: Any) -> str:
    return str(value or "").strip().lower()


def has_voucher_access(business: Any) -> bool:
    """Vouchers and schedules are a paid-tier feature."""
    return _normalized(getattr(business, "subscription_tier", None)) in voucher_tiers()


def is_schedulable(business: Any) -> bool:
    """Schedules only materialize for approved businesses on a voucher tier."""
    return has_voucher_access(business) and _normalized(getattr(business, "status", None)) == "approved"
