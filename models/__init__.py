# =============================================================================
# 📦 models/__init__.py
# -----------------------------------------------------------------------------
# Registers every mapped table on Base.metadata (Alembic + create_all)
# =============================================================================

from .business import Business
from .business_voucher import BusinessVoucher
from .voucher_usage import VoucherUsage
from .voucher_schedule import VoucherSchedule
from .scheduled_voucher_log import ScheduledVoucherLog
from .scanner_setting import ScannerSetting

__all__ = [
    "Business",
    "BusinessVoucher",
    "VoucherUsage",
    "VoucherSchedule",
    "ScheduledVoucherLog",
    "ScannerSetting",
]
