from __future__ import annotations

from sqlalchemy.engine import Engine

from models.business import Business
from models.business_voucher import BusinessVoucher
from models.voucher_usage import VoucherUsage
from models.voucher_schedule import VoucherSchedule
from models.scheduled_voucher_log import ScheduledVoucherLog
from models.scanner_setting import ScannerSetting

VOUCHER_TABLES = (
    Business,
    BusinessVoucher,
    VoucherUsage,
    VoucherSchedule,
    ScheduledVoucherLog,
    ScannerSetting,
)


def ensure_voucher_tables(engine: Engine) -> bool:
    """Creates the voucher tables idempotently (parents first)."""
    try:
        for model in VOUCHER_TABLES:
            model.__table__.create(bind=engine, checkfirst=True)
        print("✅ Voucher tables checked/created.")
        return True
    except Exception as exc:
        print(f"⚠️ Could not create voucher tables automatically: {exc}")
        return False
