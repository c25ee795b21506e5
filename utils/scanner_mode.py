from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import utc_now
from models.scanner_setting import ScannerSetting
from utils.voucher_errors import ConfirmationRequiredError, PersistenceError, ValidationError
from utils.voucher_settings import default_scanner_mode

logger = logging.getLogger("vouchers.scanner")


class ScannerMode(str, Enum):
    TEST = "test"
    LIVE = "live"


def parse_mode(value: str) -> ScannerMode:
    try:
        return ScannerMode(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError("Scanner mode must be 'test' or 'live'") from None


def _setting(db: Session, business_id: str, device_id: str) -> ScannerSetting | None:
    return (
        db.query(ScannerSetting)
        .filter(ScannerSetting.business_id == business_id, ScannerSetting.device_id == device_id)
        .first()
    )


def _load_setting(db: Session, business_id: str, device_id: str) -> ScannerSetting | None:
    try:
        return _setting(db, business_id, device_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError() from exc


def get_mode(db: Session, business_id: str, device_id: str) -> ScannerMode:
    """Raises PersistenceError when the settings table cannot be read."""
    setting = _load_setting(db, business_id, device_id)
    if setting is None:
        return ScannerMode(default_scanner_mode())
    return ScannerMode(setting.mode)


def set_mode(
    db: Session,
    business_id: str,
    device_id: str,
    mode: ScannerMode,
    confirmed: bool = False,
) -> ScannerMode:
    """
    Persists the scanner mode of one device. Going test -> live needs an
    explicit confirmation; live -> test never does.
    """
    device_id = (device_id or "").strip()
    if not device_id:
        raise ValidationError("'device_id' is required")

    current = get_mode(db, business_id, device_id)
    if current is ScannerMode.TEST and mode is ScannerMode.LIVE and not confirmed:
        raise ConfirmationRequiredError()

    setting = _load_setting(db, business_id, device_id)
    if setting is None:
        setting = ScannerSetting(business_id=business_id, device_id=device_id)
        db.add(setting)
    setting.mode = mode.value
    setting.updated_at = utc_now()

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError() from exc

    if current is not mode:
        logger.info(f"🔁 Scanner {device_id} of business {business_id}: {current.value} -> {mode.value}")
    return mode
