# utils/redemption_store.py
"""
Database side of voucher scanning.

VoucherLookup only reads. RedemptionRecorder is the single write path for
voucher_usage rows and current_uses increments; a scanner in test mode is
never handed one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import as_utc
from models.business_voucher import BusinessVoucher
from models.voucher_usage import VoucherUsage
from utils.change_feed import publish_usage_insert, publish_voucher_update
from utils.voucher_errors import InvalidVoucherError, PersistenceError
from utils.voucher_validity import VoucherStatus

logger = logging.getLogger("vouchers.redemption")


@dataclass(frozen=True)
class RecordedRedemption:
    usage_id: str
    current_uses: int
    duplicate: bool = False


def make_scan_key(voucher_id: str, scan_nonce: Optional[str], device_id: Optional[str] = None) -> Optional[str]:
    """
    Exact idempotency key for a scan the client tagged with a nonce.
    Untagged scans get no key; they are deduplicated by recent_usage().
    """
    if not scan_nonce:
        return None
    return f"{voucher_id}:{device_id or '-'}:{scan_nonce}"[:120]


class VoucherLookup:
    def __init__(self, db: Session):
        self.db = db

    def get_voucher(self, voucher_id: str) -> Optional[BusinessVoucher]:
        try:
            return self.db.query(BusinessVoucher).filter(BusinessVoucher.id == voucher_id).first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError() from exc


class RedemptionRecorder:
    def __init__(self, db: Session):
        self.db = db

    def _existing(self, scan_key: str) -> Optional[VoucherUsage]:
        return self.db.query(VoucherUsage).filter(VoucherUsage.scan_key == scan_key).first()

    def recent_usage(
        self,
        voucher_id: str,
        device_id: Optional[str],
        now: datetime,
        window_seconds: int,
    ) -> Optional[VoucherUsage]:
        """
        Latest use of the voucher by the same device within the last
        window_seconds. Other devices serve other customers and never match.
        """
        now = as_utc(now)
        same_device = (
            VoucherUsage.device_id == device_id if device_id else VoucherUsage.device_id.is_(None)
        )
        return (
            self.db.query(VoucherUsage)
            .filter(
                VoucherUsage.voucher_id == voucher_id,
                same_device,
                VoucherUsage.used_at >= now - timedelta(seconds=window_seconds),
                VoucherUsage.used_at <= now,
            )
            .order_by(VoucherUsage.used_at.desc())
            .first()
        )

    def record(
        self,
        voucher: BusinessVoucher,
        now: datetime,
        scan_key: Optional[str] = None,
        user_email: Optional[str] = None,
        device_id: Optional[str] = None,
        dedupe_window_seconds: int = 0,
    ) -> RecordedRedemption:
        """
        Inserts the usage row, then increments current_uses, in one
        transaction. The increment only applies while uses remain, so
        concurrent scans cannot overshoot max_uses.

        A scan with a scan_key is deduplicated on that key; one without is
        a duplicate when the same device used the voucher within the last
        dedupe_window_seconds.
        """
        voucher_id = voucher.id
        business_id = voucher.business_id

        try:
            if scan_key:
                previous = self._existing(scan_key)
            elif dedupe_window_seconds > 0:
                previous = self.recent_usage(voucher_id, device_id, now, dedupe_window_seconds)
            else:
                previous = None
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError() from exc
        if previous is not None:
            return self._duplicate(voucher_id, previous)

        usage = VoucherUsage(
            voucher_id=voucher_id,
            user_email=user_email,
            used_at=as_utc(now),
            amount_saved=0,
            scan_key=scan_key,
            device_id=device_id,
        )
        try:
            self.db.add(usage)
            self.db.flush()

            result = self.db.execute(
                update(BusinessVoucher)
                .where(
                    BusinessVoucher.id == voucher_id,
                    or_(
                        BusinessVoucher.max_uses.is_(None),
                        BusinessVoucher.current_uses < BusinessVoucher.max_uses,
                    ),
                )
                .values(current_uses=BusinessVoucher.current_uses + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise InvalidVoucherError(VoucherStatus.MAX_USES_REACHED.value)

            self.db.commit()
        except IntegrityError:
            # the same scan was recorded concurrently
            self.db.rollback()
            previous = self._existing(scan_key) if scan_key else None
            if previous is None:
                logger.exception("❌ Redemption insert failed")
                raise PersistenceError()
            return self._duplicate(voucher_id, previous)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("❌ Redemption insert failed")
            raise PersistenceError() from exc

        self.db.refresh(voucher)
        logger.info(f"✅ Voucher {voucher_id} redeemed ({voucher.current_uses}/{voucher.max_uses or '∞'})")

        publish_usage_insert(business_id, usage)
        publish_voucher_update(voucher)
        return RecordedRedemption(usage_id=usage.id, current_uses=voucher.current_uses)

    def _duplicate(self, voucher_id: str, previous: VoucherUsage) -> RecordedRedemption:
        current = (
            self.db.query(BusinessVoucher.current_uses)
            .filter(BusinessVoucher.id == voucher_id)
            .scalar()
        )
        logger.warning(f"⚠️ Duplicate scan of voucher {voucher_id} ignored (usage {previous.id})")
        return RecordedRedemption(usage_id=previous.id, current_uses=int(current or 0), duplicate=True)
