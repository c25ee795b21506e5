# utils/voucher_service.py
# =============================================================================
# 🎟️ Dashboard voucher management: create, toggle, list, usage, stats
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import as_utc
from models.business_voucher import BusinessVoucher
from models.voucher_usage import VoucherUsage
from utils.change_feed import publish_voucher_update
from utils.voucher_errors import NotFoundError, PersistenceError, ValidationError, VoucherStateError
from utils.voucher_template import TEXT_FIELDS, normalize_voucher_type
from utils.voucher_validity import VoucherStatus, can_toggle, evaluate

logger = logging.getLogger("vouchers.manage")


def _as_decimal(value: Any, field: str, default: Optional[Decimal] = None) -> Decimal:
    if value in ("", None):
        if default is None:
            raise ValidationError(f"'{field}' is required")
        return default
    try:
        number = Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"'{field}' must be a number") from None
    if number < 0:
        raise ValidationError(f"'{field}' must not be negative")
    return number


def create_voucher(db: Session, business_id: str, fields: Mapping[str, Any], now: datetime) -> BusinessVoucher:
    """
    Title, discount value and end date are required (discount value may be
    omitted for buy-one-get-one, and defaults to the amount given back for
    spend-and-get). start_date defaults to now.
    """
    title = str(fields.get("title") or "").strip()
    if not title:
        raise ValidationError("Please fill in all required fields (Title, Discount Value, and End Date).")

    voucher_type = normalize_voucher_type(fields.get("voucher_type") or "percentage_discount")
    if voucher_type is None:
        raise ValidationError(f"Unknown voucher type '{fields.get('voucher_type')}'")

    spend_amount = get_back_amount = None
    if voucher_type == "spend_get":
        spend_amount = _as_decimal(fields.get("spend_amount"), "spend_amount")
        get_back_amount = _as_decimal(fields.get("get_back_amount"), "get_back_amount")
        if get_back_amount > spend_amount:
            raise ValidationError("'get_back_amount' must not exceed 'spend_amount'")
        default_discount = get_back_amount
    elif voucher_type == "buy_one_get_one":
        default_discount = Decimal(0)
    else:
        default_discount = None
    discount_value = _as_decimal(fields.get("discount_value"), "discount_value", default_discount)
    min_purchase = _as_decimal(fields.get("min_purchase_amount"), "min_purchase_amount", Decimal(0))

    max_uses = fields.get("max_uses")
    if max_uses in ("", None):
        max_uses = None
    else:
        try:
            max_uses = int(max_uses)
        except (TypeError, ValueError):
            raise ValidationError("'max_uses' must be a whole number") from None
        if max_uses < 1:
            raise ValidationError("'max_uses' must be at least 1")

    end_date = as_utc(fields.get("end_date"))
    if end_date is None:
        raise ValidationError("'end_date' is required")
    start_date = as_utc(fields.get("start_date")) or as_utc(now)
    if end_date <= start_date:
        raise ValidationError("'end_date' must be after the start date")

    voucher = BusinessVoucher(
        business_id=business_id,
        title=title,
        description=(fields.get("description") or None),
        voucher_type=voucher_type,
        discount_value=discount_value,
        min_purchase_amount=min_purchase,
        max_uses=max_uses,
        spend_amount=spend_amount,
        get_back_amount=get_back_amount,
        **{name: (str(fields.get(name) or "").strip() or None) for name in TEXT_FIELDS},
        current_uses=0,
        start_date=start_date,
        end_date=end_date,
        is_active=True,
        created_at=as_utc(now),
    )
    db.add(voucher)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Failed to create voucher.") from exc
    db.refresh(voucher)

    logger.info(f"🎟️ Voucher created by hand: {voucher.title} ({voucher.id})")
    return voucher


def get_voucher(db: Session, business_id: str, voucher_id: str) -> BusinessVoucher:
    voucher = (
        db.query(BusinessVoucher)
        .filter(BusinessVoucher.id == voucher_id, BusinessVoucher.business_id == business_id)
        .first()
    )
    if not voucher:
        raise NotFoundError()
    return voucher


def toggle_voucher(db: Session, business_id: str, voucher_id: str, now: datetime) -> BusinessVoucher:
    voucher = get_voucher(db, business_id, voucher_id)
    if not can_toggle(voucher, now):
        raise VoucherStateError()

    voucher.is_active = not voucher.is_active
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Failed to update voucher status.") from exc
    db.refresh(voucher)

    publish_voucher_update(voucher)
    return voucher


def list_vouchers(db: Session, business_id: str) -> List[BusinessVoucher]:
    return (
        db.query(BusinessVoucher)
        .filter(BusinessVoucher.business_id == business_id)
        .order_by(BusinessVoucher.created_at.desc())
        .all()
    )


def list_usage(db: Session, business_id: str, limit: int = 100) -> List[VoucherUsage]:
    return (
        db.query(VoucherUsage)
        .join(BusinessVoucher, BusinessVoucher.id == VoucherUsage.voucher_id)
        .filter(BusinessVoucher.business_id == business_id)
        .order_by(VoucherUsage.used_at.desc())
        .limit(max(1, min(limit, 500)))
        .all()
    )


def voucher_stats(db: Session, business_id: str, now: datetime) -> Dict[str, Any]:
    vouchers = list_vouchers(db, business_id)
    active = sum(1 for v in vouchers if evaluate(v, now) is VoucherStatus.ACTIVE)

    redemptions, saved = (
        db.query(func.count(VoucherUsage.id), func.coalesce(func.sum(VoucherUsage.amount_saved), 0))
        .join(BusinessVoucher, BusinessVoucher.id == VoucherUsage.voucher_id)
        .filter(BusinessVoucher.business_id == business_id)
        .one()
    )
    return {
        "total_vouchers": len(vouchers),
        "active_vouchers": active,
        "total_redemptions": int(redemptions or 0),
        "total_saved": float(saved or 0),
    }


def serialize_voucher(voucher: BusinessVoucher, now: datetime) -> Dict[str, Any]:
    start_date = as_utc(voucher.start_date)
    end_date = as_utc(voucher.end_date)
    return {
        "id": voucher.id,
        "business_id": voucher.business_id,
        "code": voucher.code,
        "title": voucher.title,
        "description": voucher.description,
        "voucher_type": voucher.voucher_type,
        "discount_value": float(voucher.discount_value or 0),
        "min_purchase_amount": float(voucher.min_purchase_amount or 0),
        "max_uses": voucher.max_uses,
        "current_uses": voucher.current_uses,
        "spend_amount": float(voucher.spend_amount) if voucher.spend_amount is not None else None,
        "get_back_amount": float(voucher.get_back_amount) if voucher.get_back_amount is not None else None,
        "exclusions": voucher.exclusions,
        "terms": voucher.terms,
        "blackout_days": voucher.blackout_days,
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "is_active": voucher.is_active,
        "schedule_id": voucher.schedule_id,
        "status": evaluate(voucher, now).value,
        "can_toggle": can_toggle(voucher, now),
    }


def serialize_usage(usage: VoucherUsage) -> Dict[str, Any]:
    used_at = as_utc(usage.used_at)
    return {
        "id": usage.id,
        "voucher_id": usage.voucher_id,
        "user_email": usage.user_email,
        "used_at": used_at.isoformat() if used_at else None,
        "amount_saved": float(usage.amount_saved or 0),
        "device_id": usage.device_id,
    }
