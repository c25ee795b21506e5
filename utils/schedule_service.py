# utils/schedule_service.py
# =============================================================================
# ⏰ Voucher schedule lifecycle
# - validation of template + recurrence
# - initial next_trigger_at
# - pause / resume (next_trigger_at untouched)
# - delete (materialized vouchers stay)
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import as_utc
from models.scheduled_voucher_log import ScheduledVoucherLog
from models.voucher_schedule import VoucherSchedule
from utils.recurrence import MAX_DAY_OF_MONTH, PATTERNS, WEEKDAYS, compute_next_trigger, parse_time
from utils.voucher_errors import NotFoundError, PersistenceError, ValidationError
from utils.voucher_template import build_template

logger = logging.getLogger("vouchers.schedules")


def validate_recurrence(pattern: str, details: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Returns the normalized recurrence_details for ``pattern``."""
    if pattern not in PATTERNS:
        raise ValidationError(f"Unknown recurrence pattern '{pattern}'")

    details = details or {}
    time_value = str(details.get("time") or "").strip()
    if parse_time(time_value) is None:
        raise ValidationError("'time' must be given as HH:MM")

    normalized: Dict[str, Any] = {"time": time_value}

    if pattern == "weekly":
        day_of_week = str(details.get("day_of_week") or "").strip().lower()
        if day_of_week not in WEEKDAYS:
            raise ValidationError("'day_of_week' must be a weekday name")
        normalized["day_of_week"] = day_of_week

    elif pattern == "monthly":
        try:
            day_of_month = int(details.get("day_of_month"))
        except (TypeError, ValueError):
            raise ValidationError("'day_of_month' is required for monthly schedules") from None
        if not 1 <= day_of_month <= MAX_DAY_OF_MONTH:
            raise ValidationError(f"'day_of_month' must be between 1 and {MAX_DAY_OF_MONTH}")
        normalized["day_of_month"] = day_of_month

    return normalized


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"❌ Schedule {action} failed")
        raise PersistenceError() from exc


def create_schedule(
    db: Session,
    business_id: str,
    schedule_name: str,
    template: Mapping[str, Any],
    pattern: str,
    details: Optional[Mapping[str, Any]],
    now: datetime,
) -> VoucherSchedule:
    schedule_name = (schedule_name or "").strip()
    if not schedule_name:
        raise ValidationError("'schedule_name' is required")

    voucher_template = build_template(template)
    recurrence_details = validate_recurrence(pattern, details)
    now = as_utc(now)

    schedule = VoucherSchedule(
        business_id=business_id,
        schedule_name=schedule_name,
        voucher_template=voucher_template,
        recurrence_pattern=pattern,
        recurrence_details=recurrence_details,
        is_active=True,
        next_trigger_at=compute_next_trigger(pattern, recurrence_details, now),
        last_triggered_at=None,
        created_at=now,
    )
    db.add(schedule)
    _commit(db, "create")
    db.refresh(schedule)

    logger.info(
        f"📅 Schedule created: {schedule.schedule_name} ({schedule.id}), "
        f"pattern={pattern}, next={schedule.next_trigger_at}"
    )
    return schedule


def get_schedule(db: Session, business_id: str, schedule_id: str) -> VoucherSchedule:
    schedule = (
        db.query(VoucherSchedule)
        .filter(VoucherSchedule.id == schedule_id, VoucherSchedule.business_id == business_id)
        .first()
    )
    if not schedule:
        raise NotFoundError("Schedule not found")
    return schedule


def toggle_schedule(db: Session, business_id: str, schedule_id: str) -> VoucherSchedule:
    """
    Pause/resume. next_trigger_at is left alone, so a schedule resumed after
    its trigger time has passed fires on the next materializer run.
    """
    schedule = get_schedule(db, business_id, schedule_id)
    schedule.is_active = not schedule.is_active
    _commit(db, "toggle")
    db.refresh(schedule)
    logger.info(f"⏯️ Schedule {schedule.id} {'activated' if schedule.is_active else 'paused'}")
    return schedule


def delete_schedule(db: Session, business_id: str, schedule_id: str) -> None:
    schedule = get_schedule(db, business_id, schedule_id)
    db.delete(schedule)
    _commit(db, "delete")
    logger.info(f"🗑️ Schedule {schedule_id} deleted")


def list_schedules(db: Session, business_id: str) -> List[VoucherSchedule]:
    return (
        db.query(VoucherSchedule)
        .filter(VoucherSchedule.business_id == business_id)
        .order_by(VoucherSchedule.created_at.desc())
        .all()
    )


def list_schedule_logs(db: Session, business_id: str, schedule_id: str, limit: int = 50) -> List[ScheduledVoucherLog]:
    get_schedule(db, business_id, schedule_id)
    return (
        db.query(ScheduledVoucherLog)
        .filter(ScheduledVoucherLog.schedule_id == schedule_id)
        .order_by(ScheduledVoucherLog.created_at.desc())
        .limit(max(1, min(limit, 200)))
        .all()
    )


def serialize_schedule(schedule: VoucherSchedule) -> Dict[str, Any]:
    next_trigger = as_utc(schedule.next_trigger_at)
    last_triggered = as_utc(schedule.last_triggered_at)
    return {
        "id": schedule.id,
        "business_id": schedule.business_id,
        "schedule_name": schedule.schedule_name,
        "voucher_template": schedule.voucher_template,
        "recurrence_pattern": schedule.recurrence_pattern,
        "recurrence_details": schedule.recurrence_details,
        "is_active": schedule.is_active,
        "next_trigger_at": next_trigger.isoformat() if next_trigger else None,
        "last_triggered_at": last_triggered.isoformat() if last_triggered else None,
    }
