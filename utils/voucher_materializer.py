# utils/voucher_materializer.py
# =============================================================================
# 🏭 Voucher materializer
# -----------------------------------------------------------------------------
# plan_materialization() is pure: (due schedules, now) -> (new vouchers,
# schedule advances). run_due_schedules() applies a plan against the
# database, one schedule per transaction:
#
#   1. claim: advance next_trigger_at WHERE next_trigger_at = <observed>
#   2. insert the voucher + success log
#   3. commit
#
# A failed insert rolls the claim back, so the schedule is retried on the
# next run. A lost claim means another run already handled the schedule.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from database import as_utc, utc_now
from models.business import Business
from models.business_voucher import BusinessVoucher
from models.scheduled_voucher_log import ScheduledVoucherLog
from models.voucher_schedule import VoucherSchedule
from utils.recurrence import compute_next_trigger
from utils.subscription_access import is_schedulable
from utils.voucher_errors import PersistenceError
from utils.voucher_settings import default_duration_days
from utils.voucher_template import voucher_fields_from_template

logger = logging.getLogger("vouchers.scheduler")


@dataclass(frozen=True)
class PlannedVoucher:
    schedule_id: str
    business_id: str
    fields: Dict[str, Any]


@dataclass(frozen=True)
class ScheduleAdvance:
    schedule_id: str
    observed_trigger_at: Any
    next_trigger_at: datetime
    last_triggered_at: datetime


@dataclass
class MaterializationPlan:
    vouchers: List[PlannedVoucher] = field(default_factory=list)
    advances: List[ScheduleAdvance] = field(default_factory=list)


@dataclass
class MaterializerReport:
    run_at: datetime
    processed: int = 0
    created: Dict[str, str] = field(default_factory=dict)   # schedule_id -> voucher_id
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)    # schedule_id -> error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "run_at": self.run_at.isoformat(),
            "processed": self.processed,
            "created": len(self.created),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }


def is_due(schedule: Any, now: datetime) -> bool:
    next_trigger = as_utc(schedule.next_trigger_at)
    return bool(schedule.is_active) and next_trigger is not None and next_trigger <= as_utc(now)


def plan_schedule(
    schedule: Any,
    now: datetime,
    duration_fallback: Optional[int] = None,
) -> Tuple[PlannedVoucher, ScheduleAdvance]:
    now = as_utc(now)
    fields = voucher_fields_from_template(
        schedule.voucher_template or {},
        now,
        duration_fallback or default_duration_days(),
    )
    voucher = PlannedVoucher(
        schedule_id=str(schedule.id),
        business_id=str(schedule.business_id),
        fields=fields,
    )
    advance = ScheduleAdvance(
        schedule_id=str(schedule.id),
        observed_trigger_at=schedule.next_trigger_at,
        next_trigger_at=compute_next_trigger(
            schedule.recurrence_pattern, schedule.recurrence_details or {}, now
        ),
        last_triggered_at=now,
    )
    return voucher, advance


def plan_materialization(
    schedules: Iterable[Any],
    now: datetime,
    duration_fallback: Optional[int] = None,
) -> MaterializationPlan:
    plan = MaterializationPlan()
    for schedule in schedules:
        if not is_due(schedule, now):
            continue
        voucher, advance = plan_schedule(schedule, now, duration_fallback)
        plan.vouchers.append(voucher)
        plan.advances.append(advance)
    return plan


def find_due_schedules(db: Session, now: datetime) -> List[VoucherSchedule]:
    """Active, overdue schedules of approved businesses on a voucher tier."""
    try:
        rows = (
            db.query(VoucherSchedule)
            .join(Business, Business.id == VoucherSchedule.business_id)
            .options(contains_eager(VoucherSchedule.business))
            .filter(
                VoucherSchedule.is_active.is_(True),
                VoucherSchedule.next_trigger_at <= as_utc(now),
            )
            .order_by(VoucherSchedule.next_trigger_at.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Could not load due schedules") from exc
    return [schedule for schedule in rows if is_schedulable(schedule.business)]


def _claim(db: Session, advance: ScheduleAdvance) -> bool:
    result = db.execute(
        update(VoucherSchedule)
        .where(
            VoucherSchedule.id == advance.schedule_id,
            VoucherSchedule.is_active.is_(True),
            VoucherSchedule.next_trigger_at == advance.observed_trigger_at,
            VoucherSchedule.next_trigger_at <= advance.last_triggered_at,
        )
        .values(
            next_trigger_at=advance.next_trigger_at,
            last_triggered_at=advance.last_triggered_at,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def materialize_schedule(
    db: Session,
    schedule: VoucherSchedule,
    now: datetime,
    observed_trigger_at: Any = None,
) -> Optional[str]:
    """
    Materializes one schedule in a single transaction.
    Returns the new voucher id, or None when the claim was lost.

    observed_trigger_at is the next_trigger_at seen when the schedule was
    found due. The claim must match it, not whatever the row holds after
    an earlier commit in the same pass reloaded it.
    """
    planned, advance = plan_schedule(schedule, now)
    if observed_trigger_at is not None:
        advance = replace(advance, observed_trigger_at=observed_trigger_at)

    if not _claim(db, advance):
        db.rollback()
        logger.warning(f"⚠️ Schedule {advance.schedule_id} already claimed by another run – skipped")
        return None

    voucher = BusinessVoucher(
        business_id=planned.business_id,
        schedule_id=planned.schedule_id,
        **planned.fields,
    )
    db.add(voucher)
    db.flush()

    db.add(
        ScheduledVoucherLog(
            schedule_id=planned.schedule_id,
            voucher_id=voucher.id,
            status="success",
            created_at=advance.last_triggered_at,
        )
    )
    db.commit()

    logger.info(
        f"🎟️ Voucher {voucher.id} created from schedule {planned.schedule_id}, "
        f"next trigger {advance.next_trigger_at.isoformat()}"
    )
    return voucher.id


def _log_failure(db: Session, schedule_id: str, message: str, now: datetime) -> None:
    try:
        db.add(
            ScheduledVoucherLog(
                schedule_id=schedule_id,
                status="failed",
                error_message=message[:2000],
                created_at=now,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"❌ Could not write failure log for schedule {schedule_id}")


def run_due_schedules(db: Session, now: Optional[datetime] = None) -> MaterializerReport:
    """
    One materializer pass. A failing schedule is logged and skipped, the
    rest of the batch still runs.
    """
    now = as_utc(now or utc_now())
    report = MaterializerReport(run_at=now)

    schedules = find_due_schedules(db, now)
    # captured before the first commit expires the loaded rows
    observed = [(schedule.id, schedule.next_trigger_at) for schedule in schedules]
    logger.info(f"⏰ Voucher scheduler triggered: {len(observed)} schedule(s) due")

    for schedule, (schedule_id, observed_trigger_at) in zip(schedules, observed):
        report.processed += 1
        try:
            voucher_id = materialize_schedule(db, schedule, now, observed_trigger_at)
        except Exception as exc:
            db.rollback()
            logger.exception(f"❌ Error processing schedule {schedule_id}")
            report.failed[schedule_id] = str(exc)
            _log_failure(db, schedule_id, str(exc), now)
            continue

        if voucher_id is None:
            report.skipped.append(schedule_id)
        else:
            report.created[schedule_id] = voucher_id

    return report
