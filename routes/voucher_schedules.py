from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth_utils import require_business
from database import as_utc, get_db
from models.business import Business
from routes.utils import http_error, request_now
from utils.schedule_service import (
    create_schedule,
    delete_schedule,
    list_schedule_logs,
    list_schedules,
    serialize_schedule,
    toggle_schedule,
)
from utils.voucher_errors import VoucherError

router = APIRouter(prefix="/business/{business_id}/voucher-schedules", tags=["Voucher Schedules"])


class CreateScheduleIn(BaseModel):
    schedule_name: str = Field(default="")
    voucher_template: Dict[str, Any] = Field(default_factory=dict)
    recurrence_pattern: str = Field(default="weekly")
    recurrence_details: Dict[str, Any] = Field(default_factory=dict)


@router.get("")
def list_business_schedules(
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    rows = list_schedules(db, business.id)
    return {"items": [serialize_schedule(s) for s in rows], "count": len(rows)}


@router.post("", status_code=201)
def create_business_schedule(
    payload: CreateScheduleIn,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
    now: datetime = Depends(request_now),
):
    try:
        schedule = create_schedule(
            db,
            business.id,
            payload.schedule_name,
            payload.voucher_template,
            payload.recurrence_pattern,
            payload.recurrence_details,
            now,
        )
    except VoucherError as exc:
        raise http_error(exc)
    return serialize_schedule(schedule)


@router.post("/{schedule_id}/toggle")
def toggle_business_schedule(
    schedule_id: str,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    try:
        schedule = toggle_schedule(db, business.id, schedule_id)
    except VoucherError as exc:
        raise http_error(exc)
    return serialize_schedule(schedule)


@router.delete("/{schedule_id}")
def delete_business_schedule(
    schedule_id: str,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    try:
        delete_schedule(db, business.id, schedule_id)
    except VoucherError as exc:
        raise http_error(exc)
    return {"ok": True, "id": schedule_id}


@router.get("/{schedule_id}/logs")
def business_schedule_logs(
    schedule_id: str,
    limit: int = 50,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    try:
        rows = list_schedule_logs(db, business.id, schedule_id, limit)
    except VoucherError as exc:
        raise http_error(exc)
    return {
        "items": [
            {
                "id": row.id,
                "voucher_id": row.voucher_id,
                "status": row.status,
                "error_message": row.error_message,
                "created_at": as_utc(row.created_at).isoformat() if row.created_at else None,
            }
            for row in rows
        ],
        "count": len(rows),
    }
