from __future__ import annotations

import hmac
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from routes.utils import http_error, request_now
from utils.voucher_errors import VoucherError
from utils.voucher_materializer import run_due_schedules
from utils.voucher_settings import scheduler_token

logger = logging.getLogger("vouchers.scheduler")

router = APIRouter(prefix="/internal/voucher-scheduler", tags=["Voucher Scheduler"])


def require_scheduler_token(
    x_scheduler_token: Optional[str] = Header(default=None, alias="X-Scheduler-Token"),
) -> None:
    expected = scheduler_token()
    if not expected:
        raise HTTPException(status_code=503, detail="Scheduler trigger is not configured")
    if not x_scheduler_token or not hmac.compare_digest(expected, x_scheduler_token):
        raise HTTPException(status_code=401, detail="Invalid scheduler token")


@router.post("/run", dependencies=[Depends(require_scheduler_token)])
def run_scheduler(
    db: Session = Depends(get_db),
    now: datetime = Depends(request_now),
):
    try:
        report = run_due_schedules(db, now)
    except VoucherError as exc:
        logger.error(f"❌ Voucher scheduler error: {exc.message}")
        raise http_error(exc)
    return report.to_dict()
