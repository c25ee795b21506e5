from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth_utils import require_business
from database import get_db
from models.business import Business
from routes.utils import http_error, request_now
from utils.redemption import RedemptionStateMachine
from utils.redemption_store import RedemptionRecorder, VoucherLookup
from utils.scanner_mode import ScannerMode, get_mode, parse_mode, set_mode
from utils.voucher_errors import VoucherError

router = APIRouter(prefix="/business/{business_id}/scanner", tags=["Voucher Scanner"])


class ModeIn(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=120)
    mode: str
    confirm: bool = False


class ScanIn(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=120)
    raw: str = Field(..., description="QR text decoded by the browser camera")
    scan_nonce: Optional[str] = Field(default=None, max_length=64)
    user_email: Optional[str] = Field(default=None, max_length=200)


@router.get("/mode")
def scanner_mode(
    device_id: str,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    try:
        mode = get_mode(db, business.id, device_id)
    except VoucherError as exc:
        raise http_error(exc)
    return {"device_id": device_id, "mode": mode.value}


@router.put("/mode")
def change_scanner_mode(
    payload: ModeIn,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    try:
        mode = set_mode(db, business.id, payload.device_id, parse_mode(payload.mode), payload.confirm)
    except VoucherError as exc:
        raise http_error(exc)
    return {"device_id": payload.device_id, "mode": mode.value}


@router.post("/scan")
def scan_voucher(
    payload: ScanIn,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
    now: datetime = Depends(request_now),
):
    """
    Validates (test mode) or redeems (live mode) one scanned voucher.
    Rejections come back as state "error" with a kind and a message.
    """
    try:
        mode = get_mode(db, business.id, payload.device_id)
    except VoucherError as exc:
        raise http_error(exc)
    recorder = RedemptionRecorder(db) if mode is ScannerMode.LIVE else None

    with RedemptionStateMachine(
        business_id=business.id,
        mode=mode,
        lookup=VoucherLookup(db),
        recorder=recorder,
        clock=lambda: now,
        device_id=payload.device_id,
    ) as machine:
        machine.submit(payload.raw, scan_nonce=payload.scan_nonce, user_email=payload.user_email)
        return machine.snapshot()
