from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth_utils import require_business
from database import get_db
from models.business import Business
from routes.utils import http_error, request_now
from utils.voucher_errors import VoucherError
from utils.voucher_qr import encode, payload_for_voucher, render_voucher_qr
from utils.voucher_service import (
    create_voucher,
    get_voucher,
    list_usage,
    list_vouchers,
    serialize_usage,
    serialize_voucher,
    toggle_voucher,
    voucher_stats,
)

router = APIRouter(prefix="/business/{business_id}/vouchers", tags=["Vouchers"])


class CreateVoucherIn(BaseModel):
    title: str = Field(default="")
    description: Optional[str] = None
    voucher_type: str = Field(default="percentage_discount")
    discount_value: Optional[float] = None
    min_purchase_amount: Optional[float] = 0
    max_uses: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    spend_amount: Optional[float] = None
    get_back_amount: Optional[float] = None
    exclusions: Optional[str] = None
    terms: Optional[str] = None
    blackout_days: Optional[str] = None


@router.get("")
def list_business_vouchers(
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
    now: datetime = Depends(request_now),
):
    rows = list_vouchers(db, business.id)
    return {"items": [serialize_voucher(v, now) for v in rows], "count": len(rows)}


@router.post("", status_code=201)
def create_business_voucher(
    payload: CreateVoucherIn,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
    now: datetime = Depends(request_now),
):
    try:
        voucher = create_voucher(db, business.id, payload.model_dump(), now)
    except VoucherError as exc:
        raise http_error(exc)
    return serialize_voucher(voucher, now)


@router.get("/usage")
def business_voucher_usage(
    limit: int = 100,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    rows = list_usage(db, business.id, limit)
    return {"items": [serialize_usage(u) for u in rows], "count": len(rows)}


@router.get("/stats")
def business_voucher_stats(
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
    now: datetime = Depends(request_now),
):
    return voucher_stats(db, business.id, now)


@router.post("/{voucher_id}/toggle")
def toggle_business_voucher(
    voucher_id: str,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
    now: datetime = Depends(request_now),
):
    try:
        voucher = toggle_voucher(db, business.id, voucher_id, now)
    except VoucherError as exc:
        raise http_error(exc)
    return serialize_voucher(voucher, now)


@router.get("/{voucher_id}/payload")
def voucher_payload(
    voucher_id: str,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    try:
        voucher = get_voucher(db, business.id, voucher_id)
    except VoucherError as exc:
        raise http_error(exc)
    payload = payload_for_voucher(voucher)
    return {"payload": payload.to_dict(), "raw": encode(payload)}


@router.get("/{voucher_id}/qr")
def voucher_qr_image(
    voucher_id: str,
    size: int = 512,
    business: Business = Depends(require_business),
    db: Session = Depends(get_db),
):
    try:
        voucher = get_voucher(db, business.id, voucher_id)
    except VoucherError as exc:
        raise http_error(exc)
    png = render_voucher_qr(voucher, size=max(128, min(size, 1024)))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="voucher-{voucher.code}.png"'},
    )
