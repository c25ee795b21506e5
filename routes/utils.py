from __future__ import annotations

from datetime import datetime

from fastapi import HTTPException

from database import utc_now
from utils.voucher_errors import VoucherError

STATUS_BY_KIND = {
    "validation": 400,
    "not_found": 404,
    "voucher_state": 409,
    "confirmation_required": 409,
    "persistence": 503,
}


def request_now() -> datetime:
    """Request clock; tests override this dependency."""
    return utc_now()


def http_error(exc: VoucherError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND.get(exc.kind, 400), detail=exc.to_dict())
