# utils/voucher_qr.py
"""
Scannable voucher payload: {"type": "voucher", "code", "voucher_id", "business_id"}.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict

from utils.qr_generator import generate_qr_png
from utils.voucher_errors import BusinessMismatchError, MalformedPayloadError, WrongTypeError

PAYLOAD_TYPE = "voucher"
REQUIRED_KEYS = ("type", "code", "voucher_id", "business_id")


@dataclass(frozen=True)
class QRPayload:
    type: str
    code: str
    voucher_id: str
    business_id: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def payload_for_voucher(voucher: Any) -> QRPayload:
    return QRPayload(
        type=PAYLOAD_TYPE,
        code=str(voucher.code),
        voucher_id=str(voucher.id),
        business_id=str(voucher.business_id),
    )


def encode(payload: QRPayload) -> str:
    return json.dumps(payload.to_dict(), separators=(",", ":"))


def decode(raw: str) -> QRPayload:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError() from exc

    if not isinstance(data, dict):
        raise MalformedPayloadError()
    missing = [key for key in REQUIRED_KEYS if not isinstance(data.get(key), str) or not data.get(key)]
    if missing:
        raise MalformedPayloadError(f"QR code is missing {', '.join(missing)}")

    return QRPayload(
        type=data["type"],
        code=data["code"],
        voucher_id=data["voucher_id"],
        business_id=data["business_id"],
    )


def validate(payload: QRPayload, expected_business_id: str) -> None:
    if payload.type != PAYLOAD_TYPE:
        raise WrongTypeError()
    if payload.business_id != str(expected_business_id):
        raise BusinessMismatchError()


def render_voucher_qr(voucher: Any, size: int = 512) -> bytes:
    """PNG bytes of the voucher QR, printed or shown to the customer."""
    return generate_qr_png(
        payload=encode(payload_for_voucher(voucher)),
        size=size,
        caption=str(voucher.code),
    )
