# utils/voucher_errors.py
"""
Error taxonomy for scheduling, voucher management and scanning.

Every error carries a stable ``kind`` (used by the scanner UI and the JSON
API) and a message that can be shown to the operator as-is.
"""

from __future__ import annotations

from typing import Optional


class VoucherError(Exception):
    kind = "voucher_error"
    default_message = "Voucher operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(VoucherError):
    kind = "validation"
    default_message = "Please fill in all required fields"


class MalformedPayloadError(VoucherError):
    kind = "malformed_payload"
    default_message = "QR code does not contain a voucher"


class WrongTypeError(VoucherError):
    kind = "wrong_type"
    default_message = "Invalid voucher QR"


class BusinessMismatchError(VoucherError):
    kind = "business_mismatch"
    default_message = "Voucher not for this business"


class NotFoundError(VoucherError):
    kind = "not_found"
    default_message = "Voucher not found"


class InvalidVoucherError(VoucherError):
    kind = "invalid_voucher"

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or f"Voucher is not valid ({reason.replace('_', ' ')})")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class VoucherStateError(VoucherError):
    kind = "voucher_state"
    default_message = "Expired or fully used vouchers cannot be re-activated"


class CameraAccessError(VoucherError):
    kind = "camera_access"
    default_message = "Failed to access camera. Please grant camera permissions and try again."


class ConfirmationRequiredError(VoucherError):
    kind = "confirmation_required"
    default_message = (
        "Switching to live mode records real redemptions and cannot be undone. "
        "Confirm to continue."
    )


class PersistenceError(VoucherError):
    kind = "persistence"
    default_message = "Could not save changes, please try again"
