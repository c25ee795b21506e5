# utils/voucher_template.py
"""
Reusable voucher definition stored inside a schedule.

build_template() is strict (dashboard input); voucher_fields_from_template()
is permissive because it runs on rows that were stored long ago.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from utils.voucher_errors import ValidationError

# short form (template UI) and long form (voucher rows) both accepted
VOUCHER_TYPE_ALIASES: Dict[str, str] = {
    "percentage": "percentage_discount",
    "percentage_discount": "percentage_discount",
    "fixed": "fixed_amount",
    "fixed_amount": "fixed_amount",
    "bogo": "buy_one_get_one",
    "buy_one_get_one": "buy_one_get_one",
    "spend_get": "spend_get",
}

REQUIRED_FIELDS = ("title", "duration_days")

# free text shown on the voucher, copied verbatim
TEXT_FIELDS = ("exclusions", "terms", "blackout_days")


def normalize_voucher_type(value: Any) -> Optional[str]:
    return VOUCHER_TYPE_ALIASES.get(str(value or "").strip().lower())


class VoucherTemplate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    voucher_type: str = Field(default="percentage")
    discount_value: Optional[float] = Field(default=None, ge=0)
    min_purchase_amount: float = Field(default=0, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    duration_days: int = Field(..., ge=1, le=365)
    spend_amount: Optional[float] = Field(default=None, gt=0)
    get_back_amount: Optional[float] = Field(default=None, gt=0)
    exclusions: Optional[str] = None
    terms: Optional[str] = None
    blackout_days: Optional[str] = None

    @field_validator(*TEXT_FIELDS)
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("voucher_type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        normalized = normalize_voucher_type(value)
        if normalized is None:
            raise ValueError(f"unknown voucher type '{value}'")
        return normalized


def build_template(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validates dashboard input and returns the JSON stored in
    voucher_schedules.voucher_template. Raises ValidationError.
    """
    for req in REQUIRED_FIELDS:
        if raw.get(req) in ("", None):
            raise ValidationError(f"'{req}' is required for a voucher template")

    try:
        template = VoucherTemplate.model_validate(dict(raw))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "template"
        raise ValidationError(f"Invalid '{field}': {first.get('msg')}") from exc

    if template.voucher_type == "spend_get":
        for req in ("spend_amount", "get_back_amount"):
            if getattr(template, req) is None:
                raise ValidationError(f"'{req}' is required for a spend-and-get voucher")
        if template.get_back_amount > template.spend_amount:
            raise ValidationError("'get_back_amount' must not exceed 'spend_amount'")
        if template.discount_value is None:
            template.discount_value = template.get_back_amount
    elif template.voucher_type == "buy_one_get_one":
        if template.discount_value is None:
            template.discount_value = 0
    elif template.discount_value is None:
        raise ValidationError("'discount_value' is required for a voucher template")

    return template.model_dump()


def voucher_fields_from_template(
    template: Mapping[str, Any],
    now: datetime,
    default_duration_days: int = 7,
) -> Dict[str, Any]:
    """Columns of a new business_vouchers row stamped at ``now``."""
    try:
        duration = int(template.get("duration_days") or default_duration_days)
    except (TypeError, ValueError):
        duration = default_duration_days
    duration = max(duration, 1)

    return {
        "title": template.get("title") or "Voucher",
        "description": template.get("description"),
        "voucher_type": normalize_voucher_type(template.get("voucher_type")) or "percentage_discount",
        "discount_value": template.get("discount_value") or 0,
        "min_purchase_amount": template.get("min_purchase_amount") or 0,
        "max_uses": template.get("max_uses"),
        "spend_amount": template.get("spend_amount"),
        "get_back_amount": template.get("get_back_amount"),
        **{name: template.get(name) or None for name in TEXT_FIELDS},
        "current_uses": 0,
        "start_date": now,
        "end_date": now + timedelta(days=duration),
        "is_active": True,
    }
