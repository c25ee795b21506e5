from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from utils.voucher_errors import ValidationError
from utils.voucher_template import build_template, voucher_fields_from_template

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_build_template_normalizes_type():
    template = build_template(
        {"title": " Lunch deal ", "voucher_type": "percentage", "discount_value": 15, "duration_days": 3}
    )
    assert template["title"] == "Lunch deal"
    assert template["voucher_type"] == "percentage_discount"
    assert template["min_purchase_amount"] == 0
    assert template["max_uses"] is None


@pytest.mark.parametrize(
    "raw",
    [
        {"discount_value": 10, "duration_days": 7},
        {"title": "", "discount_value": 10, "duration_days": 7},
        {"title": "No discount", "voucher_type": "fixed", "duration_days": 7},
        {"title": "No duration", "discount_value": 10},
        {"title": "Zero duration", "discount_value": 10, "duration_days": 0},
        {"title": "Bad type", "voucher_type": "free_lunch", "discount_value": 10, "duration_days": 7},
        {"title": "Spend 50", "voucher_type": "spend_get", "spend_amount": 50, "duration_days": 7},
        {"title": "Spend 50", "voucher_type": "spend_get", "spend_amount": 50, "get_back_amount": 60, "duration_days": 7},
    ],
)
def test_build_template_rejects_incomplete_input(raw):
    with pytest.raises(ValidationError):
        build_template(raw)


def test_bogo_needs_no_discount_value():
    template = build_template({"title": "2 for 1", "voucher_type": "bogo", "duration_days": 7})
    assert template["voucher_type"] == "buy_one_get_one"
    assert template["discount_value"] == 0


def test_voucher_fields_stamp_validity_window():
    fields = voucher_fields_from_template(
        {"title": "Deal", "voucher_type": "fixed", "discount_value": 5, "max_uses": 20, "duration_days": 3},
        NOW,
    )
    assert fields["start_date"] == NOW
    assert fields["end_date"] == NOW + timedelta(days=3)
    assert fields["voucher_type"] == "fixed_amount"
    assert fields["max_uses"] == 20
    assert fields["current_uses"] == 0
    assert fields["is_active"] is True


def test_voucher_fields_fall_back_to_default_duration():
    fields = voucher_fields_from_template({"title": "Old row"}, NOW, default_duration_days=7)
    assert fields["end_date"] == NOW + timedelta(days=7)
    assert fields["voucher_type"] == "percentage_discount"


def test_spend_get_template_keeps_both_amounts():
    template = build_template(
        {
            "title": "Spend 50 get 10",
            "voucher_type": "spend_get",
            "spend_amount": 50,
            "get_back_amount": 10,
            "duration_days": 14,
        }
    )
    assert template["voucher_type"] == "spend_get"
    assert (template["spend_amount"], template["get_back_amount"]) == (50, 10)
    assert template["discount_value"] == 10


def test_template_keeps_terms_exclusions_and_blackout_days():
    template = build_template(
        {
            "title": "Lunch deal",
            "discount_value": 15,
            "duration_days": 7,
            "exclusions": "Alcohol",
            "terms": " One per table ",
            "blackout_days": "",
        }
    )
    assert template["exclusions"] == "Alcohol"
    assert template["terms"] == "One per table"
    assert template["blackout_days"] is None

    fields = voucher_fields_from_template(
        dict(template, blackout_days="Saturday, Sunday", voucher_type="spend_get", spend_amount=50, get_back_amount=10),
        NOW,
    )
    assert fields["exclusions"] == "Alcohol"
    assert fields["terms"] == "One per table"
    assert fields["blackout_days"] == "Saturday, Sunday"
    assert fields["voucher_type"] == "spend_get"
    assert (fields["spend_amount"], fields["get_back_amount"]) == (50, 10)
