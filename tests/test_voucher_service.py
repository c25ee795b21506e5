from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import NOW
from database import as_utc
from models.voucher_usage import VoucherUsage
from utils.voucher_errors import NotFoundError, ValidationError, VoucherStateError
from utils.voucher_service import (
    create_voucher,
    list_usage,
    list_vouchers,
    serialize_voucher,
    toggle_voucher,
    voucher_stats,
)


def test_create_voucher_defaults(db, business):
    voucher = create_voucher(
        db,
        business.id,
        {"title": "Free dessert", "voucher_type": "bogo", "end_date": NOW + timedelta(days=14)},
        NOW,
    )
    assert voucher.voucher_type == "buy_one_get_one"
    assert float(voucher.discount_value) == 0
    assert voucher.current_uses == 0
    assert voucher.is_active is True
    assert as_utc(voucher.start_date) == NOW
    assert len(voucher.code) == 8


@pytest.mark.parametrize(
    "fields",
    [
        {"voucher_type": "fixed", "discount_value": 5, "end_date": NOW + timedelta(days=1)},
        {"title": "x", "voucher_type": "fixed", "end_date": NOW + timedelta(days=1)},
        {"title": "x", "discount_value": 5},
        {"title": "x", "discount_value": 5, "end_date": NOW - timedelta(days=1)},
        {"title": "x", "discount_value": 5, "max_uses": 0, "end_date": NOW + timedelta(days=1)},
        {"title": "x", "discount_value": -1, "end_date": NOW + timedelta(days=1)},
        {"title": "x", "voucher_type": "free", "discount_value": 5, "end_date": NOW + timedelta(days=1)},
        {"title": "x", "voucher_type": "spend_get", "spend_amount": 20, "end_date": NOW + timedelta(days=1)},
    ],
)
def test_create_voucher_rejects_invalid_fields(db, business, fields):
    with pytest.raises(ValidationError):
        create_voucher(db, business.id, fields, NOW)


def test_create_spend_get_voucher_with_terms(db, business):
    voucher = create_voucher(
        db,
        business.id,
        {
            "title": "Spend 40 get 8",
            "voucher_type": "spend_get",
            "spend_amount": 40,
            "get_back_amount": 8,
            "terms": " Dine-in only ",
            "blackout_days": "",
            "end_date": NOW + timedelta(days=14),
        },
        NOW,
    )
    data = serialize_voucher(voucher, NOW)
    assert data["voucher_type"] == "spend_get"
    assert (data["spend_amount"], data["get_back_amount"], data["discount_value"]) == (40.0, 8.0, 8.0)
    assert data["terms"] == "Dine-in only"
    assert data["blackout_days"] is None
    assert data["exclusions"] is None


def test_toggle_only_active_or_inactive(db, business, make_voucher):
    voucher = make_voucher(business.id)
    assert toggle_voucher(db, business.id, voucher.id, NOW).is_active is False
    assert toggle_voucher(db, business.id, voucher.id, NOW).is_active is True

    expired = make_voucher(business.id, end_date=NOW - timedelta(days=1))
    with pytest.raises(VoucherStateError):
        toggle_voucher(db, business.id, expired.id, NOW)

    used_up = make_voucher(business.id, max_uses=1, current_uses=1)
    with pytest.raises(VoucherStateError):
        toggle_voucher(db, business.id, used_up.id, NOW)


def test_toggle_is_scoped_to_business(db, business, make_business, make_voucher):
    other = make_business(owner="someone-else")
    voucher = make_voucher(other.id)
    with pytest.raises(NotFoundError):
        toggle_voucher(db, business.id, voucher.id, NOW)


def test_lists_and_stats(db, business, make_voucher):
    older = make_voucher(business.id, title="Older", created_at=NOW - timedelta(days=2))
    newer = make_voucher(business.id, title="Newer", created_at=NOW - timedelta(days=1), current_uses=2)
    make_voucher(business.id, title="Gone", created_at=NOW - timedelta(days=3), end_date=NOW - timedelta(hours=1))

    db.add_all(
        [
            VoucherUsage(voucher_id=newer.id, used_at=NOW - timedelta(hours=2), amount_saved=3),
            VoucherUsage(voucher_id=newer.id, used_at=NOW - timedelta(hours=1), amount_saved=4.5),
        ]
    )
    db.commit()

    assert [v.title for v in list_vouchers(db, business.id)] == ["Newer", "Older", "Gone"]
    assert [as_utc(u.used_at) for u in list_usage(db, business.id)] == [
        NOW - timedelta(hours=1),
        NOW - timedelta(hours=2),
    ]
    assert voucher_stats(db, business.id, NOW) == {
        "total_vouchers": 3,
        "active_vouchers": 2,
        "total_redemptions": 2,
        "total_saved": 7.5,
    }

    data = serialize_voucher(older, NOW)
    assert data["status"] == "active"
    assert data["can_toggle"] is True
