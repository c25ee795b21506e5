from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from utils.voucher_validity import VoucherStatus, can_toggle, evaluate

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def voucher(**overrides):
    fields = {
        "end_date": NOW + timedelta(days=3),
        "max_uses": None,
        "current_uses": 0,
        "is_active": True,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_past_end_date_is_expired():
    assert evaluate(voucher(end_date=NOW - timedelta(seconds=1)), NOW) is VoucherStatus.EXPIRED


def test_used_up_voucher_reports_max_uses():
    assert evaluate(voucher(max_uses=10, current_uses=10), NOW) is VoucherStatus.MAX_USES_REACHED


def test_expired_wins_over_max_uses_and_inactive():
    v = voucher(end_date=NOW - timedelta(days=1), max_uses=1, current_uses=5, is_active=False)
    assert evaluate(v, NOW) is VoucherStatus.EXPIRED


def test_max_uses_wins_over_inactive():
    v = voucher(max_uses=2, current_uses=2, is_active=False)
    assert evaluate(v, NOW) is VoucherStatus.MAX_USES_REACHED


def test_inactive_and_active():
    assert evaluate(voucher(is_active=False), NOW) is VoucherStatus.INACTIVE
    assert evaluate(voucher(max_uses=10, current_uses=9), NOW) is VoucherStatus.ACTIVE


def test_end_date_equal_to_now_is_still_valid():
    assert evaluate(voucher(end_date=NOW), NOW) is VoucherStatus.ACTIVE


def test_naive_end_date_is_read_as_utc():
    naive = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    assert evaluate(voucher(end_date=naive), NOW) is VoucherStatus.EXPIRED


def test_evaluate_does_not_mutate_and_is_repeatable():
    v = voucher(max_uses=3, current_uses=1)
    before = dict(vars(v))
    assert evaluate(v, NOW) == evaluate(v, NOW)
    assert vars(v) == before


def test_can_toggle_only_active_or_inactive():
    assert can_toggle(voucher(), NOW)
    assert can_toggle(voucher(is_active=False), NOW)
    assert not can_toggle(voucher(end_date=NOW - timedelta(days=1)), NOW)
    assert not can_toggle(voucher(max_uses=1, current_uses=1), NOW)
