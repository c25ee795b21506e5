from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW
from database import as_utc
from models.business_voucher import BusinessVoucher
from models.voucher_schedule import VoucherSchedule
from utils.schedule_service import (
    create_schedule,
    delete_schedule,
    list_schedules,
    toggle_schedule,
    validate_recurrence,
)
from utils.voucher_errors import NotFoundError, ValidationError
from utils.voucher_materializer import run_due_schedules

TEMPLATE = {
    "title": "Weekly lunch deal",
    "voucher_type": "percentage_discount",
    "discount_value": 15,
    "max_uses": 50,
    "duration_days": 7,
}


def test_create_weekly_schedule_sets_first_trigger(db, business):
    schedule = create_schedule(
        db, business.id, "Monday lunch", TEMPLATE, "weekly",
        {"time": "09:00", "day_of_week": "monday"}, NOW,
    )
    assert schedule.is_active is True
    assert schedule.last_triggered_at is None
    assert as_utc(schedule.next_trigger_at) == datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)
    assert schedule.voucher_template["title"] == "Weekly lunch deal"
    assert schedule.recurrence_details == {"time": "09:00", "day_of_week": "monday"}


@pytest.mark.parametrize(
    "name, template, pattern, details",
    [
        ("", TEMPLATE, "daily", {"time": "09:00"}),
        ("No title", {**TEMPLATE, "title": ""}, "daily", {"time": "09:00"}),
        ("No duration", {k: v for k, v in TEMPLATE.items() if k != "duration_days"}, "daily", {"time": "09:00"}),
        ("Bad pattern", TEMPLATE, "hourly", {"time": "09:00"}),
        ("No time", TEMPLATE, "daily", {}),
        ("No weekday", TEMPLATE, "weekly", {"time": "09:00"}),
        ("Late month", TEMPLATE, "monthly", {"time": "09:00", "day_of_month": 31}),
    ],
)
def test_create_schedule_rejects_invalid_input(db, business, name, template, pattern, details):
    with pytest.raises(ValidationError):
        create_schedule(db, business.id, name, template, pattern, details, NOW)
    assert db.query(VoucherSchedule).count() == 0


def test_validate_recurrence_normalizes_details():
    assert validate_recurrence("weekly", {"time": "07:30", "day_of_week": " Friday "}) == {
        "time": "07:30",
        "day_of_week": "friday",
    }
    assert validate_recurrence("monthly", {"time": "07:30", "day_of_month": "28"}) == {
        "time": "07:30",
        "day_of_month": 28,
    }


def test_toggle_keeps_trigger_and_template(db, business):
    schedule = create_schedule(db, business.id, "Daily", TEMPLATE, "daily", {"time": "09:00"}, NOW)
    next_trigger = schedule.next_trigger_at
    template = dict(schedule.voucher_template)

    paused = toggle_schedule(db, business.id, schedule.id)
    assert paused.is_active is False
    assert paused.next_trigger_at == next_trigger
    assert paused.voucher_template == template

    resumed = toggle_schedule(db, business.id, schedule.id)
    assert resumed.is_active is True
    assert resumed.next_trigger_at == next_trigger


def test_paused_schedule_is_not_materialized_and_catches_up_on_resume(db, business):
    schedule = create_schedule(db, business.id, "Daily", TEMPLATE, "daily", {"time": "09:00"}, NOW)
    toggle_schedule(db, business.id, schedule.id)

    later = NOW + timedelta(days=3)
    report = run_due_schedules(db, later)
    assert report.processed == 0
    assert db.query(BusinessVoucher).count() == 0

    toggle_schedule(db, business.id, schedule.id)
    report = run_due_schedules(db, later)
    assert len(report.created) == 1
    db.expire_all()
    assert as_utc(db.get(VoucherSchedule, schedule.id).next_trigger_at) > later


def test_delete_keeps_materialized_vouchers(db, business):
    schedule = create_schedule(db, business.id, "Daily", TEMPLATE, "daily", {"time": "09:00"}, NOW)
    run_due_schedules(db, NOW + timedelta(days=1))
    assert db.query(BusinessVoucher).filter_by(schedule_id=schedule.id).count() == 1

    delete_schedule(db, business.id, schedule.id)

    assert db.query(VoucherSchedule).count() == 0
    assert db.query(BusinessVoucher).filter_by(schedule_id=schedule.id).count() == 1


def test_list_is_newest_first_and_scoped_to_business(db, business, make_business):
    first = create_schedule(db, business.id, "First", TEMPLATE, "daily", {"time": "09:00"}, NOW)
    second = create_schedule(
        db, business.id, "Second", TEMPLATE, "daily", {"time": "09:00"}, NOW + timedelta(minutes=5)
    )
    other = make_business(owner="someone-else")
    create_schedule(db, other.id, "Other", TEMPLATE, "daily", {"time": "09:00"}, NOW)

    assert [s.id for s in list_schedules(db, business.id)] == [second.id, first.id]

    with pytest.raises(NotFoundError):
        toggle_schedule(db, other.id, first.id)
