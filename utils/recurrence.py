# utils/recurrence.py
# =============================================================================
# ⏰ Next-trigger calculation for voucher schedules
# -----------------------------------------------------------------------------
# Weekly/monthly advance a fixed step from "now" (7 days / 1 month) and do
# not search forward for the configured weekday. Dashboard users see those
# dates, so the behavior is pinned by tests.
# =============================================================================

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Tuple

PATTERNS = ("daily", "weekly", "monthly")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
MAX_DAY_OF_MONTH = 28


def parse_time(value: Any) -> Optional[Tuple[int, int]]:
    """'HH:MM' -> (hour, minute); None when absent or unparseable."""
    if not value or not isinstance(value, str) or ":" not in value:
        return None
    hours, minutes = value.split(":", 1)
    try:
        hour, minute = int(hours), int(minutes[:2])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def _add_month(now: datetime, day_of_month: Any) -> datetime:
    year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
    try:
        day = int(day_of_month)
    except (TypeError, ValueError):
        day = now.day
    last_day = calendar.monthrange(year, month)[1]
    day = min(max(day, 1), last_day)
    return now.replace(year=year, month=month, day=day)


def _at_time(moment: datetime, details: Mapping[str, Any]) -> datetime:
    parsed = parse_time(details.get("time"))
    if parsed is None:
        return moment
    hour, minute = parsed
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def compute_next_trigger(pattern: str, details: Optional[Mapping[str, Any]], now: datetime) -> datetime:
    """
    Next trigger timestamp for a schedule, computed from ``now``.

    daily   -> now + 1 day at details["time"]
    weekly  -> now + 7 days at details["time"]
    monthly -> next month on details["day_of_month"] at details["time"]
    other   -> now + 1 day

    Malformed details never raise; missing parts keep the components of
    ``now``. The result is always strictly after ``now``.
    """
    details = details or {}

    if pattern == "daily":
        return _at_time(now + timedelta(days=1), details)
    if pattern == "weekly":
        return _at_time(now + timedelta(days=7), details)
    if pattern == "monthly":
        return _at_time(_add_month(now, details.get("day_of_month")), details)
    return now + timedelta(days=1)
