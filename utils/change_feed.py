# utils/change_feed.py
# =============================================================================
# 📡 Change notifications for live dashboards
# -----------------------------------------------------------------------------
# voucher_usage inserts and business_vouchers updates, scoped per business.
# Published after commit; a failing subscriber never breaks the write path.
# =============================================================================

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger("vouchers.change_feed")


@dataclass(frozen=True)
class ChangeEvent:
    table: str          # voucher_usage | business_vouchers
    event: str          # INSERT | UPDATE
    business_id: str
    record: Dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def subscribe(self, business_id: str, callback: Subscriber) -> Callable[[], None]:
        """Registers ``callback`` for one business; returns the unsubscribe handle."""
        with self._lock:
            self._subscribers.setdefault(str(business_id), []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(str(business_id), [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(str(business_id), None)

        return unsubscribe

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(str(change.business_id), []))
        for callback in callbacks:
            try:
                callback(change)
            except Exception:
                logger.exception("Change subscriber failed for %s/%s", change.table, change.event)


change_feed = ChangeFeed()


def voucher_record(voucher: Any) -> Dict[str, Any]:
    return {
        "id": voucher.id,
        "is_active": voucher.is_active,
        "current_uses": voucher.current_uses,
        "max_uses": voucher.max_uses,
    }


def publish_voucher_update(voucher: Any) -> None:
    change_feed.publish(
        ChangeEvent(
            table="business_vouchers",
            event="UPDATE",
            business_id=str(voucher.business_id),
            record=voucher_record(voucher),
        )
    )


def publish_usage_insert(business_id: str, usage: Any) -> None:
    change_feed.publish(
        ChangeEvent(
            table="voucher_usage",
            event="INSERT",
            business_id=str(business_id),
            record={
                "id": usage.id,
                "voucher_id": usage.voucher_id,
                "user_email": usage.user_email,
                "used_at": usage.used_at.isoformat() if usage.used_at else None,
            },
        )
    )
