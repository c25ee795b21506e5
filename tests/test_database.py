from datetime import datetime, timezone

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from database import as_utc
from utils.voucher_tables import ensure_voucher_tables


def _memory_engine():
    return create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)


def test_database_connection():
    """The engine answers a trivial query."""
    engine = _memory_engine()
    with engine.connect() as conn:
        assert conn.execute(text("SELECT 1")).scalar() == 1


def test_required_tables_exist():
    """ensure_voucher_tables creates every voucher table and can run twice."""
    engine = _memory_engine()
    assert ensure_voucher_tables(engine) is True
    assert ensure_voucher_tables(engine) is True

    tables = set(inspect(engine).get_table_names())
    required = {
        "businesses",
        "business_vouchers",
        "voucher_usage",
        "voucher_schedules",
        "scheduled_voucher_logs",
        "scanner_settings",
    }
    missing = required - tables
    assert not missing, f"❌ Missing tables: {missing}"


def test_as_utc_treats_naive_values_as_utc():
    naive = datetime(2024, 1, 1, 10, 0)
    assert as_utc(naive) == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert as_utc(None) is None
