import pytest

from utils.scanner_mode import ScannerMode, get_mode, parse_mode, set_mode
from utils.voucher_errors import ConfirmationRequiredError, ValidationError


def test_new_device_starts_in_test_mode(db, business):
    assert get_mode(db, business.id, "counter-1") is ScannerMode.TEST


def test_going_live_needs_confirmation(db, business):
    with pytest.raises(ConfirmationRequiredError):
        set_mode(db, business.id, "counter-1", ScannerMode.LIVE)
    assert get_mode(db, business.id, "counter-1") is ScannerMode.TEST

    assert set_mode(db, business.id, "counter-1", ScannerMode.LIVE, confirmed=True) is ScannerMode.LIVE
    assert get_mode(db, business.id, "counter-1") is ScannerMode.LIVE


def test_back_to_test_needs_no_confirmation(db, business):
    set_mode(db, business.id, "counter-1", ScannerMode.LIVE, confirmed=True)
    assert set_mode(db, business.id, "counter-1", ScannerMode.TEST) is ScannerMode.TEST
    # live -> live is not a switch
    set_mode(db, business.id, "counter-1", ScannerMode.LIVE, confirmed=True)
    assert set_mode(db, business.id, "counter-1", ScannerMode.LIVE) is ScannerMode.LIVE


def test_mode_is_per_device_and_business(db, business, make_business):
    other = make_business(owner="someone-else")
    set_mode(db, business.id, "counter-1", ScannerMode.LIVE, confirmed=True)

    assert get_mode(db, business.id, "counter-2") is ScannerMode.TEST
    assert get_mode(db, other.id, "counter-1") is ScannerMode.TEST


def test_default_mode_from_environment(db, business, monkeypatch):
    monkeypatch.setenv("SCANNER_DEFAULT_MODE", "live")
    assert get_mode(db, business.id, "counter-9") is ScannerMode.LIVE


def test_device_id_required(db, business):
    with pytest.raises(ValidationError):
        set_mode(db, business.id, "  ", ScannerMode.TEST)


def test_parse_mode():
    assert parse_mode(" LIVE ") is ScannerMode.LIVE
    with pytest.raises(ValidationError):
        parse_mode("demo")
