from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def voucher_tiers() -> set[str]:
    raw = os.getenv("VOUCHER_TIERS", "firstclass")
    return {item.strip().lower() for item in raw.split(",") if item.strip()}


def default_duration_days() -> int:
    return max(1, _int_env("VOUCHER_DEFAULT_DURATION_DAYS", 7))


def default_scanner_mode() -> str:
    mode = os.getenv("SCANNER_DEFAULT_MODE", "test").strip().lower()
    return mode if mode in {"test", "live"} else "test"


def redemption_dedupe_seconds() -> int:
    return max(0, _int_env("REDEMPTION_DEDUPE_SECONDS", 3))


def scheduler_token() -> str:
    return os.getenv("SCHEDULER_TOKEN", "").strip()


def scheduler_interval_seconds() -> int:
    return max(1, _int_env("SCHEDULER_INTERVAL_SECONDS", 60))
