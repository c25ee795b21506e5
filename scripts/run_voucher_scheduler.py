#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Script: run_voucher_scheduler.py
Description:
    Periodic trigger for the voucher materializer. Runs one pass with
    --once, otherwise loops every SCHEDULER_INTERVAL_SECONDS until stopped.
"""

import argparse
import logging
import os
import sys
import time

# ─────────────────────────────────────────────
# 🧩 Project root on sys.path
# ─────────────────────────────────────────────
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from database import SessionLocal, engine
from utils.voucher_errors import PersistenceError
from utils.voucher_materializer import run_due_schedules
from utils.voucher_settings import scheduler_interval_seconds
from utils.voucher_tables import ensure_voucher_tables

logger = logging.getLogger("vouchers.scheduler")


def run_once() -> None:
    db = SessionLocal()
    try:
        report = run_due_schedules(db)
        logger.info(
            f"✅ Pass done: processed={report.processed} created={len(report.created)} "
            f"skipped={len(report.skipped)} failed={len(report.failed)}"
        )
    except PersistenceError as exc:
        logger.error(f"❌ Scheduler pass aborted: {exc.message}")
    finally:
        db.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Materialize due voucher schedules")
    parser.add_argument("--once", action="store_true", help="run a single pass and exit")
    parser.add_argument("--interval", type=int, default=None, help="seconds between passes")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    ensure_voucher_tables(engine)

    if args.once:
        run_once()
        return

    interval = args.interval or scheduler_interval_seconds()
    logger.info(f"⏰ Voucher scheduler loop started (every {interval}s)")
    try:
        while True:
            run_once()
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("👋 Voucher scheduler stopped")


if __name__ == "__main__":
    main()
