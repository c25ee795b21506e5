# =============================================================================
# 🚀 Voucher service – application entry point (main.py)
# =============================================================================

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import Response
from starlette.middleware.sessions import SessionMiddleware

# -------------------------------------------------------------------------
# 1️⃣ Load .env (must happen before anything reads the environment)
# -------------------------------------------------------------------------
env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=env_path)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

from database import engine
from utils.voucher_tables import ensure_voucher_tables

# -------------------------------------------------------------------------
# 2️⃣ FastAPI app
# -------------------------------------------------------------------------
app = FastAPI(title="DineCard Vouchers", version="1.0")
ensure_voucher_tables(engine)

# -------------------------------------------------------------------------
# 3️⃣ Session middleware
# -------------------------------------------------------------------------
app.add_middleware(
    SessionMiddleware,
    secret_key=os.getenv("SESSION_SECRET", "dinecard-secret-key"),
    max_age=60 * 60 * 24 * 7,
    session_cookie=os.getenv("SESSION_COOKIE_NAME", "dinecard_session"),
    same_site=os.getenv("SESSION_SAME_SITE", "lax"),
    https_only=os.getenv("SESSION_HTTPS_ONLY", "0") in {"1", "true", "yes"},
)

# -------------------------------------------------------------------------
# 4️⃣ Routers
# -------------------------------------------------------------------------
from routes import vouchers
from routes import voucher_schedules
from routes import voucher_scanner
from routes import voucher_scheduler

app.include_router(vouchers.router)
app.include_router(voucher_schedules.router)
app.include_router(voucher_scanner.router)
app.include_router(voucher_scheduler.router)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/.well-known/appspecific/com.chrome.devtools.json", include_in_schema=False)
def chrome_devtools_probe() -> Response:
    # Chrome probes this endpoint locally; 204 avoids noisy 404 logs.
    return Response(status_code=204)


@app.get("/debug/routes")
def debug_routes() -> List[Dict[str, str]]:
    return [{"path": r.path, "name": r.name} for r in app.routes]
