# auth_utils.py
# =============================================================================
# 🔐 Who is calling, and do they own the business?
# -----------------------------------------------------------------------------
# Session login (user_id in the signed cookie) is the default. When Supabase
# is configured, a Supabase access token in "Authorization: Bearer ..." is
# accepted as well.
# =============================================================================

import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.business import Business
from utils.subscription_access import has_voucher_access

load_dotenv()

logger = logging.getLogger("auth")

SUPABASE_URL: Optional[str] = os.getenv("SUPABASE_URL")
SUPABASE_KEY: Optional[str] = os.getenv("SUPABASE_KEY")

# ⚙️ Supabase is optional; without it only session logins work
supabase: Optional[Any] = None
if SUPABASE_URL and SUPABASE_KEY:
    try:
        from supabase import create_client

        supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
        print("✅ Supabase client initialized.")
    except Exception as e:
        print(f"⚠️ Supabase could not be initialized: {e}")


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        return token or None
    return None


def current_user_id(request: Request) -> Optional[str]:
    """
    Returns the id of the logged-in user, or None.
    """
    uid = request.session.get("user_id") if "session" in request.scope else None
    if uid:
        return str(uid)

    token = _bearer_token(request)
    if token and supabase:
        try:
            res = supabase.auth.get_user(token)
            user = getattr(res, "user", None)
            if user is not None:
                return str(user.id)
        except Exception as e:
            logger.warning(f"⚠️ Supabase token rejected: {e}")

    return None


def require_business(
    business_id: str,
    uid: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Business:
    """
    Dashboard guard: logged in, owner of the business, voucher tier.
    """
    if not uid:
        raise HTTPException(status_code=401, detail="Not logged in")

    business = db.query(Business).filter(Business.id == business_id).first()
    if not business or str(business.owner_user_id or "") != uid:
        raise HTTPException(status_code=403, detail="No access to this business")
    if not has_voucher_access(business):
        raise HTTPException(status_code=403, detail="Vouchers are available on the First Class plan")
    return business
