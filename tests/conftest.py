import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
import httpx
from httpx import ASGITransport

# in-memory database before anything imports database.py
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_TOKEN", "test-scheduler-token")

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from auth_utils import current_user_id
from database import Base, get_db
from main import app
from models.business import Business
from models.business_voucher import BusinessVoucher
from routes.utils import request_now

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
OWNER_ID = "owner-1"


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_business(db):
    def _make(tier: str = "firstclass", status: str = "approved", owner: str = OWNER_ID) -> Business:
        business = Business(
            business_name=f"Trattoria {tier}",
            owner_user_id=owner,
            subscription_tier=tier,
            status=status,
        )
        db.add(business)
        db.commit()
        db.refresh(business)
        return business

    return _make


@pytest.fixture
def business(make_business):
    return make_business()


@pytest.fixture
def make_voucher(db):
    def _make(business_id: str, **overrides) -> BusinessVoucher:
        fields = {
            "title": "10% off dinner",
            "voucher_type": "percentage_discount",
            "discount_value": 10,
            "min_purchase_amount": 0,
            "max_uses": None,
            "current_uses": 0,
            "start_date": NOW - timedelta(days=1),
            "end_date": NOW + timedelta(days=7),
            "is_active": True,
        }
        fields.update(overrides)
        voucher = BusinessVoucher(business_id=business_id, **fields)
        db.add(voucher)
        db.commit()
        db.refresh(voucher)
        return voucher

    return _make


@pytest.fixture
def api(session_factory):
    """TestClient with an isolated database, a fixed clock and a logged-in owner."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[request_now] = lambda: NOW
    app.dependency_overrides[current_user_id] = lambda: OWNER_ID

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(request_now, None)
    app.dependency_overrides.pop(current_user_id, None)


@pytest_asyncio.fixture
async def client():
    """Async client against the real app (smoke tests)."""
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
