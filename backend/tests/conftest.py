# backend/tests/conftest.py
"""
Pytest configuration for the booking engine.

Every test gets a fresh in-memory SQLite database seeded with a small
reference catalog. Settings are pinned through the environment BEFORE any
booking_core import so the module-level settings singleton sees them.
"""

import os

# CRITICAL: Set testing mode BEFORE any booking_core imports!
os.environ["CI"] = "1"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SLOT_LOCK_ENABLED"] = "false"
os.environ["RETAINED_SESSION_POLICY"] = "tolerate"
os.environ["CAPACITY_LEDGER_TRACK_CREATES"] = "true"

from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session, sessionmaker

import booking_core.models  # noqa: F401  # registers every table on Base.metadata
from booking_core.database import Base, build_engine
from booking_core.models import (
    Coupon,
    DailyAvailabilitySlot,
    Deal,
    Package,
    Patient,
    Provider,
    ServiceType,
)
from booking_core.services.booking_service import BookingService
from tests._utils.booking_helpers import DAY_1, DAY_2, DAY_3


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """Database session matching the application's session factory settings."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def catalog(db: Session) -> SimpleNamespace:
    """Reference data: two providers with ref codes, one without, coupons and ledger rows."""
    provider_a = Provider(id="prov-a", name="Dr. Rao", ref_code="DR-RAO")
    provider_b = Provider(id="prov-b", name="Dr. Iyer", ref_code="DR-IYER")
    provider_no_ref = Provider(id="prov-x", name="Dr. Unlisted", ref_code=None)
    package = Package(
        id="pkg-1", name="Ten sessions", session_count=10, total_cost=Decimal("1000.00")
    )
    patient = Patient(id="pat-1", patient_code="PAT00001", name="Asha", phone="9999999999")
    therapy = ServiceType(id="svc-physio", name="Physiotherapy")
    coupon = Coupon(id="cpn-1", coupon_code="SAVE10", discount=10, discount_enabled=True)
    expired_coupon = Coupon(
        id="cpn-old",
        coupon_code="OLD50",
        discount=50,
        discount_enabled=True,
        valid_until=date.today() - timedelta(days=1),
    )
    disabled_coupon = Coupon(
        id="cpn-off", coupon_code="OFF20", discount=20, discount_enabled=False
    )
    db.add_all(
        [
            provider_a,
            provider_b,
            provider_no_ref,
            package,
            patient,
            therapy,
            coupon,
            expired_coupon,
            disabled_coupon,
        ]
    )
    for day in (DAY_1, DAY_2, DAY_3):
        for slot_id in ("S1", "S2"):
            db.add(
                DailyAvailabilitySlot(
                    slot_date=day, slot_id=slot_id, label=f"{slot_id} slot", capacity=1, booked=0
                )
            )
    db.commit()
    return SimpleNamespace(
        provider_a=provider_a,
        provider_b=provider_b,
        provider_no_ref=provider_no_ref,
        package=package,
        patient=patient,
        therapy=therapy,
        coupon=coupon,
    )


@pytest.fixture
def deal(db: Session) -> Deal:
    deal = Deal(
        id="deal-1",
        business_id="biz-1",
        deal_code="TENOFF",
        name="Ten percent off brakes",
        scope="services",
        target_id="brakes",
        percentage=10,
        enabled=True,
    )
    db.add(deal)
    db.commit()
    return deal


@pytest.fixture
def booking_service(db: Session, catalog: SimpleNamespace) -> BookingService:
    return BookingService(db)
