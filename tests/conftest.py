"""Shared fixtures: an in-memory SQLite database per test."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_CHART_OF_ACCOUNTS", "false")

from decimal import Decimal
from uuid import uuid4, UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from travel_ledger.db.dependencies import get_db
from travel_ledger.domain.accounting.chart import seed_chart_of_accounts
from travel_ledger.domain.booking.booking_service import create_booking
from travel_ledger.domain.booking.enums import ServiceType
from travel_ledger.main import app
from travel_ledger.models import Base, Employee
from travel_ledger.schemas.booking import BookingCreate
from travel_ledger.services.exchange_rates import StaticExchangeRateProvider


@pytest.fixture
def db() -> Session:
    """Provide a database session on a fresh in-memory schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def seeded_db(db: Session) -> Session:
    """Database with the default travel chart of accounts."""
    seed_chart_of_accounts(db)
    return db


@pytest.fixture
def customer_id() -> UUID:
    return uuid4()


@pytest.fixture
def rates() -> StaticExchangeRateProvider:
    return StaticExchangeRateProvider({"USD": Decimal("3.6725"), "EUR": Decimal("4.00")})


@pytest.fixture
def agent(db: Session) -> Employee:
    employee = Employee(name="Sara Agent", default_commission_rate=Decimal("10"))
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def make_booking(seeded_db: Session, customer_id: UUID, rates):
    """Factory creating committed bookings with sensible defaults."""

    def _make(**overrides):
        fields = {
            "service_type": ServiceType.HOTEL,
            "customer_id": customer_id,
            "cost_amount": Decimal("500.00"),
            "sale_amount": Decimal("1050.00"),
            "is_uae_booking": True,
        }
        fields.update(overrides)
        booking, _ = create_booking(seeded_db, BookingCreate(**fields), rates=rates)
        return booking

    return _make


@pytest.fixture
def client(seeded_db: Session) -> TestClient:
    """API client bound to the test session."""

    def override_get_db():
        yield seeded_db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
