"""Shared test fixtures."""

from __future__ import annotations

import os
from datetime import date

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"  # In-memory DB for tests
os.environ["JWT_SECRET"] = "test-secret"

from cabinstay.config import AuthConfig
from cabinstay.database import create_db_engine, init_db
from cabinstay.events import EventBus
from cabinstay.models.booking import CONFIRMED, Booking
from cabinstay.models.cabin import Cabin
from cabinstay.modules.promotions import PromoCodeValidator
from cabinstay.repositories import (
    SqlBookingRepository,
    SqlCabinRepository,
    SqlDateChangeRequestRepository,
    SqlPromoCodeRepository,
    SqlUserMessageRepository,
    SqlVisitorRepository,
)

from fakes import (
    FakeBookingRepository,
    FakeCabinRepository,
    FakeDateChangeRequestRepository,
    FakePromoCodeRepository,
    FakeUserMessageRepository,
    FakeVisitorRepository,
)

TEST_AUTH = AuthConfig(secret="test-secret", algorithm="HS256")

PRICING = {"currency": "RON", "cleaning_fee": 300.0, "service_fee_percentage": 10}
BOOKING_RULES = {
    "initial_status": "pending",
    "minimum_nights": 1,
    "maximum_nights": 30,
    "reference_length": 8,
}


def make_cabins() -> list[Cabin]:
    return [
        Cabin(slug="the-pine", name="The Pine", nightly_price=450.0, max_guests=4, is_active=True),
        Cabin(slug="the-birch", name="The Birch", nightly_price=400.0, max_guests=2, is_active=True),
        Cabin(slug="the-oak", name="The Oak", nightly_price=550.0, max_guests=6, is_active=False),
    ]


def make_booking(
    reference: str = "ABC123",
    cabin_id: str = "the-pine",
    cabin_name: str = "The Pine",
    check_in: date = date(2025, 7, 10),
    check_out: date = date(2025, 7, 15),
    status: str = CONFIRMED,
    guest_email: str = "guest@example.com",
    **overrides,
) -> Booking:
    """Build a booking with sensible defaults; the caller stores it."""
    values = dict(
        booking_reference=reference,
        cabin_id=cabin_id,
        cabin_name=cabin_name,
        guest_name="Ana Popescu",
        guest_email=guest_email,
        guest_phone="+40700000000",
        check_in=check_in,
        check_out=check_out,
        guests=2,
        base_price=2250.0,
        cleaning_fee=300.0,
        service_fee=225.0,
        discount=0.0,
        total=2775.0,
        status=status,
        payment_status="paid",
    )
    values.update(overrides)
    return Booking(**values)


# --- SQL storage ---


@pytest.fixture
def db_engine():
    """Fresh in-memory database shared across sessions of one test."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed database for tests that write from several threads."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    init_db(bind=engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def sql_repos(session_factory) -> dict:
    return {
        "bookings": SqlBookingRepository(session_factory),
        "cabins": SqlCabinRepository(session_factory),
        "promo_codes": SqlPromoCodeRepository(session_factory),
        "date_changes": SqlDateChangeRequestRepository(session_factory),
        "visitors": SqlVisitorRepository(session_factory),
        "messages": SqlUserMessageRepository(session_factory),
    }


# --- In-memory fakes ---


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def booking_repo() -> FakeBookingRepository:
    return FakeBookingRepository()


@pytest.fixture
def cabin_repo() -> FakeCabinRepository:
    repo = FakeCabinRepository()
    for cabin in make_cabins():
        repo.add(cabin)
    return repo


@pytest.fixture
def promo_repo() -> FakePromoCodeRepository:
    return FakePromoCodeRepository()


@pytest.fixture
def change_repo() -> FakeDateChangeRequestRepository:
    return FakeDateChangeRequestRepository()


@pytest.fixture
def visitor_repo() -> FakeVisitorRepository:
    return FakeVisitorRepository()


@pytest.fixture
def message_repo() -> FakeUserMessageRepository:
    return FakeUserMessageRepository()


@pytest.fixture
def promotions(promo_repo, bus) -> PromoCodeValidator:
    return PromoCodeValidator(promo_repo, bus=bus)


@pytest.fixture
def sample_booking(booking_repo) -> Booking:
    """Confirmed stay at the-pine, 2025-07-10 to 2025-07-15."""
    return booking_repo.add(make_booking())
