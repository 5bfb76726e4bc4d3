import os

from passlib.hash import pbkdf2_sha256

# Settings are read at import time, so the environment has to be in place first
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_dispatch.db"
ADMIN_EMAIL = "ops@example.com"
ADMIN_PASSWORD = "correct-horse-battery"

os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["ADMIN_EMAIL"] = ADMIN_EMAIL
os.environ["ADMIN_PASSWORD_HASH"] = pbkdf2_sha256.hash(ADMIN_PASSWORD)
os.environ["REDIS_URL"] = ""

import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

from dispatch_service.main import app  # noqa: E402
from dispatch_service.database import Base, get_db  # noqa: E402
from dispatch_service.security import create_access_token  # noqa: E402
from dispatch_service import models  # noqa: E402

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# --- Database Management Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def setup_db():
    """Creates and drops the test database tables."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Provides a database session whose work is rolled back after each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


# --- Mocking Background Tasks ---
@pytest.fixture(scope="function", autouse=True)
def mock_background_tasks(mocker):
    """
    Mocks the background tasks (outbox poller and integrity monitor) started in the lifespan.
    """
    mocker.patch("dispatch_service.main.run_outbox_poller", new_callable=AsyncMock)
    mocker.patch("dispatch_service.main.run_integrity_monitor", new_callable=AsyncMock)


# --- API Test Client Fixture ---
@pytest.fixture(scope="function")
def client(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            db_session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def admin_credentials():
    return {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}


@pytest.fixture
def auth_headers():
    """Authorization headers carrying a valid operator token."""
    return {"Authorization": f"Bearer {create_access_token(ADMIN_EMAIL)}"}


# --- Row factories ---
@pytest.fixture
def make_driver(db_session):
    def _make(name="Desmond Clarke", status="available"):
        driver = models.Driver(name=name, phone="+1 876 555 0100", vehicle="Toyota Hiace", status=status)
        db_session.add(driver)
        db_session.commit()
        db_session.refresh(driver)
        return driver
    return _make


@pytest.fixture
def make_tour_booking(db_session):
    def _make(booking_date=datetime.date(2099, 12, 31), amount=100.0, status="pending", customer_name="Ana Lopez"):
        booking = models.Booking(
            kind="tour",
            customer_name=customer_name,
            customer_email="ana@example.com",
            tour_name="Blue Mountains",
            booking_date=booking_date,
            number_of_people=2,
            service_date=booking_date,
            total_amount=amount,
            status=status,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking
    return _make


@pytest.fixture
def make_airport_booking(db_session):
    def _make(arrival_date=datetime.date(2099, 6, 1), status="pending", customer_name="Tom Reid"):
        booking = models.Booking(
            kind="airport",
            customer_name=customer_name,
            customer_email="tom@example.com",
            service_type="pickup",
            flight_number="AA123",
            arrival_date=arrival_date,
            passengers=3,
            service_date=arrival_date,
            total_amount=75.0,
            status=status,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking
    return _make


@pytest.fixture
def make_assignment(db_session):
    def _make(driver_id, booking_id, assignment_status="assigned"):
        assignment = models.DriverAssignment(
            driver_id=driver_id, booking_id=booking_id, assignment_status=assignment_status
        )
        db_session.add(assignment)
        db_session.commit()
        db_session.refresh(assignment)
        return assignment
    return _make
