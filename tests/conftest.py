"""Shared fixtures: in-memory database, fake email/calendar clients, API client."""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from slotbook.database import Base, get_db
from slotbook.email_service import EmailResult
from slotbook.models import Coupon, Reservation, ReservationStatus, generate_reservation_id
from slotbook.services.google_calendar_service import CalendarError
from slotbook.domain.scheduling.availability_service import BookingRules
from slotbook.domain.scheduling.router import get_orchestrator
from slotbook.domain.scheduling.side_effects import SideEffectOrchestrator

ADMIN_ADDRESS = "owner@example.com"
BASE_URL = "https://book.example.com"


class FakeEmailClient:
    """Records every send; addresses in fail_for get a failed result."""

    configured = True

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    async def send(self, to, subject, text, mjml_content=None, headers=None):
        self.sent.append({"to": to, "subject": subject, "text": text, "headers": headers or {}})
        if to in self.fail_for:
            return EmailResult(success=False, error="mailbox unavailable")
        return EmailResult(success=True, message_id=f"msg-{len(self.sent)}")

    def sent_to(self, address):
        return [m for m in self.sent if m["to"] == address]


class FakeCalendarClient:
    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    async def create_event(self, summary, description, start, end, timezone):
        if self.fail:
            raise CalendarError("quota exceeded")
        self.events.append({"summary": summary, "description": description, "start": start, "end": end})
        return f"evt-{len(self.events)}"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def rules():
    return BookingRules()


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def calendar_client():
    return FakeCalendarClient()


@pytest.fixture
def orchestrator(email_client, calendar_client):
    return SideEffectOrchestrator(
        email_client=email_client,
        calendar_client=calendar_client,
        admin_email=ADMIN_ADDRESS,
        public_base_url=BASE_URL,
        timezone="Asia/Tokyo",
        shop_address="1-2-3 Shibuya, Tokyo",
    )


@pytest.fixture
def make_reservation(db):
    """Insert a reservation row directly, bypassing the lifecycle service."""

    def _make(**overrides):
        data = {
            "id": generate_reservation_id(),
            "date": date(2030, 5, 20),
            "start_time": "13:00",
            "end_time": "14:00",
            "course": "60min",
            "name": "Aiko Tanaka",
            "phone": "09012345678",
            "email": "aiko@example.com",
            "price": 4000,
            "status": ReservationStatus.PENDING,
        }
        data.update(overrides)
        reservation = Reservation(**data)
        db.add(reservation)
        db.commit()
        db.refresh(reservation)
        return reservation

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(**overrides):
        data = {
            "code": "WELCOME500",
            "amount": 500,
            "used": False,
            "valid_from": date(2000, 1, 1),
            "valid_until": date(2099, 12, 31),
        }
        data.update(overrides)
        coupon = Coupon(**data)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def client(session_factory, orchestrator, email_client, calendar_client):
    """API client on the in-memory database with fake side-effect clients."""
    from slotbook.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.state.email_client = email_client
    app.state.calendar_client = calendar_client
    # Not used as a context manager: the lifespan would touch the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()
