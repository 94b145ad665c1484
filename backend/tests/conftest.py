"""
Pytest fixtures for test database, client, and collaborators.

Runs against an in-memory SQLite database (aiosqlite) shared through a
StaticPool, recreated for every test. The app gets its own session per
request, committed or rolled back exactly like production.
"""

import os

# Must be set before anything imports comedy_club.core.config
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RESERVATION_REAPER_ENABLED", "false")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("PUBLIC_BASE_URL", "http://test")

from datetime import date, time, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from comedy_club.main import app
from comedy_club.db.base import Base
from comedy_club.db.session import get_db, enable_sqlite_foreign_keys
from comedy_club.api.dependencies import get_notifier, get_payment_gateway
from comedy_club.models.event import Event
from comedy_club.models.booking_settings import BookingSettings
from comedy_club.services.interfaces import Notifier, PaymentGateway

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)
enable_sqlite_foreign_keys(test_engine)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

ADMIN_KEY = os.environ["ADMIN_API_KEY"]


class FakePaymentGateway(PaymentGateway):
    """Answers with a fixed session, or raises, and remembers every call."""

    def __init__(self, response=None, error: Exception = None):
        self.response = response if response is not None else {"url": "https://pay.test/session/abc"}
        self.error = error
        self.calls = []

    async def create_session(self, amount, booking_data, return_url):
        self.calls.append({"amount": amount, "booking_data": booking_data, "return_url": return_url})
        if self.error:
            raise self.error
        return self.response


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_booking_confirmation(self, recipient, confirmation, html):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((recipient, confirmation, html))


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture(scope="function")
async def client(db_session, gateway, notifier) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB session and collaborators overridden."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": ADMIN_KEY}


def show(**overrides) -> Event:
    start = date.today() + timedelta(days=30)
    values = {
        "title": "Friday Night Stand-Up",
        "description": "Five comics, one mic",
        "start_date": start,
        "start_time": time(20, 30),
        "end_date": start,
        "end_time": time(22, 30),
        "price": 2000,
    }
    values.update(overrides)
    return Event(**values)


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """A show priced 20.00 with no settings row yet (defaults apply)."""
    event = show()
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession) -> Event:
    """A show with max_seats=2 and seats_per_booking=2."""
    event = show(title="Tiny Room Special", price=1500)
    db_session.add(event)
    await db_session.flush()
    db_session.add(BookingSettings(
        event_id=event.id,
        max_seats=2,
        seats_per_booking=2,
        booking_deadline="1 hour",
        version=1,
    ))
    await db_session.commit()
    await db_session.refresh(event)
    return event


def customer(event_id: int, **overrides) -> dict:
    values = {
        "event_id": event_id,
        "user_name": "Camille Martin",
        "user_email": "camille@example.com",
        "user_phone": "+33612345678",
        "seats": 1,
    }
    values.update(overrides)
    return values
