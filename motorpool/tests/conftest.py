"""
Centralized Test Configuration.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from motorpool.app.main import app
from motorpool.app.core.config import settings
from motorpool.app.core.jwt import token_for_user
from motorpool.app.core.redis_client import get_redis
from motorpool.app.db.session import get_db, Base
from motorpool.app.domain.booking.trip_interval import trip_interval
from motorpool.app.models.booking import Booking
from motorpool.app.models.driver import Driver
from motorpool.app.models.enums import BookingStatus, UserRole
from motorpool.app.models.user import User
from motorpool.app.models.vehicle import Vehicle
from motorpool.app.services.booking_workflow import Actor, BookingWorkflow
from motorpool.app.services.notifications import (
    Notifier, NotificationDispatcher, get_notification_dispatcher,
)
import motorpool.app.core.redis_client as redis_client_module
import motorpool.app.services.error_log as error_log_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday 2025-03-03 09:00 in Kuala Lumpur
FIXED_NOW = datetime(2025, 3, 3, 1, 0, tzinfo=timezone.utc)


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.broken = False
    
    async def ping(self):
        return not self.broken
    
    async def get(self, key):
        if self.broken:
            raise ConnectionError("redis unavailable")
        return self.store.get(key)
        
    async def set(self, key, value, ex=None):
        if self.broken:
            raise ConnectionError("redis unavailable")
        self.store[key] = value
        return True
    
    async def delete(self, key):
        if self.broken:
            raise ConnectionError("redis unavailable")
        return 1 if self.store.pop(key, None) is not None else 0
        
    async def flushdb(self):
        self.store = {}
        self.broken = False


class RecordingNotifier(Notifier):
    """Records every notice. `fail` makes it return False, `error` makes it raise."""

    def __init__(self):
        self.notices = []
        self.fail = False
        self.error = None

    async def _record(self, notice):
        if self.error is not None:
            raise self.error
        self.notices.append(notice)
        return not self.fail

    async def notify_created(self, notice):
        return await self._record(notice)

    async def notify_approved(self, notice):
        return await self._record(notice)

    async def notify_rejected(self, notice):
        return await self._record(notice)

    async def notify_modified(self, notice):
        return await self._record(notice)

    @property
    def events(self):
        return [n.event for n in self.notices]


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier, TestingSessionLocal)


@pytest.fixture(autouse=True)
def apply_overrides(redis_client_session, dispatcher):
    """Point the app at the in-memory database, Redis double, recording notifier and error log."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session
    original_recorder = error_log_module.error_recorder
    error_log_module.error_recorder = error_log_module.ErrorRecorder(TestingSessionLocal)
    
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    yield
    
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client
    error_log_module.error_recorder = original_recorder


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    await redis_client_session.flushdb()
    
    yield
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    return TestingSessionLocal


# Seed data. Each row is written and committed in its own session, so the
# returned objects are detached and unaffected by rollbacks in db_session.

async def persist(obj):
    async with TestingSessionLocal() as session:
        session.add(obj)
        await session.commit()
        await session.refresh(obj)
    return obj


@pytest.fixture
async def requester():
    return await persist(User(
        username="aminah", email="aminah@example.gov", full_name="Aminah Yusof",
        unit="Finance", role=UserRole.USER,
    ))


@pytest.fixture
async def other_requester():
    return await persist(User(
        username="kumar", email="kumar@example.gov", full_name="Kumar Raj",
        unit="Planning", role=UserRole.USER,
    ))


@pytest.fixture
async def admin_user():
    return await persist(User(
        username="admin", email="admin@example.gov", full_name="Pool Admin",
        unit="Transport", role=UserRole.ADMIN,
    ))


@pytest.fixture
async def superadmin_user():
    return await persist(User(
        username="super", email="super@example.gov", full_name="Pool Supervisor",
        unit="Transport", role=UserRole.SUPERADMIN,
    ))


@pytest.fixture
async def drivers():
    return [
        await persist(Driver(name="Ali Hassan", phone="012-3456789")),
        await persist(Driver(name="Ravi Kumar", phone="013-9876543")),
    ]


@pytest.fixture
async def vehicles():
    return [
        await persist(Vehicle(model="Toyota Hilux", plate_number="WXY 1234")),
        await persist(Vehicle(model="Proton Exora", plate_number="VBC 5678")),
    ]


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {token_for_user(user)}"}


@pytest.fixture
def requester_headers(requester):
    return auth_headers(requester)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def superadmin_headers(superadmin_user):
    return auth_headers(superadmin_user)


@pytest.fixture
def make_workflow(dispatcher, redis_client_session):
    """Build a BookingWorkflow on a session, on the fixed test clock by default."""
    from motorpool.app.services.statistics import StatsCache
    
    def _make(session, clock=lambda: FIXED_NOW):
        return BookingWorkflow(session, dispatcher, clock=clock, stats_cache=StatsCache(redis_client_session))
    return _make


async def insert_booking(
    code: str,
    requester_id: int,
    departure: date,
    return_day: date,
    departure_time: time = None,
    return_time: time = None,
    status: BookingStatus = BookingStatus.PENDING,
    driver_id: int = None,
    vehicle_id: int = None,
) -> Booking:
    """Write a booking row directly, bypassing the workflow."""
    departure_at, return_at = trip_interval(departure, departure_time, return_day, return_time, settings.reference_tz)
    return await persist(Booking(
        booking_code=code,
        requester_id=requester_id,
        applicant_name="Seeded Applicant",
        applicant_unit="Finance",
        departure_date=departure,
        departure_time=departure_time,
        return_date=return_day,
        return_time=return_time,
        departure_at=departure_at,
        return_at=return_at,
        destination="Putrajaya",
        purpose="Seeded trip",
        status=status,
        driver_id=driver_id,
        vehicle_id=vehicle_id,
        submitted_at=FIXED_NOW - timedelta(days=1),
    ))


def future_day(days: int = 30) -> date:
    """A civil date safely ahead of the real clock, for HTTP tests."""
    return datetime.now(settings.reference_tz).date() + timedelta(days=days)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def seed_booking():
    return insert_booking


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def trip_day():
    return future_day


@pytest.fixture
def actor_of():
    return Actor.from_user
