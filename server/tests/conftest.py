"""Test configuration and fixtures."""

import os

# Settings are read at import time; point them at SQLite before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")

from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from cabinops.core.database import Base  # noqa: E402
from cabinops.core.dependencies import get_db, get_identity_resolver  # noqa: E402
from cabinops.core.rate_limit import rate_limit_store  # noqa: E402
from cabinops.models import *  # noqa: F403,E402 - Import all models
from cabinops.models import BookingPolicy, Cabin, CabinStatus  # noqa: E402
from cabinops.schemas.customer import CustomerProfile  # noqa: E402
from cabinops.services.identity import IdentityLookup, IdentityResolver  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeIdentityResolver(IdentityResolver):
    """Identity resolver answering from an in-memory profile table."""

    def __init__(self, profiles: dict[str, CustomerProfile] | None = None, failing: bool = False):
        super().__init__(base_url="http://identity.test")
        self.profiles = profiles or {}
        self.failing = failing

    async def resolve(self, customer_id):
        if not customer_id:
            return IdentityLookup()
        if self.failing:
            return IdentityLookup(failed=True)
        return IdentityLookup(profile=self.profiles.get(customer_id))

    async def resolve_many(self, customer_ids):
        return {customer_id: await self.resolve(customer_id) for customer_id in set(customer_ids) if customer_id}

    async def find_by_email(self, email):
        if self.failing:
            return IdentityLookup(failed=True)
        for profile in self.profiles.values():
            if (profile.email or "").lower() == email.lower():
                return IdentityLookup(profile=profile)
        return IdentityLookup()

    async def search_customer_ids(self, query):
        if self.failing:
            return []
        needle = query.lower()
        return [
            profile.id
            for profile in self.profiles.values()
            if needle in profile.name.lower() or needle in (profile.email or "").lower()
        ]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def reset_rate_limits():
    """Every test starts with fresh rate-limit windows."""
    await rate_limit_store.clear()
    yield
    await rate_limit_store.clear()


@pytest.fixture
def identity():
    """Identity resolver knowing a single customer."""
    return FakeIdentityResolver(
        profiles={
            "user_1": CustomerProfile(
                id="user_1",
                name="Jane Guest",
                email="jane@example.com",
                phone="+15550100",
            ),
        }
    )


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, identity):
    """Create a test FastAPI application."""
    from fastapi import FastAPI

    from cabinops.main import register_exception_handlers
    from cabinops.routers import bookings_router, cabins_router, health_router, metrics_router

    # Simplified app without lifespan or middleware
    app = FastAPI(
        title="Cabin Operations Booking API (Test)",
        version="1.0.0-test",
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(bookings_router)
    app.include_router(cabins_router)
    app.include_router(metrics_router)

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_resolver] = lambda: identity

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    from httpx import ASGITransport
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def cabin_factory(test_session):
    """Persist cabins with sensible defaults."""

    async def make_cabin(**overrides) -> Cabin:
        values = {
            "name": "Cabin 001",
            "capacity": 4,
            "price": 200.0,
            "discount": 20.0,
            "status": CabinStatus.ACTIVE.value,
        }
        values.update(overrides)
        cabin = Cabin(**values)
        test_session.add(cabin)
        await test_session.commit()
        return cabin

    return make_cabin


@pytest_asyncio.fixture
async def cabin(cabin_factory):
    """An active 4-guest cabin at 200/night with a 20 discount."""
    return await cabin_factory()


@pytest_asyncio.fixture
async def policy(test_session):
    """The stock booking policy."""
    policy = BookingPolicy(
        min_booking_length=2,
        max_booking_length=30,
        max_guests_per_booking=8,
        breakfast_price=15.0,
        pet_fee=20.0,
        parking_fee=10.0,
        parking_included=False,
        early_check_in_fee=50.0,
        late_check_out_fee=50.0,
        require_deposit=True,
        deposit_percentage=25.0,
    )
    test_session.add(policy)
    await test_session.commit()
    return policy


@pytest.fixture
def stay_dates():
    """A three-night stay a month from now."""
    check_in = date.today() + timedelta(days=30)
    return check_in, check_in + timedelta(days=3)


@pytest.fixture
def booking_payload(cabin, stay_dates):
    """Wire-format creation payload for ``cabin``."""
    check_in, check_out = stay_dates

    def build(**overrides) -> dict:
        payload = {
            "cabinId": str(cabin.id),
            "customerId": "user_1",
            "checkInDate": check_in.isoformat(),
            "checkOutDate": check_out.isoformat(),
            "numGuests": 2,
            "extras": {"hasBreakfast": True},
        }
        payload.update(overrides)
        return payload

    return build
