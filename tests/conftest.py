from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.core.auth.jwt import create_access_token
from src.core.auth.models import Admin, PrincipalKind
from src.core.auth.password import hash_password
from src.core.auth.service import AuthService
from src.core.clock import FixedClock, get_clock
from src.core.database import get_db
from src.core.database.base import Base
from src.main import app
from src.modules.areas.models import Area
from src.modules.residents.models import Resident

# Test database URL (in-memory SQLite for speed, or use test PostgreSQL)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
test_async_session = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Fixed "now" for time-dependent tests: 1 March 2026, 06:00 UTC
NOW = datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 1)


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    async with test_async_session() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
async def client(db_session: AsyncSession, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database and clock dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def admin(db_session: AsyncSession) -> Admin:
    admin = await AuthService(db_session).create_admin(
        email="admin@water-delivery.com", password="Password123", name="Admin"
    )
    await db_session.commit()
    return admin


@pytest.fixture
def admin_headers(admin: Admin) -> dict[str, str]:
    token = create_access_token(admin.id, PrincipalKind.ADMIN)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def area(db_session: AsyncSession) -> Area:
    area = Area(name="Koramangala", description="", city="Bengaluru", pincode="560034")
    db_session.add(area)
    await db_session.commit()
    return area


@pytest.fixture
def make_resident(db_session: AsyncSession):
    """Factory for residents; phone numbers are generated unless given."""
    counter = {"n": 0}

    async def _make(
        area: Area | None = None,
        water_quantity: int | None = 20,
        is_enabled: bool = True,
        email: str | None = None,
        password: str | None = None,
        **kwargs,
    ) -> Resident:
        counter["n"] += 1
        resident = Resident(
            name=kwargs.pop("name", f"Resident {counter['n']}"),
            email=email,
            password_hash=hash_password(password) if password else None,
            country_code=kwargs.pop("country_code", "+91"),
            phone=kwargs.pop("phone", f"98765{counter['n']:05d}"),
            area_id=area.id if area else None,
            water_quantity=water_quantity,
            is_enabled=is_enabled,
            **kwargs,
        )
        db_session.add(resident)
        await db_session.commit()
        return resident

    return _make


@pytest.fixture
async def resident(make_resident, area: Area) -> Resident:
    return await make_resident(
        area, water_quantity=20, email="resident@water-delivery.com", password="Password123"
    )


@pytest.fixture
def resident_headers(resident: Resident) -> dict[str, str]:
    token = create_access_token(resident.id, PrincipalKind.RESIDENT)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def slot_payload():
    """Builder of POST /slots bodies: an 08:00-10:00 window with cutoff at 07:00."""

    def _build(area_id: int, day: date = TODAY, capacity: int = 100, **overrides) -> dict:
        start = datetime(day.year, day.month, day.day, 8, 0, tzinfo=timezone.utc)
        payload = {
            "date": day.isoformat(),
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(hours=2)).isoformat(),
            "area_id": area_id,
            "capacity": capacity,
            "booking_cutoff_time": (start - timedelta(hours=1)).isoformat(),
        }
        payload.update(overrides)
        return payload

    return _build
