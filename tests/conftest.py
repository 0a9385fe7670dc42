import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

# Settings are read at import time; tests never touch the configured database
os.environ.setdefault("DATABASE_URL", "sqlite:///./practice_scheduler_unused.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from practice_scheduler.core.security import create_access_token  # noqa: E402
from practice_scheduler.database import get_db  # noqa: E402
from practice_scheduler.dependencies import get_clock, get_scheduling_config  # noqa: E402
from practice_scheduler.main import app  # noqa: E402
from practice_scheduler.models import metadata, patients  # noqa: E402
from practice_scheduler.scheduling.config import SchedulingConfig  # noqa: E402
from practice_scheduler.services.appointment_service import AppointmentService  # noqa: E402

# Monday 2030-03-04, 09:00 UTC
NOW = datetime(2030, 3, 4, 9, 0, tzinfo=UTC)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at Monday 09:00 UTC."""
    return FrozenClock(NOW)


@pytest.fixture
def scheduling_config() -> SchedulingConfig:
    """Default rules: 08:00-20:00, 15-480 minutes, 60 minutes lead time, 30 minute slots."""
    return SchedulingConfig()


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite database per test, with the overlap triggers installed."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_patient(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[UUID]]:
    """Factory inserting a patient record and returning its id."""

    async def _make_patient(full_name: str = "Test Patient", is_active: bool = True) -> UUID:
        patient_id = uuid4()
        async with session_factory() as session:
            await session.execute(
                insert(patients).values(id=patient_id, full_name=full_name, is_active=is_active)
            )
            await session.commit()
        return patient_id

    return _make_patient


@pytest_asyncio.fixture
async def patient_id(make_patient: Callable[..., Awaitable[UUID]]) -> UUID:
    return await make_patient()


@pytest.fixture
def clinician_id() -> UUID:
    return uuid4()


@pytest.fixture
def service(
    db_session: AsyncSession,
    scheduling_config: SchedulingConfig,
    clock: FrozenClock,
) -> AppointmentService:
    return AppointmentService(db_session, scheduling_config, clock)


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FrozenClock,
    scheduling_config: SchedulingConfig,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client; every request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_scheduling_config] = lambda: scheduling_config

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def bearer(clinician_id: UUID) -> dict:
    token = create_access_token(data={"sub": str(clinician_id)}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(clinician_id: UUID) -> dict:
    """Create authentication headers for testing protected endpoints."""
    return bearer(clinician_id)


@pytest.fixture
def appointment_payload(patient_id: UUID) -> dict:
    """A valid booking for tomorrow morning."""
    return {
        "patient_id": str(patient_id),
        "appointment_date": TOMORROW.isoformat(),
        "start_time": "10:00",
        "duration_minutes": 60,
        "kind": "consultation",
        "notes": "Annual review",
    }


def day(offset: int) -> date:
    return TODAY + timedelta(days=offset)
