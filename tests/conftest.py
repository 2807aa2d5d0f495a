import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, time
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Tests run against in-memory SQLite, never the configured database
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_ENABLED"] = "false"
os.environ["CALENDAR_SYNC_URL"] = ""

# Load the remaining environment variables from .env file
load_dotenv()

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clinic_scheduling.core.tenant import TenantContext
from clinic_scheduling.database import get_db
from clinic_scheduling.main import app
from clinic_scheduling.models import (
    appointment_practitioners,
    appointments,
    consents,
    metadata,
    patients,
    practitioner_availability,
)
from clinic_scheduling.schemas.appointments import (
    AppointmentMode,
    AppointmentStatus,
    BookingRequest,
    PatientIdentity,
)

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TENANT_ID = "clinic-a"
TENANT_TIMEZONE = "America/Toronto"

# 2030-01-07 is a Monday; Toronto is on EST (UTC-5) in January
MONDAY = "2030-01-07"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,  # Set to True for SQL debugging
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # One shared connection keeps the in-memory database alive
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def tenant_headers() -> dict:
    """Headers selecting the test tenant."""
    return {"X-Tenant-ID": TENANT_ID, "X-Actor-ID": "admin-1"}


@pytest.fixture
def ctx() -> TenantContext:
    """Tenant context matching the process-wide defaults."""
    return TenantContext(
        tenant_id=TENANT_ID,
        timezone=TENANT_TIMEZONE,
        session_duration_minutes=30,
        default_status=AppointmentStatus.PENDING,
    )


@pytest.fixture
def location_id() -> UUID:
    return uuid4()


@pytest.fixture
def add_availability(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[None]]:
    """Insert weekly availability rows for a practitioner."""

    async def _add(
        practitioner_id: UUID,
        day: str,
        start: str,
        end: str,
        location_id: UUID | None = None,
        tenant_id: str = TENANT_ID,
    ) -> None:
        await db_session.execute(
            practitioner_availability.insert().values(
                tenant_id=tenant_id,
                practitioner_id=practitioner_id,
                location_id=location_id,
                day=day,
                start_time=time.fromisoformat(start),
                end_time=time.fromisoformat(end),
            )
        )
        await db_session.commit()

    return _add


@pytest.fixture
def add_patient(db_session: AsyncSession) -> Callable[..., Awaitable[UUID]]:
    """Insert a patient and return its ID."""

    async def _add(
        email: str | None = None,
        registration_status: str = "Approved",
        tenant_id: str = TENANT_ID,
    ) -> UUID:
        patient_id = uuid4()
        await db_session.execute(
            patients.insert().values(
                id=patient_id,
                tenant_id=tenant_id,
                email=email or f"patient-{patient_id.hex[:8]}@example.com",
                first_name="Test",
                last_name="Patient",
                registration_status=registration_status,
            )
        )
        await db_session.commit()
        return patient_id

    return _add


@pytest.fixture
def add_required_consent(db_session: AsyncSession) -> Callable[..., Awaitable[UUID]]:
    """Register a required consent for the tenant."""

    async def _add(key: str = "privacy-policy", tenant_id: str = TENANT_ID) -> UUID:
        consent_id = uuid4()
        await db_session.execute(
            consents.insert().values(
                id=consent_id,
                tenant_id=tenant_id,
                key=key,
                title=key.replace("-", " ").title(),
                is_required=True,
            )
        )
        await db_session.commit()
        return consent_id

    return _add


@pytest.fixture
def make_appointment(db_session: AsyncSession) -> Callable[..., Awaitable[UUID]]:
    """Insert an appointment with one slot per practitioner, bypassing the orchestrator."""

    async def _make(
        practitioner_ids: list[UUID],
        start_at: datetime,
        end_at: datetime,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        tenant_id: str = TENANT_ID,
    ) -> UUID:
        appointment_id = uuid4()
        await db_session.execute(
            appointments.insert().values(
                id=appointment_id,
                tenant_id=tenant_id,
                patient_id=uuid4(),
                service_id=uuid4(),
                location_id=None,
                mode=AppointmentMode.VIRTUAL.value,
                start_at=start_at,
                end_at=end_at,
                stored_timezone=TENANT_TIMEZONE,
                date_time_preference="seeded",
                status=status.value,
            )
        )
        await db_session.execute(
            appointment_practitioners.insert(),
            [
                {
                    "appointment_id": appointment_id,
                    "practitioner_id": practitioner_id,
                    "start_at": start_at,
                    "end_at": end_at,
                    "is_primary": index == 0,
                }
                for index, practitioner_id in enumerate(practitioner_ids)
            ],
        )
        await db_session.commit()
        return appointment_id

    return _make


@pytest.fixture
def booking_request(location_id: UUID) -> Callable[..., BookingRequest]:
    """Build a booking request; keyword arguments override the defaults."""

    def _build(practitioner_ids: list[UUID], /, **overrides) -> BookingRequest:
        data = {
            "patient": PatientIdentity(email="jane@example.com", first_name="Jane"),
            "service_id": uuid4(),
            "location_id": location_id,
            "mode": AppointmentMode.IN_PERSON,
            "date_time_preference": f"{MONDAY} 10:00",
            "practitioner_ids": practitioner_ids,
            "primary_practitioner_id": practitioner_ids[0],
        }
        data.update(overrides)
        return BookingRequest(**data)

    return _build
