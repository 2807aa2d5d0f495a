"""Database configuration and connection management."""

import hashlib
from collections.abc import AsyncGenerator, Iterable
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clinic_scheduling.config import settings


def to_async_url(url: str) -> str:
    """Convert a sync PostgreSQL URL to its asyncpg form."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


DATABASE_URL = to_async_url(settings.database_url)

_engine_options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
if DATABASE_URL.startswith("postgresql+asyncpg://"):
    _engine_options.update(
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        connect_args={
            "server_settings": {
                "application_name": settings.app_name,
            },
        },
    )

# Create async engine with connection pooling
engine: AsyncEngine = create_async_engine(DATABASE_URL, **_engine_options)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def booking_lock_key(tenant_id: str, practitioner_id: UUID, day: date) -> int:
    """Derive the signed 64-bit advisory lock key for a practitioner's UTC day."""
    digest = hashlib.blake2b(
        f"{tenant_id}:{practitioner_id}:{day.isoformat()}".encode(),
        digest_size=8,
    ).digest()
    return int.from_bytes(digest, "big", signed=True)


async def acquire_booking_locks(
    db: AsyncSession,
    tenant_id: str,
    slots: Iterable[tuple[UUID, date]],
) -> list[int]:
    """
    Take transaction-scoped locks on (practitioner, UTC day) pairs.

    Keys are acquired in sorted order so two bookings touching the same
    practitioners cannot deadlock. Locks are released by the commit or
    rollback that ends the transaction.

    Args:
        db: Session whose transaction will hold the locks
        tenant_id: Tenant the practitioners belong to
        slots: (practitioner_id, UTC date) pairs touched by the booking

    Returns:
        The lock keys taken, in acquisition order
    """
    keys = sorted({booking_lock_key(tenant_id, pid, day) for pid, day in slots})

    if db.get_bind().dialect.name != "postgresql":
        # SQLite is only used by the test suite and gives no concurrency guarantee here
        return keys

    for key in keys:
        await db.execute(select(func.pg_advisory_xact_lock(key)))
    return keys


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
