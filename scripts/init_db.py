"""Script to initialize the database and optionally register a tenant.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py <tenant_id> <timezone> [session_minutes] [default_status]
"""

import asyncio
import sys

from clinic_scheduling.database import AsyncSessionLocal, engine
from clinic_scheduling.models import metadata
from clinic_scheduling.schemas.appointments import AppointmentStatus
from clinic_scheduling.services.tenant_service import TenantService


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    print("✓ Database initialized successfully!")


async def register_tenant(
    tenant_id: str,
    timezone: str,
    session_duration_minutes: int = 30,
    default_status: str = AppointmentStatus.PENDING.value,
) -> None:
    """Create or replace a tenant's scheduling settings."""
    async with AsyncSessionLocal() as session:
        ctx = await TenantService().update_settings(
            session,
            tenant_id,
            timezone,
            session_duration_minutes,
            AppointmentStatus(default_status),
        )

    print(
        f"✓ Tenant '{ctx.tenant_id}' configured: {ctx.timezone}, "
        f"{ctx.session_duration_minutes} min sessions, default {ctx.default_status.value}"
    )


async def main(args: list[str]) -> None:
    await init_db()
    if args:
        if len(args) < 2:
            print(__doc__)
            sys.exit(1)
        await register_tenant(
            args[0],
            args[1],
            int(args[2]) if len(args) > 2 else 30,
            args[3] if len(args) > 3 else AppointmentStatus.PENDING.value,
        )
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
