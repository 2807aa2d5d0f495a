"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.redis_client import CacheManager, get_cache_manager
from clinic_scheduling.core.tenant import TenantContext
from clinic_scheduling.database import get_db
from clinic_scheduling.services.availability_service import AvailabilityService
from clinic_scheduling.services.booking_service import BookingService
from clinic_scheduling.services.conflict_service import ConflictService
from clinic_scheduling.services.tenant_service import TenantService

MAX_TENANT_ID_LENGTH = 64


async def get_tenant_id(
    x_tenant_id: Annotated[str, Header(alias="X-Tenant-ID")],
) -> str:
    """
    Tenant selected by the ``X-Tenant-ID`` header.

    Raises:
        HTTPException: If the header is blank or too long
    """
    tenant_id = x_tenant_id.strip()
    if not tenant_id or len(tenant_id) > MAX_TENANT_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Tenant-ID header",
        )
    return tenant_id


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header(alias="X-Actor-ID")] = None,
) -> str | None:
    """User performing the request, when the caller identifies one."""
    if x_actor_id is None:
        return None
    return x_actor_id.strip() or None


async def get_cache() -> CacheManager | None:
    """Tenant settings cache, or None when Redis is disabled."""
    return get_cache_manager()


async def get_tenant_context(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    cache: Annotated[CacheManager | None, Depends(get_cache)],
) -> TenantContext:
    """
    Load the tenant's scheduling configuration once for this request.

    Args:
        tenant_id: Tenant from the X-Tenant-ID header
        db: Database session
        cache: Tenant settings cache, if enabled

    Returns:
        Tenant context for the request

    Raises:
        UnknownTimezone: If the tenant's stored timezone is invalid
    """
    return await TenantService(cache).load_context(db, tenant_id)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
TenantId = Annotated[str, Depends(get_tenant_id)]
ActorId = Annotated[str | None, Depends(get_actor_id)]
CurrentTenant = Annotated[TenantContext, Depends(get_tenant_context)]


async def get_booking_service(
    db: DatabaseSession,
    ctx: CurrentTenant,
    actor_id: ActorId,
) -> BookingService:
    """Booking orchestrator for the request's tenant and actor."""
    return BookingService(db, ctx, actor_id=actor_id)


async def get_availability_service(db: DatabaseSession) -> AvailabilityService:
    """
    Get availability service instance.

    Args:
        db: Database session

    Returns:
        Availability repository for the request
    """
    return AvailabilityService(db)


async def get_conflict_service(db: DatabaseSession) -> ConflictService:
    """
    Get conflict service instance.

    Args:
        db: Database session

    Returns:
        Conflict detector for the request
    """
    return ConflictService(db)


Bookings = Annotated[BookingService, Depends(get_booking_service)]
Availability = Annotated[AvailabilityService, Depends(get_availability_service)]
Conflicts = Annotated[ConflictService, Depends(get_conflict_service)]
