"""Tenant configuration service."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.config import settings
from clinic_scheduling.core.exceptions import ValidationException
from clinic_scheduling.core.redis_client import CacheManager
from clinic_scheduling.core.state_machine import DEFAULT_ENTRY_STATUSES
from clinic_scheduling.core.tenant import TenantContext
from clinic_scheduling.core.timezone import get_zone
from clinic_scheduling.models.tenants import tenant_settings
from clinic_scheduling.schemas.appointments import AppointmentStatus


class TenantService:
    """Reads and writes per-tenant scheduling configuration."""

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager
        self.cache_ttl = settings.tenant_cache_ttl

    @staticmethod
    def _get_cache_key(tenant_id: str) -> str:
        """Generate cache key for a tenant's settings."""
        return f"tenant_settings:{tenant_id}"

    @staticmethod
    def _to_context(tenant_id: str, row: dict | None) -> TenantContext:
        if row is None:
            return TenantContext(
                tenant_id=tenant_id,
                timezone=settings.default_tenant_timezone,
                session_duration_minutes=settings.default_session_duration_minutes,
                default_status=AppointmentStatus(settings.default_appointment_status),
            )
        return TenantContext(
            tenant_id=tenant_id,
            timezone=row["timezone"],
            session_duration_minutes=row["session_duration_minutes"],
            default_status=AppointmentStatus(row["default_appointment_status"]),
        )

    async def load_context(self, db: AsyncSession, tenant_id: str) -> TenantContext:
        """
        Build the tenant context for one request.

        Falls back to the process-wide tenant defaults when the tenant has
        no stored settings.

        Args:
            db: Database session
            tenant_id: Tenant identifier

        Returns:
            Immutable tenant context

        Raises:
            UnknownTimezone: If the stored timezone cannot be resolved
        """
        cache_key = self._get_cache_key(tenant_id)
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached:
                return self._to_context(tenant_id, cached)

        query = select(
            tenant_settings.c.timezone,
            tenant_settings.c.session_duration_minutes,
            tenant_settings.c.default_appointment_status,
        ).where(tenant_settings.c.tenant_id == tenant_id)
        result = await db.execute(query)
        row = result.mappings().first()
        row_dict = dict(row) if row else None

        context = self._to_context(tenant_id, row_dict)

        if self.cache and row_dict:
            self.cache.set_json(cache_key, row_dict, ttl=self.cache_ttl)

        return context

    async def update_settings(
        self,
        db: AsyncSession,
        tenant_id: str,
        timezone: str,
        session_duration_minutes: int,
        default_status: AppointmentStatus = AppointmentStatus.PENDING,
    ) -> TenantContext:
        """
        Create or replace a tenant's scheduling settings.

        Existing appointments keep the timezone they were booked under.

        Raises:
            UnknownTimezone: If ``timezone`` cannot be resolved
            ValidationException: If the duration or default status is invalid
        """
        get_zone(timezone)
        default_status = AppointmentStatus(default_status)
        if default_status not in DEFAULT_ENTRY_STATUSES:
            raise ValidationException(
                f"'{default_status.value}' cannot be a default appointment status",
                details={"default_status": default_status.value},
            )
        if session_duration_minutes <= 0:
            raise ValidationException(
                "Session duration must be positive",
                details={"session_duration_minutes": session_duration_minutes},
            )

        values = {
            "timezone": timezone,
            "session_duration_minutes": session_duration_minutes,
            "default_appointment_status": default_status.value,
        }
        existing = await db.execute(
            select(tenant_settings.c.tenant_id).where(tenant_settings.c.tenant_id == tenant_id)
        )
        if existing.first():
            await db.execute(
                tenant_settings.update()
                .where(tenant_settings.c.tenant_id == tenant_id)
                .values(**values)
            )
        else:
            await db.execute(tenant_settings.insert().values(tenant_id=tenant_id, **values))
        await db.commit()

        # Invalidate cache
        if self.cache:
            self.cache.delete(self._get_cache_key(tenant_id))

        return self._to_context(tenant_id, values)
