"""Read-only access to practitioners' weekly availability."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.exceptions import ValidationException
from clinic_scheduling.core.intervals import (
    DayOfWeek,
    LocalInterval,
    empty_week,
    intersect_availability,
)
from clinic_scheduling.core.tenant import TenantContext
from clinic_scheduling.models.availability import practitioner_availability
from clinic_scheduling.schemas.appointments import AppointmentMode


class AvailabilityService:
    """Service for practitioner availability lookups."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_availability(
        self,
        ctx: TenantContext,
        practitioner_id: UUID,
        location_id: UUID | None = None,
    ) -> dict[DayOfWeek, list[LocalInterval]]:
        """
        Weekly availability template for one practitioner.

        Rows are returned as configured: overlapping or adjacent rows are
        kept separate.

        Args:
            ctx: Tenant context
            practitioner_id: Practitioner ID
            location_id: When given, only rows scoped to this location

        Returns:
            Map with all seven days; unconfigured days map to ``[]``
        """
        conditions = [
            practitioner_availability.c.tenant_id == ctx.tenant_id,
            practitioner_availability.c.practitioner_id == practitioner_id,
        ]
        if location_id is not None:
            conditions.append(practitioner_availability.c.location_id == location_id)

        query = (
            select(
                practitioner_availability.c.day,
                practitioner_availability.c.start_time,
                practitioner_availability.c.end_time,
            )
            .where(*conditions)
            .order_by(
                practitioner_availability.c.start_time,
                practitioner_availability.c.end_time,
            )
        )
        result = await self.db.execute(query)

        week = empty_week()
        for row in result.mappings().all():
            week[DayOfWeek(row["day"])].append(LocalInterval(row["start_time"], row["end_time"]))
        return week

    async def find_common_availability(
        self,
        ctx: TenantContext,
        practitioner_ids: list[UUID],
        location_id: UUID | None = None,
        mode: AppointmentMode | None = None,
    ) -> dict[DayOfWeek, list[LocalInterval]]:
        """
        Weekly windows during which every practitioner is available.

        Virtual and hybrid bookings consider every row regardless of
        ``location_id``.

        Args:
            ctx: Tenant context
            practitioner_ids: Practitioners that must all be present
            location_id: Physical location for in-person bookings
            mode: Delivery mode

        Returns:
            Map with all seven days of common, merged intervals

        Raises:
            ValidationException: If no practitioner is given
        """
        unique_ids = list(dict.fromkeys(practitioner_ids))
        if not unique_ids:
            raise ValidationException("At least one practitioner is required")

        scoped_location = location_id if mode in (None, AppointmentMode.IN_PERSON) else None
        weeks = [
            await self.get_availability(ctx, practitioner_id, scoped_location)
            for practitioner_id in unique_ids
        ]
        return intersect_availability(weeks)
