"""Double-booking detection on practitioner slots."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.exceptions import SchedulingConflict, ValidationException
from clinic_scheduling.core.tenant import TenantContext
from clinic_scheduling.core.timezone import ensure_utc, format_for_tenant
from clinic_scheduling.models.appointments import appointment_practitioners, appointments
from clinic_scheduling.schemas.appointments import NON_BLOCKING_STATUSES, AppointmentStatus
from clinic_scheduling.schemas.availability import BusyInterval

logger = structlog.get_logger(__name__)

ap = appointment_practitioners


@dataclass(frozen=True)
class ProposedSlot:
    """One practitioner's UTC window inside a booking."""

    practitioner_id: UUID
    start_at: datetime
    end_at: datetime
    is_primary: bool = False


class ConflictService:
    """
    Service for detecting overlapping practitioner slots.

    Checks run against ``appointment_practitioners`` rows rather than the
    parent appointment window, because slot divisions give practitioners
    different times within one appointment.
    """

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    @staticmethod
    def _blocking_slot_conditions(
        ctx: TenantContext,
        practitioner_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list:
        # Half-open overlap: slot.start < end AND start < slot.end
        return [
            appointments.c.tenant_id == ctx.tenant_id,
            ap.c.practitioner_id == practitioner_id,
            appointments.c.status.notin_([status.value for status in NON_BLOCKING_STATUSES]),
            ap.c.start_at < end,
            ap.c.end_at > start,
        ]

    async def find_conflicts(
        self,
        ctx: TenantContext,
        practitioner_id: UUID,
        proposed_start: datetime,
        proposed_end: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> list[UUID]:
        """
        Appointments whose slot for this practitioner overlaps a proposed window.

        Args:
            ctx: Tenant context
            practitioner_id: Practitioner ID
            proposed_start: Proposed start instant
            proposed_end: Proposed end instant
            exclude_appointment_id: Appointment to ignore (the one being rescheduled)

        Returns:
            Colliding appointment IDs ordered by slot start, empty if none

        Raises:
            ValidationException: If the window is empty or inverted
        """
        start = ensure_utc(proposed_start)
        end = ensure_utc(proposed_end)
        if not start < end:
            raise ValidationException(
                "Proposed start must be before proposed end",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )

        conditions = self._blocking_slot_conditions(ctx, practitioner_id, start, end)
        if exclude_appointment_id is not None:
            conditions.append(appointments.c.id != exclude_appointment_id)

        query = (
            select(appointments.c.id)
            .select_from(ap.join(appointments, ap.c.appointment_id == appointments.c.id))
            .where(and_(*conditions))
            .order_by(ap.c.start_at, appointments.c.id)
        )
        result = await self.db.execute(query)
        return list(dict.fromkeys(result.scalars().all()))

    async def has_conflict(
        self,
        ctx: TenantContext,
        practitioner_id: UUID,
        proposed_start: datetime,
        proposed_end: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        """Whether any active appointment overlaps the proposed window."""
        conflicts = await self.find_conflicts(
            ctx, practitioner_id, proposed_start, proposed_end, exclude_appointment_id
        )
        return bool(conflicts)

    async def ensure_slots_free(
        self,
        ctx: TenantContext,
        slots: Iterable[ProposedSlot],
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        """
        Check every slot and fail with all collisions at once.

        Raises:
            SchedulingConflict: If any practitioner's slot collides
        """
        conflicts: dict[UUID, list[UUID]] = {}
        for slot in slots:
            colliding = await self.find_conflicts(
                ctx,
                slot.practitioner_id,
                slot.start_at,
                slot.end_at,
                exclude_appointment_id,
            )
            if colliding:
                conflicts[slot.practitioner_id] = colliding

        if conflicts:
            logger.info(
                "scheduling_conflict_detected",
                tenant_id=ctx.tenant_id,
                practitioner_ids=[str(pid) for pid in conflicts],
                excluded_appointment_id=str(exclude_appointment_id)
                if exclude_appointment_id
                else None,
            )
            raise SchedulingConflict(conflicts)

    async def list_busy_intervals(
        self,
        ctx: TenantContext,
        practitioner_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> list[BusyInterval]:
        """
        Blocking slots for a practitioner overlapping a window.

        Local times are rendered in each appointment's stored timezone.

        Args:
            ctx: Tenant context
            practitioner_id: Practitioner ID
            window_start: Window start instant
            window_end: Window end instant

        Returns:
            Busy intervals ordered by start
        """
        start = ensure_utc(window_start)
        end = ensure_utc(window_end)
        if not start < end:
            raise ValidationException(
                "Window start must be before window end",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )

        query = (
            select(
                appointments.c.id,
                appointments.c.status,
                appointments.c.stored_timezone,
                ap.c.start_at,
                ap.c.end_at,
            )
            .select_from(ap.join(appointments, ap.c.appointment_id == appointments.c.id))
            .where(and_(*self._blocking_slot_conditions(ctx, practitioner_id, start, end)))
            .order_by(ap.c.start_at, appointments.c.id)
        )
        result = await self.db.execute(query)

        return [
            BusyInterval(
                appointment_id=row["id"],
                status=AppointmentStatus(row["status"]),
                start_at=row["start_at"],
                end_at=row["end_at"],
                local_start=format_for_tenant(row["start_at"], row["stored_timezone"]),
                local_end=format_for_tenant(row["end_at"], row["stored_timezone"]),
            )
            for row in result.mappings().all()
        ]
