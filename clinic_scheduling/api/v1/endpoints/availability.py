"""Availability endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from clinic_scheduling.dependencies import Availability, Conflicts, CurrentTenant
from clinic_scheduling.schemas.appointments import AppointmentMode
from clinic_scheduling.schemas.availability import (
    BusyIntervalsResponse,
    ConflictCheckResponse,
    WeeklyAvailabilityResponse,
)

router = APIRouter()


@router.get(
    "/practitioners/{practitioner_id}",
    response_model=WeeklyAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get practitioner availability",
)
async def get_practitioner_availability(
    practitioner_id: UUID,
    ctx: CurrentTenant,
    availability: Availability,
    location_id: UUID | None = Query(None),
) -> WeeklyAvailabilityResponse:
    """
    Weekly availability template of one practitioner, as configured.

    Args:
        practitioner_id: Practitioner ID
        ctx: Tenant context
        availability: Availability service
        location_id: Only rows scoped to this location

    Returns:
        Intervals per day of week
    """
    week = await availability.get_availability(ctx, practitioner_id, location_id)
    return WeeklyAvailabilityResponse.from_week([practitioner_id], week, location_id=location_id)


@router.get(
    "/common",
    response_model=WeeklyAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get common availability",
)
async def get_common_availability(
    ctx: CurrentTenant,
    availability: Availability,
    practitioner_ids: list[UUID] = Query(..., min_length=1),
    location_id: UUID | None = Query(None),
    mode: AppointmentMode | None = Query(None),
) -> WeeklyAvailabilityResponse:
    """
    Weekly windows during which every listed practitioner is available.

    Args:
        ctx: Tenant context
        availability: Availability service
        practitioner_ids: Practitioners for a joint appointment
        location_id: Location for in-person appointments
        mode: Delivery mode

    Returns:
        Merged common intervals per day of week
    """
    week = await availability.find_common_availability(ctx, practitioner_ids, location_id, mode)
    return WeeklyAvailabilityResponse.from_week(
        list(dict.fromkeys(practitioner_ids)),
        week,
        location_id=location_id,
        mode=mode,
    )


@router.get(
    "/practitioners/{practitioner_id}/busy",
    response_model=BusyIntervalsResponse,
    status_code=status.HTTP_200_OK,
    summary="Get practitioner busy intervals",
)
async def get_busy_intervals(
    practitioner_id: UUID,
    ctx: CurrentTenant,
    conflicts: Conflicts,
    start: datetime = Query(..., description="Window start (ISO 8601, naive values are UTC)"),
    end: datetime = Query(..., description="Window end (ISO 8601, naive values are UTC)"),
) -> BusyIntervalsResponse:
    """Booked slots of a practitioner overlapping a window."""
    items = await conflicts.list_busy_intervals(ctx, practitioner_id, start, end)
    return BusyIntervalsResponse(
        practitioner_id=practitioner_id,
        window_start=start,
        window_end=end,
        items=items,
    )


@router.get(
    "/practitioners/{practitioner_id}/conflicts",
    response_model=ConflictCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Check a proposed slot for conflicts",
)
async def check_conflicts(
    practitioner_id: UUID,
    ctx: CurrentTenant,
    conflicts: Conflicts,
    start: datetime = Query(..., description="Proposed start (ISO 8601, naive values are UTC)"),
    end: datetime = Query(..., description="Proposed end (ISO 8601, naive values are UTC)"),
    exclude_appointment_id: UUID | None = Query(None),
) -> ConflictCheckResponse:
    """
    Whether a practitioner is free for a proposed window.

    Args:
        practitioner_id: Practitioner ID
        ctx: Tenant context
        conflicts: Conflict service
        start: Proposed start
        end: Proposed end
        exclude_appointment_id: Appointment being moved, ignored by the check

    Returns:
        The colliding appointment IDs, if any
    """
    colliding = await conflicts.find_conflicts(
        ctx, practitioner_id, start, end, exclude_appointment_id
    )
    return ConflictCheckResponse(
        practitioner_id=practitioner_id,
        has_conflict=bool(colliding),
        conflicting_appointment_ids=colliding,
    )
