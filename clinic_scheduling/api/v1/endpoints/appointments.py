"""Appointment endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from clinic_scheduling.dependencies import Bookings
from clinic_scheduling.schemas.appointments import (
    AppointmentHistoryResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    BookingRequest,
    BookingResult,
    RescheduleRequest,
    RescheduleResult,
    StatusChangeResult,
)

router = APIRouter()


@router.post(
    "/",
    response_model=BookingResult,
    status_code=status.HTTP_201_CREATED,
    summary="Book appointment",
)
async def book_appointment(data: BookingRequest, bookings: Bookings) -> BookingResult:
    """
    Book an appointment for one or more practitioners.

    ``date_time_preference`` is local time in the tenant's timezone
    (``YYYY-MM-DD HH:MM``). Post-commit effects that failed are listed in
    ``failed_effects`` and do not change the response status.

    Args:
        data: Booking request
        bookings: Booking service for the request's tenant

    Returns:
        Booked appointment
    """
    return await bookings.book(data)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(appointment_id: UUID, bookings: Bookings) -> AppointmentResponse:
    """Get a single appointment with its practitioner slots."""
    return await bookings.get_appointment(appointment_id)


@router.get(
    "/{appointment_id}/history",
    response_model=AppointmentHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="Get reschedule history",
)
async def get_appointment_history(
    appointment_id: UUID,
    bookings: Bookings,
) -> AppointmentHistoryResponse:
    """Every appointment sharing this appointment's root, root first."""
    return await bookings.get_history(appointment_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=StatusChangeResult,
    status_code=status.HTTP_200_OK,
    summary="Change appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    bookings: Bookings,
) -> StatusChangeResult:
    """
    Move an appointment to a new status.

    Args:
        appointment_id: Appointment ID
        data: Target status
        bookings: Booking service for the request's tenant

    Returns:
        The transition and the updated appointment
    """
    return await bookings.change_status(appointment_id, data.status)


@router.put(
    "/{appointment_id}/schedule",
    response_model=RescheduleResult,
    status_code=status.HTTP_200_OK,
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: RescheduleRequest,
    bookings: Bookings,
) -> RescheduleResult:
    """
    Change the time, practitioners, service or location of a pending appointment.

    Args:
        appointment_id: Appointment ID
        data: New schedule
        bookings: Booking service for the request's tenant

    Returns:
        The updated appointment and what changed
    """
    return await bookings.reschedule(appointment_id, data)
