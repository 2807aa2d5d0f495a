"""Notification service for the in-app appointment feed."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.models.notifications import notifications
from clinic_scheduling.schemas.appointments import (
    AppointmentResponse,
    AppointmentStatus,
    FieldChange,
)

logger = structlog.get_logger(__name__)

PATIENT = "patient"
PRACTITIONER = "practitioner"


class NotificationService:
    """
    Writes notifications for patients and practitioners.

    Times in notification text are the appointment's local times, rendered
    in the timezone it was booked under.
    """

    def __init__(self, db: AsyncSession, tenant_id: str):
        """Initialize service with database session and tenant."""
        self.db = db
        self.tenant_id = tenant_id

    async def _create(
        self,
        recipient_type: str,
        recipient_id: UUID,
        notification_type: str,
        title: str,
        body: str,
        appointment_id: UUID | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        await self.db.execute(
            notifications.insert().values(
                tenant_id=self.tenant_id,
                recipient_type=recipient_type,
                recipient_id=recipient_id,
                appointment_id=appointment_id,
                notification_type=notification_type,
                title=title,
                body=body,
                data=data or {},
            )
        )
        logger.info(
            "notification_created",
            tenant_id=self.tenant_id,
            recipient_type=recipient_type,
            recipient_id=str(recipient_id),
            notification_type=notification_type,
            appointment_id=str(appointment_id) if appointment_id else None,
        )

    async def _notify_parties(
        self,
        appointment: AppointmentResponse,
        notification_type: str,
        title: str,
        body: str,
        data: dict[str, Any],
        extra_practitioner_ids: list[UUID] | None = None,
    ) -> None:
        """Notify the patient and every practitioner on the appointment."""
        await self._create(
            PATIENT,
            appointment.patient_id,
            notification_type,
            title,
            body,
            appointment.id,
            data,
        )
        practitioner_ids = [p.practitioner_id for p in appointment.practitioners]
        practitioner_ids.extend(extra_practitioner_ids or [])
        for practitioner_id in dict.fromkeys(practitioner_ids):
            await self._create(
                PRACTITIONER,
                practitioner_id,
                notification_type,
                title,
                body,
                appointment.id,
                data,
            )

    async def send_booking_confirmation(self, appointment: AppointmentResponse) -> None:
        """
        Send booking confirmation to the patient and practitioners.

        Args:
            appointment: Booked appointment
        """
        body = (
            f"Your appointment on {appointment.local_start} "
            f"({appointment.stored_timezone}) has been booked."
        )
        if appointment.status == AppointmentStatus.REQUESTED:
            body = f"{body} It will be confirmed once your registration is approved."

        await self._notify_parties(
            appointment,
            "appointment_confirmation",
            "Appointment Booked",
            body,
            {
                "appointment_id": str(appointment.id),
                "status": appointment.status.value,
                "local_start": appointment.local_start,
            },
        )

    async def send_reschedule_notice(
        self,
        appointment: AppointmentResponse,
        changes: dict[str, FieldChange],
        reason: str | None = None,
        previous_practitioner_ids: list[UUID] | None = None,
    ) -> None:
        """
        Tell everyone involved what changed on a rescheduled appointment.

        Args:
            appointment: Appointment after the reschedule
            changes: Display label -> old and new values
            reason: Reason given for the change
            previous_practitioner_ids: Practitioners before the change, so removed
                practitioners hear about it too
        """
        if changes:
            lines = [
                f"{label}: {change.old} changed to {change.new}"
                for label, change in changes.items()
            ]
        else:
            lines = ["The appointment details were updated."]
        if reason:
            lines.append(f"Reason: {reason}")

        await self._notify_parties(
            appointment,
            "appointment_rescheduled",
            "Appointment Rescheduled",
            "\n".join(lines),
            {
                "appointment_id": str(appointment.id),
                "changes": {label: change.model_dump() for label, change in changes.items()},
            },
            extra_practitioner_ids=previous_practitioner_ids,
        )

    async def send_consent_request(self, patient_id: UUID, appointment_id: UUID) -> None:
        """Ask the patient to complete outstanding consent forms."""
        await self._create(
            PATIENT,
            patient_id,
            "consent_request",
            "Consent Required",
            "Please complete the required consent forms before your appointment.",
            appointment_id,
            {"appointment_id": str(appointment_id)},
        )

    async def send_status_change(
        self,
        appointment: AppointmentResponse,
        from_status: AppointmentStatus,
        to_status: AppointmentStatus,
    ) -> None:
        """Notify the patient of a status change."""
        await self._create(
            PATIENT,
            appointment.patient_id,
            "appointment_status_changed",
            "Appointment Status Updated",
            f"Your appointment on {appointment.local_start} is now {to_status.value}.",
            appointment.id,
            {
                "appointment_id": str(appointment.id),
                "from_status": from_status.value,
                "to_status": to_status.value,
            },
        )
