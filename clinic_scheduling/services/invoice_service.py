"""Appointment invoicing."""

from uuid import UUID, uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.exceptions import NotFoundException
from clinic_scheduling.models.appointments import appointments
from clinic_scheduling.models.billing import invoices

logger = structlog.get_logger(__name__)


class InvoiceService:
    """Creates one invoice per appointment. Line items are computed elsewhere."""

    def __init__(self, db: AsyncSession, tenant_id: str):
        """Initialize service with database session and tenant."""
        self.db = db
        self.tenant_id = tenant_id

    async def get_invoice_id(self, appointment_id: UUID) -> UUID | None:
        """
        Get the invoice issued for an appointment.

        Args:
            appointment_id: Appointment ID

        Returns:
            Invoice ID, or None if no invoice exists yet
        """
        result = await self.db.execute(
            select(invoices.c.id).where(
                invoices.c.tenant_id == self.tenant_id,
                invoices.c.appointment_id == appointment_id,
            )
        )
        return result.scalar_one_or_none()

    async def generate_invoice_for_appointment(self, appointment_id: UUID) -> UUID:
        """
        Create the appointment's invoice if it does not exist yet.

        Args:
            appointment_id: Appointment ID

        Returns:
            The new or existing invoice ID

        Raises:
            NotFoundException: If the appointment does not exist
        """
        existing = await self.get_invoice_id(appointment_id)
        if existing:
            return existing

        result = await self.db.execute(
            select(appointments.c.patient_id).where(
                appointments.c.id == appointment_id,
                appointments.c.tenant_id == self.tenant_id,
            )
        )
        patient_id = result.scalar_one_or_none()
        if patient_id is None:
            raise NotFoundException("Appointment not found")

        invoice_id = uuid4()
        await self.db.execute(
            invoices.insert().values(
                id=invoice_id,
                tenant_id=self.tenant_id,
                appointment_id=appointment_id,
                patient_id=patient_id,
            )
        )
        logger.info(
            "invoice_created",
            tenant_id=self.tenant_id,
            appointment_id=str(appointment_id),
            invoice_id=str(invoice_id),
        )
        return invoice_id
