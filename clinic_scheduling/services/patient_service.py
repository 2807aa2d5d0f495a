"""Patient directory backed by the ``patients`` table."""

from uuid import UUID, uuid4

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.exceptions import NotFoundException
from clinic_scheduling.models.base import utcnow
from clinic_scheduling.models.patients import patients
from clinic_scheduling.schemas.appointments import PatientIdentity

logger = structlog.get_logger(__name__)

REGISTRATION_REQUESTED = "Requested"
REGISTRATION_APPROVED = "Approved"
INVITATION_ACCEPTED = "ACCEPTED"


class PatientService:
    """Patient lookups, registration approval and invitation acceptance."""

    def __init__(self, db: AsyncSession, tenant_id: str):
        """Initialize service with database session and tenant."""
        self.db = db
        self.tenant_id = tenant_id

    async def _find_by(self, *conditions) -> UUID | None:
        query = (
            select(patients.c.id)
            .where(patients.c.tenant_id == self.tenant_id, *conditions)
            .order_by(patients.c.created_at)
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def find_or_create_patient(self, identity: PatientIdentity) -> UUID:
        """
        Resolve the booking's patient, creating one if nothing matches.

        Lookup order is patient id, then email (case-insensitive), then
        health number; the first match wins. A new patient always gets a
        fresh ID, since a supplied ID that matched nothing may belong to
        another tenant.

        Args:
            identity: Identifiers and demographics from the booking request

        Returns:
            Patient ID
        """
        if identity.patient_id:
            found = await self._find_by(patients.c.id == identity.patient_id)
            if found:
                return found

        if identity.email:
            found = await self._find_by(func.lower(patients.c.email) == identity.email.lower())
            if found:
                return found

        if identity.health_number:
            found = await self._find_by(patients.c.health_number == identity.health_number)
            if found:
                return found

        patient_id = uuid4()
        await self.db.execute(
            patients.insert().values(
                id=patient_id,
                tenant_id=self.tenant_id,
                email=identity.email,
                health_number=identity.health_number,
                first_name=identity.first_name,
                last_name=identity.last_name,
                phone_number=identity.phone_number,
                registration_status=REGISTRATION_REQUESTED
                if identity.requires_approval
                else REGISTRATION_APPROVED,
            )
        )
        logger.info(
            "patient_created",
            tenant_id=self.tenant_id,
            patient_id=str(patient_id),
            requires_approval=identity.requires_approval,
        )
        return patient_id

    async def get_patient(self, patient_id: UUID) -> dict:
        """
        Get patient by ID.

        Raises:
            NotFoundException: If the patient does not exist for this tenant
        """
        query = select(patients).where(
            patients.c.id == patient_id,
            patients.c.tenant_id == self.tenant_id,
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Patient not found")
        return dict(row)

    async def is_approved(self, patient_id: UUID) -> bool:
        """
        Whether the patient's registration has been approved.

        Args:
            patient_id: Patient ID

        Returns:
            True for an approved registration

        Raises:
            NotFoundException: If the patient does not exist for this tenant
        """
        patient = await self.get_patient(patient_id)
        return patient["registration_status"] == REGISTRATION_APPROVED

    async def approve(self, patient_id: UUID, approver_id: str | None) -> None:
        """Approve a pending registration. Already-approved patients are left untouched."""
        await self.db.execute(
            update(patients)
            .where(
                patients.c.id == patient_id,
                patients.c.tenant_id == self.tenant_id,
                patients.c.registration_status != REGISTRATION_APPROVED,
            )
            .values(
                registration_status=REGISTRATION_APPROVED,
                approved_by=approver_id,
                approved_at=utcnow(),
            )
        )

    async def accept_invitation(self, patient_id: UUID) -> None:
        """
        Mark the patient's portal invitation as accepted.

        Args:
            patient_id: Patient ID
        """
        await self.db.execute(
            update(patients)
            .where(patients.c.id == patient_id, patients.c.tenant_id == self.tenant_id)
            .values(invitation_status=INVITATION_ACCEPTED)
        )
