"""Required-consent checks."""

from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.models.consents import consents, patient_consents
from clinic_scheduling.services.collaborators import Notifier


class ConsentService:
    """Checks a patient's required consents and asks for missing ones."""

    def __init__(self, db: AsyncSession, tenant_id: str, notifier: Notifier):
        """Initialize service with database session, tenant and notifier."""
        self.db = db
        self.tenant_id = tenant_id
        self.notifier = notifier

    async def missing_required_consents(self, patient_id: UUID) -> list[str]:
        """Keys of the tenant's required consents the patient has not accepted."""
        query = (
            select(consents.c.key)
            .select_from(
                consents.outerjoin(
                    patient_consents,
                    and_(
                        patient_consents.c.consent_id == consents.c.id,
                        patient_consents.c.patient_id == patient_id,
                    ),
                )
            )
            .where(
                consents.c.tenant_id == self.tenant_id,
                consents.c.is_required.is_(True),
                patient_consents.c.id.is_(None),
            )
            .order_by(consents.c.key)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def has_all_required_consents(self, patient_id: UUID) -> bool:
        """
        Whether the patient has accepted every required consent.

        Args:
            patient_id: Patient ID

        Returns:
            True when nothing required is outstanding
        """
        return not await self.missing_required_consents(patient_id)

    async def trigger_consent_request(self, patient_id: UUID, appointment_id: UUID) -> None:
        """Ask the patient to complete their outstanding consents."""
        await self.notifier.send_consent_request(patient_id, appointment_id)
