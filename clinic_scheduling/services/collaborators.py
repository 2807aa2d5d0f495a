"""Interfaces of the services the booking core calls out to.

Database-backed implementations share the booking's session and never
commit: the caller owns the transaction. Whether a call runs inside the
booking transaction or after commit is decided by the state machine's
effect list, not by the collaborator.
"""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from clinic_scheduling.schemas.appointments import (
    AppointmentResponse,
    AppointmentStatus,
    FieldChange,
    PatientIdentity,
)


@runtime_checkable
class PatientDirectory(Protocol):
    """Patient registration lookups and approval."""

    async def find_or_create_patient(self, identity: PatientIdentity) -> UUID:
        """Resolve a patient by id, then email, then health number; create if none match."""
        ...

    async def is_approved(self, patient_id: UUID) -> bool: ...

    async def approve(self, patient_id: UUID, approver_id: str | None) -> None: ...

    async def accept_invitation(self, patient_id: UUID) -> None: ...


@runtime_checkable
class ConsentChecker(Protocol):
    """Required-consent completeness and consent requests."""

    async def has_all_required_consents(self, patient_id: UUID) -> bool: ...

    async def trigger_consent_request(self, patient_id: UUID, appointment_id: UUID) -> None: ...


@runtime_checkable
class InvoiceGenerator(Protocol):
    """Invoice creation; calling twice for one appointment yields one invoice."""

    async def generate_invoice_for_appointment(self, appointment_id: UUID) -> UUID: ...


@runtime_checkable
class LedgerWriter(Protocol):
    """Practitioner payout transactions for completed appointments."""

    async def generate_transactions(self, appointment_id: UUID) -> int: ...


@runtime_checkable
class CalendarSync(Protocol):
    """External calendar provider."""

    async def create_event(self, practitioner_id: UUID, payload: dict[str, Any]) -> str | None:
        """Create an event and return the provider's id, or ``None`` when sync is disabled."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Patient and practitioner notifications."""

    async def send_booking_confirmation(self, appointment: AppointmentResponse) -> None: ...

    async def send_reschedule_notice(
        self,
        appointment: AppointmentResponse,
        changes: dict[str, FieldChange],
        reason: str | None = None,
        previous_practitioner_ids: list[UUID] | None = None,
    ) -> None: ...

    async def send_consent_request(self, patient_id: UUID, appointment_id: UUID) -> None: ...

    async def send_status_change(
        self,
        appointment: AppointmentResponse,
        from_status: AppointmentStatus,
        to_status: AppointmentStatus,
    ) -> None: ...


@runtime_checkable
class AuditLog(Protocol):
    """Append-only audit trail."""

    async def record(
        self,
        action: str,
        appointment_id: UUID | None = None,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None: ...


@dataclass
class Collaborators:
    """Everything the booking orchestrator calls out to."""

    patients: PatientDirectory
    consents: ConsentChecker
    invoices: InvoiceGenerator
    ledger: LedgerWriter
    calendar: CalendarSync
    notifier: Notifier
    audit: AuditLog
