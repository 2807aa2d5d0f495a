"""Database models."""

from clinic_scheduling.models.appointments import appointment_practitioners, appointments
from clinic_scheduling.models.audit import audit_events, effect_retries
from clinic_scheduling.models.availability import practitioner_availability
from clinic_scheduling.models.base import metadata
from clinic_scheduling.models.billing import invoices, ledger_transactions
from clinic_scheduling.models.consents import consents, patient_consents
from clinic_scheduling.models.notifications import notifications
from clinic_scheduling.models.patients import patients
from clinic_scheduling.models.tenants import tenant_settings

__all__ = [
    "appointment_practitioners",
    "appointments",
    "audit_events",
    "consents",
    "effect_retries",
    "invoices",
    "ledger_transactions",
    "metadata",
    "notifications",
    "patient_consents",
    "patients",
    "practitioner_availability",
    "tenant_settings",
]
