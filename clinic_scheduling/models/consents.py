"""Consent catalogue and patient acceptances."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    String,
    Table,
    UniqueConstraint,
    Uuid,
    func,
)

from clinic_scheduling.models.base import UTCDateTime, metadata, utcnow

consents = Table(
    "consents",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False, index=True),
    Column("key", String(100), nullable=False),
    Column("title", String(255), nullable=False),
    Column("is_required", Boolean, nullable=False, default=True),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
    UniqueConstraint("tenant_id", "key", name="uq_consents_tenant_key"),
)

patient_consents = Table(
    "patient_consents",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("patient_id", Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
    Column("consent_id", Uuid, ForeignKey("consents.id", ondelete="CASCADE"), nullable=False),
    Column("accepted_at", UTCDateTime, nullable=False, default=utcnow),
    UniqueConstraint("patient_id", "consent_id", name="uq_patient_consent"),
)
