"""Patient directory table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, Index, String, Table, Uuid, func

from clinic_scheduling.models.base import UTCDateTime, metadata, utcnow

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False),
    # Identity (lookup order: id, email, health_number)
    Column("email", String(255), nullable=True),
    Column("health_number", String(255), nullable=True),
    Column("first_name", String(255), nullable=True),
    Column("last_name", String(255), nullable=True),
    Column("phone_number", String(50), nullable=True),
    # Registration approval
    Column("registration_status", String(20), nullable=False, server_default="Approved"),
    Column("approved_by", String(64), nullable=True),
    Column("approved_at", UTCDateTime, nullable=True),
    # Tenant invitation
    Column("invitation_status", String(20), nullable=False, server_default="PENDING"),
    # Metadata
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
    Column(
        "updated_at",
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    ),
    CheckConstraint(
        "registration_status IN ('Requested', 'Approved')",
        name="patients_registration_status_check",
    ),
    CheckConstraint(
        "invitation_status IN ('PENDING', 'ACCEPTED', 'DECLINED')",
        name="patients_invitation_status_check",
    ),
    Index("idx_patients_tenant_email", "tenant_id", "email"),
    Index("idx_patients_tenant_health_number", "tenant_id", "health_number"),
)
