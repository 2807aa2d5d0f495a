"""Per-tenant scheduling configuration."""

from sqlalchemy import CheckConstraint, Column, Integer, String, Table, func

from clinic_scheduling.models.base import UTCDateTime, metadata, utcnow

tenant_settings = Table(
    "tenant_settings",
    metadata,
    Column("tenant_id", String(64), primary_key=True),
    Column("timezone", String(64), nullable=False),
    Column("session_duration_minutes", Integer, nullable=False, server_default="30"),
    Column("default_appointment_status", String(32), nullable=False, server_default="pending"),
    Column(
        "updated_at",
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    ),
    CheckConstraint("session_duration_minutes > 0", name="tenant_settings_duration_check"),
    CheckConstraint(
        "default_appointment_status IN ('pending', 'confirmed')",
        name="tenant_settings_default_status_check",
    ),
)
