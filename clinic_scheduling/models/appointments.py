"""Appointment tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)

from clinic_scheduling.models.base import UTCDateTime, metadata, utcnow

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False, index=True),
    # Ownership / references
    Column("patient_id", Uuid, nullable=False, index=True),
    Column("service_id", Uuid, nullable=False),
    Column("location_id", Uuid, nullable=True),  # NULL for virtual
    Column("mode", String(20), nullable=False),
    # Canonical UTC window
    Column("start_at", UTCDateTime, nullable=False),
    Column("end_at", UTCDateTime, nullable=False),
    # Tenant timezone at creation; never rewritten
    Column("stored_timezone", String(64), nullable=False),
    # Local text as entered, audit only
    Column("date_time_preference", String(255), nullable=False),
    # Status management
    Column("status", String(32), nullable=False, server_default="pending"),
    # Reschedule chain
    Column(
        "root_appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column("external_event_id", String(255), nullable=True),
    # Metadata
    Column("booking_source", String(50), nullable=False, server_default="admin_panel"),
    Column("admin_override", String(255), nullable=True),
    Column("reason_for_update", Text, nullable=True),
    # Audit fields
    Column("completed_at", UTCDateTime, nullable=True),
    Column("cancelled_at", UTCDateTime, nullable=True),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
    Column(
        "updated_at",
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    ),
    # Constraints
    CheckConstraint(
        "status IN ('Requested', 'pending-consent', 'pending', 'confirmed', "
        "'completed', 'cancelled', 'declined', 'no-show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "mode IN ('in-person', 'virtual', 'hybrid')",
        name="appointments_mode_check",
    ),
    CheckConstraint("start_at < end_at", name="appointments_window_check"),
)

# Practitioners on an appointment, each with their own slot
appointment_practitioners = Table(
    "appointment_practitioners",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("practitioner_id", Uuid, nullable=False),
    Column("start_at", UTCDateTime, nullable=False),
    Column("end_at", UTCDateTime, nullable=False),
    Column("is_primary", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
    UniqueConstraint("appointment_id", "practitioner_id", name="uq_appointment_practitioner"),
    CheckConstraint("start_at < end_at", name="appointment_practitioners_window_check"),
    Index("idx_appointment_practitioners_slot", "practitioner_id", "start_at", "end_at"),
)
