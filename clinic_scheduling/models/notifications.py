"""Notification feed for patients and practitioners."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Index,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from clinic_scheduling.models.base import UTCDateTime, metadata, utcnow

notifications = Table(
    "notifications",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False),
    Column("recipient_type", String(20), nullable=False),
    Column("recipient_id", Uuid, nullable=False),
    Column("appointment_id", Uuid, nullable=True),
    Column("title", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("notification_type", String(50), nullable=False),
    Column("data", JSON, nullable=True),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
    CheckConstraint(
        "recipient_type IN ('patient', 'practitioner')",
        name="notifications_recipient_type_check",
    ),
    CheckConstraint(
        "notification_type IN ('appointment_confirmation', 'appointment_rescheduled', "
        "'appointment_status_changed', 'consent_request')",
        name="notifications_type_check",
    ),
    CheckConstraint(
        "status IN ('pending', 'sent', 'failed', 'read')",
        name="notifications_status_check",
    ),
    Index("idx_notifications_recipient", "recipient_type", "recipient_id"),
    Index("idx_notifications_appointment", "appointment_id"),
)
