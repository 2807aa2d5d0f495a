"""Audit trail and the retry queue for failed post-commit effects."""

from uuid import uuid4

from sqlalchemy import JSON, Column, Integer, String, Table, Text, Uuid, func

from clinic_scheduling.models.base import UTCDateTime, metadata, utcnow

audit_events = Table(
    "audit_events",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False, index=True),
    Column("actor_id", String(64), nullable=True),
    Column("action", String(64), nullable=False, index=True),
    Column("appointment_id", Uuid, nullable=True, index=True),
    Column("details", JSON, nullable=True),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
)

effect_retries = Table(
    "effect_retries",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False),
    Column("appointment_id", Uuid, nullable=False, index=True),
    Column("effect", String(64), nullable=False),
    Column("collaborator", String(64), nullable=False),
    Column("payload", JSON, nullable=True),
    Column("attempts", Integer, nullable=False, default=0),
    Column("last_error", Text, nullable=True),
    # pending, succeeded, failed
    Column("status", String(20), nullable=False, default="pending", index=True),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
    Column(
        "updated_at",
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    ),
)
