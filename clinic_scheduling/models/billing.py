"""Invoices and practitioner ledger transactions."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Numeric,
    String,
    Table,
    Uuid,
    func,
)

from clinic_scheduling.models.base import UTCDateTime, metadata, utcnow

invoices = Table(
    "invoices",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False, index=True),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("patient_id", Uuid, nullable=False),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
)

# One row per practitioner when an appointment completes
ledger_transactions = Table(
    "ledger_transactions",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False, index=True),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("practitioner_id", Uuid, nullable=False),
    Column("is_primary", Boolean, nullable=False, default=False),
    # Fraction of the appointment's payout owed to this practitioner
    Column("payout_share", Numeric(5, 4), nullable=False),
    Column("transaction_type", String(30), nullable=False, server_default="practitioner_payout"),
    Column("created_at", UTCDateTime, nullable=False, default=utcnow, server_default=func.now()),
)
