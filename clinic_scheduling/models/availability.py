"""Practitioner weekly availability template."""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, Index, String, Table, Time, Uuid

from clinic_scheduling.models.base import metadata

practitioner_availability = Table(
    "practitioner_availability",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", String(64), nullable=False),
    Column("practitioner_id", Uuid, nullable=False),
    Column("location_id", Uuid, nullable=True),  # NULL = not scoped to a location
    Column("day", String(10), nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    CheckConstraint(
        "day IN ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')",
        name="practitioner_availability_day_check",
    ),
    CheckConstraint("start_time < end_time", name="practitioner_availability_window_check"),
    Index("idx_practitioner_availability_lookup", "tenant_id", "practitioner_id", "location_id"),
)
