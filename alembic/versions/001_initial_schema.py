"""Initial schema - scheduling tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("NOW()"),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "tenant_settings",
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("session_duration_minutes", sa.Integer(), server_default="30", nullable=False),
        sa.Column(
            "default_appointment_status",
            sa.String(length=32),
            server_default="pending",
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("session_duration_minutes > 0", name="tenant_settings_duration_check"),
        sa.CheckConstraint(
            "default_appointment_status IN ('pending', 'confirmed')",
            name="tenant_settings_default_status_check",
        ),
        sa.PrimaryKeyConstraint("tenant_id"),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("health_number", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=50), nullable=True),
        sa.Column(
            "registration_status", sa.String(length=20), server_default="Approved", nullable=False
        ),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "invitation_status", sa.String(length=20), server_default="PENDING", nullable=False
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "registration_status IN ('Requested', 'Approved')",
            name="patients_registration_status_check",
        ),
        sa.CheckConstraint(
            "invitation_status IN ('PENDING', 'ACCEPTED', 'DECLINED')",
            name="patients_invitation_status_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_patients_tenant_email", "patients", ["tenant_id", "email"])
    op.create_index("idx_patients_tenant_health_number", "patients", ["tenant_id", "health_number"])

    op.create_table(
        "consents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "key", name="uq_consents_tenant_key"),
    )
    op.create_index("ix_consents_tenant_id", "consents", ["tenant_id"])

    op.create_table(
        "patient_consents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("consent_id", sa.Uuid(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["consent_id"], ["consents.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("patient_id", "consent_id", name="uq_patient_consent"),
    )

    op.create_table(
        "practitioner_availability",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("practitioner_id", sa.Uuid(), nullable=False),
        sa.Column("location_id", sa.Uuid(), nullable=True),
        sa.Column("day", sa.String(length=10), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.CheckConstraint(
            "day IN ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')",
            name="practitioner_availability_day_check",
        ),
        sa.CheckConstraint("start_time < end_time", name="practitioner_availability_window_check"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_practitioner_availability_lookup",
        "practitioner_availability",
        ["tenant_id", "practitioner_id", "location_id"],
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("service_id", sa.Uuid(), nullable=False),
        sa.Column("location_id", sa.Uuid(), nullable=True),
        sa.Column("mode", sa.String(length=20), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("stored_timezone", sa.String(length=64), nullable=False),
        sa.Column("date_time_preference", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), server_default="pending", nullable=False),
        sa.Column("root_appointment_id", sa.Uuid(), nullable=True),
        sa.Column("external_event_id", sa.String(length=255), nullable=True),
        sa.Column(
            "booking_source", sa.String(length=50), server_default="admin_panel", nullable=False
        ),
        sa.Column("admin_override", sa.String(length=255), nullable=True),
        sa.Column("reason_for_update", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('Requested', 'pending-consent', 'pending', 'confirmed', "
            "'completed', 'cancelled', 'declined', 'no-show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "mode IN ('in-person', 'virtual', 'hybrid')",
            name="appointments_mode_check",
        ),
        sa.CheckConstraint("start_at < end_at", name="appointments_window_check"),
        sa.ForeignKeyConstraint(
            ["root_appointment_id"], ["appointments.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointments_tenant_id", "appointments", ["tenant_id"])
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_root_appointment_id", "appointments", ["root_appointment_id"])

    op.create_table(
        "appointment_practitioners",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("appointment_id", sa.Uuid(), nullable=False),
        sa.Column("practitioner_id", sa.Uuid(), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint("start_at < end_at", name="appointment_practitioners_window_check"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "appointment_id", "practitioner_id", name="uq_appointment_practitioner"
        ),
    )
    op.create_index(
        "idx_appointment_practitioners_slot",
        "appointment_practitioners",
        ["practitioner_id", "start_at", "end_at"],
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("appointment_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_id"),
    )
    op.create_index("ix_invoices_tenant_id", "invoices", ["tenant_id"])

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("appointment_id", sa.Uuid(), nullable=False),
        sa.Column("practitioner_id", sa.Uuid(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("payout_share", sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column(
            "transaction_type",
            sa.String(length=30),
            server_default="practitioner_payout",
            nullable=False,
        ),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ledger_transactions_tenant_id", "ledger_transactions", ["tenant_id"])
    op.create_index(
        "ix_ledger_transactions_appointment_id", "ledger_transactions", ["appointment_id"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("recipient_type", sa.String(length=20), nullable=False),
        sa.Column("recipient_id", sa.Uuid(), nullable=False),
        sa.Column("appointment_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.String(length=50), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint(
            "recipient_type IN ('patient', 'practitioner')",
            name="notifications_recipient_type_check",
        ),
        sa.CheckConstraint(
            "notification_type IN ('appointment_confirmation', 'appointment_rescheduled', "
            "'appointment_status_changed', 'consent_request')",
            name="notifications_type_check",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'failed', 'read')",
            name="notifications_status_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_notifications_recipient", "notifications", ["recipient_type", "recipient_id"]
    )
    op.create_index("idx_notifications_appointment", "notifications", ["appointment_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("appointment_id", sa.Uuid(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_events_tenant_id", "audit_events", ["tenant_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_appointment_id", "audit_events", ["appointment_id"])

    op.create_table(
        "effect_retries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("appointment_id", sa.Uuid(), nullable=False),
        sa.Column("effect", sa.String(length=64), nullable=False),
        sa.Column("collaborator", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_effect_retries_appointment_id", "effect_retries", ["appointment_id"])
    op.create_index("ix_effect_retries_status", "effect_retries", ["status"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("effect_retries")
    op.drop_table("audit_events")
    op.drop_table("notifications")
    op.drop_table("ledger_transactions")
    op.drop_table("invoices")
    op.drop_table("appointment_practitioners")
    op.drop_table("appointments")
    op.drop_table("practitioner_availability")
    op.drop_table("patient_consents")
    op.drop_table("consents")
    op.drop_table("patients")
    op.drop_table("tenant_settings")
