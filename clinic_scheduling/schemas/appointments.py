"""Appointment schemas for request/response validation."""

from datetime import datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    REQUESTED = "Requested"
    PENDING_CONSENT = "pending-consent"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"
    # Legacy rows only; no transition leads here
    NO_SHOW = "no-show"


# Statuses that never block a practitioner's time
NON_BLOCKING_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


class AppointmentMode(str, Enum):
    """Delivery mode enumeration."""

    IN_PERSON = "in-person"
    VIRTUAL = "virtual"
    HYBRID = "hybrid"


class BookingSource(str, Enum):
    """Booking source enumeration."""

    ADMIN_PANEL = "admin_panel"
    PRACTITIONER_PORTAL = "practitioner_portal"
    PATIENT_PORTAL = "patient_portal"
    PUBLIC_PORTAL = "public_portal"
    API = "api"


NO_OVERRIDE = "no-override"


def override_code_used(code: str | None) -> bool:
    """Whether an admin override code actually overrides anything."""
    return bool(code) and code.strip().lower() != NO_OVERRIDE


class PatientIdentity(BaseModel):
    """Identity used to resolve or create the booking's patient."""

    patient_id: UUID | None = None
    email: EmailStr | None = None
    health_number: str | None = Field(None, max_length=255)
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    phone_number: str | None = Field(None, max_length=50)
    requires_approval: bool = False

    @model_validator(mode="after")
    def require_identifier(self) -> "PatientIdentity":
        """At least one identifier is needed to look a patient up."""
        if not (self.patient_id or self.email or self.health_number):
            raise ValueError("Provide a patient_id, email or health_number")
        return self


class SlotDivision(BaseModel):
    """Per-practitioner local time override inside a joint appointment."""

    practitioner_id: UUID
    start_time: time
    end_time: time

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v: time, info) -> time:
        """Validate end time is after start time."""
        start = info.data.get("start_time")
        if start is not None and v <= start:
            raise ValueError("End time must be after start time")
        return v


class BookingRequest(BaseModel):
    """Schema for booking a new appointment."""

    patient: PatientIdentity
    service_id: UUID
    location_id: UUID | None = None
    mode: AppointmentMode
    date_time_preference: str = Field(..., max_length=255)
    practitioner_ids: list[UUID] = Field(..., min_length=1)
    primary_practitioner_id: UUID
    slot_divisions: list[SlotDivision] = Field(default_factory=list)
    booking_source: BookingSource = BookingSource.ADMIN_PANEL
    admin_override: str | None = Field(None, max_length=255)
    root_appointment_id: UUID | None = None

    @property
    def override_used(self) -> bool:
        return override_code_used(self.admin_override)


class RescheduleRequest(BaseModel):
    """Schema for moving a pending appointment."""

    date_time_preference: str = Field(..., max_length=255)
    practitioner_ids: list[UUID] = Field(..., min_length=1)
    primary_practitioner_id: UUID
    slot_divisions: list[SlotDivision] = Field(default_factory=list)
    service_id: UUID | None = None
    location_id: UUID | None = None
    reason: str = Field(..., min_length=1, max_length=1000)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class AppointmentPractitionerResponse(BaseModel):
    """One practitioner's slot within an appointment."""

    practitioner_id: UUID
    start_at: datetime
    end_at: datetime
    is_primary: bool
    local_start: str
    local_end: str


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    tenant_id: str
    patient_id: UUID
    service_id: UUID
    location_id: UUID | None = None
    mode: AppointmentMode
    start_at: datetime
    end_at: datetime
    stored_timezone: str
    date_time_preference: str
    local_start: str
    local_end: str
    status: AppointmentStatus
    root_appointment_id: UUID | None = None
    external_event_id: str | None = None
    booking_source: str
    admin_override: str | None = None
    reason_for_update: str | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    practitioners: list[AppointmentPractitionerResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @property
    def primary_practitioner_id(self) -> UUID | None:
        for practitioner in self.practitioners:
            if practitioner.is_primary:
                return practitioner.practitioner_id
        return None


class FailedEffect(BaseModel):
    """A post-commit side effect that failed and was queued for retry."""

    effect: str
    collaborator: str
    error: str


class BookingResult(BaseModel):
    """Schema for a completed booking."""

    appointment: AppointmentResponse
    failed_effects: list[FailedEffect] = Field(default_factory=list)


class StatusChangeResult(BaseModel):
    """Schema for a completed status transition."""

    appointment: AppointmentResponse
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    failed_effects: list[FailedEffect] = Field(default_factory=list)


class FieldChange(BaseModel):
    """Old and new value of a rescheduled field, as displayed to people."""

    old: str
    new: str


class RescheduleResult(BaseModel):
    """Schema for a completed reschedule."""

    appointment: AppointmentResponse
    changes: dict[str, FieldChange] = Field(default_factory=dict)
    failed_effects: list[FailedEffect] = Field(default_factory=list)


class AppointmentHistoryResponse(BaseModel):
    """All appointments sharing one root appointment."""

    root_appointment_id: UUID
    items: list[AppointmentResponse]
