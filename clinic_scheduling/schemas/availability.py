"""Availability schemas for request/response validation."""

from datetime import datetime, time
from uuid import UUID

from pydantic import BaseModel, Field

from clinic_scheduling.core.intervals import DayOfWeek, LocalInterval, WeeklyAvailability
from clinic_scheduling.schemas.appointments import AppointmentMode, AppointmentStatus


class LocalIntervalSchema(BaseModel):
    """Wall-clock interval within a day."""

    start_time: time
    end_time: time

    @classmethod
    def from_interval(cls, interval: LocalInterval) -> "LocalIntervalSchema":
        return cls(start_time=interval.start, end_time=interval.end)


class WeeklyAvailabilityResponse(BaseModel):
    """Availability per day of week."""

    practitioner_ids: list[UUID]
    location_id: UUID | None = None
    mode: AppointmentMode | None = None
    days: dict[DayOfWeek, list[LocalIntervalSchema]]

    @classmethod
    def from_week(
        cls,
        practitioner_ids: list[UUID],
        week: WeeklyAvailability,
        location_id: UUID | None = None,
        mode: AppointmentMode | None = None,
    ) -> "WeeklyAvailabilityResponse":
        return cls(
            practitioner_ids=practitioner_ids,
            location_id=location_id,
            mode=mode,
            days={
                day: [LocalIntervalSchema.from_interval(i) for i in week.get(day, [])]
                for day in DayOfWeek
            },
        )


class BusyInterval(BaseModel):
    """A blocking appointment slot for one practitioner."""

    appointment_id: UUID
    status: AppointmentStatus
    start_at: datetime
    end_at: datetime
    local_start: str
    local_end: str


class BusyIntervalsResponse(BaseModel):
    """Blocking slots for a practitioner within a window."""

    practitioner_id: UUID
    window_start: datetime
    window_end: datetime
    items: list[BusyInterval] = Field(default_factory=list)


class ConflictCheckResponse(BaseModel):
    """Result of a conflict check for one practitioner."""

    practitioner_id: UUID
    has_conflict: bool
    conflicting_appointment_ids: list[UUID] = Field(default_factory=list)
