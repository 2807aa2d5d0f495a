"""Explicit tenant context passed into every scheduling call."""

from dataclasses import dataclass
from datetime import timedelta

from clinic_scheduling.core.timezone import get_zone
from clinic_scheduling.schemas.appointments import AppointmentStatus


@dataclass(frozen=True)
class TenantContext:
    """Per-tenant configuration, read once per request."""

    tenant_id: str
    timezone: str
    session_duration_minutes: int = 30
    default_status: AppointmentStatus = AppointmentStatus.PENDING

    def __post_init__(self) -> None:
        get_zone(self.timezone)
        if self.session_duration_minutes <= 0:
            raise ValueError("session_duration_minutes must be positive")
        object.__setattr__(self, "default_status", AppointmentStatus(self.default_status))

    @property
    def session_duration(self) -> timedelta:
        return timedelta(minutes=self.session_duration_minutes)
