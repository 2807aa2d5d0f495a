"""Custom application exceptions."""

from typing import Any
from uuid import UUID


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional details."""
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, details=details)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", details: dict[str, Any] | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, details=details)


class InvalidTimeFormat(ValidationException):
    """Local date-time string does not match ``YYYY-MM-DD HH:MM``."""

    def __init__(self, value: str):
        """Initialize with the rejected value."""
        self.value = value
        super().__init__(
            f"Invalid date/time '{value}': expected format YYYY-MM-DD HH:MM",
            details={"value": value},
        )


class UnknownTimezone(ValidationException):
    """Tenant timezone identifier cannot be resolved."""

    def __init__(self, timezone: str):
        """Initialize with the unresolvable identifier."""
        self.timezone = timezone
        super().__init__(f"Unknown timezone '{timezone}'", details={"timezone": timezone})


class PrimaryPractitionerNotInSet(ValidationException):
    """Primary practitioner is not one of the appointment's practitioners."""

    def __init__(self, primary_practitioner_id: UUID, practitioner_ids: list[UUID]):
        """Initialize with the offending ids."""
        self.primary_practitioner_id = primary_practitioner_id
        self.practitioner_ids = practitioner_ids
        super().__init__(
            "Primary practitioner must be one of the selected practitioners",
            details={
                "primary_practitioner_id": str(primary_practitioner_id),
                "practitioner_ids": [str(pid) for pid in practitioner_ids],
            },
        )


class SchedulingConflict(ConflictException):
    """One or more practitioners already have an overlapping active appointment."""

    def __init__(self, conflicts: dict[UUID, list[UUID]]):
        """
        Initialize with the collisions found.

        Args:
            conflicts: Practitioner id -> ids of the appointments it collides with
        """
        self.conflicts = conflicts
        self.conflicting_appointment_ids = sorted(
            {appointment_id for ids in conflicts.values() for appointment_id in ids},
            key=str,
        )
        summary = "; ".join(
            f"practitioner {pid}: {', '.join(str(aid) for aid in ids)}"
            for pid, ids in conflicts.items()
        )
        super().__init__(
            f"Time slot conflict ({summary})",
            details={
                "conflicting_appointment_ids": [str(aid) for aid in self.conflicting_appointment_ids],
                "conflicts": {
                    str(pid): [str(aid) for aid in ids] for pid, ids in conflicts.items()
                },
            },
        )


class IllegalTransition(ConflictException):
    """Requested status change is not in the transition table."""

    def __init__(self, from_status: Any, to_status: Any, message: str | None = None):
        """Initialize with the rejected transition."""
        self.from_status = from_status
        self.to_status = to_status
        from_value = getattr(from_status, "value", from_status)
        to_value = getattr(to_status, "value", to_status)
        super().__init__(
            message or f"Cannot transition appointment from '{from_value}' to '{to_value}'",
            details={"from_status": from_value, "to_status": to_value},
        )


class NoAvailabilityIntersection(ConflictException):
    """Joint booking requested but the practitioners share no common slot."""

    def __init__(self, practitioner_ids: list[UUID], day: str | None = None):
        """Initialize with the practitioners involved."""
        self.practitioner_ids = practitioner_ids
        self.day = day
        message = "Selected practitioners have no common availability"
        if day:
            message = f"{message} covering the requested time on {day}"
        super().__init__(
            message,
            details={
                "practitioner_ids": [str(pid) for pid in practitioner_ids],
                "day": day,
            },
        )
