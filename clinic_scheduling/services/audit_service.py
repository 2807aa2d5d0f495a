"""Audit trail service."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.models.audit import audit_events

logger = structlog.get_logger(__name__)

ADMIN_OVERRIDE_USED = "admin_override_used"


class AuditService:
    """Appends audit events for a tenant."""

    def __init__(self, db: AsyncSession, tenant_id: str):
        """Initialize service with database session and tenant."""
        self.db = db
        self.tenant_id = tenant_id

    async def record(
        self,
        action: str,
        appointment_id: UUID | None = None,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Log an action to the audit trail.

        Args:
            action: Action type (e.g. ``admin_override_used``)
            appointment_id: Appointment the action concerns
            actor_id: User performing the action, if known
            details: Additional JSON details about the action
        """
        await self.db.execute(
            audit_events.insert().values(
                tenant_id=self.tenant_id,
                actor_id=actor_id,
                action=action,
                appointment_id=appointment_id,
                details=details or {},
            )
        )
        logger.info(
            "audit_event_recorded",
            tenant_id=self.tenant_id,
            action=action,
            appointment_id=str(appointment_id) if appointment_id else None,
            actor_id=actor_id,
        )
