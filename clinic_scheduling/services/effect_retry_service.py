"""Retry queue for post-commit effects that failed.

A booking never fails because a collaborator was down after commit; the
effect is saved here instead and replayed out of band.
"""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.config import settings
from clinic_scheduling.models.audit import effect_retries

logger = structlog.get_logger(__name__)

STATUS_PENDING = "pending"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

EffectExecutor = Callable[[dict[str, Any]], Awaitable[None]]


class EffectRetryService:
    """Saves failed effects and replays them with a bounded attempt count."""

    def __init__(self, db: AsyncSession, max_attempts: int | None = None):
        """Initialize service with database session and attempt limit."""
        self.db = db
        self.max_attempts = max_attempts or settings.effect_max_attempts

    async def save_failed_effect(
        self,
        tenant_id: str,
        appointment_id: UUID,
        effect: str,
        collaborator: str,
        error: str,
        payload: dict[str, Any] | None = None,
    ) -> UUID:
        """
        Queue a failed effect for retry.

        Args:
            tenant_id: Tenant of the appointment
            appointment_id: Appointment the effect belongs to
            effect: Effect name
            collaborator: Collaborator that failed
            error: Error message from the failed attempt
            payload: Data needed to replay the effect

        Returns:
            Retry entry ID
        """
        retry_id = uuid4()
        await self.db.execute(
            effect_retries.insert().values(
                id=retry_id,
                tenant_id=tenant_id,
                appointment_id=appointment_id,
                effect=effect,
                collaborator=collaborator,
                payload=payload or {},
                attempts=0,
                last_error=error,
                status=STATUS_PENDING,
            )
        )
        await self.db.commit()

        logger.info(
            "effect_retry_queued",
            retry_id=str(retry_id),
            appointment_id=str(appointment_id),
            effect=effect,
            collaborator=collaborator,
        )
        return retry_id

    async def get_pending(self, tenant_id: str | None = None, limit: int = 50) -> list[dict]:
        """Entries still eligible for a retry, oldest first."""
        conditions = [
            effect_retries.c.status == STATUS_PENDING,
            effect_retries.c.attempts < self.max_attempts,
        ]
        if tenant_id is not None:
            conditions.append(effect_retries.c.tenant_id == tenant_id)

        query = (
            select(effect_retries)
            .where(*conditions)
            .order_by(effect_retries.c.created_at, effect_retries.c.id)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def _mark_succeeded(self, entry: dict) -> None:
        await self.db.execute(
            update(effect_retries)
            .where(effect_retries.c.id == entry["id"])
            .values(status=STATUS_SUCCEEDED, attempts=entry["attempts"] + 1)
        )
        await self.db.commit()

    async def _mark_failed(self, entry: dict, error: str) -> None:
        attempts = entry["attempts"] + 1
        exhausted = attempts >= self.max_attempts
        await self.db.execute(
            update(effect_retries)
            .where(effect_retries.c.id == entry["id"])
            .values(
                attempts=attempts,
                last_error=error,
                status=STATUS_FAILED if exhausted else STATUS_PENDING,
            )
        )
        await self.db.commit()

        if exhausted:
            logger.error(
                "effect_retry_exhausted",
                retry_id=str(entry["id"]),
                appointment_id=str(entry["appointment_id"]),
                effect=entry["effect"],
                collaborator=entry["collaborator"],
                error=error,
            )
        else:
            logger.warning(
                "effect_retry_failed",
                retry_id=str(entry["id"]),
                attempt=attempts,
                max_attempts=self.max_attempts,
                effect=entry["effect"],
                error=error,
            )

    async def retry_pending(
        self,
        executor: EffectExecutor,
        tenant_id: str | None = None,
        limit: int = 50,
    ) -> dict[str, int]:
        """
        Replay pending effects.

        The executor's own writes are committed together with the success
        mark; on failure they are rolled back before the attempt is counted.

        Args:
            executor: Async callable taking a retry entry; raises on failure
            tenant_id: Only replay this tenant's entries
            limit: Maximum entries to process

        Returns:
            Counts of processed, succeeded and failed entries
        """
        entries = await self.get_pending(tenant_id=tenant_id, limit=limit)

        succeeded = 0
        failed = 0
        for entry in entries:
            try:
                await executor(entry)
            except Exception as e:
                await self.db.rollback()
                await self._mark_failed(entry, str(e))
                failed += 1
            else:
                await self._mark_succeeded(entry)
                succeeded += 1

        if entries:
            logger.info(
                "effect_retry_batch_completed",
                processed=len(entries),
                succeeded=succeeded,
                failed=failed,
            )

        return {"processed": len(entries), "succeeded": succeeded, "failed": failed}
