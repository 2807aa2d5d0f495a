"""Practitioner payout ledger."""

from decimal import ROUND_DOWN, Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.exceptions import NotFoundException
from clinic_scheduling.models.appointments import appointment_practitioners
from clinic_scheduling.models.billing import ledger_transactions

SHARE_QUANTUM = Decimal("0.0001")


def split_payout(practitioner_count: int) -> list[Decimal]:
    """
    Equal payout shares summing to exactly one.

    The rounding remainder goes to the first share (the primary practitioner).
    """
    if practitioner_count <= 0:
        return []
    share = (Decimal(1) / practitioner_count).quantize(SHARE_QUANTUM, rounding=ROUND_DOWN)
    shares = [share] * practitioner_count
    shares[0] += Decimal(1) - share * practitioner_count
    return shares


class LedgerService:
    """Writes payout transactions when an appointment completes."""

    def __init__(self, db: AsyncSession, tenant_id: str):
        """Initialize service with database session and tenant."""
        self.db = db
        self.tenant_id = tenant_id

    async def generate_transactions(self, appointment_id: UUID) -> int:
        """
        Record one payout transaction per practitioner on the appointment.

        Args:
            appointment_id: Completed appointment ID

        Returns:
            Number of transactions written (0 if they already exist)

        Raises:
            NotFoundException: If the appointment has no practitioners
        """
        existing = await self.db.execute(
            select(func.count())
            .select_from(ledger_transactions)
            .where(
                ledger_transactions.c.tenant_id == self.tenant_id,
                ledger_transactions.c.appointment_id == appointment_id,
            )
        )
        if existing.scalar_one():
            return 0

        result = await self.db.execute(
            select(
                appointment_practitioners.c.practitioner_id,
                appointment_practitioners.c.is_primary,
            )
            .where(appointment_practitioners.c.appointment_id == appointment_id)
            .order_by(
                appointment_practitioners.c.is_primary.desc(),
                appointment_practitioners.c.practitioner_id,
            )
        )
        rows = result.mappings().all()
        if not rows:
            raise NotFoundException("Appointment has no practitioners")

        values = [
            {
                "tenant_id": self.tenant_id,
                "appointment_id": appointment_id,
                "practitioner_id": row["practitioner_id"],
                "is_primary": row["is_primary"],
                "payout_share": share,
            }
            for row, share in zip(rows, split_payout(len(rows)), strict=True)
        ]
        await self.db.execute(ledger_transactions.insert(), values)
        return len(values)
