"""Booking orchestration: create, transition and reschedule appointments.

Every write happens in one transaction that holds per-practitioner booking
locks while conflicts are checked. Side effects that reach outside the
database transaction (invoices, calendar, notifications, audit) run only
after commit, one at a time, and a failure in one of them is queued for
retry instead of failing the request.
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core import state_machine
from clinic_scheduling.core.exceptions import (
    IllegalTransition,
    NoAvailabilityIntersection,
    NotFoundException,
    PrimaryPractitionerNotInSet,
    ValidationException,
)
from clinic_scheduling.core.intervals import window_fits
from clinic_scheduling.core.state_machine import Effect
from clinic_scheduling.core.tenant import TenantContext
from clinic_scheduling.core.timezone import (
    combine_local,
    format_for_tenant,
    to_tenant_local,
    to_utc,
)
from clinic_scheduling.database import acquire_booking_locks
from clinic_scheduling.models.appointments import appointment_practitioners, appointments
from clinic_scheduling.models.base import utcnow
from clinic_scheduling.schemas.appointments import (
    AppointmentHistoryResponse,
    AppointmentMode,
    AppointmentPractitionerResponse,
    AppointmentResponse,
    AppointmentStatus,
    BookingRequest,
    BookingResult,
    FailedEffect,
    FieldChange,
    RescheduleRequest,
    RescheduleResult,
    SlotDivision,
    StatusChangeResult,
    override_code_used,
)
from clinic_scheduling.services.audit_service import ADMIN_OVERRIDE_USED, AuditService
from clinic_scheduling.services.availability_service import AvailabilityService
from clinic_scheduling.services.calendar_service import CalendarSyncService
from clinic_scheduling.services.collaborators import Collaborators
from clinic_scheduling.services.conflict_service import ConflictService, ProposedSlot
from clinic_scheduling.services.consent_service import ConsentService
from clinic_scheduling.services.effect_retry_service import EffectRetryService
from clinic_scheduling.services.invoice_service import InvoiceService
from clinic_scheduling.services.ledger_service import LedgerService
from clinic_scheduling.services.notification_service import NotificationService
from clinic_scheduling.services.patient_service import PatientService

logger = structlog.get_logger(__name__)

ap = appointment_practitioners

# Post-commit actions the orchestrator adds on top of state machine effects
SYNC_CALENDAR = "sync_calendar"
SEND_BOOKING_CONFIRMATION = "send_booking_confirmation"
SEND_RESCHEDULE_NOTICE = "send_reschedule_notice"
SEND_STATUS_CHANGE = "send_status_change"

# Collaborator responsible for each post-commit action
COLLABORATOR_FOR_ACTION = {
    Effect.SEND_CONSENT_REQUEST.value: "consents",
    Effect.CREATE_INVOICE.value: "invoices",
    Effect.ACCEPT_INVITATION.value: "patients",
    Effect.AUDIT_ADMIN_OVERRIDE.value: "audit",
    SYNC_CALENDAR: "calendar",
    SEND_BOOKING_CONFIRMATION: "notifier",
    SEND_RESCHEDULE_NOTICE: "notifier",
    SEND_STATUS_CHANGE: "notifier",
}

PostCommitAction = tuple[str, dict[str, Any]]


def default_collaborators(
    db: AsyncSession,
    tenant_id: str,
    calendar: CalendarSyncService | None = None,
) -> Collaborators:
    """Database-backed collaborators sharing the booking session."""
    notifier = NotificationService(db, tenant_id)
    return Collaborators(
        patients=PatientService(db, tenant_id),
        consents=ConsentService(db, tenant_id, notifier),
        invoices=InvoiceService(db, tenant_id),
        ledger=LedgerService(db, tenant_id),
        calendar=calendar or CalendarSyncService(),
        notifier=notifier,
        audit=AuditService(db, tenant_id),
    )


def _utc_days(start: datetime, end: datetime) -> list[date]:
    """Every UTC calendar date a ``[start, end)`` window touches."""
    days = []
    day = start.date()
    last = (end - timedelta(microseconds=1)).date()
    while day <= last:
        days.append(day)
        day += timedelta(days=1)
    return days


def _display_location(location_id: UUID | None) -> str:
    return str(location_id) if location_id else "Virtual"


class BookingService:
    """
    Booking orchestrator for one tenant.

    Args:
        db: Database session; the service owns its transaction boundaries
        ctx: Tenant context for every call
        collaborators: Override the default database-backed collaborators
        actor_id: User performing the operations, recorded on approvals and audits
    """

    def __init__(
        self,
        db: AsyncSession,
        ctx: TenantContext,
        collaborators: Collaborators | None = None,
        actor_id: str | None = None,
    ):
        """Initialize service with database session and tenant context."""
        self.db = db
        self.ctx = ctx
        self.collaborators = collaborators or default_collaborators(db, ctx.tenant_id)
        self.actor_id = actor_id
        self.availability = AvailabilityService(db)
        self.conflicts = ConflictService(db)
        self.retries = EffectRetryService(db)
        self._handlers: dict[
            str, Callable[[AppointmentResponse, dict[str, Any]], Awaitable[None]]
        ] = {
            Effect.SEND_CONSENT_REQUEST.value: self._send_consent_request,
            Effect.CREATE_INVOICE.value: self._create_invoice,
            Effect.ACCEPT_INVITATION.value: self._accept_invitation,
            Effect.AUDIT_ADMIN_OVERRIDE.value: self._audit_admin_override,
            SYNC_CALENDAR: self._sync_calendar,
            SEND_BOOKING_CONFIRMATION: self._send_booking_confirmation,
            SEND_RESCHEDULE_NOTICE: self._send_reschedule_notice,
            SEND_STATUS_CHANGE: self._send_status_change,
        }

    @staticmethod
    def _validate_practitioners(
        practitioner_ids: Sequence[UUID],
        primary_practitioner_id: UUID,
        slot_divisions: Sequence[SlotDivision],
        mode: AppointmentMode,
        location_id: UUID | None,
    ) -> None:
        if not practitioner_ids:
            raise ValidationException("At least one practitioner is required")
        if len(set(practitioner_ids)) != len(practitioner_ids):
            raise ValidationException(
                "Practitioners must not be repeated",
                details={"practitioner_ids": [str(pid) for pid in practitioner_ids]},
            )
        if primary_practitioner_id not in practitioner_ids:
            raise PrimaryPractitionerNotInSet(primary_practitioner_id, list(practitioner_ids))
        if mode == AppointmentMode.IN_PERSON and location_id is None:
            raise ValidationException("In-person appointments require a location")

        seen: set[UUID] = set()
        for division in slot_divisions:
            if division.practitioner_id not in practitioner_ids:
                raise ValidationException(
                    "Slot division given for a practitioner not on the appointment",
                    details={"practitioner_id": str(division.practitioner_id)},
                )
            if division.practitioner_id in seen:
                raise ValidationException(
                    "Only one slot division per practitioner is allowed",
                    details={"practitioner_id": str(division.practitioner_id)},
                )
            if division.start_time >= division.end_time:
                raise ValidationException(
                    "Slot division start must be before its end",
                    details={"practitioner_id": str(division.practitioner_id)},
                )
            seen.add(division.practitioner_id)

    def _plan_slots(
        self,
        timezone: str,
        start_at: datetime,
        end_at: datetime,
        practitioner_ids: Sequence[UUID],
        primary_practitioner_id: UUID,
        slot_divisions: Sequence[SlotDivision],
    ) -> list[ProposedSlot]:
        """One UTC slot per practitioner; slot divisions apply on the booking's local date."""
        divisions = {division.practitioner_id: division for division in slot_divisions}
        local_day = to_tenant_local(start_at, timezone).date()

        slots = []
        for practitioner_id in practitioner_ids:
            division = divisions.get(practitioner_id)
            if division:
                slot_start = to_utc(combine_local(local_day, division.start_time), timezone)
                slot_end = to_utc(combine_local(local_day, division.end_time), timezone)
            else:
                slot_start, slot_end = start_at, end_at
            slots.append(
                ProposedSlot(
                    practitioner_id=practitioner_id,
                    start_at=slot_start,
                    end_at=slot_end,
                    is_primary=practitioner_id == primary_practitioner_id,
                )
            )
        return slots

    async def _ensure_joint_availability(
        self,
        practitioner_ids: Sequence[UUID],
        slot_divisions: Sequence[SlotDivision],
        override_used: bool,
        mode: AppointmentMode,
        location_id: UUID | None,
        timezone: str,
        start_at: datetime,
        end_at: datetime,
    ) -> None:
        """
        Joint appointments sharing one window must fit the practitioners' common availability.

        Raises:
            NoAvailabilityIntersection: If no common interval covers the window
        """
        if len(practitioner_ids) < 2 or slot_divisions or override_used:
            return

        common = await self.availability.find_common_availability(
            self.ctx, list(practitioner_ids), location_id, mode
        )
        local_start = to_tenant_local(start_at, timezone)
        local_end = to_tenant_local(end_at, timezone)
        if not window_fits(common, local_start, local_end):
            raise NoAvailabilityIntersection(
                list(practitioner_ids), day=local_start.date().isoformat()
            )

    async def _lock_and_check(
        self,
        slots: Iterable[ProposedSlot],
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        slots = list(slots)
        await acquire_booking_locks(
            self.db,
            self.ctx.tenant_id,
            [
                (slot.practitioner_id, day)
                for slot in slots
                for day in _utc_days(slot.start_at, slot.end_at)
            ],
        )
        await self.conflicts.ensure_slots_free(self.ctx, slots, exclude_appointment_id)

    async def _insert_practitioner_slots(
        self,
        appointment_id: UUID,
        slots: Sequence[ProposedSlot],
    ) -> None:
        await self.db.execute(
            ap.insert(),
            [
                {
                    "appointment_id": appointment_id,
                    "practitioner_id": slot.practitioner_id,
                    "start_at": slot.start_at,
                    "end_at": slot.end_at,
                    "is_primary": slot.is_primary,
                }
                for slot in slots
            ],
        )

    async def _load_row(self, appointment_id: UUID, for_update: bool = False) -> dict:
        query = select(appointments).where(
            appointments.c.id == appointment_id,
            appointments.c.tenant_id == self.ctx.tenant_id,
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    async def _to_responses(self, rows: Sequence[Mapping[str, Any]]) -> list[AppointmentResponse]:
        """Attach practitioner slots and tenant-local times to appointment rows."""
        if not rows:
            return []

        result = await self.db.execute(
            select(ap)
            .where(ap.c.appointment_id.in_([row["id"] for row in rows]))
            .order_by(ap.c.is_primary.desc(), ap.c.start_at, ap.c.practitioner_id)
        )
        slots_by_appointment: dict[UUID, list[dict]] = {}
        for slot in result.mappings().all():
            slots_by_appointment.setdefault(slot["appointment_id"], []).append(dict(slot))

        responses = []
        for row in rows:
            timezone = row["stored_timezone"]
            practitioners = [
                AppointmentPractitionerResponse(
                    practitioner_id=slot["practitioner_id"],
                    start_at=slot["start_at"],
                    end_at=slot["end_at"],
                    is_primary=slot["is_primary"],
                    local_start=format_for_tenant(slot["start_at"], timezone),
                    local_end=format_for_tenant(slot["end_at"], timezone),
                )
                for slot in slots_by_appointment.get(row["id"], [])
            ]
            responses.append(
                AppointmentResponse.model_validate(
                    {
                        **row,
                        "local_start": format_for_tenant(row["start_at"], timezone),
                        "local_end": format_for_tenant(row["end_at"], timezone),
                        "practitioners": practitioners,
                    }
                )
            )
        return responses

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If the appointment does not exist for this tenant
        """
        row = await self._load_row(appointment_id)
        return (await self._to_responses([row]))[0]

    async def get_history(self, appointment_id: UUID) -> AppointmentHistoryResponse:
        """
        Every appointment in the reschedule chain of ``appointment_id``.

        Returns:
            The chain with the root appointment first, then by creation time
        """
        row = await self._load_row(appointment_id)
        root_id = row["root_appointment_id"] or row["id"]

        result = await self.db.execute(
            select(appointments)
            .where(
                appointments.c.tenant_id == self.ctx.tenant_id,
                or_(
                    appointments.c.id == root_id,
                    appointments.c.root_appointment_id == root_id,
                ),
            )
            .order_by(appointments.c.created_at, appointments.c.id)
        )
        rows = sorted(
            (dict(r) for r in result.mappings().all()),
            key=lambda r: r["id"] != root_id,
        )
        return AppointmentHistoryResponse(
            root_appointment_id=root_id,
            items=await self._to_responses(rows),
        )

    async def _resolve_root(self, root_appointment_id: UUID | None) -> UUID | None:
        """The original appointment of the chain that ``root_appointment_id`` belongs to."""
        if root_appointment_id is None:
            return None
        row = await self._load_row(root_appointment_id)
        return row["root_appointment_id"] or row["id"]

    async def book(self, request: BookingRequest) -> BookingResult:
        """
        Book a new appointment.

        Args:
            request: Booking request with local time in the tenant's timezone

        Returns:
            The appointment and any post-commit effects that failed

        Raises:
            InvalidTimeFormat: If ``date_time_preference`` is malformed
            PrimaryPractitionerNotInSet: If the primary is not among the practitioners
            NoAvailabilityIntersection: If a joint booking has no common slot
            SchedulingConflict: If any practitioner is already booked
            ValidationException: If the request is otherwise invalid
        """
        practitioner_ids = list(request.practitioner_ids)
        self._validate_practitioners(
            practitioner_ids,
            request.primary_practitioner_id,
            request.slot_divisions,
            request.mode,
            request.location_id,
        )
        location_id = None if request.mode == AppointmentMode.VIRTUAL else request.location_id
        timezone = self.ctx.timezone
        patients = self.collaborators.patients

        try:
            patient_id = await patients.find_or_create_patient(request.patient)

            start_at = to_utc(request.date_time_preference, timezone)
            end_at = start_at + self.ctx.session_duration
            slots = self._plan_slots(
                timezone,
                start_at,
                end_at,
                practitioner_ids,
                request.primary_practitioner_id,
                request.slot_divisions,
            )
            await self._ensure_joint_availability(
                practitioner_ids,
                request.slot_divisions,
                request.override_used,
                request.mode,
                location_id,
                timezone,
                start_at,
                end_at,
            )
            await self._lock_and_check(slots)

            entry = state_machine.enter(
                await patients.is_approved(patient_id),
                await self.collaborators.consents.has_all_required_consents(patient_id),
                self.ctx.default_status,
                override_used=request.override_used,
            )
            root_id = await self._resolve_root(request.root_appointment_id)

            appointment_id = uuid4()
            await self.db.execute(
                appointments.insert().values(
                    id=appointment_id,
                    tenant_id=self.ctx.tenant_id,
                    patient_id=patient_id,
                    service_id=request.service_id,
                    location_id=location_id,
                    mode=request.mode.value,
                    start_at=start_at,
                    end_at=end_at,
                    stored_timezone=timezone,
                    date_time_preference=request.date_time_preference,
                    status=entry.to_status.value,
                    root_appointment_id=root_id,
                    booking_source=request.booking_source.value,
                    admin_override=request.admin_override,
                )
            )
            await self._insert_practitioner_slots(appointment_id, slots)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_booked",
            tenant_id=self.ctx.tenant_id,
            appointment_id=str(appointment_id),
            patient_id=str(patient_id),
            status=entry.to_status.value,
            practitioner_ids=[str(pid) for pid in practitioner_ids],
            start_at=start_at.isoformat(),
        )

        actions: list[PostCommitAction] = [
            (effect.value, {"entry_status": entry.to_status.value})
            for effect in entry.post_commit_effects
        ]
        if request.mode == AppointmentMode.VIRTUAL and Effect.CREATE_INVOICE not in entry.effects:
            actions.append((Effect.CREATE_INVOICE.value, {}))
        actions.extend(
            (SYNC_CALENDAR, {"practitioner_id": str(slot.practitioner_id)}) for slot in slots
        )
        actions.append((SEND_BOOKING_CONFIRMATION, {}))

        appointment = await self.get_appointment(appointment_id)
        failed = await self._run_post_commit(appointment, actions)
        appointment = await self.get_appointment(appointment_id)
        return BookingResult(appointment=appointment, failed_effects=failed)

    async def change_status(
        self,
        appointment_id: UUID,
        target: AppointmentStatus,
    ) -> StatusChangeResult:
        """
        Move an appointment to a new status.

        In-transaction effects (patient approval, ledger, completion time)
        commit with the status; the rest run after commit.

        Raises:
            NotFoundException: If the appointment does not exist
            IllegalTransition: If the transition is not allowed; status is unchanged
        """
        target = AppointmentStatus(target)
        try:
            row = await self._load_row(appointment_id, for_update=True)
            current = AppointmentStatus(row["status"])
            try:
                result = state_machine.transition(
                    current,
                    target,
                    override_used=override_code_used(row["admin_override"]),
                )
            except IllegalTransition:
                logger.info(
                    "illegal_transition_rejected",
                    tenant_id=self.ctx.tenant_id,
                    appointment_id=str(appointment_id),
                    from_status=current.value,
                    to_status=target.value,
                    allowed=[s.value for s in state_machine.allowed_targets(current)],
                )
                raise

            values: dict[str, Any] = {"status": target.value}
            for effect in result.in_transaction_effects:
                if effect is Effect.APPROVE_PATIENT:
                    await self.collaborators.patients.approve(row["patient_id"], self.actor_id)
                elif effect is Effect.GENERATE_LEDGER_TRANSACTIONS:
                    await self.collaborators.ledger.generate_transactions(appointment_id)
                elif effect is Effect.MARK_COMPLETED:
                    values["completed_at"] = utcnow()
            if target == AppointmentStatus.CANCELLED:
                values["cancelled_at"] = utcnow()

            await self.db.execute(
                update(appointments).where(appointments.c.id == appointment_id).values(**values)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_status_changed",
            tenant_id=self.ctx.tenant_id,
            appointment_id=str(appointment_id),
            from_status=current.value,
            to_status=target.value,
            effects=[effect.value for effect in result.effects],
        )

        transition_payload = {"from_status": current.value, "to_status": target.value}
        actions: list[PostCommitAction] = [
            (effect.value, transition_payload) for effect in result.post_commit_effects
        ]
        actions.append((SEND_STATUS_CHANGE, transition_payload))

        appointment = await self.get_appointment(appointment_id)
        failed = await self._run_post_commit(appointment, actions)
        appointment = await self.get_appointment(appointment_id)
        return StatusChangeResult(
            appointment=appointment,
            from_status=current,
            to_status=target,
            failed_effects=failed,
        )

    async def reschedule(
        self,
        appointment_id: UUID,
        request: RescheduleRequest,
    ) -> RescheduleResult:
        """
        Move a pending appointment to a new time and/or practitioner set.

        The new local time is read in the appointment's stored timezone.
        Practitioner slots are replaced in the same transaction as the
        conflict re-check; a rejected reschedule leaves everything as it was.

        Raises:
            NotFoundException: If the appointment does not exist
            IllegalTransition: If the appointment is not pending
            PrimaryPractitionerNotInSet: If the primary is not among the practitioners
            NoAvailabilityIntersection: If a joint booking has no common slot
            SchedulingConflict: If the new slot collides with another appointment
        """
        practitioner_ids = list(request.practitioner_ids)
        try:
            row = await self._load_row(appointment_id, for_update=True)
            current = AppointmentStatus(row["status"])
            try:
                state_machine.ensure_reschedulable(current)
            except IllegalTransition:
                logger.info(
                    "illegal_transition_rejected",
                    tenant_id=self.ctx.tenant_id,
                    appointment_id=str(appointment_id),
                    from_status=current.value,
                    operation="reschedule",
                )
                raise

            mode = AppointmentMode(row["mode"])
            location_id = request.location_id or row["location_id"]
            if mode == AppointmentMode.VIRTUAL:
                location_id = None
            service_id = request.service_id or row["service_id"]
            self._validate_practitioners(
                practitioner_ids,
                request.primary_practitioner_id,
                request.slot_divisions,
                mode,
                location_id,
            )

            before = (await self._to_responses([row]))[0]
            timezone = row["stored_timezone"]
            start_at = to_utc(request.date_time_preference, timezone)
            end_at = start_at + self.ctx.session_duration
            slots = self._plan_slots(
                timezone,
                start_at,
                end_at,
                practitioner_ids,
                request.primary_practitioner_id,
                request.slot_divisions,
            )
            await self._ensure_joint_availability(
                practitioner_ids,
                request.slot_divisions,
                override_code_used(row["admin_override"]),
                mode,
                location_id,
                timezone,
                start_at,
                end_at,
            )
            await self._lock_and_check(slots, exclude_appointment_id=appointment_id)

            await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(
                    start_at=start_at,
                    end_at=end_at,
                    date_time_preference=request.date_time_preference,
                    service_id=service_id,
                    location_id=location_id,
                    reason_for_update=request.reason,
                )
            )
            await self.db.execute(delete(ap).where(ap.c.appointment_id == appointment_id))
            await self._insert_practitioner_slots(appointment_id, slots)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        appointment = await self.get_appointment(appointment_id)
        changes = self._summarize_changes(before, appointment)

        logger.info(
            "appointment_rescheduled",
            tenant_id=self.ctx.tenant_id,
            appointment_id=str(appointment_id),
            old_start_at=before.start_at.isoformat(),
            new_start_at=appointment.start_at.isoformat(),
            changed=list(changes),
        )

        payload = {
            "changes": {label: change.model_dump() for label, change in changes.items()},
            "reason": request.reason,
            "previous_practitioner_ids": [str(p.practitioner_id) for p in before.practitioners],
        }
        failed = await self._run_post_commit(appointment, [(SEND_RESCHEDULE_NOTICE, payload)])
        return RescheduleResult(appointment=appointment, changes=changes, failed_effects=failed)

    @staticmethod
    def _summarize_changes(
        before: AppointmentResponse,
        after: AppointmentResponse,
    ) -> dict[str, FieldChange]:
        """Human-readable old/new values of the fields people care about."""
        candidates = {
            "Date & Time": (before.local_start, after.local_start),
            "Service": (str(before.service_id), str(after.service_id)),
            "Location": (
                _display_location(before.location_id),
                _display_location(after.location_id),
            ),
        }
        return {
            label: FieldChange(old=old, new=new)
            for label, (old, new) in candidates.items()
            if old != new
        }

    async def _run_post_commit(
        self,
        appointment: AppointmentResponse,
        actions: Sequence[PostCommitAction],
    ) -> list[FailedEffect]:
        """
        Run post-commit actions one by one, each in its own transaction.

        Returns:
            The actions that failed; each is logged and queued for retry
        """
        failed: list[FailedEffect] = []
        for action, payload in actions:
            collaborator = COLLABORATOR_FOR_ACTION[action]
            try:
                await self._handlers[action](appointment, payload)
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.warning(
                    "post_commit_effect_failed",
                    tenant_id=self.ctx.tenant_id,
                    appointment_id=str(appointment.id),
                    effect=action,
                    collaborator=collaborator,
                    error=str(e),
                )
                failed.append(FailedEffect(effect=action, collaborator=collaborator, error=str(e)))
                await self._queue_retry(appointment.id, action, collaborator, payload, str(e))
        return failed

    async def _queue_retry(
        self,
        appointment_id: UUID,
        action: str,
        collaborator: str,
        payload: dict[str, Any],
        error: str,
    ) -> None:
        try:
            await self.retries.save_failed_effect(
                self.ctx.tenant_id,
                appointment_id,
                action,
                collaborator,
                error,
                payload,
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "effect_retry_enqueue_failed",
                appointment_id=str(appointment_id),
                effect=action,
                collaborator=collaborator,
                error=str(e),
            )

    async def retry_failed_effects(self, limit: int = 50) -> dict[str, int]:
        """Replay this tenant's queued post-commit effects."""
        return await self.retries.retry_pending(
            self._replay_effect,
            tenant_id=self.ctx.tenant_id,
            limit=limit,
        )

    async def _replay_effect(self, entry: dict[str, Any]) -> None:
        appointment = await self.get_appointment(entry["appointment_id"])
        await self._handlers[entry["effect"]](appointment, entry["payload"] or {})

    async def _send_consent_request(self, appointment: AppointmentResponse, payload: dict) -> None:
        await self.collaborators.consents.trigger_consent_request(
            appointment.patient_id, appointment.id
        )

    async def _create_invoice(self, appointment: AppointmentResponse, payload: dict) -> None:
        await self.collaborators.invoices.generate_invoice_for_appointment(appointment.id)

    async def _accept_invitation(self, appointment: AppointmentResponse, payload: dict) -> None:
        await self.collaborators.patients.accept_invitation(appointment.patient_id)

    async def _audit_admin_override(self, appointment: AppointmentResponse, payload: dict) -> None:
        await self.collaborators.audit.record(
            ADMIN_OVERRIDE_USED,
            appointment_id=appointment.id,
            actor_id=self.actor_id,
            details={"admin_override": appointment.admin_override, **payload},
        )

    async def _sync_calendar(self, appointment: AppointmentResponse, payload: dict) -> None:
        practitioner_id = UUID(payload["practitioner_id"])
        slot = next(
            (p for p in appointment.practitioners if p.practitioner_id == practitioner_id),
            None,
        )
        if slot is None:
            # Practitioner was removed by a later reschedule
            return

        event_id = await self.collaborators.calendar.create_event(
            practitioner_id,
            {
                "appointment_id": str(appointment.id),
                "title": "Appointment",
                "start": slot.start_at.isoformat(),
                "end": slot.end_at.isoformat(),
                "timezone": appointment.stored_timezone,
                "mode": appointment.mode.value,
                "location_id": str(appointment.location_id) if appointment.location_id else None,
            },
        )
        if event_id and slot.is_primary:
            await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment.id)
                .values(external_event_id=event_id)
            )

    async def _send_booking_confirmation(
        self, appointment: AppointmentResponse, payload: dict
    ) -> None:
        await self.collaborators.notifier.send_booking_confirmation(appointment)

    async def _send_reschedule_notice(self, appointment: AppointmentResponse, payload: dict) -> None:
        changes = {
            label: FieldChange(**change) for label, change in payload.get("changes", {}).items()
        }
        await self.collaborators.notifier.send_reschedule_notice(
            appointment,
            changes,
            reason=payload.get("reason"),
            previous_practitioner_ids=[
                UUID(pid) for pid in payload.get("previous_practitioner_ids", [])
            ],
        )

    async def _send_status_change(self, appointment: AppointmentResponse, payload: dict) -> None:
        await self.collaborators.notifier.send_status_change(
            appointment,
            AppointmentStatus(payload["from_status"]),
            AppointmentStatus(payload["to_status"]),
        )
