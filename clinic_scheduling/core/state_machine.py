"""Table-driven appointment lifecycle.

The machine only decides: it returns the new status together with the
effects the caller has to run. It never touches the database or any
collaborator, so every rule below can be exercised in isolation.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from clinic_scheduling.core.exceptions import IllegalTransition
from clinic_scheduling.schemas.appointments import AppointmentStatus


class Effect(str, Enum):
    """Side effect required by a transition."""

    SEND_CONSENT_REQUEST = "send_consent_request"
    APPROVE_PATIENT = "approve_patient"
    CREATE_INVOICE = "create_invoice"
    ACCEPT_INVITATION = "accept_invitation"
    AUDIT_ADMIN_OVERRIDE = "audit_admin_override"
    GENERATE_LEDGER_TRANSACTIONS = "generate_ledger_transactions"
    MARK_COMPLETED = "mark_completed"

    @property
    def in_transaction(self) -> bool:
        """Effects that must commit atomically with the status write."""
        return self in _IN_TRANSACTION


_IN_TRANSACTION = frozenset(
    {
        Effect.APPROVE_PATIENT,
        Effect.GENERATE_LEDGER_TRANSACTIONS,
        Effect.MARK_COMPLETED,
    }
)

S = AppointmentStatus

# (from, to) -> effects. ``None`` as the source is the booking entry point.
TRANSITIONS: Mapping[tuple[AppointmentStatus | None, AppointmentStatus], tuple[Effect, ...]] = {
    (None, S.REQUESTED): (),
    (None, S.PENDING_CONSENT): (Effect.SEND_CONSENT_REQUEST,),
    (None, S.PENDING): (),
    (None, S.CONFIRMED): (Effect.CREATE_INVOICE, Effect.ACCEPT_INVITATION),
    (S.REQUESTED, S.CONFIRMED): (
        Effect.APPROVE_PATIENT,
        Effect.CREATE_INVOICE,
        Effect.ACCEPT_INVITATION,
        Effect.AUDIT_ADMIN_OVERRIDE,
    ),
    (S.PENDING, S.CONFIRMED): (Effect.CREATE_INVOICE, Effect.ACCEPT_INVITATION),
    (S.CONFIRMED, S.COMPLETED): (Effect.GENERATE_LEDGER_TRANSACTIONS, Effect.MARK_COMPLETED),
    (S.REQUESTED, S.CANCELLED): (),
    (S.REQUESTED, S.DECLINED): (),
    (S.PENDING, S.CANCELLED): (),
    (S.PENDING, S.DECLINED): (),
    (S.PENDING_CONSENT, S.CANCELLED): (),
    (S.PENDING_CONSENT, S.DECLINED): (),
}

# Statuses a fully-consented, approved patient's booking may enter directly
DEFAULT_ENTRY_STATUSES = frozenset({S.PENDING, S.CONFIRMED})

RESCHEDULABLE_STATUSES = frozenset({S.PENDING})


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a legal transition."""

    from_status: AppointmentStatus | None
    to_status: AppointmentStatus
    effects: tuple[Effect, ...]

    @property
    def in_transaction_effects(self) -> tuple[Effect, ...]:
        return tuple(effect for effect in self.effects if effect.in_transaction)

    @property
    def post_commit_effects(self) -> tuple[Effect, ...]:
        return tuple(effect for effect in self.effects if not effect.in_transaction)


def _filter_override(effects: tuple[Effect, ...], override_used: bool) -> tuple[Effect, ...]:
    if override_used:
        return effects
    return tuple(effect for effect in effects if effect is not Effect.AUDIT_ADMIN_OVERRIDE)


def allowed_targets(current: AppointmentStatus) -> list[AppointmentStatus]:
    """Statuses reachable from ``current`` in one step."""
    return [to for (frm, to) in TRANSITIONS if frm == current]


def transition(
    current: AppointmentStatus,
    target: AppointmentStatus,
    *,
    override_used: bool = False,
) -> TransitionResult:
    """
    Validate a status change and list its effects.

    Args:
        current: Appointment's current status
        target: Requested status
        override_used: Whether the appointment was booked with an admin override code

    Returns:
        The transition with the effects to execute

    Raises:
        IllegalTransition: If ``(current, target)`` is not in the table
    """
    current = AppointmentStatus(current)
    target = AppointmentStatus(target)
    effects = TRANSITIONS.get((current, target))
    if effects is None:
        if current is S.CONFIRMED and target in (S.CANCELLED, S.DECLINED):
            raise IllegalTransition(
                current,
                target,
                "Cannot cancel or decline a confirmed appointment",
            )
        raise IllegalTransition(current, target)
    return TransitionResult(current, target, _filter_override(effects, override_used))


def initial_status(
    patient_approved: bool,
    has_required_consents: bool,
    default_status: AppointmentStatus = S.PENDING,
) -> AppointmentStatus:
    """
    Entry status for a new booking.

    Unapproved patients land in ``Requested``; approved patients missing a
    required consent land in ``pending-consent``; everyone else gets the
    tenant's default status.
    """
    if not patient_approved:
        return S.REQUESTED
    if not has_required_consents:
        return S.PENDING_CONSENT
    default_status = AppointmentStatus(default_status)
    if default_status not in DEFAULT_ENTRY_STATUSES:
        raise ValueError(f"'{default_status.value}' cannot be a default appointment status")
    return default_status


def enter(
    patient_approved: bool,
    has_required_consents: bool,
    default_status: AppointmentStatus = S.PENDING,
    *,
    override_used: bool = False,
) -> TransitionResult:
    """Entry transition for a new booking, with its effects."""
    status = initial_status(patient_approved, has_required_consents, default_status)
    effects = TRANSITIONS[(None, status)]
    if override_used:
        effects = effects + (Effect.AUDIT_ADMIN_OVERRIDE,)
    return TransitionResult(None, status, effects)


def ensure_reschedulable(current: AppointmentStatus) -> None:
    """Raise ``IllegalTransition`` unless the appointment may still be moved."""
    current = AppointmentStatus(current)
    if current not in RESCHEDULABLE_STATUSES:
        raise IllegalTransition(
            current,
            current,
            f"Only pending appointments can be rescheduled (status is '{current.value}')",
        )
