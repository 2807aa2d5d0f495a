"""Tests for the conflict detector."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from clinic_scheduling.core.exceptions import SchedulingConflict, ValidationException
from clinic_scheduling.schemas.appointments import AppointmentStatus
from clinic_scheduling.services.conflict_service import ConflictService, ProposedSlot


def at(hour: int, minute: int = 0) -> datetime:
    """UTC instant on Monday 2030-01-07."""
    return datetime(2030, 1, 7, hour, minute, tzinfo=UTC)


@pytest.mark.asyncio
async def test_overlapping_slot_is_reported(db_session, ctx, make_appointment):
    practitioner = uuid4()
    existing = await make_appointment([practitioner], at(15), at(15, 30))
    conflicts = ConflictService(db_session)

    assert await conflicts.find_conflicts(ctx, practitioner, at(15, 15), at(15, 45)) == [existing]
    assert await conflicts.has_conflict(ctx, practitioner, at(14, 45), at(15, 15))
    assert await conflicts.has_conflict(ctx, practitioner, at(15, 5), at(15, 10))


@pytest.mark.asyncio
async def test_back_to_back_is_not_a_conflict(db_session, ctx, make_appointment):
    practitioner = uuid4()
    await make_appointment([practitioner], at(15), at(15, 30))
    conflicts = ConflictService(db_session)

    assert not await conflicts.has_conflict(ctx, practitioner, at(15, 30), at(16))
    assert not await conflicts.has_conflict(ctx, practitioner, at(14, 30), at(15))


@pytest.mark.asyncio
async def test_other_practitioners_and_tenants_do_not_conflict(db_session, ctx, make_appointment):
    practitioner = uuid4()
    await make_appointment([uuid4()], at(15), at(15, 30))
    await make_appointment([practitioner], at(15), at(15, 30), tenant_id="clinic-b")

    assert not await ConflictService(db_session).has_conflict(ctx, practitioner, at(15), at(15, 30))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, blocks",
    [
        (AppointmentStatus.CANCELLED, False),
        (AppointmentStatus.NO_SHOW, False),
        (AppointmentStatus.DECLINED, True),
        (AppointmentStatus.REQUESTED, True),
        (AppointmentStatus.PENDING_CONSENT, True),
        (AppointmentStatus.CONFIRMED, True),
        (AppointmentStatus.COMPLETED, True),
    ],
)
async def test_only_cancelled_and_no_show_free_the_slot(
    db_session, ctx, make_appointment, status, blocks
):
    practitioner = uuid4()
    await make_appointment([practitioner], at(15), at(15, 30), status=status)

    conflicts = ConflictService(db_session)
    assert await conflicts.has_conflict(ctx, practitioner, at(15), at(15, 30)) is blocks


@pytest.mark.asyncio
async def test_exclude_appointment_id(db_session, ctx, make_appointment):
    practitioner = uuid4()
    existing = await make_appointment([practitioner], at(15), at(15, 30))
    conflicts = ConflictService(db_session)

    assert not await conflicts.has_conflict(
        ctx, practitioner, at(15, 15), at(15, 45), exclude_appointment_id=existing
    )


@pytest.mark.asyncio
async def test_empty_window_is_rejected(db_session, ctx):
    with pytest.raises(ValidationException):
        await ConflictService(db_session).find_conflicts(ctx, uuid4(), at(15), at(15))


@pytest.mark.asyncio
async def test_ensure_slots_free_reports_every_collision(db_session, ctx, make_appointment):
    p1, p2, p3 = uuid4(), uuid4(), uuid4()
    first = await make_appointment([p1], at(15), at(15, 30))
    second = await make_appointment([p2], at(15, 15), at(15, 45))
    slots = [
        ProposedSlot(p1, at(15), at(15, 30), is_primary=True),
        ProposedSlot(p2, at(15), at(15, 30)),
        ProposedSlot(p3, at(15), at(15, 30)),
    ]

    with pytest.raises(SchedulingConflict) as exc_info:
        await ConflictService(db_session).ensure_slots_free(ctx, slots)

    error = exc_info.value
    assert error.conflicts == {p1: [first], p2: [second]}
    assert set(error.conflicting_appointment_ids) == {first, second}
    assert error.status_code == 409
    assert set(error.details["conflicting_appointment_ids"]) == {str(first), str(second)}


@pytest.mark.asyncio
async def test_busy_intervals_are_local_and_ordered(db_session, ctx, make_appointment):
    practitioner = uuid4()
    late = await make_appointment([practitioner], at(18), at(18, 30))
    early = await make_appointment([practitioner], at(15), at(15, 30))
    await make_appointment([practitioner], at(16), at(16, 30), status=AppointmentStatus.CANCELLED)
    await make_appointment([practitioner], at(22), at(22, 30))

    busy = await ConflictService(db_session).list_busy_intervals(ctx, practitioner, at(14), at(20))

    assert [item.appointment_id for item in busy] == [early, late]
    assert busy[0].local_start == "2030-01-07 10:00"
    assert busy[0].local_end == "2030-01-07 10:30"
    assert busy[0].start_at == at(15)
