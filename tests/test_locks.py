"""Tests for the per-practitioner booking locks."""

from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from clinic_scheduling.core.tenant import TenantContext
from clinic_scheduling.database import acquire_booking_locks, booking_lock_key
from clinic_scheduling.services import booking_service
from clinic_scheduling.services.booking_service import BookingService, _utc_days

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)


def session_for(dialect: str) -> MagicMock:
    """Session stub reporting the given dialect and recording executed statements."""
    db = MagicMock()
    db.get_bind.return_value.dialect.name = dialect
    db.execute = AsyncMock()
    return db


def locked_key(statement) -> int:
    """The key bound into a ``SELECT pg_advisory_xact_lock(:key)`` statement."""
    compiled = statement.compile()
    assert "pg_advisory_xact_lock" in str(compiled)
    (key,) = compiled.params.values()
    return key


def test_lock_key_is_stable_and_distinct():
    practitioner = uuid4()
    key = booking_lock_key("clinic-a", practitioner, MONDAY)

    assert key == booking_lock_key("clinic-a", practitioner, MONDAY)
    assert -(2**63) <= key < 2**63
    assert key != booking_lock_key("clinic-b", practitioner, MONDAY)
    assert key != booking_lock_key("clinic-a", uuid4(), MONDAY)
    assert key != booking_lock_key("clinic-a", practitioner, TUESDAY)


@pytest.mark.asyncio
async def test_postgres_takes_one_advisory_lock_per_key_in_order():
    p1, p2 = uuid4(), uuid4()
    db = session_for("postgresql")

    keys = await acquire_booking_locks(
        db,
        "clinic-a",
        [(p1, MONDAY), (p2, MONDAY), (p1, MONDAY), (p1, TUESDAY)],
    )

    expected = sorted(
        {
            booking_lock_key("clinic-a", p1, MONDAY),
            booking_lock_key("clinic-a", p2, MONDAY),
            booking_lock_key("clinic-a", p1, TUESDAY),
        }
    )
    assert keys == expected
    assert db.execute.await_count == 3
    assert [locked_key(call.args[0]) for call in db.execute.await_args_list] == expected


@pytest.mark.asyncio
async def test_other_dialects_take_no_locks():
    db = session_for("sqlite")

    keys = await acquire_booking_locks(db, "clinic-a", [(uuid4(), MONDAY)])

    assert len(keys) == 1
    db.execute.assert_not_awaited()


def test_slot_crossing_midnight_touches_both_days():
    start = datetime(2030, 1, 7, 23, 30, tzinfo=UTC)
    end = datetime(2030, 1, 8, 0, 30, tzinfo=UTC)

    assert _utc_days(start, end) == [MONDAY, TUESDAY]


def test_slot_ending_at_midnight_touches_one_day():
    start = datetime(2030, 1, 7, 23, 30, tzinfo=UTC)
    end = datetime(2030, 1, 8, 0, 0, tzinfo=UTC)

    assert _utc_days(start, end) == [MONDAY]


@pytest.mark.asyncio
async def test_booking_locks_every_utc_day_of_each_slot(
    db_session, booking_request, monkeypatch
):
    requested: list[tuple[str, list]] = []

    async def record_locks(db, tenant_id, slots):
        requested.append((tenant_id, list(slots)))
        return []

    monkeypatch.setattr(booking_service, "acquire_booking_locks", record_locks)
    ctx = TenantContext(
        tenant_id="clinic-a", timezone="America/Toronto", session_duration_minutes=60
    )
    p1, p2 = uuid4(), uuid4()

    # 18:30 in Toronto is 23:30 UTC, so the hour runs into the next UTC day
    await BookingService(db_session, ctx).book(
        booking_request([p1, p2], date_time_preference="2030-01-07 18:30", admin_override="ops")
    )

    assert len(requested) == 1
    tenant_id, slots = requested[0]
    assert tenant_id == "clinic-a"
    assert sorted(slots, key=lambda s: (str(s[0]), s[1])) == sorted(
        [(p1, MONDAY), (p1, TUESDAY), (p2, MONDAY), (p2, TUESDAY)],
        key=lambda s: (str(s[0]), s[1]),
    )
