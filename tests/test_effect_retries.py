"""Tests for the failed effect retry queue."""

from uuid import uuid4

import pytest
from sqlalchemy import select

from clinic_scheduling.models.audit import effect_retries
from clinic_scheduling.services.effect_retry_service import (
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_SUCCEEDED,
    EffectRetryService,
)


async def load(db, retry_id):
    result = await db.execute(select(effect_retries).where(effect_retries.c.id == retry_id))
    return dict(result.mappings().first())


@pytest.mark.asyncio
async def test_save_and_list_pending(db_session):
    service = EffectRetryService(db_session)
    appointment_id = uuid4()

    retry_id = await service.save_failed_effect(
        "clinic-a",
        appointment_id,
        "sync_calendar",
        "calendar",
        "gateway unreachable",
        payload={"practitioner_id": "p-1"},
    )

    pending = await service.get_pending()
    assert [entry["id"] for entry in pending] == [retry_id]
    entry = pending[0]
    assert entry["appointment_id"] == appointment_id
    assert entry["payload"] == {"practitioner_id": "p-1"}
    assert entry["attempts"] == 0
    assert entry["status"] == STATUS_PENDING
    assert entry["last_error"] == "gateway unreachable"


@pytest.mark.asyncio
async def test_successful_retry_is_marked_succeeded(db_session):
    service = EffectRetryService(db_session)
    retry_id = await service.save_failed_effect(
        "clinic-a", uuid4(), "create_invoice", "invoicing", "timeout"
    )
    replayed = []

    async def executor(entry):
        replayed.append(entry["effect"])

    counts = await service.retry_pending(executor)

    assert counts == {"processed": 1, "succeeded": 1, "failed": 0}
    assert replayed == ["create_invoice"]
    row = await load(db_session, retry_id)
    assert row["status"] == STATUS_SUCCEEDED
    assert row["attempts"] == 1
    assert await service.get_pending() == []


@pytest.mark.asyncio
async def test_failing_retry_gives_up_after_max_attempts(db_session):
    service = EffectRetryService(db_session, max_attempts=2)
    retry_id = await service.save_failed_effect(
        "clinic-a", uuid4(), "sync_calendar", "calendar", "down"
    )

    async def executor(entry):
        raise RuntimeError("still down")

    first = await service.retry_pending(executor)
    row = await load(db_session, retry_id)
    assert first == {"processed": 1, "succeeded": 0, "failed": 1}
    assert row["attempts"] == 1
    assert row["status"] == STATUS_PENDING
    assert row["last_error"] == "still down"

    await service.retry_pending(executor)
    row = await load(db_session, retry_id)
    assert row["attempts"] == 2
    assert row["status"] == STATUS_FAILED

    assert await service.retry_pending(executor) == {"processed": 0, "succeeded": 0, "failed": 0}


@pytest.mark.asyncio
async def test_pending_filtered_by_tenant(db_session):
    service = EffectRetryService(db_session)
    own = await service.save_failed_effect("clinic-a", uuid4(), "create_invoice", "invoicing", "x")
    await service.save_failed_effect("clinic-b", uuid4(), "create_invoice", "invoicing", "x")

    pending = await service.get_pending(tenant_id="clinic-a")

    assert [entry["id"] for entry in pending] == [own]
    assert len(await service.get_pending()) == 2
