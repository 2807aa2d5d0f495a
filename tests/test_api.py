"""HTTP API tests."""

from uuid import uuid4

import pytest
import structlog

MONDAY = "2030-01-07"

API = "/api/v1"


def booking_payload(practitioner_ids, **overrides) -> dict:
    payload = {
        "patient": {"email": "jane@example.com", "first_name": "Jane"},
        "service_id": str(uuid4()),
        "mode": "virtual",
        "date_time_preference": f"{MONDAY} 10:00",
        "practitioner_ids": [str(p) for p in practitioner_ids],
        "primary_practitioner_id": str(practitioner_ids[0]),
    }
    payload.update(overrides)
    return payload


async def book(client, headers, practitioner_ids, **overrides) -> dict:
    response = await client.post(
        f"{API}/appointments/", json=booking_payload(practitioner_ids, **overrides), headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()["appointment"]


@pytest.mark.asyncio
async def test_health_check(client):
    """Test basic health check endpoint."""
    response = await client.get(f"{API}/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert "environment" in data


@pytest.mark.asyncio
async def test_detailed_health_check(client):
    """Test detailed health check endpoint."""
    response = await client.get(f"{API}/health/detailed")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] in ("healthy", "unhealthy")
    assert data["redis"] == "disabled"


@pytest.mark.asyncio
async def test_ping(client):
    """Test ping endpoint."""
    response = await client.get(f"{API}/ping")
    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


@pytest.mark.asyncio
async def test_book_and_fetch(client, tenant_headers):
    practitioner = uuid4()

    appointment = await book(client, tenant_headers, [practitioner])

    assert appointment["status"] == "pending"
    assert appointment["tenant_id"] == "clinic-a"
    assert appointment["stored_timezone"] == "America/Toronto"
    assert appointment["local_start"] == f"{MONDAY} 10:00"
    assert appointment["local_end"] == f"{MONDAY} 10:30"
    assert appointment["start_at"].startswith("2030-01-07T15:00:00")
    assert appointment["practitioners"][0]["practitioner_id"] == str(practitioner)
    assert appointment["practitioners"][0]["is_primary"] is True

    response = await client.get(f"{API}/appointments/{appointment['id']}", headers=tenant_headers)
    assert response.status_code == 200
    assert response.json()["id"] == appointment["id"]


@pytest.mark.asyncio
async def test_double_booking_returns_409(client, tenant_headers):
    practitioner = uuid4()
    first = await book(client, tenant_headers, [practitioner])

    response = await client.post(
        f"{API}/appointments/",
        json=booking_payload(
            [practitioner],
            patient={"email": "john@example.com"},
            date_time_preference=f"{MONDAY} 10:15",
        ),
        headers=tenant_headers,
    )

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "SchedulingConflict"
    assert data["details"]["conflicting_appointment_ids"] == [first["id"]]


@pytest.mark.asyncio
async def test_invalid_time_returns_422(client, tenant_headers):
    response = await client.post(
        f"{API}/appointments/",
        json=booking_payload([uuid4()], date_time_preference="next tuesday"),
        headers=tenant_headers,
    )

    assert response.status_code == 422
    assert response.json()["error"] == "InvalidTimeFormat"


@pytest.mark.asyncio
async def test_primary_outside_set_returns_422(client, tenant_headers):
    response = await client.post(
        f"{API}/appointments/",
        json=booking_payload([uuid4()], primary_practitioner_id=str(uuid4())),
        headers=tenant_headers,
    )

    assert response.status_code == 422
    assert response.json()["error"] == "PrimaryPractitionerNotInSet"


@pytest.mark.asyncio
async def test_tenant_header_is_required(client):
    response = await client.post(f"{API}/appointments/", json=booking_payload([uuid4()]))

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_tenant_header_too_long(client):
    response = await client.get(
        f"{API}/appointments/{uuid4()}", headers={"X-Tenant-ID": "x" * 65}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "HTTPException"


@pytest.mark.asyncio
async def test_unknown_appointment_returns_404(client, tenant_headers):
    response = await client.get(f"{API}/appointments/{uuid4()}", headers=tenant_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundException"


@pytest.mark.asyncio
async def test_appointments_are_tenant_scoped(client, tenant_headers):
    appointment = await book(client, tenant_headers, [uuid4()])

    response = await client.get(
        f"{API}/appointments/{appointment['id']}", headers={"X-Tenant-ID": "clinic-b"}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_status_changes(client, tenant_headers):
    appointment = await book(client, tenant_headers, [uuid4()])
    url = f"{API}/appointments/{appointment['id']}/status"

    response = await client.patch(url, json={"status": "confirmed"}, headers=tenant_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["from_status"] == "pending"
    assert data["to_status"] == "confirmed"
    assert data["appointment"]["status"] == "confirmed"

    response = await client.patch(url, json={"status": "cancelled"}, headers=tenant_headers)
    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "IllegalTransition"
    assert data["details"] == {"from_status": "confirmed", "to_status": "cancelled"}


@pytest.mark.asyncio
async def test_reschedule_and_history(client, tenant_headers):
    practitioner = uuid4()
    appointment = await book(client, tenant_headers, [practitioner])

    response = await client.put(
        f"{API}/appointments/{appointment['id']}/schedule",
        json={
            "date_time_preference": f"{MONDAY} 14:00",
            "practitioner_ids": [str(practitioner)],
            "primary_practitioner_id": str(practitioner),
            "reason": "Patient asked for the afternoon",
        },
        headers=tenant_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["appointment"]["local_start"] == f"{MONDAY} 14:00"
    assert data["appointment"]["reason_for_update"] == "Patient asked for the afternoon"
    assert data["changes"]["Date & Time"]["old"] == f"{MONDAY} 10:00"
    assert data["changes"]["Date & Time"]["new"] == f"{MONDAY} 14:00"

    response = await client.get(
        f"{API}/appointments/{appointment['id']}/history", headers=tenant_headers
    )
    assert response.status_code == 200
    history = response.json()
    assert history["root_appointment_id"] == appointment["id"]
    assert [item["id"] for item in history["items"]] == [appointment["id"]]


@pytest.mark.asyncio
async def test_common_availability(client, tenant_headers, add_availability):
    p1, p2 = uuid4(), uuid4()
    await add_availability(p1, "monday", "09:00", "12:00")
    await add_availability(p2, "monday", "10:00", "14:00")

    response = await client.get(
        f"{API}/availability/common",
        params={"practitioner_ids": [str(p1), str(p2)], "mode": "virtual"},
        headers=tenant_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["practitioner_ids"] == [str(p1), str(p2)]
    assert data["days"]["monday"] == [{"start_time": "10:00:00", "end_time": "12:00:00"}]
    assert data["days"]["tuesday"] == []
    assert len(data["days"]) == 7


@pytest.mark.asyncio
async def test_busy_and_conflict_check(client, tenant_headers):
    practitioner = uuid4()
    appointment = await book(client, tenant_headers, [practitioner])
    url = f"{API}/availability/practitioners/{practitioner}"

    response = await client.get(
        f"{url}/busy",
        params={"start": "2030-01-07T00:00:00Z", "end": "2030-01-08T00:00:00Z"},
        headers=tenant_headers,
    )
    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["appointment_id"] for item in items] == [appointment["id"]]
    assert items[0]["local_start"] == f"{MONDAY} 10:00"

    response = await client.get(
        f"{url}/conflicts",
        params={"start": "2030-01-07T15:15:00Z", "end": "2030-01-07T15:45:00Z"},
        headers=tenant_headers,
    )
    assert response.status_code == 200
    assert response.json() == {
        "practitioner_id": str(practitioner),
        "has_conflict": True,
        "conflicting_appointment_ids": [appointment["id"]],
    }

    response = await client.get(
        f"{url}/conflicts",
        params={"start": "2030-01-07T15:30:00Z", "end": "2030-01-07T16:00:00Z"},
        headers=tenant_headers,
    )
    assert response.json()["has_conflict"] is False


class ContextRecorder:
    """Logger stand-in that records the structlog context bound at each call."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def _record(self, event, **kwargs):
        self.events.append((event, dict(structlog.contextvars.get_contextvars())))

    info = error = warning = _record


@pytest.mark.asyncio
async def test_request_logs_carry_tenant_and_actor(client, tenant_headers, monkeypatch):
    recorder = ContextRecorder()
    monkeypatch.setattr(structlog, "get_logger", lambda *args, **kwargs: recorder)

    response = await client.get(f"{API}/ping", headers=tenant_headers)

    assert response.status_code == 200
    assert "X-Process-Time" in response.headers
    events = dict(recorder.events)
    assert set(events) == {"request_started", "request_completed"}
    for context in events.values():
        assert context["request_tenant_id"] == "clinic-a"
        assert context["request_actor_id"] == "admin-1"
