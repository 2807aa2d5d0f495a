"""Tests for tenant-local <-> UTC conversion."""

from datetime import UTC, date, datetime, time, timedelta

import pytest

from clinic_scheduling.core.exceptions import InvalidTimeFormat, UnknownTimezone
from clinic_scheduling.core.timezone import (
    combine_local,
    ensure_utc,
    format_for_tenant,
    get_zone,
    parse_local,
    to_tenant_local,
    to_utc,
)

TORONTO = "America/Toronto"


def test_to_utc_winter_and_summer_offsets():
    """Local time maps to UTC with the offset in force on that date."""
    assert to_utc("2030-01-07 10:00", TORONTO) == datetime(2030, 1, 7, 15, 0, tzinfo=UTC)
    assert to_utc("2030-07-01 10:00", TORONTO) == datetime(2030, 7, 1, 14, 0, tzinfo=UTC)


def test_to_utc_accepts_naive_local_datetime():
    assert to_utc(datetime(2030, 1, 7, 10, 0), TORONTO) == datetime(2030, 1, 7, 15, 0, tzinfo=UTC)


def test_to_tenant_local_returns_naive_wall_clock():
    local = to_tenant_local(datetime(2030, 1, 7, 15, 0, tzinfo=UTC), TORONTO)
    assert local == datetime(2030, 1, 7, 10, 0)
    assert local.tzinfo is None


def test_naive_instants_are_treated_as_utc():
    assert to_tenant_local(datetime(2030, 1, 7, 15, 0), TORONTO) == datetime(2030, 1, 7, 10, 0)
    assert ensure_utc(datetime(2030, 1, 7, 15, 0)) == datetime(2030, 1, 7, 15, 0, tzinfo=UTC)


@pytest.mark.parametrize("timezone", [TORONTO, "Europe/London", "Asia/Kolkata", "UTC"])
def test_round_trip_is_stable(timezone):
    """Local -> UTC -> local is stable, including across DST changes."""
    instants = [
        datetime(2030, 3, 10, 5, 0, tzinfo=UTC) + timedelta(minutes=15 * i) for i in range(24)
    ] + [
        datetime(2030, 11, 3, 4, 0, tzinfo=UTC) + timedelta(minutes=15 * i) for i in range(24)
    ] + [
        datetime(2030, 3, 31, 0, 0, tzinfo=UTC) + timedelta(minutes=15 * i) for i in range(12)
    ]
    for instant in instants:
        local = to_tenant_local(instant, timezone)
        assert to_tenant_local(to_utc(local, timezone), timezone) == local


def test_ambiguous_local_time_keeps_its_instant():
    """The repeated 01:30 on the fall-back night converts back to the instant it came from."""
    second_occurrence = datetime(2030, 11, 3, 6, 30, tzinfo=UTC)
    local = to_tenant_local(second_occurrence, TORONTO)
    assert local == datetime(2030, 11, 3, 1, 30)
    assert to_utc(local, TORONTO) == second_occurrence


@pytest.mark.parametrize(
    "value",
    [
        "2030/01/07 10:00",
        "2030-01-07T10:00",
        "2030-01-07 10:00:00",
        "07-01-2030 10:00",
        "2030-13-01 10:00",
        "2030-01-07 25:00",
        "2030-02-30 10:00",
        "",
        "tomorrow",
    ],
)
def test_invalid_time_format(value):
    with pytest.raises(InvalidTimeFormat) as exc_info:
        to_utc(value, TORONTO)
    assert exc_info.value.status_code == 422
    assert exc_info.value.details == {"value": value}


def test_parse_local_strips_whitespace():
    assert parse_local(" 2030-01-07 10:00 ") == datetime(2030, 1, 7, 10, 0)


@pytest.mark.parametrize("timezone", ["Mars/Olympus_Mons", "", "Not A Zone"])
def test_unknown_timezone(timezone):
    with pytest.raises(UnknownTimezone):
        to_utc("2030-01-07 10:00", timezone)
    with pytest.raises(UnknownTimezone):
        get_zone(timezone)


def test_unknown_timezone_on_display():
    with pytest.raises(UnknownTimezone):
        to_tenant_local(datetime(2030, 1, 7, 15, 0, tzinfo=UTC), "Nowhere/Special")


def test_format_for_tenant():
    instant = datetime(2030, 1, 7, 15, 0, tzinfo=UTC)
    assert format_for_tenant(instant, TORONTO) == "2030-01-07 10:00"
    assert format_for_tenant(instant, "Europe/London") == "2030-01-07 15:00"
    assert format_for_tenant(instant, TORONTO, "%H:%M") == "10:00"


def test_combine_local():
    assert combine_local(date(2030, 1, 7), time(9, 5)) == "2030-01-07 09:05"
    assert combine_local("2030-01-07", "09:05") == "2030-01-07 09:05"
