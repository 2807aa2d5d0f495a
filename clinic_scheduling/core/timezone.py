"""Conversion between tenant-local wall-clock time and UTC.

Storage and all interval arithmetic happen in UTC. Anything shown to a
person goes back through :func:`to_tenant_local` / :func:`format_for_tenant`
using the timezone recorded on the appointment.
"""

import re
from datetime import UTC, date, datetime, time
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from clinic_scheduling.core.exceptions import InvalidTimeFormat, UnknownTimezone

LOCAL_FORMAT = "%Y-%m-%d %H:%M"
_LOCAL_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$")


@lru_cache(maxsize=128)
def get_zone(timezone: str) -> ZoneInfo:
    """Resolve an IANA timezone identifier, raising ``UnknownTimezone``."""
    if not timezone or not isinstance(timezone, str):
        raise UnknownTimezone(str(timezone))
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise UnknownTimezone(timezone) from e


def parse_local(value: str) -> datetime:
    """Parse a ``YYYY-MM-DD HH:MM`` string into a naive local datetime."""
    if not isinstance(value, str) or not _LOCAL_PATTERN.match(value.strip()):
        raise InvalidTimeFormat(str(value))
    try:
        return datetime.strptime(value.strip(), LOCAL_FORMAT)
    except ValueError as e:
        # Right shape, impossible value (month 13, 25:00, ...)
        raise InvalidTimeFormat(value) from e


def to_utc(local: str | datetime, timezone: str) -> datetime:
    """
    Convert a tenant-local wall-clock time to an aware UTC instant.

    Args:
        local: ``YYYY-MM-DD HH:MM`` string, or a naive local datetime
            (e.g. the output of :func:`to_tenant_local`)
        timezone: Tenant IANA timezone identifier

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidTimeFormat: If the string is not ``YYYY-MM-DD HH:MM``
        UnknownTimezone: If the timezone cannot be resolved
    """
    zone = get_zone(timezone)
    if isinstance(local, datetime):
        naive = local.replace(tzinfo=None) if local.tzinfo is not None else local
    else:
        naive = parse_local(local)
    # fold is carried through so the second occurrence of an ambiguous
    # wall-clock time maps back to the instant it came from
    return naive.replace(tzinfo=zone).astimezone(UTC)


def to_tenant_local(instant: datetime, timezone: str) -> datetime:
    """
    Convert a UTC instant to a naive tenant-local datetime.

    Naive input is taken to be UTC (that is how it is stored).
    """
    zone = get_zone(timezone)
    return ensure_utc(instant).astimezone(zone).replace(tzinfo=None)


def format_for_tenant(instant: datetime, timezone: str, fmt: str = LOCAL_FORMAT) -> str:
    """Format a UTC instant as tenant-local text."""
    return to_tenant_local(instant, timezone).strftime(fmt)


def combine_local(day: date | str, clock: time | str) -> str:
    """Build a ``YYYY-MM-DD HH:MM`` string from a local date and clock time."""
    day_text = day.isoformat() if isinstance(day, date) else day
    clock_text = clock.strftime("%H:%M") if isinstance(clock, time) else clock
    return f"{day_text} {clock_text}"


def ensure_utc(instant: datetime) -> datetime:
    """Attach UTC to naive datetimes and normalise aware ones to UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)
