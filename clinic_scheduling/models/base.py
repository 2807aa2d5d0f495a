"""Shared metadata and column types."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, MetaData
from sqlalchemy.types import TypeDecorator

from clinic_scheduling.core.timezone import ensure_utc

# Metadata for all tables
metadata = MetaData()


def utcnow() -> datetime:
    """Current aware UTC time."""
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always binds and returns UTC.

    Backends without a timezone-aware type (SQLite) hand back naive values;
    those are stored as UTC, so UTC is attached on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value)
