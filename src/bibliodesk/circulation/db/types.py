"""Custom column types."""

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from ..dates import from_storage, to_storage


class UTCDateTime(TypeDecorator):
    """Aware datetime stored as a UTC ISO-8601 string.

    SQLite has no native timestamp type; fixed-width UTC strings keep
    range filters and ordering correct with plain string comparison.
    """

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_storage(value)

    def process_result_value(self, value, dialect):
        return from_storage(value)
