"""
Module: review_kernel.db.types
Responsibility: Column types and annotated aliases shared by every model.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Every timestamp is stored as UTC and comes back timezone-aware,
      regardless of backend.  SQLite drops tzinfo on the way in, so
      UTCDateTime normalizes on bind and re-attaches UTC on load.
    - Naive datetimes are rejected on bind: the kernel only ever works with
      aware instants from an injected Clock.
"""

from datetime import timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp stored in UTC.

    Contract:
        process_bind_param: aware datetime -> UTC datetime.
        process_result_value: stored value -> aware UTC datetime.

    Raises:
        ValueError: On binding a naive datetime.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value.isoformat()}")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)