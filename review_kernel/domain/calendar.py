"""
Business-calendar arithmetic (``review_kernel.domain.calendar``).

Pure functions.  ``now`` is always an argument; nothing here reads a clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta

# Monday=0 .. Friday=4
_WEEKDAYS = frozenset(range(5))


def remaining_business_days(now: datetime, expires_at: datetime | None) -> int:
    """Count the weekdays left before ``expires_at``.

    Walks day by day from midnight of ``now``'s date.  Each step lands on
    the next midnight; a step counts if that midnight is still before
    ``expires_at`` and falls on Monday to Friday.  The start day is never
    counted, and the expiry date counts only if the expiry is after its
    midnight.

    Monday 09:00 to the following Monday 09:00 gives 5 (Tue, Wed, Thu,
    Fri and the final Monday).

    Returns 0 when ``expires_at`` is None or not after ``now``.

    Raises:
        TypeError: If one of ``now`` / ``expires_at`` is naive and the
            other is aware.
    """
    if expires_at is None or expires_at <= now:
        return 0

    day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    count = 0
    while day < expires_at:
        day += timedelta(days=1)
        if day < expires_at and day.weekday() in _WEEKDAYS:
            count += 1
    return count


def is_expired(now: datetime, expires_at: datetime | None) -> bool:
    """True when an expiry is set and ``now`` is at or past it."""
    return expires_at is not None and expires_at <= now
