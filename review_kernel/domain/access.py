"""
Resolved access read models (``review_kernel.domain.access``).

Responsibility
--------------
What a token resolves to: the token snapshot, the records it grants
access to, and one of three access states.  Presentation adapters render
directly from these; write commands check them client-side before any
store access.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Exactly one of ``active`` / ``expired`` / ``already_finalized`` holds.
* ``already_finalized`` wins over ``expired``: a token whose outcome was
  recorded shows that outcome even after its window closed.
* Assignments are ordered by id ascending; messages by
  (created_at, id) ascending.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from review_kernel.domain.calendar import is_expired
from review_kernel.domain.dtos import (
    AccessTokenInfo,
    AssignmentInfo,
    CustomerAction,
    CustomerInfo,
    MessageInfo,
    ReportPeriodInfo,
    TERMINAL_CLARIFICATION_STATUSES,
    TimeEntryInfo,
    entry_hours,
)

_TERMINAL = frozenset(s.value for s in TERMINAL_CLARIFICATION_STATUSES)


class AccessState(str, Enum):
    """Access state of a resolved token."""

    ACTIVE = "active"
    EXPIRED = "expired"
    ALREADY_FINALIZED = "already_finalized"


class ReviewState(str, Enum):
    """Display state of a customer review.

    EXPIRED_PENDING_SWEEP is never stored: ``customer_action`` stays null
    until the external sweep finalizes the period.
    """

    ISSUED = "issued"
    ACCEPTED = "accepted"
    DISPUTED = "disputed"
    EXPIRED_PENDING_SWEEP = "expired_pending_sweep"


def access_state(
    *,
    finalized: bool,
    expires_at: datetime | None,
    now: datetime,
) -> AccessState:
    if finalized:
        return AccessState.ALREADY_FINALIZED
    if is_expired(now, expires_at):
        return AccessState.EXPIRED
    return AccessState.ACTIVE


def finalized_outcome(statuses: Iterable[str]) -> str | None:
    """Outcome to report for a set of assignment statuses.

    None while any assignment is open.  Once all are terminal: the shared
    status, or "resolved" when cleared and cancelled are mixed.
    """
    seen = set(statuses)
    if not seen or any(s not in _TERMINAL for s in seen):
        return None
    return seen.pop() if len(seen) == 1 else "resolved"


def review_state(token: AccessTokenInfo, now: datetime) -> ReviewState:
    """Derive the display state of a review token at ``now``."""
    if token.customer_action is CustomerAction.ACCEPTED:
        return ReviewState.ACCEPTED
    if token.customer_action is CustomerAction.DISPUTED:
        return ReviewState.DISPUTED
    if is_expired(now, token.expires_at):
        return ReviewState.EXPIRED_PENDING_SWEEP
    return ReviewState.ISSUED


class _AccessFlags:
    state: AccessState

    @property
    def active(self) -> bool:
        return self.state is AccessState.ACTIVE

    @property
    def expired(self) -> bool:
        return self.state is AccessState.EXPIRED

    @property
    def already_finalized(self) -> bool:
        return self.state is AccessState.ALREADY_FINALIZED


@dataclass(frozen=True)
class ResolvedReview(_AccessFlags):
    """A review token resolved to its report period and billable entries."""

    token: AccessTokenInfo
    state: AccessState
    review_state: ReviewState
    report_period: ReportPeriodInfo
    customer: CustomerInfo | None
    entries: tuple[TimeEntryInfo, ...]
    remaining_business_days: int
    available_customers: tuple[CustomerInfo, ...] = ()

    @property
    def outcome(self) -> CustomerAction | None:
        return self.token.customer_action

    @property
    def total_hours(self) -> Decimal:
        return sum(
            (entry_hours(e.hours, e.minutes) for e in self.entries),
            Decimal("0.00"),
        )

    @property
    def unique_days(self) -> int:
        return len({e.txn_date for e in self.entries})


@dataclass(frozen=True)
class ResolvedClarification(_AccessFlags):
    """A clarification token resolved to one or many assignments."""

    token: AccessTokenInfo
    state: AccessState
    assignments: tuple[AssignmentInfo, ...]
    messages: tuple[MessageInfo, ...]
    entries: tuple[TimeEntryInfo, ...]
    customers: dict[int, CustomerInfo] = field(default_factory=dict)
    remaining_business_days: int = 0

    @property
    def assignment_ids(self) -> tuple[int, ...]:
        return tuple(a.id for a in self.assignments)

    @property
    def is_batch(self) -> bool:
        return self.token.batch_id is not None

    @property
    def open_assignments(self) -> tuple[AssignmentInfo, ...]:
        return tuple(a for a in self.assignments if not a.is_terminal)

    @property
    def outcome(self) -> str | None:
        return finalized_outcome(a.status.value for a in self.assignments)

    @property
    def prefill_description(self) -> str | None:
        """Current description to seed the suggestion editor with.

        Only for a single entry; with several entries it would be
        ambiguous which one the suggestion applies to.
        """
        if len(self.entries) != 1:
            return None
        return self.entries[0].description or ""

    def messages_for(self, assignment_id: int) -> tuple[MessageInfo, ...]:
        return tuple(m for m in self.messages if m.assignment_id == assignment_id)

    def entry_for(self, assignment: AssignmentInfo) -> TimeEntryInfo | None:
        for e in self.entries:
            if e.id == assignment.time_entry_id:
                return e
        return None
