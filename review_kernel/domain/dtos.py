"""
Domain DTOs (``review_kernel.domain.dtos``).

Frozen snapshots of persisted records handed out by selectors and
services.  ORM instances never leave the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum


class TokenKind(str, Enum):
    """Which of the two token flavors a link carries."""

    REVIEW = "review"
    CLARIFICATION = "clarification"


class CustomerAction(str, Enum):
    """Recorded outcome of a customer review token."""

    ACCEPTED = "accepted"
    DISPUTED = "disputed"


class ReportPeriodStatus(str, Enum):
    """Report period lifecycle states."""

    PENDING = "pending"
    SENT = "sent"
    SUPPLEMENTAL_SENT = "supplemental_sent"
    ACCEPTED = "accepted"
    DISPUTED = "disputed"
    NO_TIME = "no_time"


class ClarificationStatus(str, Enum):
    """Clarification assignment lifecycle states."""

    PENDING = "pending"
    RESPONDED = "responded"
    CLEARED = "cleared"
    CANCELLED = "cancelled"


TERMINAL_CLARIFICATION_STATUSES: frozenset[ClarificationStatus] = frozenset({
    ClarificationStatus.CLEARED,
    ClarificationStatus.CANCELLED,
})


class SenderRole(str, Enum):
    """Author of a clarification message."""

    ADMIN = "admin"
    ASSIGNEE = "assignee"


class BatchResponseScope(str, Enum):
    """Where a respond on a batch clarification link is recorded.

    SUBJECT: one message on the targeted assignment (the token's subject
        unless the caller names another assignment in the batch).
    ALL_OPEN: one message on every non-terminal assignment in the batch.
    """

    SUBJECT = "subject"
    ALL_OPEN = "all_open"


HOURS_QUANTUM = Decimal("0.01")


def entry_hours(hours: int, minutes: int) -> Decimal:
    """Duration of an entry as decimal hours, two places."""
    return (Decimal(hours) + Decimal(minutes) / Decimal(60)).quantize(
        HOURS_QUANTUM, rounding=ROUND_HALF_UP,
    )


@dataclass(frozen=True)
class CustomerInfo:
    id: int
    display_name: str
    external_id: str | None = None


@dataclass(frozen=True)
class TimeEntryInfo:
    """Read-only view of an external time entry."""

    id: int
    txn_date: date
    employee_name: str
    customer_id: int
    description: str | None
    hours: int
    minutes: int
    cost_code: str | None = None
    billable_status: str = "Billable"

    @property
    def duration_hours(self) -> Decimal:
        return entry_hours(self.hours, self.minutes)


@dataclass(frozen=True)
class ReportPeriodInfo:
    id: int
    customer_id: int
    week_start: date
    week_end: date
    status: ReportPeriodStatus
    total_hours: Decimal
    entry_count: int
    report_number: str | None = None
    sent_at: datetime | None = None
    accepted_at: datetime | None = None


@dataclass(frozen=True)
class AccessTokenInfo:
    """Snapshot of an access token row.  The token string itself is omitted."""

    id: int
    kind: TokenKind
    subject_id: int
    created_at: datetime
    expires_at: datetime | None
    first_opened_at: datetime | None
    last_opened_at: datetime | None
    open_count: int
    batch_id: str | None = None
    customer_action: CustomerAction | None = None
    customer_action_at: datetime | None = None
    customer_notes: str | None = None


@dataclass(frozen=True)
class AssignmentInfo:
    id: int
    time_entry_id: int
    assigned_by: str
    assigned_to_name: str
    assigned_to_email: str
    question: str
    status: ClarificationStatus
    created_at: datetime
    suggested_description: str | None = None
    batch_id: str | None = None
    responded_at: datetime | None = None
    cleared_at: datetime | None = None
    cleared_by: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CLARIFICATION_STATUSES


@dataclass(frozen=True)
class MessageInfo:
    id: int
    assignment_id: int
    sender_role: SenderRole
    sender_name: str
    sender_email: str
    message: str
    created_at: datetime
    suggested_description: str | None = None


@dataclass(frozen=True)
class VisitStats:
    """Visit counters on a token after a recorded visit."""

    token_id: int
    first_opened_at: datetime
    last_opened_at: datetime
    open_count: int


@dataclass(frozen=True)
class AdminIdentity:
    """Internal staff member issuing reply/clear/cancel/assign."""

    email: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


@dataclass(frozen=True)
class Assignee:
    """Field employee a clarification is assigned to."""

    name: str
    email: str


@dataclass(frozen=True)
class IssuedClarification:
    """Result of creating clarification assignments.

    ``token`` is the link secret to deliver to the assignee.  It is the
    only place the kernel hands out a token string.
    """

    token: str
    token_id: int
    batch_id: str | None
    expires_at: datetime
    assignments: tuple[AssignmentInfo, ...]


@dataclass(frozen=True)
class DashboardStats:
    """Counts shown on the internal clarification dashboard."""

    pending: int
    responded: int
    cleared_recently: int
    cleared_window_days: int
