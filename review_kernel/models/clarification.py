"""
Module: review_kernel.models.clarification
Responsibility: ORM persistence for clarification assignments and their
    append-only message threads.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - ``status`` is one of pending/responded/cleared/cancelled (check
      constraint).  cleared and cancelled are terminal; TransitionWriter
      gates every status UPDATE on the pre-transition status.
    - ``sender_role`` is admin or assignee (check constraint).
    - ``message`` is non-empty (check constraint).
    - Messages are append-only: ORM before_update/before_delete listeners
      raise ImmutabilityViolationError.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE of a message.
    - IntegrityError on an empty message or an unknown status/role.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from review_kernel.db.base import Base
from review_kernel.domain.dtos import (
    AssignmentInfo,
    ClarificationStatus,
    MessageInfo,
    SenderRole,
)
from review_kernel.exceptions import ImmutabilityViolationError


class ClarificationAssignmentModel(Base):
    """One question about one time entry, addressed to one field employee."""

    __tablename__ = "clarification_assignments"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'responded', 'cleared', 'cancelled')",
            name="ck_clarification_assignments_status",
        ),
        CheckConstraint("length(question) > 0", name="ck_clarification_assignments_question"),
        Index("ix_clarification_assignments_batch", "batch_id"),
        Index("ix_clarification_assignments_status", "status"),
        Index("ix_clarification_assignments_entry", "time_entry_id"),
    )

    time_entry_id: Mapped[int] = mapped_column(
        ForeignKey("time_entries.id"), nullable=False,
    )
    assigned_by: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_to_name: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_to_email: Mapped[str] = mapped_column(String(255), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    suggested_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=ClarificationStatus.PENDING.value,
    )
    batch_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cleared_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cleared_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ClarificationAssignment {self.id} entry={self.time_entry_id} "
            f"status={self.status}>"
        )

    def to_dto(self) -> AssignmentInfo:
        return AssignmentInfo(
            id=self.id,
            time_entry_id=self.time_entry_id,
            assigned_by=self.assigned_by,
            assigned_to_name=self.assigned_to_name,
            assigned_to_email=self.assigned_to_email,
            question=self.question,
            status=ClarificationStatus(self.status),
            created_at=self.created_at,
            suggested_description=self.suggested_description,
            batch_id=self.batch_id,
            responded_at=self.responded_at,
            cleared_at=self.cleared_at,
            cleared_by=self.cleared_by,
        )


class ClarificationMessageModel(Base):
    """One turn of a clarification thread.  Never edited, never deleted."""

    __tablename__ = "clarification_messages"

    __table_args__ = (
        CheckConstraint(
            "sender_role IN ('admin', 'assignee')",
            name="ck_clarification_messages_sender_role",
        ),
        CheckConstraint("length(message) > 0", name="ck_clarification_messages_message"),
        Index("ix_clarification_messages_thread", "assignment_id", "created_at", "id"),
    )

    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("clarification_assignments.id"), nullable=False,
    )
    sender_role: Mapped[str] = mapped_column(String(20), nullable=False)
    sender_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sender_email: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    suggested_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> MessageInfo:
        return MessageInfo(
            id=self.id,
            assignment_id=self.assignment_id,
            sender_role=SenderRole(self.sender_role),
            sender_name=self.sender_name,
            sender_email=self.sender_email,
            message=self.message,
            created_at=self.created_at,
            suggested_description=self.suggested_description,
        )


@event.listens_for(ClarificationMessageModel, "before_update")
def prevent_message_update(mapper, connection, target):
    """Messages are immutable once created."""
    raise ImmutabilityViolationError(
        entity_type="ClarificationMessage",
        entity_id=str(target.id),
        reason="clarification messages are append-only",
    )


@event.listens_for(ClarificationMessageModel, "before_delete")
def prevent_message_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ClarificationMessage",
        entity_id=str(target.id),
        reason="clarification messages cannot be deleted",
    )
