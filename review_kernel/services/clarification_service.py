"""
ClarificationService -- the internal clarification workflow.

Responsibility:
    Creates clarification assignments and their access link, and performs
    the four workflow commands: respond (assignee, through the link),
    reply, clear and cancel (admin, by assignment id).

Architecture position:
    Kernel > Services.  Called through review_services.LocalCommandGateway.

Invariants enforced:
    - cleared and cancelled are terminal.  Every status write goes through
      TransitionWriter, gated on the pre-transition status, including the
      state-preserving respond and reply edges, so a message can never land
      on an assignment that was cleared concurrently.
    - Messages are appended, never edited.
    - On clear with apply, the suggested description is applied before the
      assignment is marked cleared, in the same transaction.
    - A respond on a batch link is recorded according to the configured
      ``BatchResponseScope``.

Failure modes:
    - TokenNotFoundError, TokenExpiredError, AlreadyFinalizedError on the
      link path.
    - AssignmentNotFoundError, TimeEntryNotFoundError on the admin path.
    - ValidationError on empty messages and incomplete assignments.
    - WriteConflictError when a concurrent writer won.
"""

from __future__ import annotations

import secrets
import uuid
from collections.abc import Sequence
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from review_kernel.domain.access import finalized_outcome
from review_kernel.domain.calendar import is_expired
from review_kernel.domain.clock import Clock
from review_kernel.domain.dtos import (
    AdminIdentity,
    Assignee,
    AssignmentInfo,
    BatchResponseScope,
    ClarificationStatus,
    IssuedClarification,
    MessageInfo,
    SenderRole,
)
from review_kernel.domain.workflow import CLARIFICATION_WORKFLOW
from review_kernel.exceptions import (
    AlreadyFinalizedError,
    AssignmentNotFoundError,
    TimeEntryNotFoundError,
    TokenExpiredError,
    TokenNotFoundError,
    ValidationError,
)
from review_kernel.logging_config import LogContext, get_logger
from review_kernel.models.access_token import ClarificationTokenModel
from review_kernel.models.billing import TimeEntryModel
from review_kernel.models.clarification import (
    ClarificationAssignmentModel,
    ClarificationMessageModel,
)
from review_kernel.services.auditor_service import AuditorService
from review_kernel.services.base import BaseService
from review_kernel.services.description_reconciler import DescriptionReconciler
from review_kernel.services.transition_writer import TransitionWriter, WorkflowBinding

logger = get_logger("services.clarification")

CLARIFICATION_BINDING = WorkflowBinding(
    workflow=CLARIFICATION_WORKFLOW,
    model=ClarificationAssignmentModel,
    state_attr="status",
    entity_type="ClarificationAssignment",
)


def _required(field: str, value: str | None, reason: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(field, reason)
    return value.strip()


class ClarificationService(BaseService):
    """
    Args:
        session: Caller-owned session.
        clock: Source of "now".
        auditor: Audit chain writer; one is created on the session if omitted.
        reconciler: Description writer used by ``clear(apply=True)``.
        token_ttl_days: Lifetime of links issued by ``assign``.
        token_bytes: Entropy of issued link tokens.
        response_scope: Where a respond on a batch link is recorded.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
        reconciler: DescriptionReconciler | None = None,
        token_ttl_days: int = 7,
        token_bytes: int = 32,
        response_scope: BatchResponseScope = BatchResponseScope.SUBJECT,
    ):
        super().__init__(session, clock)
        self.auditor = auditor or AuditorService(session, self.clock)
        self.reconciler = reconciler or DescriptionReconciler(session, self.clock, self.auditor)
        self.writer = TransitionWriter(session)
        self.token_ttl_days = token_ttl_days
        self.token_bytes = token_bytes
        self.response_scope = response_scope

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def assign(
        self,
        time_entry_ids: Sequence[int],
        question: str,
        assignee: Assignee,
        admin: AdminIdentity,
    ) -> IssuedClarification:
        """
        Open one assignment per time entry and issue one link for them.

        Several entries share a fresh batch id, and the link then resolves
        to all of them.

        Raises:
            ValidationError: empty question, no entries, duplicate entries,
                or an incomplete assignee.
            TimeEntryNotFoundError: an entry id does not exist.
        """
        question = _required("question", question, "a question is required")
        name = _required("assignee.name", assignee.name, "assignee name is required")
        email = _required("assignee.email", assignee.email, "assignee email is required")
        ids = list(time_entry_ids)
        if not ids:
            raise ValidationError("time_entry_ids", "at least one time entry is required")
        if len(set(ids)) != len(ids):
            raise ValidationError("time_entry_ids", "time entries must be distinct")
        for entry_id in ids:
            if self.session.get(TimeEntryModel, entry_id) is None:
                raise TimeEntryNotFoundError(entry_id)

        now = self.clock.now()
        batch_id = uuid.uuid4().hex if len(ids) > 1 else None
        rows = [
            ClarificationAssignmentModel(
                time_entry_id=entry_id,
                assigned_by=admin.email,
                assigned_to_name=name,
                assigned_to_email=email,
                question=question,
                status=ClarificationStatus.PENDING.value,
                batch_id=batch_id,
                created_at=now,
            )
            for entry_id in ids
        ]
        self.session.add_all(rows)
        self.session.flush()

        expires_at = now + timedelta(days=self.token_ttl_days)
        token = secrets.token_urlsafe(self.token_bytes)
        token_row = ClarificationTokenModel(
            token=token,
            assignment_id=rows[0].id,
            batch_id=batch_id,
            created_at=now,
            expires_at=expires_at,
            open_count=0,
        )
        self.session.add(token_row)
        self.session.flush()

        for row in rows:
            self.auditor.record_clarification_assigned(
                assignment_id=row.id,
                time_entry_id=row.time_entry_id,
                batch_id=batch_id,
                actor=admin.email,
            )
        logger.info(
            "clarification_assigned",
            extra={
                "token_id": token_row.id,
                "assignment_ids": [r.id for r in rows],
                "batch": batch_id is not None,
            },
        )
        return IssuedClarification(
            token=token,
            token_id=token_row.id,
            batch_id=batch_id,
            expires_at=expires_at,
            assignments=tuple(r.to_dto() for r in rows),
        )

    # ------------------------------------------------------------------
    # Link path
    # ------------------------------------------------------------------

    def _load_token(self, token: str) -> ClarificationTokenModel:
        row = None
        if token:
            row = self.session.execute(
                select(ClarificationTokenModel).where(ClarificationTokenModel.token == token)
            ).scalar_one_or_none()
        if row is None:
            raise TokenNotFoundError()
        return row

    def _scope(self, token_row: ClarificationTokenModel) -> list[ClarificationAssignmentModel]:
        if token_row.batch_id is not None:
            rows = list(self.session.execute(
                select(ClarificationAssignmentModel)
                .where(ClarificationAssignmentModel.batch_id == token_row.batch_id)
                .order_by(ClarificationAssignmentModel.id)
            ).scalars().all())
        else:
            subject = self.session.get(ClarificationAssignmentModel, token_row.assignment_id)
            rows = [subject] if subject is not None else []
        if not rows:
            raise TokenNotFoundError()
        return rows

    def _targets(
        self,
        token_row: ClarificationTokenModel,
        rows: list[ClarificationAssignmentModel],
        assignment_id: int | None,
    ) -> list[ClarificationAssignmentModel]:
        open_rows = [
            r for r in rows if not CLARIFICATION_WORKFLOW.is_terminal(r.status)
        ]
        if assignment_id is not None:
            for r in rows:
                if r.id == assignment_id:
                    return [r]
            raise ValidationError("assignment_id", "not addressed by this link")
        if self.response_scope is BatchResponseScope.ALL_OPEN:
            return open_rows
        for r in open_rows:
            if r.id == token_row.assignment_id:
                return [r]
        return open_rows[:1]

    def respond(
        self,
        token: str,
        message: str,
        suggested_description: str | None = None,
        assignment_id: int | None = None,
    ) -> tuple[AssignmentInfo, ...]:
        """
        Assignee response through the link.

        Appends an assignee message to each target assignment and moves it
        to responded.  A non-empty ``suggested_description`` is stored on
        the message and on the assignment.

        Args:
            assignment_id: Target a specific assignment of a batch link.

        Returns:
            The updated assignments.

        Raises:
            ValidationError: empty message, or ``assignment_id`` outside
                the link's scope.
            TokenNotFoundError: unknown token or no assignments.
            AlreadyFinalizedError: every assignment in scope is terminal,
                or the targeted one is.
            TokenExpiredError: link expired.
        """
        message = _required("message", message, "a response message is required")
        suggestion = (
            suggested_description.strip()
            if suggested_description and suggested_description.strip()
            else None
        )
        token_row = self._load_token(token)

        with LogContext.bind(token_id=str(token_row.id)):
            rows = self._scope(token_row)
            outcome = finalized_outcome(r.status for r in rows)
            if outcome is not None:
                raise AlreadyFinalizedError("ClarificationToken", token_row.id, outcome)

            now = self.clock.now()
            if is_expired(now, token_row.expires_at):
                logger.info("clarification_rejected_expired", extra={"token_id": token_row.id})
                raise TokenExpiredError(token_row.id, token_row.expires_at.isoformat())

            updated: list[AssignmentInfo] = []
            for target in self._targets(token_row, rows, assignment_id):
                transition = self.writer.check(CLARIFICATION_BINDING, target, "respond")
                values = {"responded_at": now}
                if suggestion is not None:
                    values["suggested_description"] = suggestion
                target = self.writer.apply(
                    CLARIFICATION_BINDING, transition, target.id, values=values,
                )
                msg = self._append_message(
                    assignment_id=target.id,
                    role=SenderRole.ASSIGNEE,
                    name=target.assigned_to_name,
                    email=target.assigned_to_email,
                    text=message,
                    suggestion=suggestion,
                    now=now,
                )
                self.auditor.record_clarification_responded(
                    assignment_id=target.id,
                    message_id=msg.id,
                    actor=target.assigned_to_email,
                    has_suggestion=suggestion is not None,
                )
                logger.info(
                    "clarification_responded",
                    extra={
                        "assignment_id": target.id,
                        "has_suggestion": suggestion is not None,
                    },
                )
                updated.append(target.to_dto())
            return tuple(updated)

    # ------------------------------------------------------------------
    # Admin path
    # ------------------------------------------------------------------

    def _assignment(self, assignment_id: int) -> ClarificationAssignmentModel:
        row = self.session.get(ClarificationAssignmentModel, assignment_id)
        if row is None:
            raise AssignmentNotFoundError(assignment_id)
        return row

    def _append_message(
        self,
        *,
        assignment_id: int,
        role: SenderRole,
        name: str,
        email: str,
        text: str,
        suggestion: str | None,
        now,
    ) -> ClarificationMessageModel:
        msg = ClarificationMessageModel(
            assignment_id=assignment_id,
            sender_role=role.value,
            sender_name=name,
            sender_email=email,
            message=text,
            suggested_description=suggestion,
            created_at=now,
        )
        self.session.add(msg)
        self.session.flush()
        return msg

    def reply(self, assignment_id: int, admin: AdminIdentity, message: str) -> MessageInfo:
        """
        Admin message on an open assignment.  Status is unchanged.

        Raises:
            ValidationError: empty message.
            AssignmentNotFoundError: no such assignment.
            AlreadyFinalizedError: assignment is cleared or cancelled.
        """
        message = _required("message", message, "a reply message is required")
        row = self._assignment(assignment_id)
        with LogContext.bind(assignment_id=str(assignment_id), actor=admin.email):
            row = self.writer.transition(CLARIFICATION_BINDING, row, "reply")
            msg = self._append_message(
                assignment_id=row.id,
                role=SenderRole.ADMIN,
                name=admin.display_name,
                email=admin.email,
                text=message,
                suggestion=None,
                now=self.clock.now(),
            )
            self.auditor.record_clarification_replied(
                assignment_id=row.id, message_id=msg.id, actor=admin.email,
            )
            logger.info("clarification_replied", extra={"assignment_id": row.id})
            return msg.to_dto()

    def clear(
        self,
        assignment_id: int,
        admin: AdminIdentity,
        apply_suggested_description: bool = False,
    ) -> AssignmentInfo:
        """
        Resolve an assignment.

        With ``apply_suggested_description`` the assignment's suggestion is
        written to the time entry first; no suggestion, or one equal to the
        current description, is a no-op.

        Raises:
            AssignmentNotFoundError: no such assignment.
            AlreadyFinalizedError: assignment is cleared or cancelled.
            TimeEntryNotFoundError: the entry to update is gone.
        """
        row = self._assignment(assignment_id)
        with LogContext.bind(assignment_id=str(assignment_id), actor=admin.email):
            transition = self.writer.check(CLARIFICATION_BINDING, row, "clear")

            applied = False
            if apply_suggested_description:
                if row.suggested_description is None:
                    logger.info(
                        "clarification_clear_no_suggestion",
                        extra={"assignment_id": row.id},
                    )
                else:
                    applied = self.reconciler.apply(
                        row.time_entry_id, row.suggested_description, actor=admin.email,
                    )

            now = self.clock.now()
            row = self.writer.apply(
                CLARIFICATION_BINDING,
                transition,
                row.id,
                values={"cleared_at": now, "cleared_by": admin.email},
            )
            self.auditor.record_clarification_cleared(
                assignment_id=row.id, actor=admin.email, description_applied=applied,
            )
            logger.info(
                "clarification_cleared",
                extra={"assignment_id": row.id, "description_applied": applied},
            )
            return row.to_dto()

    def cancel(self, assignment_id: int, admin: AdminIdentity) -> AssignmentInfo:
        """
        Withdraw an assignment.  No description side effect.

        Raises:
            AssignmentNotFoundError: no such assignment.
            AlreadyFinalizedError: assignment is cleared or cancelled.
        """
        row = self._assignment(assignment_id)
        with LogContext.bind(assignment_id=str(assignment_id), actor=admin.email):
            row = self.writer.transition(CLARIFICATION_BINDING, row, "cancel")
            self.auditor.record_clarification_cancelled(
                assignment_id=row.id, actor=admin.email,
            )
            logger.info("clarification_cancelled", extra={"assignment_id": row.id})
            return row.to_dto()
