"""
ReviewService -- customer accept/dispute of a weekly time report.

Responsibility:
    The authoritative write path of the review workflow.  Records the
    customer's one-shot outcome on the review token and moves the report
    period to the same status.

Architecture position:
    Kernel > Services.  Called through review_services.LocalCommandGateway.

Invariants enforced:
    - ``customer_action`` is written once.  The UPDATE is gated on
      ``customer_action IS NULL`` and on the expiry, so a second submission
      or a submission after the window closed never overwrites anything.
    - already_finalized is reported before expired: a client that lost the
      response to its first accept learns the recorded outcome.
    - A dispute must carry notes.

Failure modes:
    - TokenNotFoundError: unknown token.
    - AlreadyFinalizedError: outcome already recorded.
    - TokenExpiredError: window closed with no outcome (the external sweep
      owns late reviews).
    - ValidationError: dispute with empty notes.
    - WriteConflictError: a concurrent writer won between check and write.
"""

from __future__ import annotations

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from review_kernel.domain.calendar import is_expired
from review_kernel.domain.clock import Clock
from review_kernel.domain.dtos import AccessTokenInfo, CustomerAction, ReportPeriodStatus
from review_kernel.domain.workflow import REVIEW_ISSUED, REVIEW_WORKFLOW
from review_kernel.exceptions import (
    ReportPeriodNotFoundError,
    TokenExpiredError,
    TokenNotFoundError,
    ValidationError,
)
from review_kernel.logging_config import LogContext, get_logger
from review_kernel.models.access_token import ReviewTokenModel
from review_kernel.models.billing import ReportPeriodModel
from review_kernel.services.auditor_service import AuditorService
from review_kernel.services.base import BaseService
from review_kernel.services.transition_writer import TransitionWriter, WorkflowBinding

logger = get_logger("services.review")

REVIEW_BINDING = WorkflowBinding(
    workflow=REVIEW_WORKFLOW,
    model=ReviewTokenModel,
    state_attr="customer_action",
    entity_type="ReviewToken",
    unset_state=REVIEW_ISSUED,
)

_PERIOD_STATUS = {
    CustomerAction.ACCEPTED: ReportPeriodStatus.ACCEPTED,
    CustomerAction.DISPUTED: ReportPeriodStatus.DISPUTED,
}


def customer_actor(token_id: int) -> str:
    """Audit actor for a decision taken through a review link."""
    return f"customer:review_token:{token_id}"


class ReviewService(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
    ):
        super().__init__(session, clock)
        self.auditor = auditor or AuditorService(session, self.clock)
        self.writer = TransitionWriter(session)

    def accept(self, token: str, notes: str | None = None) -> AccessTokenInfo:
        """Record an accept.  ``notes`` is optional."""
        return self._decide(token, CustomerAction.ACCEPTED, notes)

    def dispute(self, token: str, notes: str) -> AccessTokenInfo:
        """Record a dispute.  ``notes`` must be non-empty."""
        if notes is None or not notes.strip():
            raise ValidationError("notes", "a dispute must explain what is wrong")
        return self._decide(token, CustomerAction.DISPUTED, notes)

    def _load(self, token: str) -> ReviewTokenModel:
        row = None
        if token:
            row = self.session.execute(
                select(ReviewTokenModel).where(ReviewTokenModel.token == token)
            ).scalar_one_or_none()
        if row is None:
            raise TokenNotFoundError()
        return row

    def _decide(
        self,
        token: str,
        outcome: CustomerAction,
        notes: str | None,
    ) -> AccessTokenInfo:
        row = self._load(token)
        action = "accept" if outcome is CustomerAction.ACCEPTED else "dispute"

        with LogContext.bind(token_id=str(row.id), actor=customer_actor(row.id)):
            transition = self.writer.check(REVIEW_BINDING, row, action)

            now = self.clock.now()
            if is_expired(now, row.expires_at):
                logger.info("review_rejected_expired", extra={"token_id": row.id})
                raise TokenExpiredError(row.id, row.expires_at.isoformat())

            notes = notes.strip() if notes and notes.strip() else None
            row = self.writer.apply(
                REVIEW_BINDING,
                transition,
                row.id,
                values={"customer_action_at": now, "customer_notes": notes},
                conditions=(
                    or_(
                        ReviewTokenModel.expires_at.is_(None),
                        ReviewTokenModel.expires_at > now,
                    ),
                ),
            )

            period_values = {"status": _PERIOD_STATUS[outcome].value}
            if outcome is CustomerAction.ACCEPTED:
                period_values["accepted_at"] = now
            result = self.session.execute(
                update(ReportPeriodModel)
                .where(ReportPeriodModel.id == row.report_period_id)
                .values(period_values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ReportPeriodNotFoundError(row.report_period_id)
            self.session.get(ReportPeriodModel, row.report_period_id, populate_existing=True)

            self.auditor.record_review_decision(
                token_id=row.id,
                report_period_id=row.report_period_id,
                outcome=outcome,
                actor=customer_actor(row.id),
                has_notes=notes is not None,
            )
            logger.info(
                f"review_{outcome.value}",
                extra={"token_id": row.id, "report_period_id": row.report_period_id},
            )
            return row.to_dto()
