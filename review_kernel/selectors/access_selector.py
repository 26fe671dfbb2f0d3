"""
Module: review_kernel.selectors.access_selector
Responsibility: The token read path.  Resolves an opaque access token to
    the records it grants access to and the access state to render.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only and deterministic: two resolutions of the same token at the
      same instant return equal results.  Visits are recorded separately by
      VisitTracker.
    - Not-found is opaque: an unknown token, a token whose report period is
      gone and a clarification token with no assignments all raise the
      same TokenNotFoundError.
    - already_finalized wins over expired; expired tokens still load their
      records for read-only display.
    - Batch assignments come back in ascending id order; messages in
      (created_at, id) order; entries in (txn_date, id) order.

Failure modes:
    - TokenNotFoundError as above.

Audit relevance:
    Token strings are never logged.  Log records carry the token id once a
    token has been found.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from review_kernel.domain.access import (
    ResolvedClarification,
    ResolvedReview,
    access_state,
    review_state,
)
from review_kernel.domain.calendar import remaining_business_days
from review_kernel.domain.clock import Clock, SystemClock
from review_kernel.domain.dtos import TokenKind
from review_kernel.exceptions import TokenNotFoundError
from review_kernel.logging_config import get_logger
from review_kernel.models.access_token import (
    TOKEN_MODELS,
    ClarificationTokenModel,
    ReviewTokenModel,
)
from review_kernel.models.billing import CustomerModel, ReportPeriodModel, TimeEntryModel
from review_kernel.models.clarification import (
    ClarificationAssignmentModel,
    ClarificationMessageModel,
)
from review_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.access")


class AccessSelector(BaseSelector):
    """
    Resolves review and clarification tokens.

    Args:
        session: Caller-owned session.
        clock: Source of "now" for expiry and the business-day countdown.
        billable_status: Entries with this status appear on a review.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        billable_status: str = "Billable",
    ):
        super().__init__(session)
        self.clock = clock or SystemClock()
        self.billable_status = billable_status

    def find_token(self, kind: TokenKind, token: str):
        """Token row for an exact token match, or None."""
        if not token:
            return None
        model = TOKEN_MODELS[kind]
        return self.session.execute(
            select(model).where(model.token == token)
        ).scalar_one_or_none()

    def resolve(self, kind: TokenKind, token: str) -> ResolvedReview | ResolvedClarification:
        if kind is TokenKind.REVIEW:
            return self.resolve_review(token)
        return self.resolve_clarification(token)

    def resolve_review(self, token: str) -> ResolvedReview:
        """
        Resolve a customer review token.

        Raises:
            TokenNotFoundError: unknown token or missing report period.
        """
        row: ReviewTokenModel | None = self.find_token(TokenKind.REVIEW, token)
        if row is None:
            logger.info("token_not_found", extra={"kind": TokenKind.REVIEW.value})
            raise TokenNotFoundError()

        period = self.session.get(ReportPeriodModel, row.report_period_id)
        if period is None:
            logger.warning(
                "token_subject_missing",
                extra={"kind": TokenKind.REVIEW.value, "token_id": row.id},
            )
            raise TokenNotFoundError()

        now = self.clock.now()
        info = row.to_dto()

        entries = self.session.execute(
            select(TimeEntryModel)
            .where(
                TimeEntryModel.customer_id == period.customer_id,
                TimeEntryModel.txn_date >= period.week_start,
                TimeEntryModel.txn_date <= period.week_end,
                TimeEntryModel.billable_status == self.billable_status,
            )
            .order_by(TimeEntryModel.txn_date, TimeEntryModel.id)
        ).scalars().all()

        customer = self.session.get(CustomerModel, period.customer_id)
        available = self.session.execute(
            select(CustomerModel).order_by(CustomerModel.display_name, CustomerModel.id)
        ).scalars().all()

        state = access_state(
            finalized=info.customer_action is not None,
            expires_at=info.expires_at,
            now=now,
        )
        logger.debug(
            "review_token_resolved",
            extra={"token_id": row.id, "state": state.value, "entry_count": len(entries)},
        )
        return ResolvedReview(
            token=info,
            state=state,
            review_state=review_state(info, now),
            report_period=period.to_dto(),
            customer=customer.to_dto() if customer is not None else None,
            entries=tuple(e.to_dto() for e in entries),
            remaining_business_days=remaining_business_days(now, info.expires_at),
            available_customers=tuple(c.to_dto() for c in available),
        )

    def load_assignments(self, row: ClarificationTokenModel) -> list[ClarificationAssignmentModel]:
        """Assignments a clarification token addresses, ascending id."""
        if row.batch_id is not None:
            return list(self.session.execute(
                select(ClarificationAssignmentModel)
                .where(ClarificationAssignmentModel.batch_id == row.batch_id)
                .order_by(ClarificationAssignmentModel.id)
            ).scalars().all())
        subject = self.session.get(ClarificationAssignmentModel, row.assignment_id)
        return [subject] if subject is not None else []

    def resolve_clarification(self, token: str) -> ResolvedClarification:
        """
        Resolve a clarification token to one or many assignments.

        Raises:
            TokenNotFoundError: unknown token or no assignments.
        """
        row: ClarificationTokenModel | None = self.find_token(TokenKind.CLARIFICATION, token)
        if row is None:
            logger.info("token_not_found", extra={"kind": TokenKind.CLARIFICATION.value})
            raise TokenNotFoundError()

        assignments = self.load_assignments(row)
        if not assignments:
            logger.warning(
                "token_subject_missing",
                extra={"kind": TokenKind.CLARIFICATION.value, "token_id": row.id},
            )
            raise TokenNotFoundError()

        assignment_ids = [a.id for a in assignments]
        messages = self.session.execute(
            select(ClarificationMessageModel)
            .where(ClarificationMessageModel.assignment_id.in_(assignment_ids))
            .order_by(ClarificationMessageModel.created_at, ClarificationMessageModel.id)
        ).scalars().all()

        entry_ids = sorted({a.time_entry_id for a in assignments})
        entries = self.session.execute(
            select(TimeEntryModel)
            .where(TimeEntryModel.id.in_(entry_ids))
            .order_by(TimeEntryModel.txn_date, TimeEntryModel.id)
        ).scalars().all()

        customer_ids = sorted({e.customer_id for e in entries})
        customers = self.session.execute(
            select(CustomerModel).where(CustomerModel.id.in_(customer_ids))
        ).scalars().all() if customer_ids else []

        now = self.clock.now()
        dtos = tuple(a.to_dto() for a in assignments)
        info = row.to_dto()
        state = access_state(
            finalized=all(a.is_terminal for a in dtos),
            expires_at=info.expires_at,
            now=now,
        )
        logger.debug(
            "clarification_token_resolved",
            extra={
                "token_id": row.id,
                "state": state.value,
                "assignment_count": len(dtos),
                "batch": row.batch_id is not None,
            },
        )
        return ResolvedClarification(
            token=info,
            state=state,
            assignments=dtos,
            messages=tuple(m.to_dto() for m in messages),
            entries=tuple(e.to_dto() for e in entries),
            customers={c.id: c.to_dto() for c in customers},
            remaining_business_days=remaining_business_days(now, info.expires_at),
        )
