"""
Module: review_kernel.models.access_token
Responsibility: ORM persistence for the opaque access tokens behind emailed
    links: customer review tokens and internal clarification tokens.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - ``token`` is unique per table.
    - ``open_count`` >= 0 (check constraint); only ever incremented, by a
      single atomic UPDATE in VisitTracker.
    - ``first_opened_at`` is set at most once (COALESCE in the same UPDATE).
    - Review tokens: ``customer_action`` is NULL or one of
      accepted/disputed, and once non-NULL it is never changed.  The write
      path gates its UPDATE on ``customer_action IS NULL``.

Failure modes:
    - IntegrityError on duplicate token string.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from review_kernel.db.base import Base
from review_kernel.domain.dtos import AccessTokenInfo, CustomerAction, TokenKind


class AccessTokenMixin:
    """Columns shared by both token flavors."""

    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    first_opened_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_opened_at: Mapped[datetime | None] = mapped_column(nullable=True)
    open_count: Mapped[int] = mapped_column(nullable=False, default=0)


class ReviewTokenModel(AccessTokenMixin, Base):
    """Customer review link for one report period.

    Contract:
        ``customer_action`` is the outcome; NULL means no decision yet.
        The stored outcome is terminal.
    """

    __tablename__ = "review_tokens"

    __table_args__ = (
        CheckConstraint(
            "customer_action IS NULL OR customer_action IN ('accepted', 'disputed')",
            name="ck_review_tokens_customer_action",
        ),
        CheckConstraint("open_count >= 0", name="ck_review_tokens_open_count"),
        Index("ix_review_tokens_report_period", "report_period_id"),
    )

    report_period_id: Mapped[int] = mapped_column(
        ForeignKey("report_periods.id"), nullable=False,
    )
    customer_action: Mapped[str | None] = mapped_column(String(30), nullable=True)
    customer_action_at: Mapped[datetime | None] = mapped_column(nullable=True)
    customer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ReviewToken {self.id} period={self.report_period_id} "
            f"action={self.customer_action}>"
        )

    def to_dto(self) -> AccessTokenInfo:
        return AccessTokenInfo(
            id=self.id,
            kind=TokenKind.REVIEW,
            subject_id=self.report_period_id,
            created_at=self.created_at,
            expires_at=self.expires_at,
            first_opened_at=self.first_opened_at,
            last_opened_at=self.last_opened_at,
            open_count=self.open_count,
            customer_action=(
                CustomerAction(self.customer_action) if self.customer_action else None
            ),
            customer_action_at=self.customer_action_at,
            customer_notes=self.customer_notes,
        )


class ClarificationTokenModel(AccessTokenMixin, Base):
    """Internal clarification link.

    Contract:
        ``assignment_id`` is the subject.  When ``batch_id`` is set the
        token's scope is every assignment sharing that batch id.
    """

    __tablename__ = "clarification_tokens"

    __table_args__ = (
        CheckConstraint("open_count >= 0", name="ck_clarification_tokens_open_count"),
        Index("ix_clarification_tokens_batch", "batch_id"),
    )

    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("clarification_assignments.id"), nullable=False,
    )
    batch_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ClarificationToken {self.id} assignment={self.assignment_id} "
            f"batch={self.batch_id}>"
        )

    def to_dto(self) -> AccessTokenInfo:
        return AccessTokenInfo(
            id=self.id,
            kind=TokenKind.CLARIFICATION,
            subject_id=self.assignment_id,
            batch_id=self.batch_id,
            created_at=self.created_at,
            expires_at=self.expires_at,
            first_opened_at=self.first_opened_at,
            last_opened_at=self.last_opened_at,
            open_count=self.open_count,
        )


TOKEN_MODELS: dict[TokenKind, type[ReviewTokenModel] | type[ClarificationTokenModel]] = {
    TokenKind.REVIEW: ReviewTokenModel,
    TokenKind.CLARIFICATION: ClarificationTokenModel,
}
