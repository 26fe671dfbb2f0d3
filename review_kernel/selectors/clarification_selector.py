"""
Module: review_kernel.selectors.clarification_selector
Responsibility: Read-only queries behind the internal clarification
    dashboard.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func, select

from review_kernel.domain.dtos import (
    AssignmentInfo,
    ClarificationStatus,
    DashboardStats,
    MessageInfo,
)
from review_kernel.models.clarification import (
    ClarificationAssignmentModel,
    ClarificationMessageModel,
)
from review_kernel.selectors.base import BaseSelector


class ClarificationSelector(BaseSelector):
    """Assignment listings and counts for internal staff."""

    def get_assignment(self, assignment_id: int) -> AssignmentInfo | None:
        row = self.session.get(ClarificationAssignmentModel, assignment_id)
        return row.to_dto() if row is not None else None

    def list_assignments(
        self,
        status: ClarificationStatus | None = None,
    ) -> list[AssignmentInfo]:
        """All assignments, newest first, optionally filtered by status."""
        query = select(ClarificationAssignmentModel)
        if status is not None:
            query = query.where(ClarificationAssignmentModel.status == status.value)
        query = query.order_by(
            ClarificationAssignmentModel.created_at.desc(),
            ClarificationAssignmentModel.id.desc(),
        )
        return [row.to_dto() for row in self.session.execute(query).scalars().all()]

    def thread(self, assignment_id: int) -> list[MessageInfo]:
        """Messages on one assignment in creation order."""
        rows = self.session.execute(
            select(ClarificationMessageModel)
            .where(ClarificationMessageModel.assignment_id == assignment_id)
            .order_by(ClarificationMessageModel.created_at, ClarificationMessageModel.id)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def _count(self, *conditions) -> int:
        return self.session.execute(
            select(func.count(ClarificationAssignmentModel.id)).where(*conditions)
        ).scalar_one()

    def dashboard_stats(self, now: datetime, cleared_window_days: int = 7) -> DashboardStats:
        """
        Pending and responded counts, plus assignments cleared in the last
        ``cleared_window_days`` days before ``now``.
        """
        since = now - timedelta(days=cleared_window_days)
        status = ClarificationAssignmentModel.status
        return DashboardStats(
            pending=self._count(status == ClarificationStatus.PENDING.value),
            responded=self._count(status == ClarificationStatus.RESPONDED.value),
            cleared_recently=self._count(
                status == ClarificationStatus.CLEARED.value,
                ClarificationAssignmentModel.cleared_at >= since,
            ),
            cleared_window_days=cleared_window_days,
        )
