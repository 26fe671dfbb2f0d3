"""
review_services.orchestrator -- Central DI container for kernel services.

Responsibility:
    Creates every kernel service for one session exactly once and wires
    settings into them.  The kernel never reads settings itself; this is
    the bridge between ``review_config`` and ``review_kernel``.

Usage:
    with session_scope(factory) as session:
        services = ReviewOrchestrator(session, settings, clock)
        services.reviews.accept(token)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from review_config import ReviewSettings
from review_kernel.domain.clock import Clock, SystemClock
from review_kernel.selectors.access_selector import AccessSelector
from review_kernel.selectors.clarification_selector import ClarificationSelector
from review_kernel.services.auditor_service import AuditorService
from review_kernel.services.clarification_service import ClarificationService
from review_kernel.services.description_reconciler import DescriptionReconciler
from review_kernel.services.review_service import ReviewService
from review_kernel.services.visit_tracker import VisitTracker


class ReviewOrchestrator:
    """All kernel services for one session, sharing one auditor and clock."""

    def __init__(
        self,
        session: Session,
        settings: ReviewSettings,
        clock: Clock | None = None,
    ):
        self._session = session
        self._settings = settings
        self._clock = clock or SystemClock()

        self.auditor = AuditorService(session, self._clock)
        self.reconciler = DescriptionReconciler(session, self._clock, self.auditor)
        self.reviews = ReviewService(session, self._clock, self.auditor)
        self.clarifications = ClarificationService(
            session,
            self._clock,
            auditor=self.auditor,
            reconciler=self.reconciler,
            token_ttl_days=settings.clarification.token_ttl_days,
            token_bytes=settings.tokens.token_bytes,
            response_scope=settings.clarification.batch_response_scope,
        )
        self.visits = VisitTracker(session, self._clock)
        self.access = AccessSelector(
            session, self._clock, billable_status=settings.review.billable_status,
        )
        self.clarification_queries = ClarificationSelector(session)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def settings(self) -> ReviewSettings:
        return self._settings

    def dashboard_stats(self):
        return self.clarification_queries.dashboard_stats(
            self._clock.now(),
            cleared_window_days=self._settings.dashboard.cleared_window_days,
        )
