"""
VisitTracker -- first/last-open timestamps and the open counter.

Responsibility:
    Records that a resolved token's page was opened.  One visit is written
    as a single atomic UPDATE:

        open_count      = open_count + 1
        last_opened_at  = :now
        first_opened_at = COALESCE(first_opened_at, :now)

    The increment happens in the store, so concurrent opens (a mail
    client's link prefetch racing the human click) never lose a count, and
    COALESCE keeps the earliest first-open.  Concurrent visits may land in
    either order, so ``last_opened_at`` is the latest committed writer's
    clock reading, not necessarily the maximum.

Architecture position:
    Kernel > Services.  Called by review_services.AccessSession.

Invariants enforced:
    - At most one recorded visit per VisitGuard (one guard per page load).
    - ``first_opened_at`` is written at most once.
    - ``open_count`` only increases.
"""

from __future__ import annotations

from sqlalchemy import func, literal, update
from sqlalchemy.orm import Session

from review_kernel.db.types import UTCDateTime
from review_kernel.domain.clock import Clock
from review_kernel.domain.dtos import TokenKind, VisitStats
from review_kernel.exceptions import TokenNotFoundError
from review_kernel.logging_config import get_logger
from review_kernel.models.access_token import TOKEN_MODELS
from review_kernel.services.base import BaseService

logger = get_logger("services.visit_tracker")


class VisitGuard:
    """Load-local "already logged" flag.  Create one per page load."""

    def __init__(self) -> None:
        self.logged = False

    def __repr__(self) -> str:
        return f"<VisitGuard logged={self.logged}>"


class VisitTracker(BaseService):
    """Records token visits."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def record_visit(
        self,
        kind: TokenKind,
        token_id: int,
        guard: VisitGuard,
    ) -> VisitStats | None:
        """
        Record one visit unless ``guard`` already logged one.

        Returns:
            The counters after the visit, or None when the guard had
            already been used.

        Raises:
            TokenNotFoundError: no token with ``token_id``.
        """
        if guard.logged:
            logger.debug("visit_already_logged", extra={"token_id": token_id})
            return None

        model = TOKEN_MODELS[kind]
        now = self.clock.now()
        stmt = (
            update(model)
            .where(model.id == token_id)
            .values(
                open_count=model.open_count + 1,
                last_opened_at=now,
                first_opened_at=func.coalesce(
                    model.first_opened_at, literal(now, UTCDateTime()),
                ),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            raise TokenNotFoundError()
        guard.logged = True

        row = self.session.get(model, token_id, populate_existing=True)
        stats = VisitStats(
            token_id=row.id,
            first_opened_at=row.first_opened_at,
            last_opened_at=row.last_opened_at,
            open_count=row.open_count,
        )
        logger.info(
            "token_visit_recorded",
            extra={"kind": kind.value, "token_id": token_id, "open_count": stats.open_count},
        )
        return stats
