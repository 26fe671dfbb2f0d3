"""
Per-page-load access to a token link (``review_services.access_session``).

Responsibility:
    What a presentation page holds while it shows one link: the resolved
    view, the load-local VisitGuard and the client-side command checks.

    ``load()`` may be called any number of times (initial render, polling,
    re-render after a command); only the first records a visit.  Commands
    are rejected before reaching the gateway when the loaded view is
    already finalized or expired, or when the command fails its own
    validation.

    The view returned by ``load()`` shows the token counters as they were
    before that load's visit; ``visit`` holds the counters after it.
"""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from review_config import ReviewSettings
from review_kernel.db.engine import session_scope
from review_kernel.domain.access import ResolvedClarification, ResolvedReview
from review_kernel.domain.clock import Clock, SystemClock
from review_kernel.domain.dtos import TokenKind, VisitStats
from review_kernel.exceptions import (
    AlreadyFinalizedError,
    ReviewKernelError,
    TokenExpiredError,
)
from review_kernel.logging_config import LogContext, get_logger
from review_kernel.services.visit_tracker import VisitGuard
from review_services.commands import (
    AcceptReview,
    Command,
    DisputeReview,
    RespondClarification,
)
from review_services.gateway import CommandGateway, CommandResult
from review_services.orchestrator import ReviewOrchestrator

logger = get_logger("access_session")


class AccessSession:
    """
    One page load of a review or clarification link.

    Raises (from ``load``):
        TokenNotFoundError: the link does not resolve.
    """

    def __init__(
        self,
        kind: TokenKind,
        token: str,
        gateway: CommandGateway,
        session_factory: sessionmaker[Session],
        settings: ReviewSettings,
        clock: Clock | None = None,
    ):
        self.kind = kind
        self.token = token
        self.gateway = gateway
        self.guard = VisitGuard()
        self.view: ResolvedReview | ResolvedClarification | None = None
        self.visit: VisitStats | None = None
        self._factory = session_factory
        self._settings = settings
        self._clock = clock or SystemClock()

    def load(self) -> ResolvedReview | ResolvedClarification:
        """Resolve the link and record this page load's visit once."""
        with session_scope(self._factory) as session:
            services = ReviewOrchestrator(session, self._settings, self._clock)
            view = services.access.resolve(self.kind, self.token)
            with LogContext.bind(token_id=str(view.token.id)):
                stats = services.visits.record_visit(self.kind, view.token.id, self.guard)
        if stats is not None:
            self.visit = stats
        self.view = view
        return view

    @property
    def prefill_description(self) -> str | None:
        """Seed for the suggestion editor; single-entry clarifications only."""
        if isinstance(self.view, ResolvedClarification):
            return self.view.prefill_description
        return None

    def accept(self, notes: str | None = None) -> CommandResult:
        return self._submit(AcceptReview(token=self.token, notes=notes))

    def dispute(self, notes: str) -> CommandResult:
        return self._submit(DisputeReview(token=self.token, notes=notes))

    def respond(
        self,
        message: str,
        suggested_description: str | None = None,
        assignment_id: int | None = None,
    ) -> CommandResult:
        return self._submit(
            RespondClarification(
                token=self.token,
                message=message,
                suggested_description=suggested_description,
                assignment_id=assignment_id,
            )
        )

    def _precheck(self, view: ResolvedReview | ResolvedClarification) -> None:
        if view.already_finalized:
            outcome = view.outcome
            raise AlreadyFinalizedError(
                self.kind.value,
                view.token.id,
                getattr(outcome, "value", outcome) or "resolved",
            )
        if view.expired:
            raise TokenExpiredError(view.token.id, view.token.expires_at.isoformat())

    def _submit(self, command: Command) -> CommandResult:
        if command.kind is not self.kind:
            raise ValueError(f"{command.name} is not a {self.kind.value} command")
        view = self.view if self.view is not None else self.load()

        try:
            self._precheck(view)
            command.validate()
        except ReviewKernelError as exc:
            logger.info(
                "command_rejected_locally",
                extra={"command": command.name, "error_code": exc.code, "token_id": view.token.id},
            )
            return CommandResult(command=command, error=exc)

        result = self.gateway.submit(command)
        if result.ok:
            self.load()
        return result
