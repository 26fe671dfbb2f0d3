"""
Command gateway (``review_services.gateway``).

Responsibility:
    Carries a validated command to the authoritative write path and turns
    the outcome into a ``CommandResult``.  ``LocalCommandGateway`` performs
    the write in-process, one ``session_scope()`` transaction per command:
    the state change, its messages and its audit events commit together or
    not at all.

Invariants enforced:
    - Nothing is retried.  Every command is a deliberate one-shot
      decision; a WriteConflictError goes back to the caller, who must
      reload.
    - Typed kernel failures come back in the result; anything else is a
      defect and propagates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.orm import Session, sessionmaker

from review_config import ReviewSettings
from review_kernel.db.engine import session_scope
from review_kernel.domain.clock import Clock, SystemClock
from review_kernel.exceptions import ReviewKernelError
from review_kernel.logging_config import LogContext, get_logger
from review_services.commands import (
    AcceptReview,
    CancelClarification,
    ClearClarification,
    Command,
    DisputeReview,
    ReplyClarification,
    RespondClarification,
)
from review_services.orchestrator import ReviewOrchestrator

logger = get_logger("gateway")


@dataclass(frozen=True)
class CommandResult:
    """Success with a value, or a typed failure."""

    command: Any
    value: Any = None
    error: ReviewKernelError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def code(self) -> str | None:
        return self.error.code if self.error is not None else None

    def unwrap(self) -> Any:
        """The value, or raise the recorded error."""
        if self.error is not None:
            raise self.error
        return self.value


class CommandGateway(Protocol):
    def submit(self, command: Command) -> CommandResult:
        ...


class LocalCommandGateway:
    """
    In-process write path.

    Args:
        session_factory: Sessions for each command's transaction.
        settings: Passed to the orchestrator for service wiring.
        clock: Source of "now" for every command.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: ReviewSettings,
        clock: Clock | None = None,
    ):
        self._factory = session_factory
        self._settings = settings
        self._clock = clock or SystemClock()

    def submit(self, command: Command) -> CommandResult:
        try:
            command.validate()
            with session_scope(self._factory) as session:
                services = ReviewOrchestrator(session, self._settings, self._clock)
                value = self._dispatch(services, command)
        except ReviewKernelError as exc:
            logger.info(
                "command_failed",
                extra={"command": command.name, "error_code": exc.code},
            )
            return CommandResult(command=command, error=exc)

        logger.info("command_succeeded", extra={"command": command.name})
        return CommandResult(command=command, value=value)

    def _dispatch(self, services: ReviewOrchestrator, command: Command) -> Any:
        if isinstance(command, AcceptReview):
            return services.reviews.accept(command.token, command.notes)
        if isinstance(command, DisputeReview):
            return services.reviews.dispute(command.token, command.notes)
        if isinstance(command, RespondClarification):
            return services.clarifications.respond(
                command.token,
                command.message,
                suggested_description=command.suggested_description,
                assignment_id=command.assignment_id,
            )
        if isinstance(command, (ReplyClarification, ClearClarification, CancelClarification)):
            with LogContext.bind(actor=command.admin.email):
                return self._dispatch_admin(services, command)
        raise TypeError(f"Unsupported command: {type(command).__name__}")

    def _dispatch_admin(self, services: ReviewOrchestrator, command: Command) -> Any:
        if isinstance(command, ReplyClarification):
            return services.clarifications.reply(
                command.assignment_id, command.admin, command.message,
            )
        if isinstance(command, ClearClarification):
            return services.clarifications.clear(
                command.assignment_id,
                command.admin,
                apply_suggested_description=command.apply_suggested_description,
            )
        return services.clarifications.cancel(command.assignment_id, command.admin)
