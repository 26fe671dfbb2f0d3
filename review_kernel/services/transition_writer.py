"""
TransitionWriter -- the store-level terminal guard.

Responsibility:
    The one place a workflow state change is written.  A transition is
    first checked against the workflow's table (terminal states raise
    AlreadyFinalizedError), then written as a single conditional UPDATE
    gated on the pre-transition state:

        UPDATE <table> SET <state> = :to, ... WHERE id = :id AND <state> = :from

    If another writer got there first the UPDATE matches no row and
    WriteConflictError is raised.  Two simultaneous accepts on one review
    token therefore produce exactly one outcome.

Architecture position:
    Kernel > Services.  Used by ReviewService and ClarificationService.

Invariants enforced:
    - No write leaves a terminal state.
    - A lost race is never reported as success.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from review_kernel.domain.workflow import Transition, Workflow, find_transition
from review_kernel.exceptions import WriteConflictError
from review_kernel.logging_config import get_logger

logger = get_logger("services.transition_writer")


@dataclass(frozen=True)
class WorkflowBinding:
    """
    Ties a workflow to the model column that stores its state.

    ``unset_state`` is the workflow state a NULL column stands for; review
    tokens keep ``customer_action`` NULL while issued.
    """

    workflow: Workflow
    model: type
    state_attr: str
    entity_type: str
    unset_state: str | None = None

    @property
    def column(self):
        return getattr(self.model, self.state_attr)

    def state_of(self, row: Any) -> str:
        value = getattr(row, self.state_attr)
        if value is None:
            return self.unset_state
        return value

    def stored(self, state: str) -> str | None:
        if self.unset_state is not None and state == self.unset_state:
            return None
        return state


class TransitionWriter:
    """Checks and writes workflow transitions.  Flushes, never commits."""

    def __init__(self, session: Session):
        self.session = session

    def check(self, binding: WorkflowBinding, row: Any, action: str) -> Transition:
        """
        Find the transition for ``action`` from the row's current state.

        Raises:
            AlreadyFinalizedError: the row is in a terminal state.
            InvalidTransitionError: no edge for the action.
        """
        return find_transition(
            binding.workflow,
            binding.state_of(row),
            action,
            entity_type=binding.entity_type,
            entity_id=row.id,
        )

    def apply(
        self,
        binding: WorkflowBinding,
        transition: Transition,
        entity_id: int,
        values: dict[str, Any] | None = None,
        conditions: tuple = (),
    ) -> Any:
        """
        Write ``transition`` with a conditional UPDATE and return the
        refreshed row.

        Args:
            values: Extra columns to set alongside the state.
            conditions: Extra WHERE clauses (e.g. the review expiry guard).

        Raises:
            WriteConflictError: the UPDATE matched no row.
        """
        model = binding.model
        column = binding.column
        from_stored = binding.stored(transition.from_state)
        state_matches = column.is_(None) if from_stored is None else column == from_stored

        stmt = (
            update(model)
            .where(model.id == entity_id, state_matches, *conditions)
            .values({binding.state_attr: binding.stored(transition.to_state), **(values or {})})
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "transition_write_conflict",
                extra={
                    "workflow": binding.workflow.name,
                    "entity_type": binding.entity_type,
                    "entity_id": entity_id,
                    "expected_state": transition.from_state,
                    "action": transition.action,
                },
            )
            raise WriteConflictError(binding.entity_type, entity_id, transition.from_state)

        logger.debug(
            "transition_written",
            extra={
                "workflow": binding.workflow.name,
                "entity_id": entity_id,
                "from_state": transition.from_state,
                "to_state": transition.to_state,
                "action": transition.action,
            },
        )
        return self.session.get(model, entity_id, populate_existing=True)

    def transition(
        self,
        binding: WorkflowBinding,
        row: Any,
        action: str,
        values: dict[str, Any] | None = None,
        conditions: tuple = (),
    ) -> Any:
        """``check`` then ``apply``."""
        t = self.check(binding, row, action)
        return self.apply(binding, t, row.id, values=values, conditions=conditions)
