"""
Canonical workflow types (``review_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the two token-gated state machines.  The customer
review and the internal clarification are the same pattern -- a
transition table with terminal states that no write may leave -- so
Guard, Transition and Workflow are defined once, and ``find_transition``
is the one place that turns "state is terminal" into
``AlreadyFinalizedError``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from review_kernel.exceptions import AlreadyFinalizedError, InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the service does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a token-gated record.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``;
    ``terminal_states`` have no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} "
                f"not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action!r} "
                    f"references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state!r} "
                    f"has outgoing transition {t.action!r}"
                )

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def actions_from(self, state: str) -> tuple[str, ...]:
        """Actions available from ``state``, in table order."""
        return tuple(t.action for t in self.transitions if t.from_state == state)


def find_transition(
    workflow: Workflow,
    state: str,
    action: str,
    *,
    entity_type: str,
    entity_id: int,
) -> Transition:
    """Look up the transition for ``action`` from ``state``.

    Raises:
        AlreadyFinalizedError: ``state`` is terminal.  Checked first, so
            any command against a finished record reports the recorded
            outcome rather than a generic transition error.
        InvalidTransitionError: no edge for (state, action).
    """
    if workflow.is_terminal(state):
        raise AlreadyFinalizedError(entity_type, entity_id, state)
    for t in workflow.transitions:
        if t.from_state == state and t.action == action:
            return t
    raise InvalidTransitionError(workflow.name, state, action)


# ---------------------------------------------------------------------------
# Customer review
# ---------------------------------------------------------------------------

NOT_EXPIRED = Guard(
    name="not_expired",
    description="Review window is still open (expiry unset or in the future)",
)

REVIEW_ISSUED = "issued"
REVIEW_ACCEPTED = "accepted"
REVIEW_DISPUTED = "disputed"

REVIEW_WORKFLOW = Workflow(
    name="customer_review",
    description="Customer one-shot accept/dispute of a weekly time report",
    initial_state=REVIEW_ISSUED,
    states=(REVIEW_ISSUED, REVIEW_ACCEPTED, REVIEW_DISPUTED),
    transitions=(
        Transition(REVIEW_ISSUED, REVIEW_ACCEPTED, action="accept", guard=NOT_EXPIRED),
        Transition(REVIEW_ISSUED, REVIEW_DISPUTED, action="dispute", guard=NOT_EXPIRED),
    ),
    terminal_states=(REVIEW_ACCEPTED, REVIEW_DISPUTED),
)


# ---------------------------------------------------------------------------
# Internal clarification
# ---------------------------------------------------------------------------

CLARIFICATION_PENDING = "pending"
CLARIFICATION_RESPONDED = "responded"
CLARIFICATION_CLEARED = "cleared"
CLARIFICATION_CANCELLED = "cancelled"

CLARIFICATION_WORKFLOW = Workflow(
    name="internal_clarification",
    description="Threaded clarification of an ambiguous time entry",
    initial_state=CLARIFICATION_PENDING,
    states=(
        CLARIFICATION_PENDING,
        CLARIFICATION_RESPONDED,
        CLARIFICATION_CLEARED,
        CLARIFICATION_CANCELLED,
    ),
    transitions=(
        Transition(CLARIFICATION_PENDING, CLARIFICATION_RESPONDED, action="respond"),
        Transition(CLARIFICATION_RESPONDED, CLARIFICATION_RESPONDED, action="respond"),
        Transition(CLARIFICATION_PENDING, CLARIFICATION_PENDING, action="reply"),
        Transition(CLARIFICATION_RESPONDED, CLARIFICATION_RESPONDED, action="reply"),
        Transition(CLARIFICATION_PENDING, CLARIFICATION_CLEARED, action="clear"),
        Transition(CLARIFICATION_RESPONDED, CLARIFICATION_CLEARED, action="clear"),
        Transition(CLARIFICATION_PENDING, CLARIFICATION_CANCELLED, action="cancel"),
        Transition(CLARIFICATION_RESPONDED, CLARIFICATION_CANCELLED, action="cancel"),
    ),
    terminal_states=(CLARIFICATION_CLEARED, CLARIFICATION_CANCELLED),
)
