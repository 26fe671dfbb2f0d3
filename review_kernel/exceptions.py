"""
Typed Exception Hierarchy for the Review Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure of a review or clarification command is shown to a person
who clicked a link in an email.  The presentation layer needs to decide,
without parsing message strings, whether to show "link not found",
"window closed", "already resolved", a field-level validation message, or
"please reload".

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        gateway.submit(AcceptReview(token=token))
    except TokenExpiredError as e:
        render_window_closed(expired_at=e.expires_at)
    except AlreadyFinalizedError as e:
        render_outcome(e.outcome)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReviewKernelError (base)
    |
    +-- AccessError
    |   +-- TokenNotFoundError
    |   +-- TokenExpiredError
    |   +-- AlreadyFinalizedError
    |
    +-- ValidationError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |
    +-- ConcurrencyError
    |   +-- WriteConflictError
    |
    +-- RecordNotFoundError
    |   +-- AssignmentNotFoundError
    |   +-- TimeEntryNotFoundError
    |   +-- ReportPeriodNotFoundError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ConfigurationError
        +-- InvalidTimestampError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Access          | NOT_FOUND                   | Token does not resolve to anything
                | EXPIRED                     | Window passed, no action recorded
                | ALREADY_FINALIZED           | Outcome recorded / assignment terminal
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Empty dispute notes, empty message, ...
----------------|-----------------------------|-----------------------------------------
Workflow        | INVALID_TRANSITION          | No edge for (state, action)
----------------|-----------------------------|-----------------------------------------
Concurrency     | WRITE_CONFLICT              | Conditional update matched no row
----------------|-----------------------------|-----------------------------------------
Records         | ASSIGNMENT_NOT_FOUND        | Assignment id does not exist
                | TIME_ENTRY_NOT_FOUND        | Time entry id does not exist
                | REPORT_PERIOD_NOT_FOUND     | Report period id does not exist
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Editing a message or audit event
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_CHAIN_BROKEN          | Recomputed hash chain does not match
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Bad settings
                | INVALID_TIMESTAMP           | Expiry timestamp failed to parse

===============================================================================
HANDLING PATTERNS
===============================================================================

1. NOT_FOUND IS DELIBERATELY OPAQUE:

    TokenNotFoundError never carries the token and never says whether the
    token existed.  Render a generic "link not found" page.

2. WRITE CONFLICTS ARE NEVER RETRIED WITH THE SAME PAYLOAD:

    except WriteConflictError:
        ask_user_to_reload()

3. RE-SUBMISSION AFTER SUCCESS IS ALREADY_FINALIZED, NOT SUCCESS:

    A second accept on the same token raises AlreadyFinalizedError carrying
    the original outcome, so a client that lost the first response learns
    what actually happened.
"""


class ReviewKernelError(Exception):
    """
    Base exception for all review kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "REVIEW_KERNEL_ERROR"


# Access exceptions


class AccessError(ReviewKernelError):
    """Base exception for token access errors."""

    code: str = "ACCESS_ERROR"


class TokenNotFoundError(AccessError):
    """
    Token does not resolve to anything.

    The message is the same for unknown tokens and for tokens whose
    underlying records are gone, so callers cannot enumerate tokens.
    """

    code: str = "NOT_FOUND"

    def __init__(self) -> None:
        super().__init__("Link not found")


class TokenExpiredError(AccessError):
    """Token found but its window has passed with no action recorded."""

    code: str = "EXPIRED"

    def __init__(self, token_id: int, expires_at: str):
        self.token_id = token_id
        self.expires_at = expires_at
        super().__init__(f"Access token {token_id} expired at {expires_at}")


class AlreadyFinalizedError(AccessError):
    """
    The record is already in a terminal state.

    ``outcome`` is the recorded outcome (``accepted``/``disputed``) for
    review tokens, or the terminal status for assignments.
    """

    code: str = "ALREADY_FINALIZED"

    def __init__(self, entity_type: str, entity_id: int, outcome: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.outcome = outcome
        super().__init__(
            f"{entity_type} {entity_id} is already finalized ({outcome})"
        )


# Validation


class ValidationError(ReviewKernelError):
    """Command input failed validation; no store access was made."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Workflow


class WorkflowError(ReviewKernelError):
    """Base exception for workflow errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """No transition exists for the requested action from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, from_state: str, action: str):
        self.workflow = workflow
        self.from_state = from_state
        self.action = action
        super().__init__(
            f"Workflow {workflow}: no '{action}' transition from state '{from_state}'"
        )


# Concurrency


class ConcurrencyError(ReviewKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class WriteConflictError(ConcurrencyError):
    """
    The terminal-state guard tripped between resolve and submit.

    Raised when the conditional update gated on the pre-transition state
    matched no row.  Callers must reload, never resubmit the same payload.
    """

    code: str = "WRITE_CONFLICT"

    def __init__(self, entity_type: str, entity_id: int, expected_state: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_state = expected_state
        super().__init__(
            f"{entity_type} {entity_id} is no longer in state "
            f"'{expected_state}'; reload and try again"
        )


# Missing records


class RecordNotFoundError(ReviewKernelError):
    """Base exception for internal lookups by id."""

    code: str = "RECORD_NOT_FOUND"


class AssignmentNotFoundError(RecordNotFoundError):
    """Clarification assignment with given id was not found."""

    code: str = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, assignment_id: int):
        self.assignment_id = assignment_id
        super().__init__(f"Clarification assignment not found: {assignment_id}")


class TimeEntryNotFoundError(RecordNotFoundError):
    """Time entry with given id was not found."""

    code: str = "TIME_ENTRY_NOT_FOUND"

    def __init__(self, time_entry_id: int):
        self.time_entry_id = time_entry_id
        super().__init__(f"Time entry not found: {time_entry_id}")


class ReportPeriodNotFoundError(RecordNotFoundError):
    """Report period with given id was not found."""

    code: str = "REPORT_PERIOD_NOT_FOUND"

    def __init__(self, report_period_id: int):
        self.report_period_id = report_period_id
        super().__init__(f"Report period not found: {report_period_id}")


# Immutability


class ImmutabilityError(ReviewKernelError):
    """Base exception for immutability errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Audit


class AuditError(ReviewKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Stored audit hash does not match its recomputed value or predecessor."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, event_id: str, expected_hash: str, actual_hash: str):
        self.event_id = event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at event {event_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


# Configuration / data errors


class ConfigurationError(ReviewKernelError):
    """Base exception for configuration and stored-data errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidTimestampError(ConfigurationError):
    """A stored or configured timestamp could not be parsed."""

    code: str = "INVALID_TIMESTAMP"

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid timestamp {value!r}: {reason}")
