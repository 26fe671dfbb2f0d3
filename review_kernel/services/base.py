"""
BaseService -- abstract base for the kernel's write services.

Responsibility:
    Common constructor and session-handling contract.  Services persist
    through ``session.flush()`` and never commit or roll back; the caller
    (``session_scope`` in the command gateway, or a test fixture) owns the
    transaction, so a command and its audit event land atomically.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
"""

from abc import ABC

from sqlalchemy.orm import Session

from review_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - ``self.clock`` is the only source of "now".
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
