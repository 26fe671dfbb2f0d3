"""
review_services -- command construction and the write gateway.

Dependency direction:
    review_services/ -> review_kernel/, review_config/  (allowed)
    review_kernel/   -> review_services/                (FORBIDDEN)
"""

from review_services.access_session import AccessSession
from review_services.commands import (
    AcceptReview,
    CancelClarification,
    ClearClarification,
    DisputeReview,
    ReplyClarification,
    RespondClarification,
)
from review_services.gateway import CommandGateway, CommandResult, LocalCommandGateway
from review_services.orchestrator import ReviewOrchestrator

__all__ = [
    "AcceptReview",
    "AccessSession",
    "CancelClarification",
    "ClearClarification",
    "CommandGateway",
    "CommandResult",
    "DisputeReview",
    "LocalCommandGateway",
    "ReplyClarification",
    "RespondClarification",
    "ReviewOrchestrator",
]
