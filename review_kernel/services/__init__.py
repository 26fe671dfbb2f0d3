"""Write services.  Each flushes within the caller's transaction."""

from review_kernel.services.auditor_service import AuditorService, AuditTrace
from review_kernel.services.clarification_service import ClarificationService
from review_kernel.services.description_reconciler import DescriptionReconciler
from review_kernel.services.review_service import ReviewService
from review_kernel.services.transition_writer import TransitionWriter, WorkflowBinding
from review_kernel.services.visit_tracker import VisitGuard, VisitTracker

__all__ = [
    "AuditTrace",
    "AuditorService",
    "ClarificationService",
    "DescriptionReconciler",
    "ReviewService",
    "TransitionWriter",
    "VisitGuard",
    "VisitTracker",
    "WorkflowBinding",
]
