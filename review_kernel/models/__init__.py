"""ORM models for the review kernel."""

from review_kernel.models.access_token import (
    TOKEN_MODELS,
    AccessTokenMixin,
    ClarificationTokenModel,
    ReviewTokenModel,
)
from review_kernel.models.audit_event import AuditAction, AuditEvent
from review_kernel.models.billing import CustomerModel, ReportPeriodModel, TimeEntryModel
from review_kernel.models.clarification import (
    ClarificationAssignmentModel,
    ClarificationMessageModel,
)

__all__ = [
    "AccessTokenMixin",
    "AuditAction",
    "AuditEvent",
    "ClarificationAssignmentModel",
    "ClarificationMessageModel",
    "ClarificationTokenModel",
    "CustomerModel",
    "ReportPeriodModel",
    "ReviewTokenModel",
    "TimeEntryModel",
    "TOKEN_MODELS",
]
