"""
Write commands (``review_services.commands``).

One frozen dataclass per named command.  ``validate()`` is the client-side
check: it looks only at the command's own fields, never at the store, so a
validation failure costs no round trip.  The gateway calls it again before
writing; the write path never trusts a caller to have done so.
"""

from __future__ import annotations

from dataclasses import dataclass

from review_kernel.domain.dtos import AdminIdentity, TokenKind
from review_kernel.exceptions import ValidationError


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class AcceptReview:
    token: str
    notes: str | None = None

    name = "accept"
    kind = TokenKind.REVIEW

    def validate(self) -> None:
        if _blank(self.token):
            raise ValidationError("token", "missing")


@dataclass(frozen=True)
class DisputeReview:
    token: str
    notes: str

    name = "dispute"
    kind = TokenKind.REVIEW

    def validate(self) -> None:
        if _blank(self.token):
            raise ValidationError("token", "missing")
        if _blank(self.notes):
            raise ValidationError("notes", "a dispute must explain what is wrong")


@dataclass(frozen=True)
class RespondClarification:
    token: str
    message: str
    suggested_description: str | None = None
    assignment_id: int | None = None

    name = "respond"
    kind = TokenKind.CLARIFICATION

    def validate(self) -> None:
        if _blank(self.token):
            raise ValidationError("token", "missing")
        if _blank(self.message):
            raise ValidationError("message", "a response message is required")


def _validate_admin(admin: AdminIdentity) -> None:
    if admin is None or _blank(admin.email):
        raise ValidationError("admin", "an admin identity is required")


@dataclass(frozen=True)
class ReplyClarification:
    assignment_id: int
    admin: AdminIdentity
    message: str

    name = "reply"

    def validate(self) -> None:
        _validate_admin(self.admin)
        if _blank(self.message):
            raise ValidationError("message", "a reply message is required")


@dataclass(frozen=True)
class ClearClarification:
    assignment_id: int
    admin: AdminIdentity
    apply_suggested_description: bool = False

    name = "clear"

    def validate(self) -> None:
        _validate_admin(self.admin)


@dataclass(frozen=True)
class CancelClarification:
    assignment_id: int
    admin: AdminIdentity

    name = "cancel"

    def validate(self) -> None:
        _validate_admin(self.admin)


Command = (
    AcceptReview
    | DisputeReview
    | RespondClarification
    | ReplyClarification
    | ClearClarification
    | CancelClarification
)
