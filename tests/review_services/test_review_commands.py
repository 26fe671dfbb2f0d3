"""Client-side command validation tests.  No store access is involved."""

import pytest

from review_kernel.domain.dtos import AdminIdentity, TokenKind
from review_kernel.exceptions import ValidationError
from review_services.commands import (
    AcceptReview,
    CancelClarification,
    ClearClarification,
    DisputeReview,
    ReplyClarification,
    RespondClarification,
)

ADMIN = AdminIdentity(email="office@example.com")


class TestTokenCommands:

    def test_accept_needs_only_token(self):
        AcceptReview(token="abc").validate()

    def test_missing_token(self):
        with pytest.raises(ValidationError) as exc_info:
            AcceptReview(token=" ").validate()
        assert exc_info.value.field == "token"

    @pytest.mark.parametrize("notes", ["", "  \n "])
    def test_dispute_needs_notes(self, notes):
        with pytest.raises(ValidationError) as exc_info:
            DisputeReview(token="abc", notes=notes).validate()
        assert exc_info.value.field == "notes"

    def test_respond_needs_message(self):
        with pytest.raises(ValidationError) as exc_info:
            RespondClarification(token="abc", message="").validate()
        assert exc_info.value.field == "message"

    def test_kinds(self):
        assert AcceptReview.kind is DisputeReview.kind is TokenKind.REVIEW
        assert RespondClarification.kind is TokenKind.CLARIFICATION


class TestAdminCommands:

    def test_reply_needs_message(self):
        with pytest.raises(ValidationError):
            ReplyClarification(assignment_id=1, admin=ADMIN, message=" ").validate()

    @pytest.mark.parametrize(
        "command",
        [
            ClearClarification(assignment_id=1, admin=AdminIdentity(email="")),
            CancelClarification(assignment_id=1, admin=None),
        ],
    )
    def test_admin_required(self, command):
        with pytest.raises(ValidationError) as exc_info:
            command.validate()
        assert exc_info.value.field == "admin"

    def test_valid_admin_commands(self):
        ReplyClarification(assignment_id=1, admin=ADMIN, message="Which unit?").validate()
        ClearClarification(assignment_id=1, admin=ADMIN, apply_suggested_description=True).validate()
        CancelClarification(assignment_id=1, admin=ADMIN).validate()

    def test_commands_are_frozen(self):
        command = ClearClarification(assignment_id=1, admin=ADMIN)
        with pytest.raises(AttributeError):
            command.assignment_id = 2
