"""
Command gateway tests.

Each command runs in its own transaction; the test session commits its
seed data first and reads results back after.
"""

from dataclasses import dataclass

import pytest

from review_kernel.domain.dtos import ClarificationStatus, CustomerAction, SenderRole
from review_kernel.exceptions import AlreadyFinalizedError
from review_kernel.models.access_token import ReviewTokenModel
from review_kernel.models.audit_event import AuditEvent
from review_services import (
    AcceptReview,
    CancelClarification,
    ClearClarification,
    DisputeReview,
    LocalCommandGateway,
    ReplyClarification,
    RespondClarification,
)


@pytest.fixture
def gateway(session_factory, settings, deterministic_clock):
    return LocalCommandGateway(session_factory, settings, deterministic_clock)


class TestReviewCommands:

    def test_accept_commits(self, gateway, session, review_setup):
        period, _, token = review_setup
        session.commit()

        result = gateway.submit(AcceptReview(token=token.token))

        assert result.ok
        assert result.value.customer_action is CustomerAction.ACCEPTED
        session.expire_all()
        assert token.customer_action == "accepted"
        assert period.status == "accepted"
        assert session.query(AuditEvent).count() == 1

    def test_second_decision_is_typed_failure(self, gateway, session, review_setup):
        _, _, token = review_setup
        session.commit()
        gateway.submit(AcceptReview(token=token.token))

        result = gateway.submit(DisputeReview(token=token.token, notes="wrong hours"))

        assert not result.ok
        assert result.code == "ALREADY_FINALIZED"
        with pytest.raises(AlreadyFinalizedError):
            result.unwrap()

    def test_invalid_command_never_reaches_store(self, gateway, session, review_setup, captured_logs):
        _, _, token = review_setup
        session.commit()

        result = gateway.submit(DisputeReview(token=token.token, notes=""))

        assert result.code == "VALIDATION_ERROR"
        assert not any(r["message"] == "transaction_started" for r in captured_logs())

    def test_failure_rolls_back_whole_command(self, gateway, session, engine, create_review_token):
        if engine.dialect.name != "sqlite":
            pytest.skip("dangling reference needs a backend without enforced foreign keys")
        token = create_review_token(report_period_id=999)
        session.commit()

        result = gateway.submit(AcceptReview(token=token.token))

        assert result.code == "REPORT_PERIOD_NOT_FOUND"
        session.expire_all()
        assert session.get(ReviewTokenModel, token.id).customer_action is None
        assert session.query(AuditEvent).count() == 0

    def test_outcome_logged(self, gateway, session, review_setup, captured_logs):
        _, _, token = review_setup
        session.commit()
        gateway.submit(AcceptReview(token=token.token))
        gateway.submit(AcceptReview(token=token.token))

        outcomes = [
            (r["message"], r.get("error_code"))
            for r in captured_logs()
            if r["message"] in ("command_succeeded", "command_failed")
        ]
        assert outcomes == [("command_succeeded", None), ("command_failed", "ALREADY_FINALIZED")]


class TestClarificationCommands:

    def test_full_thread(self, gateway, session, admin, clarification_setup):
        entry, assignment, token = clarification_setup
        session.commit()

        assert gateway.submit(ReplyClarification(assignment.id, admin, "Which unit?")).ok
        responded = gateway.submit(
            RespondClarification(token.token, "Unit 3, replaced gasket", "Replaced gasket"),
        )
        cleared = gateway.submit(ClearClarification(assignment.id, admin, apply_suggested_description=True))

        assert responded.value[0].status is ClarificationStatus.RESPONDED
        assert cleared.value.status is ClarificationStatus.CLEARED
        session.expire_all()
        assert entry.description == "Replaced gasket"

    def test_reply_returns_message(self, gateway, session, admin, clarification_setup):
        _, assignment, _ = clarification_setup
        session.commit()

        result = gateway.submit(ReplyClarification(assignment.id, admin, "Which unit?"))

        assert result.value.sender_role is SenderRole.ADMIN

    def test_cancel_then_respond(self, gateway, session, admin, clarification_setup):
        _, assignment, token = clarification_setup
        session.commit()

        assert gateway.submit(CancelClarification(assignment.id, admin)).ok
        result = gateway.submit(RespondClarification(token.token, "too late"))

        assert result.code == "ALREADY_FINALIZED"

    def test_unknown_assignment(self, gateway, admin, engine):
        result = gateway.submit(CancelClarification(12345, admin))
        assert result.code == "ASSIGNMENT_NOT_FOUND"


@dataclass(frozen=True)
class _Unsupported:
    name = "unsupported"

    def validate(self) -> None:
        return None


class TestDefects:

    def test_unknown_command_type_propagates(self, gateway, engine):
        with pytest.raises(TypeError, match="Unsupported command"):
            gateway.submit(_Unsupported())
