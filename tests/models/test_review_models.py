"""
ORM model tests: column types, check constraints and DTO conversion.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError, StatementError

from review_kernel.domain.dtos import ClarificationStatus, TokenKind
from review_kernel.models.clarification import (
    ClarificationAssignmentModel,
    ClarificationMessageModel,
)


class TestUTCDateTime:

    def test_offset_stored_as_utc_and_loaded_aware(self, session, create_report_period, create_review_token):
        period = create_report_period()
        eastern = timezone(timedelta(hours=-5))
        token = create_review_token(period.id, expires_at=datetime(2024, 1, 15, 4, 0, tzinfo=eastern))
        session.expire(token)

        assert token.expires_at == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
        assert token.expires_at.utcoffset() == timedelta(0)

    def test_naive_rejected(self, session, create_report_period, create_review_token):
        period = create_report_period()
        with pytest.raises(StatementError, match="Naive datetime"):
            create_review_token(period.id, expires_at=datetime(2024, 1, 15, 9, 0))


class TestConstraints:

    def test_unknown_assignment_status(self, session, deterministic_clock, create_time_entry):
        entry = create_time_entry()
        session.add(ClarificationAssignmentModel(
            time_entry_id=entry.id,
            assigned_by="office@example.com",
            assigned_to_name="Dana Reyes",
            assigned_to_email="dana@example.com",
            question="Which unit?",
            status="archived",
            created_at=deterministic_clock.now(),
        ))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_empty_question(self, session, deterministic_clock, create_time_entry):
        entry = create_time_entry()
        session.add(ClarificationAssignmentModel(
            time_entry_id=entry.id,
            assigned_by="office@example.com",
            assigned_to_name="Dana Reyes",
            assigned_to_email="dana@example.com",
            question="",
            created_at=deterministic_clock.now(),
        ))
        with pytest.raises(IntegrityError):
            session.flush()

    @pytest.mark.parametrize("field, value", [("message", ""), ("sender_role", "customer")])
    def test_message_constraints(self, session, deterministic_clock, clarification_setup, field, value):
        _, assignment, _ = clarification_setup
        values = dict(
            assignment_id=assignment.id,
            sender_role="admin",
            sender_name="Office Admin",
            sender_email="office@example.com",
            message="hello",
            created_at=deterministic_clock.now(),
        )
        values[field] = value
        session.add(ClarificationMessageModel(**values))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_review_token_outcome_values(self, session, create_report_period, create_review_token):
        period = create_report_period()
        with pytest.raises(IntegrityError):
            create_review_token(period.id, customer_action="maybe")

    def test_duplicate_token_string(self, session, create_report_period, create_review_token):
        period = create_report_period()
        create_review_token(period.id, token="same")
        with pytest.raises(IntegrityError):
            create_review_token(period.id, token="same")


class TestToDto:

    def test_assignment_defaults_to_pending(self, clarification_setup):
        _, assignment, _ = clarification_setup
        dto = assignment.to_dto()
        assert dto.status is ClarificationStatus.PENDING
        assert not dto.is_terminal

    def test_token_dto_omits_secret(self, review_setup):
        _, _, token = review_setup
        dto = token.to_dto()
        assert dto.kind is TokenKind.REVIEW
        assert dto.subject_id == token.report_period_id
        assert not hasattr(dto, "token")
