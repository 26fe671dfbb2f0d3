"""
Token read path tests.

Verifies:
- Review tokens load the report period's billable entries for its week
- Expired and finalized tokens still load their records read-only
- Not-found is opaque for unknown tokens and missing subjects
- Batch clarification tokens load every assignment in ascending id order
- Resolution never records a visit
"""

from datetime import date, timedelta

import pytest

from review_kernel.domain.access import AccessState, ReviewState
from review_kernel.domain.clock import SequentialClock
from review_kernel.domain.dtos import CustomerAction, TokenKind
from review_kernel.exceptions import TokenNotFoundError
from review_kernel.models.clarification import ClarificationMessageModel
from review_kernel.selectors.access_selector import AccessSelector


# ---------------------------------------------------------------------------
# Review tokens
# ---------------------------------------------------------------------------


class TestResolveReview:

    def test_active_review(self, access_selector, review_setup, customer):
        period, entries, token = review_setup

        resolved = access_selector.resolve_review(token.token)

        assert resolved.state is AccessState.ACTIVE
        assert resolved.review_state is ReviewState.ISSUED
        assert resolved.report_period.id == period.id
        assert resolved.customer.id == customer.id
        assert resolved.remaining_business_days == 5
        # ordered by txn_date, then id
        assert [e.id for e in resolved.entries] == [entries[1].id, entries[0].id]
        assert str(resolved.total_hours) == "5.50"

    def test_entries_filtered_to_customer_week_and_billable(
        self, access_selector, create_customer, create_report_period,
        create_time_entry, create_review_token,
    ):
        period = create_report_period()
        kept = create_time_entry(txn_date=date(2024, 1, 7))
        create_time_entry(txn_date=date(2024, 1, 8))
        create_time_entry(txn_date=date(2023, 12, 31))
        create_time_entry(billable_status="NotBillable")
        other = create_customer("Acme Plumbing")
        create_time_entry(customer_id=other.id)
        token = create_review_token(period.id)

        resolved = access_selector.resolve_review(token.token)

        assert [e.id for e in resolved.entries] == [kept.id]

    def test_configured_billable_status(
        self, session, deterministic_clock, create_report_period,
        create_time_entry, create_review_token,
    ):
        period = create_report_period()
        create_time_entry(billable_status="Billable")
        flagged = create_time_entry(billable_status="HasBeenBilled")
        token = create_review_token(period.id)

        selector = AccessSelector(session, deterministic_clock, billable_status="HasBeenBilled")

        assert [e.id for e in selector.resolve_review(token.token).entries] == [flagged.id]

    def test_available_customers_sorted(
        self, access_selector, create_customer, create_report_period, create_review_token,
    ):
        create_customer("Zephyr Labs")
        create_customer("Acme Plumbing")
        period = create_report_period()
        token = create_review_token(period.id)

        names = [c.display_name for c in access_selector.resolve_review(token.token).available_customers]

        assert names == ["Acme Plumbing", "Harbor Mechanical", "Zephyr Labs"]

    def test_expired_review_still_loads(
        self, access_selector, deterministic_clock, create_report_period,
        create_time_entry, create_review_token,
    ):
        period = create_report_period()
        create_time_entry()
        token = create_review_token(
            period.id, expires_at=deterministic_clock.now() - timedelta(days=1),
        )

        resolved = access_selector.resolve_review(token.token)

        assert resolved.state is AccessState.EXPIRED
        assert resolved.expired
        assert resolved.review_state is ReviewState.EXPIRED_PENDING_SWEEP
        assert resolved.remaining_business_days == 0
        assert len(resolved.entries) == 1
        assert resolved.token.customer_action is None

    def test_finalized_wins_over_expired(
        self, access_selector, deterministic_clock, create_report_period, create_review_token,
    ):
        period = create_report_period(status="accepted")
        token = create_review_token(
            period.id,
            expires_at=deterministic_clock.now() - timedelta(days=3),
            customer_action="accepted",
        )

        resolved = access_selector.resolve_review(token.token)

        assert resolved.state is AccessState.ALREADY_FINALIZED
        assert resolved.outcome is CustomerAction.ACCEPTED

    def test_resolution_is_read_only(self, access_selector, session, review_setup):
        _, _, token = review_setup

        first = access_selector.resolve_review(token.token)
        second = access_selector.resolve_review(token.token)

        assert first == second
        session.refresh(token)
        assert token.open_count == 0
        assert token.first_opened_at is None


class TestReviewNotFound:

    @pytest.mark.parametrize("value", ["no-such-token", ""])
    def test_unknown_token(self, access_selector, review_setup, value):
        with pytest.raises(TokenNotFoundError) as exc_info:
            access_selector.resolve_review(value)
        assert exc_info.value.code == "NOT_FOUND"

    def test_clarification_token_does_not_resolve_as_review(
        self, access_selector, clarification_setup,
    ):
        _, _, token = clarification_setup
        with pytest.raises(TokenNotFoundError):
            access_selector.resolve(TokenKind.REVIEW, token.token)

    def test_missing_report_period(self, access_selector, engine, create_review_token):
        if engine.dialect.name != "sqlite":
            pytest.skip("dangling reference needs a backend without enforced foreign keys")
        token = create_review_token(report_period_id=999)

        with pytest.raises(TokenNotFoundError) as exc_info:
            access_selector.resolve_review(token.token)
        assert str(exc_info.value) == "Link not found"

    def test_token_string_never_logged(self, access_selector, review_setup, captured_logs):
        _, _, token = review_setup
        access_selector.resolve_review(token.token)
        with pytest.raises(TokenNotFoundError):
            access_selector.resolve_review("secret-guess")

        dumped = repr(captured_logs())
        assert token.token not in dumped
        assert "secret-guess" not in dumped


# ---------------------------------------------------------------------------
# Clarification tokens
# ---------------------------------------------------------------------------


class TestResolveClarification:

    def test_single_assignment(self, access_selector, clarification_setup, customer):
        entry, assignment, token = clarification_setup

        resolved = access_selector.resolve(TokenKind.CLARIFICATION, token.token)

        assert resolved.state is AccessState.ACTIVE
        assert resolved.assignment_ids == (assignment.id,)
        assert not resolved.is_batch
        assert [e.id for e in resolved.entries] == [entry.id]
        assert resolved.customers[customer.id].display_name == "Harbor Mechanical"
        assert resolved.prefill_description == "Service call"

    def test_batch_loads_all_in_ascending_id_order(
        self, access_selector, create_time_entry, create_assignment, create_clarification_token,
    ):
        entry = create_time_entry()
        batch = []
        for i in range(1, 10):
            row = create_assignment(entry.id, batch_id="b1" if i in (2, 5, 9) else None)
            if i in (2, 5, 9):
                batch.append(row.id)
        # subject is not the lowest id
        token = create_clarification_token(batch[1], batch_id="b1")

        resolved = access_selector.resolve_clarification(token.token)

        assert resolved.assignment_ids == tuple(sorted(batch))
        assert resolved.is_batch
        assert resolved.prefill_description == "Service call"

    def test_messages_ordered_by_created_at_then_id(
        self, session, access_selector, deterministic_clock, clarification_setup,
    ):
        _, assignment, token = clarification_setup
        t0 = deterministic_clock.now()
        stamps = [t0 + timedelta(minutes=5), t0, t0 + timedelta(minutes=5)]
        for i, stamp in enumerate(stamps):
            session.add(ClarificationMessageModel(
                assignment_id=assignment.id,
                sender_role="admin",
                sender_name="Office Admin",
                sender_email="office@example.com",
                message=f"m{i}",
                created_at=stamp,
            ))
            session.flush()

        resolved = access_selector.resolve_clarification(token.token)

        assert [m.message for m in resolved.messages] == ["m1", "m0", "m2"]

    def test_all_terminal_is_finalized(
        self, access_selector, deterministic_clock, create_time_entry,
        create_assignment, create_clarification_token,
    ):
        entry = create_time_entry()
        a1 = create_assignment(entry.id, status="cleared", batch_id="b2")
        create_assignment(entry.id, status="cancelled", batch_id="b2")
        token = create_clarification_token(
            a1.id, batch_id="b2", expires_at=deterministic_clock.now() - timedelta(days=1),
        )

        resolved = access_selector.resolve_clarification(token.token)

        assert resolved.already_finalized
        assert resolved.outcome == "resolved"
        assert resolved.open_assignments == ()

    def test_partially_open_batch_is_active(
        self, access_selector, create_time_entry, create_assignment, create_clarification_token,
    ):
        entry = create_time_entry()
        a1 = create_assignment(entry.id, status="cleared", batch_id="b3")
        create_assignment(entry.id, status="responded", batch_id="b3")
        token = create_clarification_token(a1.id, batch_id="b3")

        assert access_selector.resolve_clarification(token.token).active

    def test_batch_with_no_assignments_is_not_found(
        self, access_selector, clarification_setup, create_clarification_token,
    ):
        _, assignment, _ = clarification_setup
        token = create_clarification_token(assignment.id, batch_id="ghost-batch")

        with pytest.raises(TokenNotFoundError):
            access_selector.resolve_clarification(token.token)

    def test_state_follows_clock(self, session, clarification_setup):
        _, _, token = clarification_setup
        t0 = token.created_at
        clock = SequentialClock([t0, t0 + timedelta(days=30)])
        selector = AccessSelector(session, clock)

        assert selector.resolve_clarification(token.token).active
        assert selector.resolve_clarification(token.token).expired
