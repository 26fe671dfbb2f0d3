"""Description reconciler tests."""

import pytest

from review_kernel.exceptions import TimeEntryNotFoundError
from review_kernel.models.audit_event import AuditAction


class TestDiff:

    def test_diff_against_entry(self, reconciler, create_time_entry):
        entry = create_time_entry(description="Service call")

        d = reconciler.diff(entry.id, "Replaced gasket")

        assert d.changed
        assert d.current == "Service call"

    def test_diff_entry_without_description(self, reconciler, create_time_entry):
        entry = create_time_entry(description=None)
        assert reconciler.diff(entry.id, "").changed is False

    def test_diff_unknown_entry(self, reconciler, engine):
        with pytest.raises(TimeEntryNotFoundError):
            reconciler.diff(31337, "x")


class TestApply:

    def test_apply_writes_only_description(self, reconciler, session, create_time_entry):
        entry = create_time_entry(description="Service call")
        before = (entry.hours, entry.minutes, entry.billable_status, entry.approval_status, entry.is_locked)

        assert reconciler.apply(entry.id, "Replaced gasket", actor="office@example.com") is True

        session.refresh(entry)
        assert entry.description == "Replaced gasket"
        assert (
            entry.hours, entry.minutes, entry.billable_status, entry.approval_status, entry.is_locked,
        ) == before

    def test_apply_audited(self, reconciler, auditor_service, create_time_entry):
        entry = create_time_entry(description=None)
        reconciler.apply(entry.id, "Replaced gasket", actor="office@example.com")

        trace = auditor_service.get_trace("TimeEntry", entry.id)

        assert trace.actions == (AuditAction.DESCRIPTION_APPLIED,)
        assert trace.entries[0].actor == "office@example.com"
        assert trace.entries[0].payload == {"previous": "", "applied": "Replaced gasket"}

    def test_unchanged_is_noop(self, reconciler, auditor_service, create_time_entry, captured_logs):
        entry = create_time_entry(description="Service call")

        assert reconciler.apply(entry.id, "Service call", actor="office@example.com") is False

        assert auditor_service.get_trace("TimeEntry", entry.id).is_empty
        assert any(r["message"] == "description_apply_noop" for r in captured_logs())

    def test_apply_unknown_entry(self, reconciler, engine):
        with pytest.raises(TimeEntryNotFoundError):
            reconciler.apply(31337, "x", actor="office@example.com")
