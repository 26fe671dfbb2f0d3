"""Combined customer review notes tests."""

from datetime import date

from review_kernel.domain.dtos import TimeEntryInfo
from review_kernel.domain.review_notes import compose_review_notes, entry_label

ENTRY = TimeEntryInfo(
    id=1,
    txn_date=date(2024, 1, 9),
    employee_name="Dana Reyes",
    customer_id=1,
    description="Service call",
    hours=2,
    minutes=30,
)


class TestEntryLabel:

    def test_known_entry(self):
        assert entry_label(1, [ENTRY]) == "Tue 1/9 - Dana Reyes - 2.50 hrs"

    def test_unknown_entry(self):
        assert entry_label(99, [ENTRY]) == "Entry #99"


class TestComposeReviewNotes:

    def test_nothing_entered(self):
        assert compose_review_notes(None) == ""
        assert compose_review_notes("   ", flagged={}, reassigned={}) == ""

    def test_general_comments_only(self):
        assert compose_review_notes("  Looks good ") == "General Comments:\nLooks good"

    def test_sections_in_order(self):
        notes = compose_review_notes(
            "Please check Tuesday",
            flagged={1: "", 2: " wrong day "},
            reassigned={1: "Acme Plumbing"},
            entries=[ENTRY],
        )
        assert notes == (
            "General Comments:\nPlease check Tuesday\n"
            "Reassigned Entries:\n"
            "  -> Tue 1/9 - Dana Reyes - 2.50 hrs\n"
            '    Reassign to: "Acme Plumbing"\n'
            "Flagged Entries:\n"
            "  * Tue 1/9 - Dana Reyes - 2.50 hrs\n"
            "  * Entry #2\n"
            '    "wrong day"'
        )

    def test_flags_without_comments(self):
        notes = compose_review_notes(None, flagged={1: "too long"}, entries=[ENTRY])
        assert notes.startswith("Flagged Entries:")
        assert "General Comments" not in notes
