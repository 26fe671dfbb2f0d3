"""
Combined customer review notes (``review_kernel.domain.review_notes``).

A customer reviewing a weekly report can leave general comments, flag
individual entries (optionally with a note), and ask for entries to be
moved to another customer/project.  All of it is submitted as the single
``customer_notes`` string of the accept or dispute command, in this
order: general comments, reassignments, flags.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from review_kernel.domain.dtos import TimeEntryInfo


def entry_label(entry_id: int, entries: Sequence[TimeEntryInfo]) -> str:
    """Short human label for an entry: ``Tue 1/9 - Dana Reyes - 2.50 hrs``."""
    for entry in entries:
        if entry.id == entry_id:
            day = entry.txn_date.strftime("%a")
            return (
                f"{day} {entry.txn_date.month}/{entry.txn_date.day} - "
                f"{entry.employee_name} - {entry.duration_hours:.2f} hrs"
            )
    return f"Entry #{entry_id}"


def compose_review_notes(
    general_comments: str | None,
    flagged: Mapping[int, str] | None = None,
    reassigned: Mapping[int, str] | None = None,
    entries: Sequence[TimeEntryInfo] = (),
) -> str:
    """Build the combined notes string.

    Args:
        general_comments: Free text; blank is omitted.
        flagged: entry id -> note ("" for a flag with no note).
        reassigned: entry id -> customer/project name to move it to.
        entries: Entries on the report, for labels.

    Returns:
        The combined notes, or "" when nothing was entered.
    """
    parts: list[str] = []

    comments = (general_comments or "").strip()
    if comments:
        parts.append(f"General Comments:\n{comments}")

    if reassigned:
        parts.append("Reassigned Entries:")
        for entry_id, target in reassigned.items():
            parts.append(
                f"  -> {entry_label(entry_id, entries)}\n"
                f'    Reassign to: "{target}"'
            )

    if flagged:
        parts.append("Flagged Entries:")
        for entry_id, note in flagged.items():
            line = f"  * {entry_label(entry_id, entries)}"
            if note and note.strip():
                line += f'\n    "{note.strip()}"'
            parts.append(line)

    return "\n".join(parts)
