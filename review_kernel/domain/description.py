"""Suggested-description diff (pure)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DescriptionDiff:
    """Current vs. suggested description of a time entry.

    ``changed`` is exact string inequality; None compares as "".
    """

    changed: bool
    current: str
    suggested: str


def diff_description(current: str | None, suggested: str | None) -> DescriptionDiff:
    """Compare a time entry's description with a proposed replacement.

    No normalization beyond treating None as the empty string: whitespace
    and case differences count as changes.
    """
    cur = current or ""
    sug = suggested or ""
    return DescriptionDiff(changed=cur != sug, current=cur, suggested=sug)
