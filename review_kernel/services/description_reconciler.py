"""
DescriptionReconciler -- the only writer of ``time_entries.description``.

Responsibility:
    Diffs a time entry's description against a suggested replacement, and
    applies the replacement when an admin clears a clarification with
    "apply suggestion".

Architecture position:
    Kernel > Services.  Called by ClarificationService.clear().

Invariants enforced:
    - ``apply`` writes exactly one column on exactly one row.  Approval,
      lock and billable-status columns are never touched.
    - Applying an unchanged description is a logged no-op, not an error.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm import Session

from review_kernel.domain.clock import Clock
from review_kernel.domain.description import DescriptionDiff, diff_description
from review_kernel.exceptions import TimeEntryNotFoundError
from review_kernel.logging_config import get_logger
from review_kernel.models.billing import TimeEntryModel
from review_kernel.services.auditor_service import AuditorService
from review_kernel.services.base import BaseService

logger = get_logger("services.description_reconciler")


class DescriptionReconciler(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
    ):
        super().__init__(session, clock)
        self.auditor = auditor or AuditorService(session, self.clock)

    def _entry(self, time_entry_id: int) -> TimeEntryModel:
        entry = self.session.get(TimeEntryModel, time_entry_id)
        if entry is None:
            raise TimeEntryNotFoundError(time_entry_id)
        return entry

    def diff(self, time_entry_id: int, suggested: str | None) -> DescriptionDiff:
        """Current description of the entry vs. ``suggested``."""
        return diff_description(self._entry(time_entry_id).description, suggested)

    def apply(self, time_entry_id: int, new_description: str, actor: str) -> bool:
        """
        Replace the entry's description.

        Returns:
            True when the description changed, False for a no-op.

        Raises:
            TimeEntryNotFoundError: no such entry.
        """
        d = self.diff(time_entry_id, new_description)
        if not d.changed:
            logger.info(
                "description_apply_noop",
                extra={"time_entry_id": time_entry_id},
            )
            return False

        self.session.execute(
            update(TimeEntryModel)
            .where(TimeEntryModel.id == time_entry_id)
            .values(description=d.suggested)
            .execution_options(synchronize_session=False)
        )
        self.session.get(TimeEntryModel, time_entry_id, populate_existing=True)
        self.auditor.record_description_applied(
            time_entry_id=time_entry_id,
            previous=d.current,
            applied=d.suggested,
            actor=actor,
        )
        logger.info("description_applied", extra={"time_entry_id": time_entry_id})
        return True
