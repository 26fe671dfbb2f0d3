"""
AuditorService -- tamper-evident audit trail and hash chain maintenance.

Responsibility:
    Creates immutable, hash-chained audit events for every decision taken
    through a review or clarification link and every admin action.
    Provides chain validation for tamper detection and per-entity traces.

Architecture position:
    Kernel > Services -- imperative shell, called by ReviewService,
    ClarificationService and DescriptionReconciler.

Invariants enforced:
    - Audit chain integrity: ``hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash)``.
    - Append-only: audit events are never modified or deleted (ORM
      listeners on the AuditEvent model).

Failure modes:
    - AuditChainBrokenError: recomputed hash does not match stored hash,
      or prev_hash does not match the predecessor's hash.

Audit relevance:
    This IS the audit service.  All events flow through
    ``_create_audit_event()``.  Two transactions appending concurrently can
    read the same predecessor hash; ``validate_chain()`` reports that as a
    broken link rather than hiding it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from review_kernel.domain.clock import Clock, SystemClock
from review_kernel.domain.dtos import CustomerAction
from review_kernel.exceptions import AuditChainBrokenError
from review_kernel.logging_config import get_logger
from review_kernel.models.audit_event import AuditAction, AuditEvent
from review_kernel.utils.hashing import hash_audit_event, hash_payload

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    id: int
    action: AuditAction
    occurred_at: datetime
    actor: str
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit events for one entity in chronological order."""

    entity_type: str
    entity_id: str
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(e.action for e in self.entries)


class AuditorService:
    """
    Service for creating and validating tamper-evident audit events.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def _get_last_hash(self) -> str | None:
        last_event = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.id.desc()).limit(1)
        ).scalar_one_or_none()
        return last_event.hash if last_event else None

    def _create_audit_event(
        self,
        entity_type: str,
        entity_id: int | str,
        action: AuditAction,
        actor: str,
        payload: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """
        Create a new audit event linked to its predecessor.

        Postconditions:
            - A new ``AuditEvent`` row is flushed with
              ``hash == H(entity_type, entity_id, action, payload_hash,
              prev_hash)``.
        """
        prev_hash = self._get_last_hash()
        payload_data = payload or {}
        computed_payload_hash = hash_payload(payload_data)

        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = AuditEvent(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            actor=actor,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self._session.add(audit_event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
                "audit_id": audit_event.id,
            },
        )
        return audit_event

    # Domain-specific recording methods

    def record_review_decision(
        self,
        token_id: int,
        report_period_id: int,
        outcome: CustomerAction,
        actor: str,
        has_notes: bool,
    ) -> AuditEvent:
        action = (
            AuditAction.REVIEW_ACCEPTED
            if outcome is CustomerAction.ACCEPTED
            else AuditAction.REVIEW_DISPUTED
        )
        return self._create_audit_event(
            entity_type="ReviewToken",
            entity_id=token_id,
            action=action,
            actor=actor,
            payload={
                "report_period_id": report_period_id,
                "outcome": outcome.value,
                "has_notes": has_notes,
            },
        )

    def record_clarification_assigned(
        self,
        assignment_id: int,
        time_entry_id: int,
        batch_id: str | None,
        actor: str,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="ClarificationAssignment",
            entity_id=assignment_id,
            action=AuditAction.CLARIFICATION_ASSIGNED,
            actor=actor,
            payload={"time_entry_id": time_entry_id, "batch_id": batch_id},
        )

    def record_clarification_responded(
        self,
        assignment_id: int,
        message_id: int,
        actor: str,
        has_suggestion: bool,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="ClarificationAssignment",
            entity_id=assignment_id,
            action=AuditAction.CLARIFICATION_RESPONDED,
            actor=actor,
            payload={"message_id": message_id, "has_suggestion": has_suggestion},
        )

    def record_clarification_replied(
        self,
        assignment_id: int,
        message_id: int,
        actor: str,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="ClarificationAssignment",
            entity_id=assignment_id,
            action=AuditAction.CLARIFICATION_REPLIED,
            actor=actor,
            payload={"message_id": message_id},
        )

    def record_clarification_cleared(
        self,
        assignment_id: int,
        actor: str,
        description_applied: bool,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="ClarificationAssignment",
            entity_id=assignment_id,
            action=AuditAction.CLARIFICATION_CLEARED,
            actor=actor,
            payload={"description_applied": description_applied},
        )

    def record_clarification_cancelled(self, assignment_id: int, actor: str) -> AuditEvent:
        return self._create_audit_event(
            entity_type="ClarificationAssignment",
            entity_id=assignment_id,
            action=AuditAction.CLARIFICATION_CANCELLED,
            actor=actor,
        )

    def record_description_applied(
        self,
        time_entry_id: int,
        previous: str,
        applied: str,
        actor: str,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="TimeEntry",
            entity_id=time_entry_id,
            action=AuditAction.DESCRIPTION_APPLIED,
            actor=actor,
            payload={"previous": previous, "applied": applied},
        )

    # Chain validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: If chain validation fails at any point.
        """
        events = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.id)
        ).scalars().all()

        if not events:
            return True

        if events[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"audit_id": events[0].id})
            raise AuditChainBrokenError(str(events[0].id), "None", events[0].prev_hash)

        for i, event in enumerate(events):
            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                action=event.action,
                payload_hash=hash_payload(event.payload or {}),
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"audit_id": event.id})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)

            if i > 0:
                expected_prev = events[i - 1].hash
                if event.prev_hash != expected_prev:
                    logger.critical("audit_chain_broken", extra={"audit_id": event.id})
                    raise AuditChainBrokenError(
                        str(event.id), expected_prev, event.prev_hash or "None",
                    )

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    def get_trace(self, entity_type: str, entity_id: int | str) -> AuditTrace:
        """All audit events for an entity, oldest first."""
        events = self._session.execute(
            select(AuditEvent)
            .where(
                AuditEvent.entity_type == entity_type,
                AuditEvent.entity_id == str(entity_id),
            )
            .order_by(AuditEvent.id)
        ).scalars().all()

        return AuditTrace(
            entity_type=entity_type,
            entity_id=str(entity_id),
            entries=tuple(
                AuditTraceEntry(
                    id=event.id,
                    action=AuditAction(event.action),
                    occurred_at=event.occurred_at,
                    actor=event.actor,
                    payload=event.payload or {},
                    hash=event.hash,
                )
                for event in events
            ),
        )
