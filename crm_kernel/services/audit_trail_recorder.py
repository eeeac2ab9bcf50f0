"""
AuditTrailRecorder -- append-only workflow audit trail.

Responsibility:
    Appends one immutable ``AuditRecord`` per accepted transition and serves
    history queries over the trail.

Architecture position:
    Kernel > Services -- imperative shell.  Called by every WorkflowService
    inside the same SAVEPOINT as the entity change it documents.

Invariants enforced:
    - One record per accepted transition; none for rejected ones (the
      caller only records after validation and rules pass).
    - Per-entity ``seq`` from SequenceService, strictly increasing.
    - Never fails silently: any storage failure raises
      PersistenceFailureError so the enclosing SAVEPOINT rolls back the
      entity change too.

Audit relevance:
    Every record carries actor id and display name, from/to state, optional
    reason and a Clock-sourced UTC timestamp.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_kernel.domain.clock import Clock, SystemClock
from crm_kernel.domain.dtos import AuditRecord
from crm_kernel.domain.identity import Principal
from crm_kernel.domain.states import EntityKind, WorkflowState, state_label
from crm_kernel.exceptions import PersistenceFailureError
from crm_kernel.logging_config import get_logger
from crm_kernel.models.audit_record import AuditRecordModel
from crm_kernel.services.sequence_service import SequenceService, audit_sequence_name
from crm_kernel.services.workflow_store import SqlAlchemyWorkflowStore, WorkflowStore

logger = get_logger("services.audit_trail")


def _state_value(state: WorkflowState | str) -> str:
    return state.value if isinstance(state, WorkflowState) else str(state)


class AuditTrailRecorder:
    """
    Writes and reads the workflow audit trail.

    Contract:
        ``record`` is called inside the caller's transaction.  It flushes but
        does not commit.

    Non-goals:
        - Does not validate transitions; it documents what the caller
          already accepted.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        store: WorkflowStore | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._store = store or SqlAlchemyWorkflowStore(session)
        self._sequences = sequence_service or SequenceService(session)

    def record(
        self,
        kind: EntityKind,
        entity_id: UUID,
        from_state: WorkflowState | str,
        to_state: WorkflowState | str,
        actor: Principal,
        reason: str | None = None,
    ) -> AuditRecord:
        """
        Append one audit record.

        Raises:
            PersistenceFailureError: sequence allocation or insert failed.
        """
        kind = EntityKind(kind)
        try:
            seq = self._sequences.next_value(audit_sequence_name(kind.value, entity_id))
        except SQLAlchemyError as exc:
            logger.error(
                "audit_sequence_failed",
                extra={"entity_kind": kind.value, "entity_id": str(entity_id)},
                exc_info=True,
            )
            raise PersistenceFailureError(
                "AuditRecord", str(entity_id), "allocate audit sequence for",
            ) from exc

        model = AuditRecordModel(
            id=uuid4(),
            seq=seq,
            entity_kind=kind.value,
            entity_id=entity_id,
            from_state=_state_value(from_state),
            to_state=_state_value(to_state),
            actor_id=actor.actor_id,
            actor_name=actor.display_name,
            reason=reason,
            occurred_at=self._clock.now_utc(),
        )
        self._store.append_audit(model)

        logger.info(
            "audit_record_created",
            extra={
                "record_id": str(model.id),
                "entity_kind": kind.value,
                "entity_id": str(entity_id),
                "seq": seq,
                "from_state": state_label(from_state),
                "to_state": state_label(to_state),
                "actor_id": actor.actor_id,
            },
        )
        return model.to_dto()

    def history_for(self, kind: EntityKind, entity_id: UUID) -> tuple[AuditRecord, ...]:
        """All records for one entity, oldest first by (occurred_at, seq)."""
        rows = self._session.execute(
            select(AuditRecordModel)
            .where(AuditRecordModel.entity_kind == EntityKind(kind).value)
            .where(AuditRecordModel.entity_id == entity_id)
            .order_by(AuditRecordModel.occurred_at, AuditRecordModel.seq)
        ).scalars().all()
        return tuple(row.to_dto() for row in rows)

    def recent_activity(
        self, kind: EntityKind, since: datetime,
    ) -> tuple[AuditRecord, ...]:
        """Records of every entity of ``kind`` at or after ``since``, oldest first."""
        rows = self._session.execute(
            select(AuditRecordModel)
            .where(AuditRecordModel.entity_kind == EntityKind(kind).value)
            .where(AuditRecordModel.occurred_at >= since)
            .order_by(
                AuditRecordModel.occurred_at,
                AuditRecordModel.entity_id,
                AuditRecordModel.seq,
            )
        ).scalars().all()
        return tuple(row.to_dto() for row in rows)
