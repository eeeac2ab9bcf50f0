"""
Module: crm_kernel.models.audit_record
Responsibility: ORM persistence for the workflow audit trail.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit records are append-only; no UPDATE or DELETE (ORM listeners in
      db/immutability.py).
    - seq is strictly increasing per (entity_kind, entity_id), allocated by
      SequenceService from a locked counter row.  The unique constraint
      backs that up at the database level.

Audit relevance:
    AuditRecordModel IS the audit trail.  Every accepted transition, of any
    kind, produces exactly one row.  Restoring a soft-deleted customer adds
    one row whose from_state equals its to_state.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from crm_kernel.db.base import Base, UUIDString
from crm_kernel.domain.dtos import AuditRecord
from crm_kernel.domain.states import EntityKind


class AuditRecordModel(Base):
    """
    One accepted state transition.

    Contract:
        Rows are written once by AuditTrailRecorder and never changed.
        ``id`` is the record id exposed as ``AuditRecord.record_id``.
    """

    __tablename__ = "workflow_audit_records"

    __table_args__ = (
        UniqueConstraint(
            "entity_kind", "entity_id", "seq",
            name="uq_workflow_audit_entity_seq",
        ),
        Index("idx_workflow_audit_entity", "entity_kind", "entity_id"),
        Index("idx_workflow_audit_kind_occurred", "entity_kind", "occurred_at"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)
    entity_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    from_state: Mapped[str] = mapped_column(String(32), nullable=False)
    to_state: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<AuditRecord {self.entity_kind}:{self.entity_id} #{self.seq} "
            f"{self.from_state}->{self.to_state}>"
        )

    def to_dto(self) -> AuditRecord:
        """Convert ORM model to frozen domain DTO."""
        return AuditRecord(
            record_id=self.id,
            seq=self.seq,
            occurred_at=self.occurred_at,
            entity_kind=EntityKind(self.entity_kind),
            entity_id=self.entity_id,
            from_state=self.from_state,
            to_state=self.to_state,
            actor_id=self.actor_id,
            actor_name=self.actor_name,
            reason=self.reason,
        )
