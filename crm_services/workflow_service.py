"""
crm_services.workflow_service -- Generic transition pipeline.

Responsibility:
    Runs one state change for one tracked entity as an atomic unit:
    load, validate, apply kind-specific rules and side effects, persist,
    record audit.  Concrete services supply the kind-specific parts.

Architecture position:
    Services layer.  Composes the kernel's TransitionValidator,
    WorkflowStore and AuditTrailRecorder over a caller-owned Session.

Invariants enforced:
    - Rejections short-circuit before any mutation; no audit record is
      written for a rejected attempt.
    - Entity flush and audit append share one SAVEPOINT.  Either both land
      or neither does; the caller's outer transaction is untouched.
    - Failures travel as ``TransitionOutcome`` values.  Only the public
      ``transition()`` edge raises the typed exception.

Failure modes (outcome status -> exception at the edge):
    NOT_FOUND           -> EntityNotFoundError
    INVALID_TRANSITION  -> InvalidTransitionError (or RejectionReasonRequiredError)
    FORBIDDEN           -> ForbiddenTransitionError
    CONFLICT            -> OptimisticLockError
    PERSISTENCE_FAILURE -> PersistenceFailureError
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID

from sqlalchemy.orm import Session

from crm_kernel.domain.clock import Clock, SystemClock
from crm_kernel.domain.dtos import (
    BulkOperationResult,
    OutcomeStatus,
    TransitionOutcome,
)
from crm_kernel.domain.identity import ContextIdentitySource, IdentitySource, Principal
from crm_kernel.domain.states import EntityKind, WorkflowState, parse_state, state_label
from crm_kernel.domain.transition_validator import TransitionValidator
from crm_kernel.exceptions import (
    ConcurrencyError,
    EntityNotFoundError,
    ForbiddenTransitionError,
    InvalidTransitionError,
    PersistenceError,
)
from crm_kernel.logging_config import LogContext, get_logger
from crm_kernel.services.audit_trail_recorder import AuditTrailRecorder
from crm_kernel.services.workflow_store import SqlAlchemyWorkflowStore, WorkflowStore
from crm_services.bulk_runner import BulkOperationRunner

logger = get_logger("services.workflow")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"


def _emit_workflow_trace(
    action: str,
    outcome: TransitionOutcome,
    duration_ms: float,
) -> None:
    """Emit a structured workflow transition record.  The bound context carries ``workflow``."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "action": action,
        "outcome": outcome.status.value,
        "from_state": outcome.from_state,
        "to_state": outcome.to_state,
        "duration_ms": round(duration_ms, 3),
    }
    if not outcome.is_success:
        record["code"] = outcome.code
        record["reason"] = outcome.reason
    logger.info("workflow_transition", extra=record)


@dataclass(frozen=True)
class RuleViolation:
    """A kind-specific rule refused a graph-legal transition."""

    status: OutcomeStatus
    code: str
    reason: str

    @classmethod
    def forbidden(cls, reason: str) -> RuleViolation:
        return cls(OutcomeStatus.FORBIDDEN, ForbiddenTransitionError.code, reason)

    @classmethod
    def invalid(cls, reason: str) -> RuleViolation:
        return cls(OutcomeStatus.INVALID_TRANSITION, InvalidTransitionError.code, reason)


class WorkflowService(ABC):
    """
    Base class for per-kind workflow services.

    Contract:
        Subclasses set ``entity_kind`` and ``workflow_name`` and implement
        ``_current_state`` and ``_set_state``.  They may override
        ``_check_rules`` (refuse a legal edge) and ``_apply`` (side effects,
        audit reason rewriting).

    Guarantees:
        - Services flush, never commit.
        - Not idempotent: repeating a successful transition is rejected as
          "already in status".

    Non-goals:
        - Retrying conflicts.  The caller reloads and retries.
    """

    entity_kind: ClassVar[EntityKind]
    workflow_name: ClassVar[str]

    def __init__(
        self,
        session: Session,
        validator: TransitionValidator | None = None,
        recorder: AuditTrailRecorder | None = None,
        store: WorkflowStore | None = None,
        clock: Clock | None = None,
        identity: IdentitySource | None = None,
        bulk_runner: BulkOperationRunner | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._store = store or SqlAlchemyWorkflowStore(session)
        self._validator = validator or TransitionValidator()
        self._recorder = recorder or AuditTrailRecorder(
            session, self._clock, self._store,
        )
        self._identity = identity or ContextIdentitySource()
        self._bulk = bulk_runner or BulkOperationRunner()

    # ------------------------------------------------------------------
    # Kind-specific hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _current_state(self, entity: Any) -> WorkflowState: ...

    @abstractmethod
    def _set_state(self, entity: Any, state: WorkflowState, now: datetime) -> None: ...

    def _check_rules(
        self,
        entity: Any,
        source: WorkflowState,
        target: WorkflowState,
        actor: Principal,
        reason: str | None,
        options: Mapping[str, Any],
    ) -> RuleViolation | None:
        return None

    def _apply(
        self,
        entity: Any,
        source: WorkflowState,
        target: WorkflowState,
        actor: Principal,
        reason: str | None,
        options: Mapping[str, Any],
        now: datetime,
    ) -> str | None:
        """Mutate the entity for ``target``; return the reason to audit."""
        self._set_state(entity, target, now)
        return reason

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _load_or_raise(self, entity_id: UUID) -> Any:
        entity = self._store.load(self.entity_kind, entity_id)
        if entity is None:
            raise EntityNotFoundError(self.entity_kind.value, str(entity_id))
        return entity

    def get(self, entity_id: UUID) -> Any:
        """Snapshot of one entity.  Raises EntityNotFoundError."""
        return self._load_or_raise(entity_id).to_dto()

    def current_state(self, entity_id: UUID) -> WorkflowState:
        return self._current_state(self._load_or_raise(entity_id))

    def valid_transitions(self, entity_id: UUID) -> frozenset:
        """States the entity may move to next."""
        return self._validator.valid_transitions(
            self.entity_kind, self.current_state(entity_id),
        )

    def is_valid_transition(self, entity_id: UUID, proposed_state: WorkflowState | str) -> bool:
        entity = self._store.load(self.entity_kind, entity_id)
        if entity is None:
            return False
        return self._validator.is_valid_transition(
            self.entity_kind, self._current_state(entity), proposed_state,
        )

    def history(self, entity_id: UUID):
        return self._recorder.history_for(self.entity_kind, entity_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _resolve_actor(self, actor: Principal | None) -> Principal:
        return actor if actor is not None else self._identity.current_principal()

    def try_transition(
        self,
        entity_id: UUID,
        proposed_state: WorkflowState | str | None,
        actor: Principal | None = None,
        reason: str | None = None,
        **options: Any,
    ) -> TransitionOutcome:
        """Attempt a transition and report the result as a value."""
        actor = self._resolve_actor(actor)
        t0 = time.monotonic()
        with LogContext.bind(
            actor_id=actor.actor_id,
            entity_kind=self.entity_kind.value,
            entity_id=str(entity_id),
            workflow=self.workflow_name,
        ):
            outcome = self._attempt(entity_id, proposed_state, actor, reason, options)
            _emit_workflow_trace(
                f"to_{state_label(proposed_state).lower()}",
                outcome,
                (time.monotonic() - t0) * 1000,
            )
        return outcome

    def transition(
        self,
        entity_id: UUID,
        proposed_state: WorkflowState | str | None,
        actor: Principal | None = None,
        reason: str | None = None,
        **options: Any,
    ) -> Any:
        """
        Move one entity to ``proposed_state``.

        Returns:
            The updated entity snapshot.

        Raises:
            EntityNotFoundError, InvalidTransitionError,
            ForbiddenTransitionError, OptimisticLockError,
            PersistenceFailureError.
        """
        outcome = self.try_transition(entity_id, proposed_state, actor, reason, **options)
        outcome.raise_for_failure()
        return outcome.entity

    def bulk_transition(
        self,
        ids: Iterable[UUID],
        proposed_state: WorkflowState | str,
        actor: Principal | None = None,
        reason: str | None = None,
        exclude: Callable[[UUID], bool] | None = None,
        **options: Any,
    ) -> BulkOperationResult:
        """Apply the same transition to many ids; see BulkOperationRunner."""
        actor = self._resolve_actor(actor)
        return self._bulk.run_all(
            ids,
            lambda entity_id: self.try_transition(
                entity_id, proposed_state, actor, reason, **options,
            ),
            exclude=exclude,
            operation_name=f"{self.workflow_name}.to_{state_label(proposed_state).lower()}",
        )

    def _attempt(
        self,
        entity_id: UUID,
        proposed_state: WorkflowState | str | None,
        actor: Principal,
        reason: str | None,
        options: Mapping[str, Any],
    ) -> TransitionOutcome:
        kind = self.entity_kind
        proposed_label = None if proposed_state is None else state_label(proposed_state)

        entity = self._store.load(kind, entity_id)
        if entity is None:
            return TransitionOutcome.rejected(
                OutcomeStatus.NOT_FOUND, kind, entity_id,
                reason=f"{kind.value} not found: {entity_id}",
                code=EntityNotFoundError.code,
                to_state=proposed_label,
            )

        source = self._current_state(entity)
        if not self._validator.is_valid_transition(kind, source, proposed_state):
            return TransitionOutcome.rejected(
                OutcomeStatus.INVALID_TRANSITION, kind, entity_id,
                reason=self._validator.explain(kind, source, proposed_state),
                code=InvalidTransitionError.code,
                from_state=source.value,
                to_state=proposed_label,
            )

        target = parse_state(kind, proposed_state)
        violation = self._check_rules(entity, source, target, actor, reason, options)
        if violation is not None:
            return TransitionOutcome.rejected(
                violation.status, kind, entity_id,
                reason=violation.reason,
                code=violation.code,
                from_state=source.value,
                to_state=target.value,
            )

        now = self._clock.now_utc()
        try:
            with self._session.begin_nested():
                audit_reason = self._apply(
                    entity, source, target, actor, reason, options, now,
                )
                self._store.save(entity)
                record = self._recorder.record(
                    kind, entity_id, source, target, actor, audit_reason,
                )
        except (ConcurrencyError, PersistenceError) as exc:
            return TransitionOutcome.from_error(
                exc, kind, entity_id, source.value, target.value,
            )

        return TransitionOutcome.success(
            kind, entity_id, entity.to_dto(), source.value, target.value, record,
        )
