"""
Workflow DTOs (``crm_kernel.domain.dtos``).

Responsibility
--------------
Frozen values that cross the service boundary: entity snapshots, audit
records, per-transition outcomes and bulk results.  Services never hand
live ORM rows to callers.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Result values
-------------
A transition attempt produces a ``TransitionOutcome`` rather than raising.
Only the public ``transition()`` edge converts a failed outcome into the
typed exception (``raise_for_failure``).  The bulk runner consumes outcomes
directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from crm_kernel.domain.states import (
    AccessStatus,
    ApprovalStatus,
    CustomerStatus,
    DeleteRequestStatus,
    EntityKind,
    SalesRole,
)
from crm_kernel.exceptions import (
    CrmKernelError,
    EntityNotFoundError,
    ForbiddenTransitionError,
    InvalidTransitionError,
    OptimisticLockError,
    PersistenceFailureError,
    RejectionReasonRequiredError,
)


# =========================================================================
# Entity snapshots
# =========================================================================


@dataclass(frozen=True)
class CustomerInfo:
    id: UUID
    name: str
    phone: str
    sales_phone: str | None
    status: CustomerStatus
    created_at: datetime
    status_changed_at: datetime | None
    certified_at: datetime | None
    version: int


@dataclass(frozen=True)
class SalesUserInfo:
    id: UUID
    phone: str
    display_name: str | None
    role: SalesRole
    approval_status: ApprovalStatus
    approved_by: str | None
    approved_at: datetime | None
    rejection_reason: str | None
    access_status: AccessStatus
    disabled_by: str | None
    disabled_at: datetime | None
    disabled_reason: str | None
    created_at: datetime
    status_changed_at: datetime | None
    version: int

    @property
    def is_active(self) -> bool:
        """Approved and not disabled, i.e. allowed to sign in."""
        return (
            self.approval_status == ApprovalStatus.APPROVED
            and self.access_status == AccessStatus.ENABLED
        )


@dataclass(frozen=True)
class DeleteRequestInfo:
    id: UUID
    customer_id: UUID
    customer_name: str
    customer_phone: str
    requested_by: str
    reason: str | None
    status: DeleteRequestStatus
    reviewed_by: str | None
    reviewed_at: datetime | None
    rejection_reason: str | None
    created_at: datetime
    version: int


# =========================================================================
# Audit trail
# =========================================================================


@dataclass(frozen=True)
class AuditRecord:
    """One accepted transition.  Created once, never changed."""

    record_id: UUID
    seq: int
    occurred_at: datetime
    entity_kind: EntityKind
    entity_id: UUID
    from_state: str
    to_state: str
    actor_id: str
    actor_name: str
    reason: str | None = None


@dataclass(frozen=True)
class ApprovalStatistics:
    """User-approval dashboard figures."""

    pending_count: int
    approved_count: int
    rejected_count: int
    recent_activity_count: int

    @property
    def approval_rate(self) -> float:
        """Approved share of decided accounts, as a percentage."""
        decided = self.approved_count + self.rejected_count
        if decided == 0:
            return 0.0
        return self.approved_count * 100.0 / decided


# =========================================================================
# Transition outcomes
# =========================================================================


class OutcomeStatus(str, Enum):
    """Status of a single transition attempt."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a transition attempt."""

    status: OutcomeStatus
    entity_kind: EntityKind
    entity_id: UUID
    entity: Any | None = None
    from_state: str | None = None
    to_state: str | None = None
    code: str | None = None
    reason: str | None = None
    audit_record: AuditRecord | None = None
    cause: BaseException | None = field(default=None, compare=False, repr=False)

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def success(
        cls,
        kind: EntityKind,
        entity_id: UUID,
        entity: Any,
        from_state: str,
        to_state: str,
        audit_record: AuditRecord,
    ) -> TransitionOutcome:
        return cls(
            status=OutcomeStatus.SUCCESS,
            entity_kind=kind,
            entity_id=entity_id,
            entity=entity,
            from_state=from_state,
            to_state=to_state,
            audit_record=audit_record,
        )

    @classmethod
    def rejected(
        cls,
        status: OutcomeStatus,
        kind: EntityKind,
        entity_id: UUID,
        reason: str,
        code: str,
        from_state: str | None = None,
        to_state: str | None = None,
    ) -> TransitionOutcome:
        return cls(
            status=status,
            entity_kind=kind,
            entity_id=entity_id,
            from_state=from_state,
            to_state=to_state,
            code=code,
            reason=reason,
        )

    @classmethod
    def from_error(
        cls,
        error: CrmKernelError,
        kind: EntityKind,
        entity_id: UUID,
        from_state: str | None = None,
        to_state: str | None = None,
    ) -> TransitionOutcome:
        """Wrap a storage-layer exception caught while persisting."""
        if isinstance(error, OptimisticLockError):
            status = OutcomeStatus.CONFLICT
        elif isinstance(error, EntityNotFoundError):
            status = OutcomeStatus.NOT_FOUND
        else:
            status = OutcomeStatus.PERSISTENCE_FAILURE
        return cls(
            status=status,
            entity_kind=kind,
            entity_id=entity_id,
            from_state=from_state,
            to_state=to_state,
            code=error.code,
            reason=str(error),
            cause=error,
        )

    def to_error(self) -> CrmKernelError | None:
        """The typed exception for a failed outcome, None on success."""
        if self.is_success:
            return None
        if isinstance(self.cause, CrmKernelError):
            return self.cause

        kind = self.entity_kind.value
        entity_id = str(self.entity_id)
        if self.status == OutcomeStatus.NOT_FOUND:
            return EntityNotFoundError(kind, entity_id)
        if self.status == OutcomeStatus.INVALID_TRANSITION:
            if self.code == RejectionReasonRequiredError.code:
                return RejectionReasonRequiredError(
                    kind, entity_id, self.from_state, self.to_state, self.reason,
                )
            return InvalidTransitionError(
                kind, entity_id, self.from_state, self.to_state, self.reason,
            )
        if self.status == OutcomeStatus.FORBIDDEN:
            return ForbiddenTransitionError(
                kind, entity_id, self.from_state, self.to_state, self.reason,
            )
        if self.status == OutcomeStatus.CONFLICT:
            return OptimisticLockError(kind, entity_id)
        return PersistenceFailureError(kind, entity_id, "transition")

    def raise_for_failure(self) -> None:
        error = self.to_error()
        if error is None:
            return
        if error is self.cause:
            raise error
        raise error from self.cause


# =========================================================================
# Bulk operations
# =========================================================================


@dataclass(frozen=True)
class BulkFailure:
    entity_id: UUID
    code: str
    reason: str


@dataclass(frozen=True)
class BulkOperationResult:
    """
    Per-item accounting of one bulk call.

    ``attempted`` holds ids the operation was invoked for; ``skipped`` ids
    were filtered out before invocation and never touched.
    """

    operation: str
    attempted: tuple[UUID, ...] = ()
    succeeded: tuple[UUID, ...] = ()
    failures: tuple[BulkFailure, ...] = ()
    skipped: tuple[UUID, ...] = ()

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def skip_count(self) -> int:
        return len(self.skipped)

    @property
    def total(self) -> int:
        return len(self.attempted) + len(self.skipped)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures
