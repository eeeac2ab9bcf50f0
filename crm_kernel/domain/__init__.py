"""
Pure domain layer.

States, transition graphs, the validator, identity and DTOs, with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)

All domain objects are immutable and deterministic.
"""

from crm_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from crm_kernel.domain.dtos import (
    ApprovalStatistics,
    AuditRecord,
    BulkFailure,
    BulkOperationResult,
    CustomerInfo,
    DeleteRequestInfo,
    OutcomeStatus,
    SalesUserInfo,
    TransitionOutcome,
)
from crm_kernel.domain.identity import (
    SYSTEM_PRINCIPAL,
    ContextIdentitySource,
    IdentitySource,
    Principal,
    StaticIdentitySource,
)
from crm_kernel.domain.states import (
    AccessStatus,
    ApprovalStatus,
    CustomerStatus,
    DeleteRequestStatus,
    EntityKind,
    SalesRole,
    WorkflowState,
    parse_state,
)
from crm_kernel.domain.transition_graph import (
    DEFAULT_TRANSITION_GRAPH,
    TransitionGraph,
    build_default_graph,
)
from crm_kernel.domain.transition_validator import TransitionValidator

__all__ = [
    "AccessStatus",
    "ApprovalStatistics",
    "ApprovalStatus",
    "AuditRecord",
    "BulkFailure",
    "BulkOperationResult",
    "Clock",
    "ContextIdentitySource",
    "CustomerInfo",
    "CustomerStatus",
    "DEFAULT_TRANSITION_GRAPH",
    "DeleteRequestInfo",
    "DeleteRequestStatus",
    "DeterministicClock",
    "EntityKind",
    "IdentitySource",
    "OutcomeStatus",
    "Principal",
    "SYSTEM_PRINCIPAL",
    "SalesRole",
    "SalesUserInfo",
    "StaticIdentitySource",
    "SystemClock",
    "TransitionGraph",
    "TransitionOutcome",
    "TransitionValidator",
    "WorkflowState",
    "build_default_graph",
    "parse_state",
]
