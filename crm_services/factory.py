"""
crm_services.factory -- Service wiring.

Responsibility:
    Builds every workflow service on one Session with shared collaborators
    (clock, identity source, validator, store, audit recorder, bulk runner),
    and bootstraps process-wide infrastructure from ``WorkflowSettings``.

Architecture position:
    Services layer.  The only place that reads ``crm_config`` types and
    turns them into kernel constructor arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from crm_config.schema import WorkflowConfig, WorkflowSettings
from crm_kernel.db.engine import init_engine_from_url
from crm_kernel.db.immutability import register_immutability_listeners
from crm_kernel.domain.clock import Clock, SystemClock
from crm_kernel.domain.dtos import ApprovalStatistics
from crm_kernel.domain.identity import ContextIdentitySource, IdentitySource
from crm_kernel.domain.transition_graph import DEFAULT_TRANSITION_GRAPH, TransitionGraph
from crm_kernel.domain.transition_validator import TransitionValidator
from crm_kernel.logging_config import configure_logging, get_logger
from crm_kernel.selectors.workflow_stats_selector import WorkflowStatsSelector
from crm_kernel.services.audit_trail_recorder import AuditTrailRecorder
from crm_kernel.services.workflow_store import SqlAlchemyWorkflowStore
from crm_services.bulk_runner import BulkOperationRunner
from crm_services.customer_lifecycle import CustomerLifecycleService
from crm_services.delete_request import DeleteRequestService
from crm_services.user_access import UserAccessService
from crm_services.user_approval import UserApprovalService

logger = get_logger("services.factory")


@dataclass(frozen=True)
class WorkflowServices:
    """All workflow services bound to one Session."""

    customers: CustomerLifecycleService
    user_approvals: UserApprovalService
    user_access: UserAccessService
    delete_requests: DeleteRequestService
    audit_trail: AuditTrailRecorder
    stats: WorkflowStatsSelector
    validator: TransitionValidator
    clock: Clock
    workflow_config: WorkflowConfig

    def approval_statistics(self) -> ApprovalStatistics:
        """Approval dashboard over the configured recent-activity window."""
        since = self.clock.now_utc() - timedelta(
            days=self.workflow_config.recent_activity_days,
        )
        return self.stats.approval_statistics(since)


def create_workflow_services(
    session: Session,
    clock: Clock | None = None,
    identity: IdentitySource | None = None,
    graph: TransitionGraph | None = None,
    workflow_config: WorkflowConfig | None = None,
) -> WorkflowServices:
    clock = clock or SystemClock()
    identity = identity or ContextIdentitySource()
    workflow_config = workflow_config or WorkflowConfig()
    validator = TransitionValidator(graph or DEFAULT_TRANSITION_GRAPH)
    store = SqlAlchemyWorkflowStore(session)
    recorder = AuditTrailRecorder(session, clock, store)
    runner = BulkOperationRunner(max_items=workflow_config.max_bulk_items)

    shared = dict(
        validator=validator,
        recorder=recorder,
        store=store,
        clock=clock,
        identity=identity,
        bulk_runner=runner,
    )
    return WorkflowServices(
        customers=CustomerLifecycleService(session, **shared),
        user_approvals=UserApprovalService(session, **shared),
        user_access=UserAccessService(session, **shared),
        delete_requests=DeleteRequestService(session, **shared),
        audit_trail=recorder,
        stats=WorkflowStatsSelector(session),
        validator=validator,
        clock=clock,
        workflow_config=workflow_config,
    )


def bootstrap_from_config(settings: WorkflowSettings) -> Engine:
    """
    Process startup: logging, engine and audit immutability listeners.

    Call once before handing out sessions.
    """
    configure_logging(level=settings.logging.level)
    engine = init_engine_from_url(
        settings.database.url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )
    register_immutability_listeners()
    logger.info(
        "workflow_bootstrapped",
        extra={"config_id": settings.config_id, "checksum": settings.checksum},
    )
    return engine
