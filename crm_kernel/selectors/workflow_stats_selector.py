"""
Module: crm_kernel.selectors.workflow_stats_selector
Responsibility: Read-only workflow statistics for dashboards: how many
    entities sit in each state, how much audited activity happened recently,
    and the user-approval summary.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Counts cover every state of the kind, zero included.
    - Soft-deleted customers are not counted.
    - Activity is derived from the audit trail, not from entity timestamps.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select

from crm_kernel.domain.dtos import ApprovalStatistics
from crm_kernel.domain.states import (
    STATE_ENUMS,
    ApprovalStatus,
    EntityKind,
    WorkflowState,
)
from crm_kernel.models.audit_record import AuditRecordModel
from crm_kernel.models.customer import Customer
from crm_kernel.models.delete_request import CustomerDeleteRequest
from crm_kernel.models.sales_user import SalesUser
from crm_kernel.selectors.base import BaseSelector

_STATE_COLUMNS = {
    EntityKind.CUSTOMER_LIFECYCLE: Customer.current_status,
    EntityKind.USER_APPROVAL: SalesUser.approval_status,
    EntityKind.USER_ACCESS: SalesUser.access_status,
    EntityKind.DELETE_REQUEST: CustomerDeleteRequest.request_status,
}


class WorkflowStatsSelector(BaseSelector[AuditRecordModel]):
    """Aggregates over tracked entities and the audit trail."""

    def counts_by_state(self, kind: EntityKind) -> dict[WorkflowState, int]:
        kind = EntityKind(kind)
        column = _STATE_COLUMNS[kind]
        query = select(column, func.count()).group_by(column)
        if kind == EntityKind.CUSTOMER_LIFECYCLE:
            query = query.where(Customer.deleted_at.is_(None))

        counts: dict[WorkflowState, int] = {
            state: 0 for state in STATE_ENUMS[kind]
        }
        for value, count in self.session.execute(query).all():
            counts[STATE_ENUMS[kind](value)] = count
        return counts

    def recent_activity_count(self, kind: EntityKind, since: datetime) -> int:
        return self.session.execute(
            select(func.count(AuditRecordModel.id))
            .where(AuditRecordModel.entity_kind == EntityKind(kind).value)
            .where(AuditRecordModel.occurred_at >= since)
        ).scalar_one()

    def approval_statistics(self, since: datetime) -> ApprovalStatistics:
        """User-approval summary with activity counted from ``since``."""
        counts = self.counts_by_state(EntityKind.USER_APPROVAL)
        return ApprovalStatistics(
            pending_count=counts[ApprovalStatus.PENDING],
            approved_count=counts[ApprovalStatus.APPROVED],
            rejected_count=counts[ApprovalStatus.REJECTED],
            recent_activity_count=self.recent_activity_count(
                EntityKind.USER_APPROVAL, since,
            ),
        )
