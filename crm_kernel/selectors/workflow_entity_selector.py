"""
Module: crm_kernel.selectors.workflow_entity_selector
Responsibility: Read-only listings of tracked entities for review queues:
    delete requests by status or requester, sales users by approval or
    access status.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Newest first (``created_at`` descending, then ``id`` for a stable
      order between rows created in the same instant).
    - Returns frozen DTO snapshots, never ORM rows.
"""

from __future__ import annotations

from sqlalchemy import Select, select

from crm_kernel.domain.dtos import DeleteRequestInfo, SalesUserInfo
from crm_kernel.domain.states import AccessStatus, ApprovalStatus, DeleteRequestStatus
from crm_kernel.models.delete_request import CustomerDeleteRequest
from crm_kernel.models.sales_user import SalesUser
from crm_kernel.selectors.base import BaseSelector


def _page(query: Select, limit: int | None, offset: int) -> Select:
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query


class WorkflowEntitySelector(BaseSelector[CustomerDeleteRequest]):
    """Filtered, paged listings over delete requests and sales users."""

    def delete_requests(
        self,
        status: DeleteRequestStatus | None = None,
        requested_by: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[DeleteRequestInfo, ...]:
        query = select(CustomerDeleteRequest).order_by(
            CustomerDeleteRequest.created_at.desc(), CustomerDeleteRequest.id,
        )
        if status is not None:
            query = query.where(
                CustomerDeleteRequest.request_status == DeleteRequestStatus(status).value
            )
        if requested_by is not None:
            query = query.where(CustomerDeleteRequest.requested_by == str(requested_by))
        rows = self.session.execute(_page(query, limit, offset)).scalars().all()
        return tuple(row.to_dto() for row in rows)

    def sales_users(
        self,
        approval_status: ApprovalStatus | None = None,
        access_status: AccessStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[SalesUserInfo, ...]:
        query = select(SalesUser).order_by(SalesUser.created_at.desc(), SalesUser.id)
        if approval_status is not None:
            query = query.where(
                SalesUser.approval_status == ApprovalStatus(approval_status).value
            )
        if access_status is not None:
            query = query.where(
                SalesUser.access_status == AccessStatus(access_status).value
            )
        rows = self.session.execute(_page(query, limit, offset)).scalars().all()
        return tuple(row.to_dto() for row in rows)
