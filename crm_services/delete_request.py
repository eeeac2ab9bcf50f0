"""
crm_services.delete_request -- Review of customer delete requests.

A sales user raises a request; an admin approves or rejects it once.
APPROVED and REJECTED are terminal.  Approval soft-deletes the customer in
the same atomic unit as the status change and its audit record.  Rejection
requires a non-blank reason.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from crm_kernel.domain.dtos import BulkOperationResult, DeleteRequestInfo, OutcomeStatus
from crm_kernel.domain.identity import Principal
from crm_kernel.domain.states import DeleteRequestStatus, EntityKind, WorkflowState
from crm_kernel.exceptions import (
    DuplicateDeleteRequestError,
    EntityNotFoundError,
    RejectionReasonRequiredError,
)
from crm_kernel.logging_config import get_logger
from crm_kernel.models.delete_request import CustomerDeleteRequest
from crm_kernel.selectors.workflow_entity_selector import WorkflowEntitySelector
from crm_kernel.selectors.workflow_stats_selector import WorkflowStatsSelector
from crm_services.workflow_service import RuleViolation, WorkflowService

logger = get_logger("services.delete_request")


class DeleteRequestService(WorkflowService):

    entity_kind = EntityKind.DELETE_REQUEST
    workflow_name = "delete_request"

    def _current_state(self, entity: CustomerDeleteRequest) -> WorkflowState:
        return DeleteRequestStatus(entity.request_status)

    def _set_state(
        self, entity: CustomerDeleteRequest, state: WorkflowState, now: datetime,
    ) -> None:
        entity.request_status = state.value
        entity.status_changed_at = now

    def _check_rules(
        self,
        entity: CustomerDeleteRequest,
        source: WorkflowState,
        target: WorkflowState,
        actor: Principal,
        reason: str | None,
        options: Mapping[str, Any],
    ) -> RuleViolation | None:
        if target == DeleteRequestStatus.REJECTED and not (reason and reason.strip()):
            return RuleViolation(
                OutcomeStatus.INVALID_TRANSITION,
                RejectionReasonRequiredError.code,
                "rejection reason is required",
            )
        return None

    def _apply(
        self,
        entity: CustomerDeleteRequest,
        source: WorkflowState,
        target: WorkflowState,
        actor: Principal,
        reason: str | None,
        options: Mapping[str, Any],
        now: datetime,
    ) -> str | None:
        self._set_state(entity, target, now)
        entity.reviewed_by = actor.actor_id
        entity.reviewed_at = now
        if target == DeleteRequestStatus.REJECTED:
            reason = reason.strip()
            entity.rejection_reason = reason
        elif target == DeleteRequestStatus.APPROVED:
            self._store.soft_delete_customer(entity.customer_id, now)
        return reason

    def create_request(
        self,
        customer_id: UUID,
        reason: str | None = None,
        requested_by: Principal | None = None,
    ) -> DeleteRequestInfo:
        """
        Raise a delete request for a live customer.

        Raises:
            EntityNotFoundError: customer missing or already deleted.
            DuplicateDeleteRequestError: a PENDING request already exists.
        """
        requester = self._resolve_actor(requested_by)
        customer = self._store.load(EntityKind.CUSTOMER_LIFECYCLE, customer_id)
        if customer is None:
            raise EntityNotFoundError(EntityKind.CUSTOMER_LIFECYCLE.value, str(customer_id))

        existing = self._store.find_pending_delete_request(customer_id)
        if existing is not None:
            raise DuplicateDeleteRequestError(str(customer_id), str(existing.id))

        request = CustomerDeleteRequest(
            id=uuid4(),
            customer_id=customer_id,
            requested_by=requester.actor_id,
            reason=reason,
            customer_name=customer.name,
            customer_phone=customer.phone,
            request_status=DeleteRequestStatus.PENDING.value,
            created_at=self._clock.now_utc(),
        )
        with self._session.begin_nested():
            self._store.add(request)
        logger.info(
            "delete_request_created",
            extra={
                "request_id": str(request.id),
                "customer_id": str(customer_id),
                "requested_by": requester.actor_id,
            },
        )
        return request.to_dto()

    def approve(
        self, request_id: UUID, actor: Principal | None = None, reason: str | None = None,
    ) -> DeleteRequestInfo:
        return self.transition(request_id, DeleteRequestStatus.APPROVED, actor, reason)

    def reject(
        self, request_id: UUID, actor: Principal | None = None, reason: str | None = None,
    ) -> DeleteRequestInfo:
        return self.transition(request_id, DeleteRequestStatus.REJECTED, actor, reason)

    def bulk_approve(
        self,
        request_ids: Iterable[UUID],
        actor: Principal | None = None,
        reason: str | None = None,
    ) -> BulkOperationResult:
        return self.bulk_transition(request_ids, DeleteRequestStatus.APPROVED, actor, reason)

    def bulk_reject(
        self,
        request_ids: Iterable[UUID],
        actor: Principal | None = None,
        reason: str | None = None,
    ) -> BulkOperationResult:
        return self.bulk_transition(request_ids, DeleteRequestStatus.REJECTED, actor, reason)

    def count_pending(self) -> int:
        counts = WorkflowStatsSelector(self._session).counts_by_state(self.entity_kind)
        return counts[DeleteRequestStatus.PENDING]

    def list_pending(
        self, limit: int | None = None, offset: int = 0,
    ) -> tuple[DeleteRequestInfo, ...]:
        """The review queue, newest first."""
        return WorkflowEntitySelector(self._session).delete_requests(
            status=DeleteRequestStatus.PENDING, limit=limit, offset=offset,
        )

    def list_by_requester(
        self, requested_by: str, limit: int | None = None, offset: int = 0,
    ) -> tuple[DeleteRequestInfo, ...]:
        """Every request raised by one actor, in any status, newest first."""
        return WorkflowEntitySelector(self._session).delete_requests(
            requested_by=requested_by, limit=limit, offset=offset,
        )
