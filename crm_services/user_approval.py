"""
crm_services.user_approval -- Admin approval of sales user accounts.

PENDING -> APPROVED | REJECTED, and an administrative reset of either
decision back to PENDING.  APPROVED and REJECTED never flip directly.

Approving may also reassign the account's role, except that a non-admin
account can never be promoted to ADMIN this way.  A role change is noted
in the audit reason as `` [Role: <ROLE>]``.

Bulk approve, reject and reset apply to every id given; unlike bulk
disable, they do not exclude the acting admin's own account.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from crm_kernel.domain.dtos import BulkOperationResult, SalesUserInfo
from crm_kernel.domain.identity import Principal
from crm_kernel.domain.states import (
    AccessStatus,
    ApprovalStatus,
    EntityKind,
    SalesRole,
    WorkflowState,
    parse_role,
    parse_state,
)
from crm_kernel.logging_config import get_logger
from crm_kernel.models.sales_user import SalesUser
from crm_kernel.selectors.workflow_entity_selector import WorkflowEntitySelector
from crm_services.workflow_service import RuleViolation, WorkflowService

logger = get_logger("services.user_approval")


class UserApprovalService(WorkflowService):

    entity_kind = EntityKind.USER_APPROVAL
    workflow_name = "user_approval"

    def _current_state(self, entity: SalesUser) -> WorkflowState:
        return ApprovalStatus(entity.approval_status)

    def _set_state(self, entity: SalesUser, state: WorkflowState, now: datetime) -> None:
        entity.approval_status = state.value
        entity.status_changed_at = now

    def _check_rules(
        self,
        entity: SalesUser,
        source: WorkflowState,
        target: WorkflowState,
        actor: Principal,
        reason: str | None,
        options: Mapping[str, Any],
    ) -> RuleViolation | None:
        requested_role = options.get("requested_role")
        if target != ApprovalStatus.APPROVED or requested_role is None:
            return None
        try:
            role = parse_role(requested_role)
        except ValueError as exc:
            return RuleViolation.invalid(str(exc))
        if role == SalesRole.ADMIN and entity.role != SalesRole.ADMIN.value:
            return RuleViolation.forbidden("Cannot change user role to ADMIN")
        return None

    def _apply(
        self,
        entity: SalesUser,
        source: WorkflowState,
        target: WorkflowState,
        actor: Principal,
        reason: str | None,
        options: Mapping[str, Any],
        now: datetime,
    ) -> str | None:
        self._set_state(entity, target, now)

        if target == ApprovalStatus.APPROVED:
            entity.approved_by = actor.actor_id
            entity.approved_at = now
            entity.rejection_reason = None
            requested_role = options.get("requested_role")
            if requested_role is not None:
                role = parse_role(requested_role)
                if role.value != entity.role:
                    entity.role = role.value
                    reason = f"{reason or ''} [Role: {role.name}]".strip()
        elif target == ApprovalStatus.REJECTED:
            entity.approved_by = actor.actor_id
            entity.approved_at = None
            entity.rejection_reason = reason
        else:
            entity.approved_by = None
            entity.approved_at = None
            entity.rejection_reason = None
        return reason

    def register_user(
        self,
        phone: str,
        role: SalesRole = SalesRole.SALES,
        display_name: str | None = None,
    ) -> SalesUserInfo:
        """Create an account awaiting approval (PENDING, ENABLED)."""
        user = SalesUser(
            id=uuid4(),
            phone=phone,
            display_name=display_name,
            role=parse_role(role).value,
            approval_status=ApprovalStatus.PENDING.value,
            access_status=AccessStatus.ENABLED.value,
            created_at=self._clock.now_utc(),
        )
        with self._session.begin_nested():
            self._store.add(user)
        logger.info(
            "sales_user_registered",
            extra={"user_id": str(user.id), "role": user.role},
        )
        return user.to_dto()

    def approve(
        self,
        user_id: UUID,
        actor: Principal | None = None,
        reason: str | None = None,
        requested_role: SalesRole | str | None = None,
    ) -> SalesUserInfo:
        return self.transition(
            user_id, ApprovalStatus.APPROVED, actor, reason,
            requested_role=requested_role,
        )

    def reject(
        self, user_id: UUID, actor: Principal | None = None, reason: str | None = None,
    ) -> SalesUserInfo:
        return self.transition(user_id, ApprovalStatus.REJECTED, actor, reason)

    def reset(
        self, user_id: UUID, actor: Principal | None = None, reason: str | None = None,
    ) -> SalesUserInfo:
        """Send an approved or rejected account back to PENDING."""
        return self.transition(user_id, ApprovalStatus.PENDING, actor, reason)

    def bulk_approve(
        self,
        user_ids: Iterable[UUID],
        actor: Principal | None = None,
        reason: str | None = None,
        requested_role: SalesRole | str | None = None,
    ) -> BulkOperationResult:
        return self.bulk_transition(
            user_ids, ApprovalStatus.APPROVED, actor, reason,
            requested_role=requested_role,
        )

    def bulk_reject(
        self,
        user_ids: Iterable[UUID],
        actor: Principal | None = None,
        reason: str | None = None,
    ) -> BulkOperationResult:
        return self.bulk_transition(user_ids, ApprovalStatus.REJECTED, actor, reason)

    def bulk_reset(
        self,
        user_ids: Iterable[UUID],
        actor: Principal | None = None,
        reason: str | None = None,
    ) -> BulkOperationResult:
        return self.bulk_transition(user_ids, ApprovalStatus.PENDING, actor, reason)

    def list_by_status(
        self,
        status: ApprovalStatus | str,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[SalesUserInfo, ...]:
        """Accounts in one approval state, newest registration first."""
        return WorkflowEntitySelector(self._session).sales_users(
            approval_status=parse_state(self.entity_kind, status),
            limit=limit,
            offset=offset,
        )
