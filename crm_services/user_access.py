"""
crm_services.user_access -- Enabling and disabling approved sales users.

ENABLED <-> DISABLED on the same ``SalesUser`` row that carries the
approval status.  On top of the graph:

* only APPROVED accounts may be enabled or disabled;
* an actor may not disable their own account.

``bulk_disable`` filters the acting user's own id out before invoking
anything and reports it as skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from crm_kernel.domain.dtos import BulkOperationResult, SalesUserInfo
from crm_kernel.domain.identity import Principal
from crm_kernel.domain.states import (
    AccessStatus,
    ApprovalStatus,
    EntityKind,
    WorkflowState,
    parse_state,
)
from crm_kernel.models.sales_user import SalesUser
from crm_kernel.selectors.workflow_entity_selector import WorkflowEntitySelector
from crm_services.workflow_service import RuleViolation, WorkflowService


class UserAccessService(WorkflowService):

    entity_kind = EntityKind.USER_ACCESS
    workflow_name = "user_access"

    def _current_state(self, entity: SalesUser) -> WorkflowState:
        return AccessStatus(entity.access_status)

    def _set_state(self, entity: SalesUser, state: WorkflowState, now: datetime) -> None:
        entity.access_status = state.value
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
        if entity.approval_status != ApprovalStatus.APPROVED.value:
            return RuleViolation.forbidden(
                "Only approved users can be enabled or disabled"
            )
        if target == AccessStatus.DISABLED and str(entity.id) == actor.actor_id:
            return RuleViolation.forbidden("Cannot disable your own account")
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
        if target == AccessStatus.DISABLED:
            entity.disabled_by = actor.actor_id
            entity.disabled_at = now
            entity.disabled_reason = reason
        else:
            entity.disabled_by = None
            entity.disabled_at = None
            entity.disabled_reason = None
        return reason

    def enable(
        self, user_id: UUID, actor: Principal | None = None, reason: str | None = None,
    ) -> SalesUserInfo:
        return self.transition(user_id, AccessStatus.ENABLED, actor, reason)

    def disable(
        self, user_id: UUID, actor: Principal | None = None, reason: str | None = None,
    ) -> SalesUserInfo:
        return self.transition(user_id, AccessStatus.DISABLED, actor, reason)

    def bulk_enable(
        self,
        user_ids: Iterable[UUID],
        actor: Principal | None = None,
        reason: str | None = None,
    ) -> BulkOperationResult:
        return self.bulk_transition(user_ids, AccessStatus.ENABLED, actor, reason)

    def bulk_disable(
        self,
        user_ids: Iterable[UUID],
        actor: Principal | None = None,
        reason: str | None = None,
    ) -> BulkOperationResult:
        actor = self._resolve_actor(actor)
        return self.bulk_transition(
            user_ids,
            AccessStatus.DISABLED,
            actor,
            reason,
            exclude=lambda user_id: str(user_id) == actor.actor_id,
        )

    def list_by_status(
        self,
        status: AccessStatus | str,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[SalesUserInfo, ...]:
        """Approved accounts in one access state, newest registration first."""
        return WorkflowEntitySelector(self._session).sales_users(
            approval_status=ApprovalStatus.APPROVED,
            access_status=parse_state(self.entity_kind, status),
            limit=limit,
            offset=offset,
        )
