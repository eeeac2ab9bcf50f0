"""
crm_services.customer_lifecycle -- Customer pipeline stages.

NEW may move to any other stage and is never re-entered.  The four later
stages move freely among themselves.  Entering CERTIFIED stamps
``certified_at``, the conversion signal used by reporting.

A soft-deleted customer can be restored.  Restoring is not a stage change:
the customer comes back in the stage it was deleted in, and the audit
trail gets a record whose from and to states are both that stage.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from crm_kernel.domain.dtos import CustomerInfo
from crm_kernel.domain.identity import Principal
from crm_kernel.domain.states import CustomerStatus, EntityKind, WorkflowState
from crm_kernel.exceptions import CustomerNotDeletedError, EntityNotFoundError
from crm_kernel.logging_config import get_logger
from crm_kernel.models.customer import Customer
from crm_services.workflow_service import WorkflowService

logger = get_logger("services.customer_lifecycle")

RESTORE_REASON = "Customer restored from soft delete"


class CustomerLifecycleService(WorkflowService):
    """Moves customers through NEW / NOTIFIED / ABORTED / SUBMITTED / CERTIFIED."""

    entity_kind = EntityKind.CUSTOMER_LIFECYCLE
    workflow_name = "customer_lifecycle"

    def _current_state(self, entity: Customer) -> WorkflowState:
        return CustomerStatus(entity.current_status)

    def _set_state(self, entity: Customer, state: WorkflowState, now: datetime) -> None:
        entity.current_status = state.value
        entity.status_changed_at = now
        if state == CustomerStatus.CERTIFIED:
            entity.certified_at = now

    def create_customer(
        self,
        name: str,
        phone: str,
        sales_phone: str | None = None,
    ) -> CustomerInfo:
        """
        Register a customer in NEW.

        Creation is not a transition: it is logged, not audited.
        """
        customer = Customer(
            id=uuid4(),
            name=name,
            phone=phone,
            sales_phone=sales_phone,
            current_status=CustomerStatus.NEW.value,
            created_at=self._clock.now_utc(),
        )
        with self._session.begin_nested():
            self._store.add(customer)
        logger.info(
            "customer_created",
            extra={"customer_id": str(customer.id), "sales_phone": sales_phone},
        )
        return customer.to_dto()

    def restore_customer(
        self, customer_id: UUID, actor: Principal | None = None,
    ) -> CustomerInfo:
        """
        Bring a soft-deleted customer back, in the stage it was deleted in.

        Raises:
            EntityNotFoundError: no customer with this id, deleted or not.
            CustomerNotDeletedError: the customer is live.
            OptimisticLockError, PersistenceFailureError: the write failed;
                nothing was changed.
        """
        actor = self._resolve_actor(actor)
        customer = self._store.load_customer_including_deleted(customer_id)
        if customer is None:
            raise EntityNotFoundError(self.entity_kind.value, str(customer_id))
        if not customer.is_deleted:
            raise CustomerNotDeletedError(str(customer_id))

        stage = CustomerStatus(customer.current_status)
        with self._session.begin_nested():
            customer.deleted_at = None
            self._store.save(customer)
            record = self._recorder.record(
                self.entity_kind, customer_id, stage, stage, actor, RESTORE_REASON,
            )
        logger.info(
            "customer_restored",
            extra={
                "customer_id": str(customer_id),
                "status": stage.value,
                "seq": record.seq,
                "actor_id": actor.actor_id,
            },
        )
        return customer.to_dto()
