"""
WorkflowStore -- persistence port for tracked entities and audit records.

Responsibility:
    Loads tracked entities by kind and id, persists their mutations and
    appends audit records.  Translates SQLAlchemy failures into the kernel's
    typed errors so services never see driver exceptions.

Architecture position:
    Kernel > Services -- imperative shell.  ``WorkflowStore`` is the port;
    ``SqlAlchemyWorkflowStore`` is the only adapter.

Failure modes:
    - OptimisticLockError: an UPDATE matched zero rows because the row's
      version moved on since it was loaded (StaleDataError).
    - PersistenceFailureError: any other SQLAlchemyError on flush.  The
      driver error is chained and logged, never surfaced in the message.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from crm_kernel.domain.states import DeleteRequestStatus, EntityKind
from crm_kernel.exceptions import OptimisticLockError, PersistenceFailureError
from crm_kernel.logging_config import get_logger
from crm_kernel.models.audit_record import AuditRecordModel
from crm_kernel.models.customer import Customer
from crm_kernel.models.delete_request import CustomerDeleteRequest
from crm_kernel.models.sales_user import SalesUser

logger = get_logger("services.workflow_store")

MODEL_FOR_KIND: dict[EntityKind, type] = {
    EntityKind.CUSTOMER_LIFECYCLE: Customer,
    EntityKind.USER_APPROVAL: SalesUser,
    EntityKind.USER_ACCESS: SalesUser,
    EntityKind.DELETE_REQUEST: CustomerDeleteRequest,
}


@runtime_checkable
class WorkflowStore(Protocol):
    def load(self, kind: EntityKind, entity_id: UUID) -> Any | None: ...

    def add(self, entity: Any) -> None: ...

    def save(self, entity: Any) -> None: ...

    def append_audit(self, record: AuditRecordModel) -> None: ...

    def soft_delete_customer(self, customer_id: UUID, when: datetime) -> bool: ...

    def load_customer_including_deleted(self, customer_id: UUID) -> Customer | None: ...

    def find_pending_delete_request(
        self, customer_id: UUID,
    ) -> CustomerDeleteRequest | None: ...


class SqlAlchemyWorkflowStore:
    """
    WorkflowStore over a caller-owned Session.

    Contract:
        Flushes, never commits.  Soft-deleted customers are invisible to
        ``load``.
    """

    def __init__(self, session: Session):
        self._session = session

    def load(self, kind: EntityKind, entity_id: UUID) -> Any | None:
        model = MODEL_FOR_KIND[EntityKind(kind)]
        entity = self._session.get(model, entity_id)
        if entity is None:
            return None
        if isinstance(entity, Customer) and entity.is_deleted:
            return None
        return entity

    def add(self, entity: Any) -> None:
        self._session.add(entity)
        self._flush(entity, "create")

    def save(self, entity: Any) -> None:
        self._session.add(entity)
        self._flush(entity, "update")

    def append_audit(self, record: AuditRecordModel) -> None:
        self._session.add(record)
        self._flush(record, "append audit record for")

    def soft_delete_customer(self, customer_id: UUID, when: datetime) -> bool:
        """Mark a customer deleted.  False if it is missing or already deleted."""
        customer = self._session.get(Customer, customer_id)
        if customer is None or customer.is_deleted:
            logger.warning(
                "soft_delete_target_missing",
                extra={"customer_id": str(customer_id)},
            )
            return False
        customer.deleted_at = when
        self._flush(customer, "soft-delete")
        return True

    def load_customer_including_deleted(self, customer_id: UUID) -> Customer | None:
        return self._session.get(Customer, customer_id)

    def find_pending_delete_request(
        self, customer_id: UUID,
    ) -> CustomerDeleteRequest | None:
        return self._session.execute(
            select(CustomerDeleteRequest)
            .where(CustomerDeleteRequest.customer_id == customer_id)
            .where(
                CustomerDeleteRequest.request_status
                == DeleteRequestStatus.PENDING.value
            )
            .limit(1)
        ).scalar_one_or_none()

    def _flush(self, entity: Any, operation: str) -> None:
        entity_type = type(entity).__name__
        entity_id = str(getattr(entity, "id", None))
        try:
            self._session.flush()
        except StaleDataError as exc:
            logger.warning(
                "optimistic_lock_conflict",
                extra={"entity_type": entity_type, "entity_id": entity_id},
            )
            raise OptimisticLockError(entity_type, entity_id) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "persistence_failure",
                extra={
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "operation": operation,
                },
                exc_info=True,
            )
            raise PersistenceFailureError(entity_type, entity_id, operation) from exc
