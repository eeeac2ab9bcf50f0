"""
Typed Exception Hierarchy for the CRM workflow kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, batch scripts, the bulk runner) must react to a
rejected transition differently depending on why it was rejected: a missing
entity is a 404, an illegal edge is a 409/422, a lost optimistic-lock race is
retried.  Parsing message strings for that decision is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (entity kind, id, states)

Example:
    try:
        services.customers.transition(customer_id, CustomerStatus.CERTIFIED)
    except InvalidTransitionError as e:
        api_response(code=e.code, detail=str(e), from_state=e.from_state)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CrmKernelError (base)
    |
    +-- WorkflowError
    |   +-- EntityNotFoundError
    |   +-- InvalidTransitionError
    |   |   +-- RejectionReasonRequiredError
    |   +-- ForbiddenTransitionError
    |   +-- DuplicateDeleteRequestError
    |   +-- CustomerNotDeletedError
    |   +-- UnidentifiedActorError
    |   +-- BulkLimitExceededError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- PersistenceError
    |   +-- PersistenceFailureError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|--------------------------------------
Workflow     | ENTITY_NOT_FOUND            | Id does not resolve (or soft-deleted)
             | INVALID_TRANSITION          | Edge not in the transition graph
             | REJECTION_REASON_REQUIRED   | Delete request rejected without reason
             | FORBIDDEN_TRANSITION        | Legal edge blocked by a business rule
             | DUPLICATE_DELETE_REQUEST    | Customer already has a pending request
             | CUSTOMER_NOT_DELETED        | Restore of a customer that is live
             | UNIDENTIFIED_ACTOR          | No principal bound for the request
             | BULK_LIMIT_EXCEEDED         | Too many ids for one bulk call
-------------|-----------------------------|--------------------------------------
Concurrency  | OPTIMISTIC_LOCK_CONFLICT    | Row version changed since load
-------------|-----------------------------|--------------------------------------
Persistence  | PERSISTENCE_FAILURE         | Storage rejected the write
-------------|-----------------------------|--------------------------------------
Immutability | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of an audit record

Retry guidance:
   - ConcurrencyError -> reload and retry
   - PersistenceError -> retry later, alert if persistent
   - everything else  -> do not retry, the request itself is wrong
===============================================================================
"""


class CrmKernelError(Exception):
    """
    Base exception for all CRM kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CRM_KERNEL_ERROR"


# Workflow exceptions


class WorkflowError(CrmKernelError):
    """Base exception for workflow errors."""

    code: str = "WORKFLOW_ERROR"


class EntityNotFoundError(WorkflowError):
    """Tracked entity with given id was not found."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_kind: str, entity_id: str):
        self.entity_kind = str(entity_kind)
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_kind} not found: {self.entity_id}")


class InvalidTransitionError(WorkflowError):
    """
    Requested edge is not in the transition graph.

    The message is the validator's explanation, callers may show it verbatim.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_kind: str,
        entity_id: str,
        from_state: str | None,
        to_state: str | None,
        reason: str,
    ):
        self.entity_kind = str(entity_kind)
        self.entity_id = str(entity_id)
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        super().__init__(reason)


class RejectionReasonRequiredError(InvalidTransitionError):
    """A delete request cannot be rejected without a reason."""

    code: str = "REJECTION_REASON_REQUIRED"

    def __init__(
        self,
        entity_kind: str,
        entity_id: str,
        from_state: str | None = None,
        to_state: str | None = None,
        reason: str = "rejection reason is required",
    ):
        super().__init__(entity_kind, entity_id, from_state, to_state, reason)


class ForbiddenTransitionError(WorkflowError):
    """Edge is legal but a kind-specific rule blocks it for this actor."""

    code: str = "FORBIDDEN_TRANSITION"

    def __init__(
        self,
        entity_kind: str,
        entity_id: str,
        from_state: str | None,
        to_state: str | None,
        reason: str,
    ):
        self.entity_kind = str(entity_kind)
        self.entity_id = str(entity_id)
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        super().__init__(reason)


class DuplicateDeleteRequestError(WorkflowError):
    """The customer already has a pending delete request."""

    code: str = "DUPLICATE_DELETE_REQUEST"

    def __init__(self, customer_id: str, existing_request_id: str):
        self.customer_id = str(customer_id)
        self.existing_request_id = str(existing_request_id)
        super().__init__(
            f"A pending delete request already exists for customer "
            f"{self.customer_id}: {self.existing_request_id}"
        )


class CustomerNotDeletedError(WorkflowError):
    """Restore was asked for a customer that is not soft-deleted."""

    code: str = "CUSTOMER_NOT_DELETED"

    def __init__(self, customer_id: str):
        self.customer_id = str(customer_id)
        super().__init__(f"Customer {self.customer_id} is not deleted")


class UnidentifiedActorError(WorkflowError):
    """No principal is bound and no explicit actor was passed."""

    code: str = "UNIDENTIFIED_ACTOR"

    def __init__(self):
        super().__init__("No actor identity is available for this operation")


class BulkLimitExceededError(WorkflowError):
    """A bulk call received more ids than the configured ceiling."""

    code: str = "BULK_LIMIT_EXCEEDED"

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Bulk operation received {requested} ids, limit is {limit}"
        )


# Concurrency exceptions


class ConcurrencyError(CrmKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = str(entity_type)
        self.entity_id = str(entity_id)
        super().__init__(
            f"Optimistic lock conflict on {self.entity_type} {self.entity_id}: "
            "entity was modified by another transaction"
        )


# Persistence exceptions


class PersistenceError(CrmKernelError):
    """Base exception for storage errors."""

    code: str = "PERSISTENCE_ERROR"


class PersistenceFailureError(PersistenceError):
    """
    Storage rejected a write.

    The driver error is chained as ``__cause__`` and logged, it is never
    part of the message.
    """

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, entity_type: str, entity_id: str, operation: str):
        self.entity_type = str(entity_type)
        self.entity_id = str(entity_id)
        self.operation = operation
        super().__init__(
            f"Failed to {operation} {self.entity_type} {self.entity_id}"
        )


# Immutability exceptions


class ImmutabilityError(CrmKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an audit record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
