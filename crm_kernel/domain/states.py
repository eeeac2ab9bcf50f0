"""
Workflow state enums (``crm_kernel.domain.states``).

Responsibility
--------------
Names every tracked entity kind and the closed set of states each kind can
be in.  Values are the strings persisted in state columns and audit records.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from enum import Enum


class EntityKind(str, Enum):
    """Kinds of entity whose state is governed by a transition graph."""

    CUSTOMER_LIFECYCLE = "customer_lifecycle"
    USER_APPROVAL = "user_approval"
    DELETE_REQUEST = "delete_request"
    USER_ACCESS = "user_access"


class WorkflowState(str, Enum):
    """Base for state enums; adds a human-facing label."""

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class CustomerStatus(WorkflowState):
    """Sales pipeline stage of a customer."""

    NEW = "new"
    NOTIFIED = "notified"
    ABORTED = "aborted"
    SUBMITTED = "submitted"
    CERTIFIED = "certified"


class ApprovalStatus(WorkflowState):
    """Administrative approval of a sales user account."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DeleteRequestStatus(WorkflowState):
    """Review state of a customer delete request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccessStatus(WorkflowState):
    """Whether an approved sales user may sign in."""

    ENABLED = "enabled"
    DISABLED = "disabled"


class SalesRole(str, Enum):
    ADMIN = "admin"
    SALES = "sales"


STATE_ENUMS: dict[EntityKind, type[WorkflowState]] = {
    EntityKind.CUSTOMER_LIFECYCLE: CustomerStatus,
    EntityKind.USER_APPROVAL: ApprovalStatus,
    EntityKind.DELETE_REQUEST: DeleteRequestStatus,
    EntityKind.USER_ACCESS: AccessStatus,
}


def parse_state(kind: EntityKind, value: WorkflowState | str) -> WorkflowState:
    """
    Coerce a raw value into the state enum of ``kind``.

    Accepts an enum member, its value (``"certified"``) or its name
    (``"CERTIFIED"``).

    Raises:
        ValueError: if the value is not a state of ``kind``.
    """
    enum_cls = STATE_ENUMS[EntityKind(kind)]
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, Enum):
        raise ValueError(f"{value!r} is not a {kind.value} state")
    try:
        return enum_cls(value)
    except ValueError:
        pass
    try:
        return enum_cls[str(value).upper()]
    except KeyError:
        raise ValueError(f"{value!r} is not a {kind.value} state") from None


def state_label(value: WorkflowState | str | None) -> str:
    """Render a state for messages: enum name when known, raw value otherwise."""
    if value is None:
        return "None"
    if isinstance(value, Enum):
        return value.name
    return str(value)


def parse_role(value: SalesRole | str) -> SalesRole:
    """
    Coerce a raw value into a ``SalesRole`` (member, ``"admin"`` or ``"ADMIN"``).

    Raises:
        ValueError: if the value names no role.
    """
    if isinstance(value, SalesRole):
        return value
    try:
        return SalesRole(value)
    except ValueError:
        pass
    try:
        return SalesRole[str(value).upper()]
    except KeyError:
        raise ValueError(f"{value!r} is not a known sales role") from None
