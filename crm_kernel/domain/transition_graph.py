"""
Transition graph (``crm_kernel.domain.transition_graph``).

Responsibility
--------------
Immutable lookup ``(EntityKind, from_state) -> frozenset[to_state]`` for
every governed entity kind.  The default graph is built once at import
time and shared by every validator without locking.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* No self-loops: an allowed-target set never contains its own source state.
* Closed world: every target named in a kind's table is itself a state of
  that kind.
* An empty target set means the state is terminal.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from crm_kernel.domain.states import (
    AccessStatus,
    ApprovalStatus,
    CustomerStatus,
    DeleteRequestStatus,
    EntityKind,
    WorkflowState,
)

_EMPTY: frozenset = frozenset()


class TransitionGraph:
    """
    Per-kind adjacency table of legal state changes.

    Contract:
        Built from a mapping ``{kind: {state: iterable_of_targets}}``.  The
        constructor validates the table and freezes it.

    Guarantees:
        - ``allowed_targets`` never raises; unknown kinds or states yield an
          empty set.
        - State order returned by ``states()`` is the order of the table,
          which for the default graph is enum declaration order.

    Non-goals:
        - Not runtime-configurable.  Tests build custom graphs by calling
          the constructor directly.
    """

    def __init__(
        self,
        edges: Mapping[EntityKind, Mapping[WorkflowState, object]],
    ):
        frozen: dict[EntityKind, Mapping[WorkflowState, frozenset]] = {}
        for kind, table in edges.items():
            kind_states = tuple(table.keys())
            kind_table: dict[WorkflowState, frozenset] = {}
            for from_state, targets in table.items():
                targets = frozenset(targets)
                if from_state in targets:
                    raise ValueError(
                        f"{kind.value}: self-transition on {from_state.name} "
                        "is not allowed"
                    )
                unknown = targets.difference(kind_states)
                if unknown:
                    raise ValueError(
                        f"{kind.value}: targets {sorted(s.name for s in unknown)} "
                        f"from {from_state.name} are not states of this kind"
                    )
                kind_table[from_state] = targets
            frozen[kind] = MappingProxyType(kind_table)
        self._edges: Mapping[EntityKind, Mapping[WorkflowState, frozenset]] = (
            MappingProxyType(frozen)
        )
        self._entered: Mapping[EntityKind, frozenset] = MappingProxyType({
            kind: frozenset().union(*table.values()) if table else _EMPTY
            for kind, table in frozen.items()
        })

    def kinds(self) -> tuple[EntityKind, ...]:
        return tuple(self._edges.keys())

    def states(self, kind: EntityKind) -> tuple[WorkflowState, ...]:
        """All states of ``kind`` in table order."""
        return tuple(self._edges.get(kind, {}).keys())

    def allowed_targets(
        self, kind: EntityKind, from_state: WorkflowState | None,
    ) -> frozenset:
        if from_state is None:
            return _EMPTY
        return self._edges.get(kind, {}).get(from_state, _EMPTY)

    def is_terminal(self, kind: EntityKind, state: WorkflowState) -> bool:
        """True iff the state has no outgoing edges."""
        return not self.allowed_targets(kind, state)

    def can_be_entered(self, kind: EntityKind, state: WorkflowState) -> bool:
        """True iff some state of ``kind`` has an edge into ``state``."""
        return state in self._entered.get(kind, _EMPTY)


def _complete_graph(states: tuple) -> dict:
    return {s: frozenset(t for t in states if t is not s) for s in states}


def build_default_graph() -> TransitionGraph:
    """Build the fixed production graph for all entity kinds."""
    post_new = (
        CustomerStatus.NOTIFIED,
        CustomerStatus.ABORTED,
        CustomerStatus.SUBMITTED,
        CustomerStatus.CERTIFIED,
    )
    customer = {CustomerStatus.NEW: frozenset(post_new)}
    customer.update(_complete_graph(post_new))

    return TransitionGraph({
        # NEW can go anywhere; once left it is never re-entered.
        EntityKind.CUSTOMER_LIFECYCLE: customer,
        # APPROVED <-> REJECTED must pass through PENDING.
        EntityKind.USER_APPROVAL: {
            ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
            ApprovalStatus.APPROVED: {ApprovalStatus.PENDING},
            ApprovalStatus.REJECTED: {ApprovalStatus.PENDING},
        },
        EntityKind.DELETE_REQUEST: {
            DeleteRequestStatus.PENDING: {
                DeleteRequestStatus.APPROVED,
                DeleteRequestStatus.REJECTED,
            },
            DeleteRequestStatus.APPROVED: _EMPTY,
            DeleteRequestStatus.REJECTED: _EMPTY,
        },
        EntityKind.USER_ACCESS: {
            AccessStatus.ENABLED: {AccessStatus.DISABLED},
            AccessStatus.DISABLED: {AccessStatus.ENABLED},
        },
    })


DEFAULT_TRANSITION_GRAPH: TransitionGraph = build_default_graph()
