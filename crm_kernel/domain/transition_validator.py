"""
Transition validator (``crm_kernel.domain.transition_validator``).

Responsibility
--------------
Decides whether a proposed state change is legal for an entity kind and,
on the rejection path only, explains why not.

Architecture position
---------------------
**Kernel domain layer** -- pure.  Depends on a ``TransitionGraph`` passed
in at construction; never reads a global.

Invariants enforced
-------------------
* ``is_valid_transition`` never raises and builds no strings.
* A missing state, a self-transition and a terminal source are always
  rejected, regardless of the graph.

Explanation wording
-------------------
Callers and tests match on these fragments, keep them stable:

* ``"state must be specified"``
* ``"already in status <STATE>"``
* ``"<STATE> is a terminal state, cannot transition"``
* ``"cannot return"`` (target is an entry state that is never re-entered)
* ``"cannot transition from <A> to <B>; valid transitions are {...}"``
"""

from __future__ import annotations

from crm_kernel.domain.states import (
    EntityKind,
    WorkflowState,
    parse_state,
    state_label,
)
from crm_kernel.domain.transition_graph import (
    DEFAULT_TRANSITION_GRAPH,
    TransitionGraph,
)


class TransitionValidator:
    """
    Stateless legality check over a transition graph.

    Contract:
        States may be passed as enum members or as their persisted string
        values.  Values that are not states of the kind are never valid.
    """

    def __init__(self, graph: TransitionGraph = DEFAULT_TRANSITION_GRAPH):
        self._graph = graph

    @property
    def graph(self) -> TransitionGraph:
        return self._graph

    def is_valid_transition(
        self,
        kind: EntityKind,
        from_state: WorkflowState | str | None,
        to_state: WorkflowState | str | None,
    ) -> bool:
        if from_state is None or to_state is None:
            return False
        source = self._coerce(kind, from_state)
        target = self._coerce(kind, to_state)
        if source is None or target is None or source == target:
            return False
        return target in self._graph.allowed_targets(kind, source)

    def valid_transitions(
        self, kind: EntityKind, from_state: WorkflowState | str | None,
    ) -> frozenset:
        """All states reachable in one step, empty for a missing or unknown state."""
        if from_state is None:
            return frozenset()
        source = self._coerce(kind, from_state)
        if source is None:
            return frozenset()
        return self._graph.allowed_targets(kind, source)

    def explain(
        self,
        kind: EntityKind,
        from_state: WorkflowState | str | None,
        to_state: WorkflowState | str | None,
    ) -> str:
        """Human-readable reason a transition is rejected."""
        if from_state is None or to_state is None:
            return "Both current and target state must be specified"

        source = self._coerce(kind, from_state)
        target = self._coerce(kind, to_state)
        for raw, parsed in ((from_state, source), (to_state, target)):
            if parsed is None:
                return f"{state_label(raw)} is not a known {kind.value} state"

        if source == target:
            return f"Entity is already in status {source.name}"

        allowed = self._graph.allowed_targets(kind, source)
        if not allowed:
            return f"{source.name} is a terminal state, cannot transition to {target.name}"

        if target in allowed:
            return f"Transition from {source.name} to {target.name} is valid"

        if not self._graph.can_be_entered(kind, target):
            return (
                f"cannot transition from {source.name} to {target.name}; "
                f"once an entity leaves {target.name} it cannot return to it"
            )

        ordered = [s.name for s in self._graph.states(kind) if s in allowed]
        return (
            f"cannot transition from {source.name} to {target.name}; "
            f"valid transitions are {{{', '.join(ordered)}}}"
        )

    @staticmethod
    def _coerce(kind: EntityKind, value: WorkflowState | str) -> WorkflowState | None:
        try:
            return parse_state(kind, value)
        except ValueError:
            return None
