"""
Tests for TransitionGraph and the default production graph.

Covers:
- customer lifecycle: NEW fans out and is never re-entered
- user approval: decisions only flip through PENDING
- delete request: APPROVED and REJECTED are terminal
- user access: ENABLED <-> DISABLED
- constructor validation (self-loops, foreign targets)
"""

import pytest

from crm_kernel.domain.states import (
    AccessStatus,
    ApprovalStatus,
    CustomerStatus,
    DeleteRequestStatus,
    EntityKind,
)
from crm_kernel.domain.transition_graph import (
    DEFAULT_TRANSITION_GRAPH,
    TransitionGraph,
    build_default_graph,
)

graph = DEFAULT_TRANSITION_GRAPH


class TestCustomerLifecycleGraph:

    def test_new_reaches_every_other_stage(self):
        assert graph.allowed_targets(EntityKind.CUSTOMER_LIFECYCLE, CustomerStatus.NEW) == {
            CustomerStatus.NOTIFIED,
            CustomerStatus.ABORTED,
            CustomerStatus.SUBMITTED,
            CustomerStatus.CERTIFIED,
        }

    @pytest.mark.parametrize("source", [
        CustomerStatus.NOTIFIED,
        CustomerStatus.ABORTED,
        CustomerStatus.SUBMITTED,
        CustomerStatus.CERTIFIED,
    ])
    def test_later_stages_move_among_themselves(self, source):
        targets = graph.allowed_targets(EntityKind.CUSTOMER_LIFECYCLE, source)
        assert CustomerStatus.NEW not in targets
        assert source not in targets
        assert len(targets) == 3

    def test_new_is_never_re_entered(self):
        assert not graph.can_be_entered(EntityKind.CUSTOMER_LIFECYCLE, CustomerStatus.NEW)
        assert graph.can_be_entered(EntityKind.CUSTOMER_LIFECYCLE, CustomerStatus.CERTIFIED)

    def test_no_customer_stage_is_terminal(self):
        for state in CustomerStatus:
            assert not graph.is_terminal(EntityKind.CUSTOMER_LIFECYCLE, state)


class TestUserApprovalGraph:

    def test_pending_decides(self):
        assert graph.allowed_targets(EntityKind.USER_APPROVAL, ApprovalStatus.PENDING) == {
            ApprovalStatus.APPROVED,
            ApprovalStatus.REJECTED,
        }

    def test_decisions_only_reset_to_pending(self):
        for decided in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
            assert graph.allowed_targets(EntityKind.USER_APPROVAL, decided) == {
                ApprovalStatus.PENDING,
            }


class TestDeleteRequestGraph:

    def test_terminal_states(self):
        assert graph.is_terminal(EntityKind.DELETE_REQUEST, DeleteRequestStatus.APPROVED)
        assert graph.is_terminal(EntityKind.DELETE_REQUEST, DeleteRequestStatus.REJECTED)
        assert not graph.is_terminal(EntityKind.DELETE_REQUEST, DeleteRequestStatus.PENDING)

    def test_pending_cannot_be_re_entered(self):
        assert not graph.can_be_entered(EntityKind.DELETE_REQUEST, DeleteRequestStatus.PENDING)


class TestUserAccessGraph:

    def test_toggle(self):
        assert graph.allowed_targets(EntityKind.USER_ACCESS, AccessStatus.ENABLED) == {
            AccessStatus.DISABLED,
        }
        assert graph.allowed_targets(EntityKind.USER_ACCESS, AccessStatus.DISABLED) == {
            AccessStatus.ENABLED,
        }


class TestGraphStructure:

    def test_every_kind_is_covered(self):
        assert set(graph.kinds()) == set(EntityKind)

    def test_states_follow_declaration_order(self):
        assert graph.states(EntityKind.CUSTOMER_LIFECYCLE) == tuple(CustomerStatus)

    def test_no_self_loops_anywhere(self):
        for kind in graph.kinds():
            for state in graph.states(kind):
                assert state not in graph.allowed_targets(kind, state)

    def test_allowed_targets_never_raises(self):
        assert graph.allowed_targets(EntityKind.USER_ACCESS, None) == frozenset()
        empty = TransitionGraph({})
        assert empty.allowed_targets(EntityKind.USER_ACCESS, AccessStatus.ENABLED) == frozenset()

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            graph._edges[EntityKind.USER_ACCESS] = {}

    def test_rebuild_is_equivalent(self):
        rebuilt = build_default_graph()
        for kind in graph.kinds():
            for state in graph.states(kind):
                assert rebuilt.allowed_targets(kind, state) == graph.allowed_targets(kind, state)

    def test_self_loop_rejected(self):
        with pytest.raises(ValueError, match="self-transition"):
            TransitionGraph({
                EntityKind.USER_ACCESS: {
                    AccessStatus.ENABLED: {AccessStatus.ENABLED},
                    AccessStatus.DISABLED: set(),
                },
            })

    def test_target_outside_kind_rejected(self):
        with pytest.raises(ValueError, match="not states of this kind"):
            TransitionGraph({
                EntityKind.USER_ACCESS: {
                    AccessStatus.ENABLED: {CustomerStatus.CERTIFIED},
                    AccessStatus.DISABLED: set(),
                },
            })
