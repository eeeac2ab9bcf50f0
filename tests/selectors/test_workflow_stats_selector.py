"""
Tests for WorkflowStatsSelector -- dashboard counts and approval statistics.
"""

from datetime import timedelta

import pytest

from crm_kernel.domain.states import (
    ApprovalStatus,
    CustomerStatus,
    DeleteRequestStatus,
    EntityKind,
)


class TestCountsByState:

    def test_every_state_reported(self, services):
        counts = services.stats.counts_by_state(EntityKind.DELETE_REQUEST)
        assert counts == {state: 0 for state in DeleteRequestStatus}

    def test_customer_counts(self, services, make_customer):
        customers = [make_customer() for _ in range(3)]
        services.customers.transition(customers[0].id, CustomerStatus.CERTIFIED)

        counts = services.stats.counts_by_state(EntityKind.CUSTOMER_LIFECYCLE)

        assert counts[CustomerStatus.NEW] == 2
        assert counts[CustomerStatus.CERTIFIED] == 1
        assert counts[CustomerStatus.ABORTED] == 0

    def test_soft_deleted_customers_not_counted(self, services, make_delete_request):
        request = make_delete_request()
        before = services.stats.counts_by_state(EntityKind.CUSTOMER_LIFECYCLE)

        services.delete_requests.approve(request.id)

        after = services.stats.counts_by_state(EntityKind.CUSTOMER_LIFECYCLE)
        assert after[CustomerStatus.NEW] == before[CustomerStatus.NEW] - 1


class TestApprovalStatistics:

    def test_summary(self, services, make_user, deterministic_clock):
        users = [make_user() for _ in range(5)]
        services.user_approvals.approve(users[0].id)
        services.user_approvals.approve(users[1].id)
        services.user_approvals.approve(users[2].id)
        services.user_approvals.reject(users[3].id, reason="unknown")

        stats = services.approval_statistics()

        assert stats.pending_count == 1
        assert stats.approved_count == 3
        assert stats.rejected_count == 1
        assert stats.recent_activity_count == 4
        assert stats.approval_rate == pytest.approx(75.0)

    def test_activity_window(self, services, make_user, deterministic_clock):
        old, new = make_user(), make_user()
        services.user_approvals.approve(old.id)
        deterministic_clock.advance(8 * 24 * 3600)
        services.user_approvals.approve(new.id)

        stats = services.approval_statistics()
        assert stats.approved_count == 2
        assert stats.recent_activity_count == 1

        since = deterministic_clock.now_utc() - timedelta(days=30)
        assert services.stats.approval_statistics(since).recent_activity_count == 2

    def test_empty(self, services):
        stats = services.approval_statistics()
        assert stats.approval_rate == 0.0
        assert stats.pending_count == 0
        assert stats.recent_activity_count == 0
        assert set(services.stats.counts_by_state(EntityKind.USER_APPROVAL)) == set(ApprovalStatus)
