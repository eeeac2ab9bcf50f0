"""
Tests for UserAccessService -- enabling and disabling approved accounts.

Covers:
- disable / enable on approved accounts, stamped and cleared fields
- only APPROVED accounts may change access
- self-disable is forbidden; bulk_disable skips the actor's own id
- access and approval are audited as separate kinds
- listing approved accounts by access status
"""

import pytest

from crm_kernel.domain.dtos import OutcomeStatus
from crm_kernel.domain.identity import Principal
from crm_kernel.domain.states import AccessStatus, EntityKind, SalesRole
from crm_kernel.exceptions import ForbiddenTransitionError, InvalidTransitionError


def _principal_for(user):
    return Principal(actor_id=str(user.id), display_name=user.display_name, role=user.role)


class TestDisableEnable:

    def test_disable_stamps_fields(self, services, make_approved_user, admin_principal, deterministic_clock):
        user = make_approved_user()

        disabled = services.user_access.disable(user.id, reason="left the company")

        assert disabled.access_status == AccessStatus.DISABLED
        assert disabled.disabled_by == admin_principal.actor_id
        assert disabled.disabled_at == deterministic_clock.now_utc()
        assert disabled.disabled_reason == "left the company"
        assert not disabled.is_active

    def test_enable_clears_fields(self, services, make_approved_user):
        user = make_approved_user()
        services.user_access.disable(user.id)

        enabled = services.user_access.enable(user.id)

        assert enabled.access_status == AccessStatus.ENABLED
        assert enabled.disabled_by is None
        assert enabled.disabled_at is None
        assert enabled.disabled_reason is None
        assert enabled.is_active

    def test_enable_when_enabled_is_invalid(self, services, make_approved_user):
        user = make_approved_user()

        with pytest.raises(InvalidTransitionError, match="already in status ENABLED"):
            services.user_access.enable(user.id)

    def test_pending_user_cannot_be_disabled(self, services, make_user):
        user = make_user()

        with pytest.raises(ForbiddenTransitionError, match="Only approved users"):
            services.user_access.disable(user.id)

    def test_cannot_disable_self(self, services, make_approved_user):
        admin_user = make_approved_user(role=SalesRole.ADMIN)

        outcome = services.user_access.try_transition(
            admin_user.id, AccessStatus.DISABLED, actor=_principal_for(admin_user),
        )

        assert outcome.status == OutcomeStatus.FORBIDDEN
        assert outcome.reason == "Cannot disable your own account"
        assert services.user_access.current_state(admin_user.id) == AccessStatus.ENABLED

    def test_access_history_is_separate_from_approval(self, services, make_approved_user):
        user = make_approved_user()
        services.user_access.disable(user.id)

        (access_record,) = services.user_access.history(user.id)
        (approval_record,) = services.user_approvals.history(user.id)

        assert access_record.entity_kind == EntityKind.USER_ACCESS
        assert access_record.to_state == "disabled"
        assert approval_record.entity_kind == EntityKind.USER_APPROVAL
        assert access_record.seq == 1


class TestBulkAccess:

    def test_bulk_disable_skips_actor(self, services, make_approved_user):
        admin_user = make_approved_user(role=SalesRole.ADMIN)
        others = [make_approved_user(), make_approved_user()]
        ids = [others[0].id, admin_user.id, others[1].id]

        result = services.user_access.bulk_disable(ids, actor=_principal_for(admin_user))

        assert result.skipped == (admin_user.id,)
        assert result.attempted == (others[0].id, others[1].id)
        assert result.succeeded == (others[0].id, others[1].id)
        assert result.total == 3
        assert services.user_access.current_state(admin_user.id) == AccessStatus.ENABLED
        assert services.user_access.history(admin_user.id) == ()

    def test_bulk_disable_reports_unapproved(self, services, make_approved_user, make_user):
        approved = make_approved_user()
        pending = make_user()

        result = services.user_access.bulk_disable([approved.id, pending.id])

        assert result.succeeded == (approved.id,)
        (failure,) = result.failures
        assert failure.entity_id == pending.id
        assert failure.code == "FORBIDDEN_TRANSITION"
        assert failure.reason == "Only approved users can be enabled or disabled"

    def test_bulk_enable(self, services, make_approved_user):
        users = [make_approved_user(), make_approved_user()]
        services.user_access.bulk_disable([u.id for u in users])

        result = services.user_access.bulk_enable([u.id for u in users])

        assert result.all_succeeded
        assert result.success_count == 2


class TestListings:

    def test_list_by_status(self, services, make_approved_user, make_user, deterministic_clock):
        active = make_approved_user()
        deterministic_clock.advance(60)
        blocked = make_approved_user()
        make_user()
        services.user_access.disable(blocked.id, reason="left")

        disabled = services.user_access.list_by_status(AccessStatus.DISABLED)
        enabled = services.user_access.list_by_status("ENABLED")

        assert [u.id for u in disabled] == [blocked.id]
        assert [u.id for u in enabled] == [active.id]

    def test_unknown_status_raises(self, services):
        with pytest.raises(ValueError):
            services.user_access.list_by_status("suspended")
