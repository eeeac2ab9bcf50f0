"""
Tests for state parsing helpers and actor identity sources.
"""

import pytest

from crm_kernel.domain.identity import (
    SYSTEM_PRINCIPAL,
    ContextIdentitySource,
    IdentitySource,
    Principal,
    StaticIdentitySource,
)
from crm_kernel.domain.states import (
    STATE_ENUMS,
    CustomerStatus,
    DeleteRequestStatus,
    EntityKind,
    SalesRole,
    parse_role,
    parse_state,
    state_label,
)
from crm_kernel.exceptions import UnidentifiedActorError


class TestParseState:

    def test_member_passes_through(self):
        assert parse_state(EntityKind.CUSTOMER_LIFECYCLE, CustomerStatus.SUBMITTED) is (
            CustomerStatus.SUBMITTED
        )

    def test_value_and_name(self):
        assert parse_state(EntityKind.DELETE_REQUEST, "rejected") == DeleteRequestStatus.REJECTED
        assert parse_state(EntityKind.DELETE_REQUEST, "REJECTED") == DeleteRequestStatus.REJECTED

    def test_unknown_raises_value_error(self):
        with pytest.raises(ValueError):
            parse_state(EntityKind.CUSTOMER_LIFECYCLE, "won")

    def test_member_of_other_kind_raises(self):
        with pytest.raises(ValueError):
            parse_state(EntityKind.USER_APPROVAL, DeleteRequestStatus.PENDING)

    def test_every_kind_has_states(self):
        assert set(STATE_ENUMS) == set(EntityKind)

    def test_labels(self):
        assert state_label(CustomerStatus.NEW) == "NEW"
        assert state_label("whatever") == "whatever"
        assert state_label(None) == "None"
        assert CustomerStatus.NOTIFIED.display_name == "Notified"


class TestParseRole:

    def test_member_value_and_name(self):
        assert parse_role(SalesRole.SALES) is SalesRole.SALES
        assert parse_role("admin") == SalesRole.ADMIN
        assert parse_role("ADMIN") == SalesRole.ADMIN

    def test_unknown_role(self):
        with pytest.raises(ValueError, match="not a known sales role"):
            parse_role("manager")


class TestIdentitySources:

    def test_static_source(self):
        principal = Principal("u-1", "Una", SalesRole.ADMIN)
        source = StaticIdentitySource(principal)
        assert isinstance(source, IdentitySource)
        assert source.current_principal() is principal
        assert principal.is_admin

    def test_static_default_is_system(self):
        assert StaticIdentitySource().current_principal() == SYSTEM_PRINCIPAL
        assert not SYSTEM_PRINCIPAL.is_admin

    def test_context_binding(self):
        source = ContextIdentitySource()
        principal = Principal("u-2", "Bo")
        with ContextIdentitySource.bind(principal):
            assert source.current_principal() == principal
        with pytest.raises(UnidentifiedActorError):
            source.current_principal()

    def test_context_fallback(self):
        source = ContextIdentitySource(fallback=SYSTEM_PRINCIPAL)
        assert source.current_principal() == SYSTEM_PRINCIPAL
