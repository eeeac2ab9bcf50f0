"""
Pytest fixtures for the CRM workflow test suite.

Provides:
- A database engine and per-test session with automatic rollback
- Workflow services wired to a deterministic clock and a fixed actor
- Entity factories (customers, sales users, delete requests)
- Structured log capture

Environment Variables:
- DATABASE_URL: SQLAlchemy URL.  Defaults to in-memory SQLite; set a
  PostgreSQL URL to run the suite against a real server.
"""

import json
import logging
import os
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from crm_kernel.db.engine import create_tables, drop_tables, init_engine_from_url, reset_engine
from crm_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from crm_kernel.domain.clock import DeterministicClock
from crm_kernel.domain.identity import Principal, StaticIdentitySource
from crm_kernel.domain.states import ApprovalStatus, SalesRole
from crm_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from crm_services.factory import create_workflow_services

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture crm_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, services):
            services.customers.transition(...)
            logs = captured_logs()
            assert any(r["message"] == "workflow_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("crm_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures (engine + tables once per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end.

    Immutability listeners are registered once and remain active.
    """
    drop_tables(db_engine)
    create_tables(db_engine)
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables(db_engine)


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection using
    ``join_transaction_mode="create_savepoint"``.  Nothing a test does is
    ever committed; teardown rolls the outer transaction back.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Actors and services
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def admin_principal():
    return Principal(actor_id=str(uuid4()), display_name="Alice Admin", role=SalesRole.ADMIN)


@pytest.fixture
def sales_principal():
    return Principal(actor_id=str(uuid4()), display_name="Sam Sales", role=SalesRole.SALES)


@pytest.fixture
def services(session, deterministic_clock, admin_principal):
    """All workflow services acting as ``admin_principal`` by default."""
    return create_workflow_services(
        session,
        clock=deterministic_clock,
        identity=StaticIdentitySource(admin_principal),
    )


# =============================================================================
# Entity factories
# =============================================================================


@pytest.fixture
def make_customer(services):
    """Create a customer in NEW."""
    counter = iter(range(1, 10_000))

    def _make(name: str | None = None, sales_phone: str | None = "13800000000"):
        n = next(counter)
        return services.customers.create_customer(
            name=name or f"Customer {n}",
            phone=f"1390000{n:04d}",
            sales_phone=sales_phone,
        )

    return _make


@pytest.fixture
def make_user(services):
    """Register a sales user (PENDING, ENABLED)."""
    counter = iter(range(1, 10_000))

    def _make(role: SalesRole = SalesRole.SALES, display_name: str | None = None):
        n = next(counter)
        return services.user_approvals.register_user(
            phone=f"1370000{n:04d}",
            role=role,
            display_name=display_name or f"User {n}",
        )

    return _make


@pytest.fixture
def make_approved_user(services, make_user):
    """Register a sales user and approve it."""

    def _make(role: SalesRole = SalesRole.SALES):
        user = make_user(role=role)
        approved = services.user_approvals.approve(user.id)
        assert approved.approval_status == ApprovalStatus.APPROVED
        return approved

    return _make


@pytest.fixture
def make_delete_request(services, make_customer, sales_principal):
    """Create a customer and a PENDING delete request for it."""

    def _make(reason: str | None = "duplicate entry"):
        customer = make_customer()
        return services.delete_requests.create_request(
            customer.id, reason=reason, requested_by=sales_principal,
        )

    return _make
