"""
Concurrency and atomicity tests for the transition pipeline.

A concurrent writer is simulated by loading a row into the session, then
bumping its version behind the session's back, the same thing another
transaction committing first does.  The loaded row must stay referenced:
the identity map holds clean objects weakly, and a collected row would be
reloaded fresh at the new version.
Storage failures are injected at audit-sequence allocation, after the
entity UPDATE has already been flushed inside the transition's SAVEPOINT.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from crm_kernel.domain.dtos import OutcomeStatus
from crm_kernel.domain.states import CustomerStatus, DeleteRequestStatus
from crm_kernel.exceptions import OptimisticLockError, PersistenceFailureError
from crm_kernel.models.customer import Customer
from crm_kernel.services.sequence_service import SequenceService


def _load_then_bump(session, model, entity_id):
    """Load ``entity_id`` into the session, then move its row on by one version."""
    row = session.get(model, entity_id)
    assert row is not None
    loaded_version = row.version
    session.execute(
        text(f"UPDATE {model.__tablename__} SET version = version + 1 WHERE id = :id"),
        {"id": str(entity_id)},
    )
    assert row.version == loaded_version
    return row


@pytest.fixture
def failing_sequence(monkeypatch):
    """Make audit sequence allocation fail for selected entity ids."""
    original = SequenceService.next_value
    doomed: set[str] = set()

    def next_value(self, sequence_name):
        if any(entity_id in sequence_name for entity_id in doomed):
            raise OperationalError("UPDATE sequence_counters", {}, Exception("disk I/O error"))
        return original(self, sequence_name)

    monkeypatch.setattr(SequenceService, "next_value", next_value)
    return lambda entity_id: doomed.add(str(entity_id))


class TestOptimisticLock:

    def test_stale_version_is_a_conflict(self, session, services, make_customer):
        customer = make_customer()
        stale = _load_then_bump(session, Customer, customer.id)

        outcome = services.customers.try_transition(customer.id, CustomerStatus.NOTIFIED)

        assert outcome.status == OutcomeStatus.CONFLICT
        assert outcome.code == OptimisticLockError.code
        assert services.customers.history(customer.id) == ()
        assert stale.current_status == CustomerStatus.NEW.value
        assert stale.version == customer.version + 1

    def test_conflict_raises_at_the_edge(self, session, services, make_customer):
        customer = make_customer()
        stale = _load_then_bump(session, Customer, customer.id)

        with pytest.raises(OptimisticLockError):
            services.customers.transition(customer.id, CustomerStatus.ABORTED)

        assert stale.current_status == CustomerStatus.NEW.value

    def test_retry_after_conflict_succeeds(self, session, services, make_customer):
        customer = make_customer()
        stale = _load_then_bump(session, Customer, customer.id)
        first = services.customers.try_transition(customer.id, CustomerStatus.NOTIFIED)
        assert first.status == OutcomeStatus.CONFLICT

        updated = services.customers.transition(customer.id, CustomerStatus.NOTIFIED)

        assert updated.status == CustomerStatus.NOTIFIED
        assert updated.version == customer.version + 2
        assert stale.version == updated.version
        (record,) = services.customers.history(customer.id)
        assert (record.from_state, record.to_state) == ("new", "notified")

    def test_conflict_on_customer_blocks_delete_approval(self, session, services, make_delete_request):
        request = make_delete_request()
        stale = _load_then_bump(session, Customer, request.customer_id)

        outcome = services.delete_requests.try_transition(request.id, DeleteRequestStatus.APPROVED)

        assert outcome.status == OutcomeStatus.CONFLICT
        assert services.delete_requests.current_state(request.id) == DeleteRequestStatus.PENDING
        assert services.delete_requests.history(request.id) == ()
        assert stale.deleted_at is None
        assert services.customers.get(request.customer_id).status == CustomerStatus.NEW


class TestAtomicity:

    def test_audit_failure_rolls_back_entity(self, services, make_customer, failing_sequence):
        customer = make_customer()
        failing_sequence(customer.id)

        outcome = services.customers.try_transition(customer.id, CustomerStatus.CERTIFIED)

        assert outcome.status == OutcomeStatus.PERSISTENCE_FAILURE
        assert outcome.code == PersistenceFailureError.code
        assert "disk I/O" not in outcome.reason
        current = services.customers.get(customer.id)
        assert current.status == CustomerStatus.NEW
        assert current.certified_at is None
        assert current.version == customer.version

    def test_audit_failure_raises_at_the_edge(self, services, make_customer, failing_sequence):
        customer = make_customer()
        failing_sequence(customer.id)

        with pytest.raises(PersistenceFailureError) as excinfo:
            services.customers.transition(customer.id, CustomerStatus.NOTIFIED)

        assert isinstance(excinfo.value.__cause__, OperationalError)

    def test_audit_failure_keeps_customer_on_delete_approval(self, services, make_delete_request, failing_sequence):
        request = make_delete_request()
        failing_sequence(request.id)

        outcome = services.delete_requests.try_transition(request.id, DeleteRequestStatus.APPROVED)

        assert outcome.status == OutcomeStatus.PERSISTENCE_FAILURE
        assert services.customers.get(request.customer_id).status == CustomerStatus.NEW
        assert services.delete_requests.current_state(request.id) == DeleteRequestStatus.PENDING

    def test_bulk_failure_is_isolated(self, services, make_customer, failing_sequence):
        customers = [make_customer() for _ in range(3)]
        failing_sequence(customers[1].id)

        result = services.customers.bulk_transition(
            [c.id for c in customers], CustomerStatus.SUBMITTED,
        )

        assert result.succeeded == (customers[0].id, customers[2].id)
        (failure,) = result.failures
        assert failure.entity_id == customers[1].id
        assert failure.code == PersistenceFailureError.code
        assert services.customers.current_state(customers[0].id) == CustomerStatus.SUBMITTED
        assert services.customers.current_state(customers[1].id) == CustomerStatus.NEW
        assert services.customers.current_state(customers[2].id) == CustomerStatus.SUBMITTED
