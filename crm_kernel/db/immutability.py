"""
ORM-Level Immutability Enforcement for the workflow audit trail.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE operations reach the
database.  We register listeners on AuditRecordModel that refuse both:

    session.flush()
         |
         v
    [before_update event] --> _check_audit_record_update() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_audit_record_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

The flush is aborted and the database is never modified.  Tracked entities
(customers, users, delete requests) are mutable and are not covered here;
their changes are governed by the workflow services.

===============================================================================
USAGE
===============================================================================

Called once at startup, after models are imported:

    from crm_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Tests that need to prove detection may unregister and re-register:

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from crm_kernel.exceptions import ImmutabilityViolationError
from crm_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "AuditRecord",
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="AuditRecord",
        entity_id=str(target.id),
        reason=reason,
    )


def _check_audit_record_update(mapper, connection, target):
    """Prevent any updates to audit records."""
    _block(target, "UPDATE", "Audit records are immutable and cannot be modified")


def _check_audit_record_delete(mapper, connection, target):
    """Prevent deletion of audit records."""
    _block(target, "DELETE", "Audit records cannot be deleted")


def register_immutability_listeners():
    """
    Register the audit-record immutability listeners.

    Idempotent: registering twice does not install duplicate listeners.
    """
    from crm_kernel.models.audit_record import AuditRecordModel

    if not event.contains(AuditRecordModel, "before_update", _check_audit_record_update):
        event.listen(AuditRecordModel, "before_update", _check_audit_record_update)
    if not event.contains(AuditRecordModel, "before_delete", _check_audit_record_delete):
        event.listen(AuditRecordModel, "before_delete", _check_audit_record_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """Safely remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the audit-record immutability listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from crm_kernel.models.audit_record import AuditRecordModel

    _safe_remove_listener(AuditRecordModel, "before_update", _check_audit_record_update)
    _safe_remove_listener(AuditRecordModel, "before_delete", _check_audit_record_delete)
