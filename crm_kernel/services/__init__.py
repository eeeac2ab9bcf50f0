"""Services for the CRM workflow kernel (write side)."""

from crm_kernel.services.audit_trail_recorder import AuditTrailRecorder
from crm_kernel.services.sequence_service import SequenceService
from crm_kernel.services.workflow_store import SqlAlchemyWorkflowStore, WorkflowStore

__all__ = [
    "AuditTrailRecorder",
    "SequenceService",
    "SqlAlchemyWorkflowStore",
    "WorkflowStore",
]
