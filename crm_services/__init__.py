"""
crm_services -- Package init and public API.

Responsibility:
    Workflow services for each governed entity kind, the bulk runner, and
    wiring.  This is the layer callers (HTTP handlers, scripts) talk to.

Architecture position:
    Services -- orchestration over the kernel.

    Dependency direction:
        crm_services/ -> crm_kernel/   (allowed)
        crm_services/ -> crm_config/   (allowed)
        crm_kernel/   -> crm_services/ (FORBIDDEN)
        crm_kernel/   -> crm_config/   (FORBIDDEN)
"""

from crm_services.bulk_runner import BulkOperationRunner
from crm_services.customer_lifecycle import CustomerLifecycleService
from crm_services.delete_request import DeleteRequestService
from crm_services.factory import (
    WorkflowServices,
    bootstrap_from_config,
    create_workflow_services,
)
from crm_services.user_access import UserAccessService
from crm_services.user_approval import UserApprovalService
from crm_services.workflow_service import RuleViolation, WorkflowService

__all__ = [
    "BulkOperationRunner",
    "CustomerLifecycleService",
    "DeleteRequestService",
    "RuleViolation",
    "UserAccessService",
    "UserApprovalService",
    "WorkflowService",
    "WorkflowServices",
    "bootstrap_from_config",
    "create_workflow_services",
]
