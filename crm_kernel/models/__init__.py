"""ORM models for the CRM workflow kernel."""

from crm_kernel.models.audit_record import AuditRecordModel
from crm_kernel.models.customer import Customer
from crm_kernel.models.delete_request import CustomerDeleteRequest
from crm_kernel.models.sales_user import SalesUser

__all__ = [
    "AuditRecordModel",
    "Customer",
    "CustomerDeleteRequest",
    "SalesUser",
]
