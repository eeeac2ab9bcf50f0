"""Selectors for the CRM workflow kernel (read side)."""

from crm_kernel.selectors.workflow_entity_selector import WorkflowEntitySelector
from crm_kernel.selectors.workflow_stats_selector import WorkflowStatsSelector

__all__ = ["WorkflowEntitySelector", "WorkflowStatsSelector"]
