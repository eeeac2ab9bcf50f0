"""
CRM Workflow Kernel

State-machine core of the customer-relationship tracker:
- Fixed per-kind transition graphs
- Validation with human-readable rejections
- Append-only audit trail of every accepted transition
- Optimistic concurrency on tracked entities
"""

__version__ = "0.1.0"
