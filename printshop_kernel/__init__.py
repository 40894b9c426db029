"""
Print-Shop Workflow Kernel

The budget/order core of a print-shop order-management application:
- Budget lifecycle state machine (draft, submitted, approved, rejected, converted)
- Role-gated transitions
- Concurrency-safe document numbering
- One-shot conversion of approved budgets into production orders
"""

__version__ = "0.1.0"
