"""Kernel services: flush-only persistence operations."""

from printshop_kernel.services.budget_service import BudgetInfo, BudgetService
from printshop_kernel.services.order_service import OrderInfo, OrderService
from printshop_kernel.services.sequence_service import SequenceService

__all__ = [
    "BudgetInfo",
    "BudgetService",
    "OrderInfo",
    "OrderService",
    "SequenceService",
]
