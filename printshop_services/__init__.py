"""
printshop_services -- workflow services for the print-shop kernel.

Owns transaction boundaries.  Everything here receives a session factory
and a verified ``Actor``; kernel services below only flush.
"""

from printshop_services.authorization import (
    ACTION_MINIMUM_ROLE,
    can_perform,
    check_authorization,
    require_authorization,
)
from printshop_services.conversion_orchestrator import ConversionOrchestrator
from printshop_services.order_workflow import OrderWorkflowService
from printshop_services.sequence_allocator import SequenceAllocator
from printshop_services.workflow_engine import WorkflowEngine, build_workflow_engine_from_config
from printshop_services.workflow_executor import BudgetWorkflowService

__all__ = [
    "ACTION_MINIMUM_ROLE",
    "BudgetWorkflowService",
    "ConversionOrchestrator",
    "OrderWorkflowService",
    "SequenceAllocator",
    "WorkflowEngine",
    "build_workflow_engine_from_config",
    "can_perform",
    "check_authorization",
    "require_authorization",
]
