"""Pure domain layer: roles, lifecycle definitions, numbering and time."""

from printshop_kernel.domain.budget_workflow import BUDGET_WORKFLOW
from printshop_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from printshop_kernel.domain.numbering import DocumentNumber, NumberingScheme
from printshop_kernel.domain.roles import Action, Actor, Role
from printshop_kernel.domain.statuses import BudgetStatus, OrderStatus, OrderType
from printshop_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Action",
    "Actor",
    "BUDGET_WORKFLOW",
    "BudgetStatus",
    "Clock",
    "DeterministicClock",
    "DocumentNumber",
    "Guard",
    "NumberingScheme",
    "OrderStatus",
    "OrderType",
    "Role",
    "SystemClock",
    "Transition",
    "Workflow",
]
