"""Lifecycle status enums shared by the domain, models and services."""

from enum import Enum


class BudgetStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CONVERTED = "CONVERTED"


class OrderStatus(str, Enum):
    """Flat production label; any value may follow any other."""

    PENDING = "PENDING"
    IN_PRODUCTION = "IN_PRODUCTION"
    COMPLETED = "COMPLETED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    ON_HOLD = "ON_HOLD"


class OrderType(str, Enum):
    BUDGET_DERIVED = "BUDGET_DERIVED"
    DIRECT_ORDER = "DIRECT_ORDER"
