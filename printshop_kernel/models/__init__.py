"""ORM models for the print-shop workflow kernel."""

from printshop_kernel.models.budget import QUOTED_FIELDS, Budget
from printshop_kernel.models.order import (
    BUDGET_SNAPSHOT_FIELDS,
    BUDGET_SNAPSHOT_TEXT_FIELDS,
    Order,
)
from printshop_kernel.models.party import Client, ProductionCenter
from printshop_kernel.models.sequence import SequenceCounter

__all__ = [
    "BUDGET_SNAPSHOT_FIELDS",
    "BUDGET_SNAPSHOT_TEXT_FIELDS",
    "Budget",
    "Client",
    "Order",
    "ProductionCenter",
    "QUOTED_FIELDS",
    "SequenceCounter",
]
