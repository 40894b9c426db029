"""
printshop_services.workflow_engine -- dependency container.

Responsibility:
    Builds the allocator, the budget workflow service and the order
    workflow service exactly once and wires them to one session factory,
    one clock and one configuration.

Usage:
    engine = build_workflow_engine_from_config()
    engine.budgets.submit_budget(budget_id, actor)
    engine.orders.update_order_status(order_id, actor, "IN_PRODUCTION")
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from printshop_config.schema import PrintShopConfig
from printshop_kernel.domain.clock import Clock, SystemClock
from printshop_services.order_workflow import OrderWorkflowService
from printshop_services.sequence_allocator import SequenceAllocator
from printshop_services.workflow_executor import BudgetWorkflowService


class WorkflowEngine:
    """All workflow services, sharing one session factory and clock."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: PrintShopConfig,
        clock: Clock | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ) -> None:
        self.config = config
        self.clock = clock or SystemClock()
        self.allocator = SequenceAllocator(
            session_factory,
            schemes=config.numbering_schemes(),
            clock=self.clock,
        )
        self.budgets = BudgetWorkflowService(
            session_factory,
            self.allocator,
            clock=self.clock,
            settings=config.workflow,
            outcome_sink=outcome_sink,
        )
        self.orders = OrderWorkflowService(
            session_factory,
            self.allocator,
            clock=self.clock,
        )


def build_workflow_engine_from_config(
    config_path: Path | None = None,
    clock: Clock | None = None,
    database_url: str | None = None,
    create_schema: bool = False,
) -> WorkflowEngine:
    """
    Load configuration, initialize the database engine and wire services.

    Args:
        config_path: Optional YAML file; defaults to the packaged set.
        clock: Optional clock; default SystemClock.
        database_url: Overrides ``database.url`` from the configuration.
        create_schema: Create missing tables (development and tests).
    """
    from printshop_config import get_active_config
    from printshop_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
    )
    from printshop_kernel.logging_config import configure_logging

    config = get_active_config(config_path)
    configure_logging(level=config.logging.level)

    db = config.database
    init_engine_from_url(
        database_url or db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        sqlite_busy_timeout=db.sqlite_busy_timeout,
    )
    if create_schema:
        create_tables()

    return WorkflowEngine(get_session_factory(), config, clock=clock)
