"""
Database faults surface as ConflictDetectedError.

One connection holds SQLite's write lock (BEGIN IMMEDIATE) while the
workflow services run on a second engine whose busy timeout is short, so
every transaction they open fails with "database is locked".
"""

import pytest
from sqlalchemy.orm import sessionmaker

from printshop_kernel.db.engine import init_engine_from_url, reset_engine
from printshop_kernel.domain.roles import Role
from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.exceptions import ConflictDetectedError
from printshop_services.order_workflow import OrderWorkflowService
from printshop_services.workflow_executor import BudgetWorkflowService

pytestmark = pytest.mark.slow_locks


@pytest.fixture
def impatient_factory(database_url, db_engine, session_factory):
    if db_engine.dialect.name != "sqlite":
        pytest.skip("needs SQLite's database-wide write lock")
    engine = init_engine_from_url(
        database_url, pool_size=2, max_overflow=0, sqlite_busy_timeout=0.2
    )
    try:
        yield sessionmaker(bind=engine, expire_on_commit=False)
    finally:
        reset_engine()


@pytest.fixture
def write_lock(db_engine):
    """Context manager holding the database write lock on another connection."""
    return db_engine.begin


class TestLockedDatabase:
    def test_transition_becomes_conflict_and_is_traced(
        self,
        impatient_factory,
        write_lock,
        allocator,
        deterministic_clock,
        make_budget,
        moderator,
        admin,
        workflow_trace,
    ):
        budget_id = make_budget()
        service = BudgetWorkflowService(
            impatient_factory,
            allocator,
            clock=deterministic_clock,
            outcome_sink=workflow_trace.append,
        )

        with write_lock():
            with pytest.raises(ConflictDetectedError) as exc_info:
                service.submit_budget(budget_id, moderator)

        error = exc_info.value
        assert error.retryable
        assert "details" not in error.to_payload(Role.MODERATOR)
        assert "locked" in error.to_payload(Role.ADMIN)["details"]
        assert [r["outcome"] for r in workflow_trace] == ["conflict"]
        assert service.get_budget(budget_id, admin).status == BudgetStatus.DRAFT

    def test_conversion_becomes_conflict(
        self,
        impatient_factory,
        write_lock,
        allocator,
        deterministic_clock,
        make_budget,
        moderator,
        workflow_trace,
        orders_for,
    ):
        budget_id = make_budget(BudgetStatus.APPROVED)
        service = BudgetWorkflowService(
            impatient_factory,
            allocator,
            clock=deterministic_clock,
            outcome_sink=workflow_trace.append,
        )

        with write_lock():
            with pytest.raises(ConflictDetectedError):
                service.convert_budget_to_order(budget_id, moderator)

        assert workflow_trace[-1]["outcome"] == "conflict"
        assert orders_for(budget_id) == []

    def test_order_status_change_becomes_conflict(
        self,
        impatient_factory,
        write_lock,
        allocator,
        deterministic_clock,
        order_workflow,
        user,
        client_id,
        center_id,
    ):
        order = order_workflow.create_direct_order(
            user,
            client_id=client_id,
            center_id=center_id,
            title="Banner",
            tiragem=1,
            formato="90x120",
            num_paginas_total=1,
            num_paginas_coloridas=1,
            valor_unitario="80.00",
            valor_total="80.00",
            prazo_entrega="1 dia",
        )
        service = OrderWorkflowService(impatient_factory, allocator, clock=deterministic_clock)

        with write_lock():
            with pytest.raises(ConflictDetectedError) as exc_info:
                service.update_order_status(order.id, user, "IN_PRODUCTION")

        assert exc_info.value.entity_type == "Order"
