"""
Races on a single budget.

Concurrent conversions must produce exactly one order; concurrent
approve/reject must leave exactly one winner.  Losers see the state the
winner produced (InvalidTransitionError) or lose the version
compare-and-swap (ConflictDetectedError); nothing else.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.exceptions import (
    BudgetAlreadyConvertedError,
    ConflictDetectedError,
    InvalidTransitionError,
)
from printshop_services.sequence_allocator import SequenceAllocator

pytestmark = pytest.mark.slow_locks

LOSING_ERRORS = (InvalidTransitionError, ConflictDetectedError)


def _run_all(fn, num_threads):
    """Run fn(thread_id) on num_threads threads released together."""
    barrier = Barrier(num_threads, timeout=30)

    def guarded(thread_id):
        barrier.wait()
        try:
            return ("ok", fn(thread_id))
        except LOSING_ERRORS as exc:
            return ("lost", exc)

    with ThreadPoolExecutor(max_workers=num_threads) as executor:
        futures = [executor.submit(guarded, i) for i in range(num_threads)]
        return [f.result() for f in futures]


class TestConcurrentConversion:
    @pytest.mark.parametrize("num_threads", [2, 8])
    def test_exactly_one_order(
        self, budget_workflow, allocator, make_budget, moderator, orders_for, num_threads
    ):
        budget_id = make_budget(BudgetStatus.APPROVED)

        results = _run_all(
            lambda _: budget_workflow.convert_budget_to_order(budget_id, moderator),
            num_threads,
        )

        winners = [value for kind, value in results if kind == "ok"]
        assert len(winners) == 1
        order = winners[0]

        assert orders_for(budget_id) == [(order.id, order.numero_pedido)]
        budget = budget_workflow.get_budget(budget_id, moderator)
        assert budget.status == BudgetStatus.CONVERTED
        assert budget.numero_pedido == order.numero_pedido
        assert budget.order_id == order.id

        # Losers may have drawn numbers before losing; those stay consumed
        assert allocator.current(SequenceAllocator.ORDER) >= 1

    def test_losers_after_commit_see_already_converted(
        self, budget_workflow, make_budget, moderator
    ):
        budget_id = make_budget(BudgetStatus.APPROVED)
        order = budget_workflow.convert_budget_to_order(budget_id, moderator)

        results = _run_all(
            lambda _: budget_workflow.convert_budget_to_order(budget_id, moderator),
            4,
        )

        assert all(kind == "lost" for kind, _ in results)
        for _, exc in results:
            assert isinstance(exc, BudgetAlreadyConvertedError)
            assert exc.order_id == order.id


class TestConcurrentReview:
    def test_approve_and_reject_have_one_winner(
        self, budget_workflow, make_budget, moderator, admin
    ):
        budget_id = make_budget(BudgetStatus.SUBMITTED)

        def review(thread_id):
            if thread_id % 2:
                return budget_workflow.approve_budget(budget_id, moderator)
            return budget_workflow.reject_budget(budget_id, admin, f"reviewer {thread_id}")

        results = _run_all(review, 6)

        winners = [value for kind, value in results if kind == "ok"]
        assert len(winners) == 1
        final = budget_workflow.get_budget(budget_id, moderator)
        assert final.status == winners[0].status
        if final.status == BudgetStatus.REJECTED:
            assert final.observacoes.count("Rejeitado em") == 1
            assert final.approved_at is None
        else:
            assert final.rejected_at is None
            assert final.observacoes is None

    def test_concurrent_submits(self, budget_workflow, make_budget, moderator, workflow_trace):
        budget_id = make_budget()

        results = _run_all(lambda _: budget_workflow.submit_budget(budget_id, moderator), 5)

        assert [kind for kind, _ in results].count("ok") == 1
        outcomes = sorted(r["outcome"] for r in workflow_trace)
        assert outcomes.count("success") == 1
        assert len(outcomes) == 5
