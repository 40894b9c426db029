"""
printshop_services.conversion_orchestrator -- budget to order conversion.

Responsibility:
    Turns an APPROVED budget into exactly one production order.

    1. Read and check: budget exists, actor may convert, budget is
       APPROVED, no order exists, client and center are set and active.
    2. Number: if the budget has no ``numero_pedido``, draw one from the
       ORDER sequence (committed on its own) and persist it onto the budget
       in a short locked transaction.  A retried conversion finds the
       persisted number and skips allocation.
    3. Convert: in one locked transaction, re-check state and guards,
       snapshot the budget into a new order, and mark the budget CONVERTED.
       Nobody ever observes one half of this step.

Architecture position:
    Services layer.  Owns its transactions.  Delegates numbering to
    SequenceAllocator and persistence to the kernel Budget/Order services.

Invariants enforced:
    - status == CONVERTED iff an order with budget_id == budget.id exists.
    - At most one order per budget, backed by the unique orders.budget_id.
    - A number drawn but not persisted (lost race, crash) is consumed and
      never reissued.

Failure modes:
    NotFoundError, UnauthorizedError, InvalidTransitionError (including
    BudgetAlreadyConvertedError), ValidationFailedError,
    AllocationFailedError, ConflictDetectedError.  Nothing is retried here.
"""

from __future__ import annotations

import time
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from printshop_kernel.domain.budget_workflow import BUDGET_WORKFLOW
from printshop_kernel.domain.clock import Clock, SystemClock
from printshop_kernel.domain.roles import Action, Actor
from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.domain.workflow import Workflow
from printshop_kernel.exceptions import ConflictDetectedError, PrintShopError
from printshop_kernel.logging_config import LogContext, get_logger
from printshop_kernel.services.budget_service import BudgetService
from printshop_kernel.services.order_service import OrderInfo, OrderService
from printshop_services.authorization import require_authorization
from printshop_services.sequence_allocator import SequenceAllocator
from printshop_services.transitions import (
    OUTCOME_SUCCESS,
    GuardExecutor,
    build_guard_context,
    default_guard_executor,
    elapsed_ms,
    emit_workflow_trace,
    outcome_for,
    resolve_transition,
)

logger = get_logger("services.conversion")

_ACTION = Action.CONVERT_BUDGET_TO_ORDER.value


class ConversionOrchestrator:
    """Executes the one-shot APPROVED -> CONVERTED conversion."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        allocator: SequenceAllocator,
        clock: Clock | None = None,
        guard_executor: GuardExecutor | None = None,
        workflow: Workflow = BUDGET_WORKFLOW,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self._session_factory = session_factory
        self._allocator = allocator
        self._clock = clock or SystemClock()
        self._guards = guard_executor or default_guard_executor()
        self._workflow = workflow
        self._outcome_sink = outcome_sink

    def convert(self, budget_id: int, actor: Actor) -> OrderInfo:
        """
        Convert an approved budget into an order.

        Returns:
            The created order.
        """
        started = time.monotonic()
        with LogContext.bind(
            entity_type="Budget",
            entity_id=str(budget_id),
            **actor.log_fields,
        ):
            try:
                numero_pedido = self._ensure_number(budget_id, actor)
                info = self._create_order(budget_id, numero_pedido)
            except PrintShopError as exc:
                emit_workflow_trace(
                    self._workflow.name,
                    _ACTION,
                    "Budget",
                    budget_id,
                    getattr(exc, "current_state", None),
                    outcome_for(exc),
                    exc.message,
                    elapsed_ms(started),
                    outcome_sink=self._outcome_sink,
                )
                raise

            emit_workflow_trace(
                self._workflow.name,
                _ACTION,
                "Budget",
                budget_id,
                BudgetStatus.APPROVED.value,
                OUTCOME_SUCCESS,
                f"order {info.id} created as {info.numero_pedido}",
                elapsed_ms(started),
                to_state=BudgetStatus.CONVERTED.value,
                outcome_sink=self._outcome_sink,
            )
            return info

    def _ensure_number(self, budget_id: int, actor: Actor) -> str:
        session = self._session_factory()
        try:
            budgets = BudgetService(session, self._clock)
            budget = budgets.load(budget_id)
            require_authorization(actor, Action.CONVERT_BUDGET_TO_ORDER)
            transition = resolve_transition(session, self._workflow, budget, _ACTION)
            self._guards.check(transition, build_guard_context(session, budget))
            existing = budget.numero_pedido
        except SQLAlchemyError as exc:
            raise ConflictDetectedError("Budget", budget_id, details=str(exc)) from exc
        finally:
            # Release the read transaction before the allocator takes its lock
            session.rollback()
            session.close()

        if existing:
            logger.info(
                "conversion_number_reused",
                extra={"budget_id": budget_id, "numero_pedido": existing},
            )
            return existing

        number = self._allocator.next(SequenceAllocator.ORDER)
        return self._persist_number(budget_id, number.text)

    def _persist_number(self, budget_id: int, numero_pedido: str) -> str:
        session = self._session_factory()
        try:
            budgets = BudgetService(session, self._clock)
            budget = budgets.load(budget_id, for_update=True)
            transition = resolve_transition(session, self._workflow, budget, _ACTION)
            self._guards.check(transition, build_guard_context(session, budget))

            if budget.numero_pedido:
                logger.warning(
                    "allocated_number_stranded",
                    extra={
                        "budget_id": budget_id,
                        "stranded": numero_pedido,
                        "numero_pedido": budget.numero_pedido,
                    },
                )
                result = budget.numero_pedido
            else:
                budget.numero_pedido = numero_pedido
                session.flush()
                result = numero_pedido
            session.commit()
            return result
        except SQLAlchemyError as exc:
            session.rollback()
            raise ConflictDetectedError("Budget", budget_id, details=str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _create_order(self, budget_id: int, numero_pedido: str) -> OrderInfo:
        session = self._session_factory()
        try:
            budgets = BudgetService(session, self._clock)
            orders = OrderService(session, self._clock)

            budget = budgets.load(budget_id, for_update=True)
            transition = resolve_transition(session, self._workflow, budget, _ACTION)
            self._guards.check(transition, build_guard_context(session, budget))
            if budget.numero_pedido != numero_pedido:
                raise ConflictDetectedError(
                    "Budget",
                    budget_id,
                    details=f"numero_pedido changed to {budget.numero_pedido}",
                )

            order = orders.create_from_budget(budget)
            budget.status = transition.to_state
            budget.converted_at = self._clock.now()
            session.flush()

            info = orders.to_info(order)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise ConflictDetectedError("Budget", budget_id, details=str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.info(
            "budget_converted",
            extra={
                "budget_id": budget_id,
                "order_id": info.id,
                "numero_pedido": info.numero_pedido,
            },
        )
        return info
