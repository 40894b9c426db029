"""
printshop_services.workflow_executor -- budget workflow execution.

Responsibility:
    The engine's public surface for budgets.  ``BudgetWorkflowService``
    executes submit, approve and reject as single locked transactions,
    hands conversion to ``ConversionOrchestrator``, and also creates and
    edits draft budgets.

Architecture position:
    Services layer.  Owns transaction boundaries (commit/rollback); the
    kernel services it calls only flush.

Invariants enforced:
    - Guard order for every transition: NotFoundError, then
      UnauthorizedError, then InvalidTransitionError, then
      ValidationFailedError.  Existence is checked before authorization,
      so an unauthorized caller can tell a missing budget from an existing
      one.  That is accepted; the role check never depends on state.
    - Read-validate-write runs under a row lock (SELECT ... FOR UPDATE on
      PostgreSQL, BEGIN IMMEDIATE on SQLite) plus the budget's version
      compare-and-swap; a lost race raises ConflictDetectedError.
    - Lifecycle audit fields are written once, by the transition that
      produces their state.
    - Every transition attempt emits a ``workflow_transition`` record.
"""

from __future__ import annotations

import time
from typing import Any, Callable
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from printshop_config.schema import WorkflowDef
from printshop_kernel.domain.budget_workflow import BUDGET_WORKFLOW
from printshop_kernel.domain.clock import Clock, SystemClock
from printshop_kernel.domain.roles import Action, Actor
from printshop_kernel.domain.workflow import Transition, Workflow
from printshop_kernel.exceptions import ConflictDetectedError, PrintShopError
from printshop_kernel.logging_config import LogContext, get_logger
from printshop_kernel.models.budget import Budget
from printshop_kernel.services.budget_service import BudgetInfo, BudgetService
from printshop_kernel.services.order_service import OrderInfo
from printshop_services.authorization import can_perform, require_authorization
from printshop_services.conversion_orchestrator import ConversionOrchestrator
from printshop_services.sequence_allocator import SequenceAllocator
from printshop_services.transitions import (
    OUTCOME_SUCCESS,
    GuardExecutor,
    allowed_actions,
    build_guard_context,
    default_guard_executor,
    elapsed_ms,
    emit_workflow_trace,
    outcome_for,
    resolve_transition,
)

logger = get_logger("services.workflow_executor")


class BudgetWorkflowService:
    """
    Budget lifecycle operations for verified actors.

    Usage:
        service = BudgetWorkflowService(get_session_factory(), allocator)
        info = service.submit_budget(budget_id, Actor(7, Role.MODERATOR))
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        allocator: SequenceAllocator,
        clock: Clock | None = None,
        settings: WorkflowDef | None = None,
        guard_executor: GuardExecutor | None = None,
        workflow: Workflow = BUDGET_WORKFLOW,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self._session_factory = session_factory
        self._allocator = allocator
        self._clock = clock or SystemClock()
        self._settings = settings or WorkflowDef()
        self._guards = guard_executor or default_guard_executor()
        self._workflow = workflow
        self._outcome_sink = outcome_sink
        self._conversion = ConversionOrchestrator(
            session_factory,
            allocator,
            clock=self._clock,
            guard_executor=self._guards,
            workflow=workflow,
            outcome_sink=outcome_sink,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit_budget(self, budget_id: int, actor: Actor) -> BudgetInfo:
        """DRAFT -> SUBMITTED.  Requires client and center."""

        def apply(budget: Budget) -> None:
            budget.submitted_at = self._clock.now()

        return self._execute(budget_id, actor, Action.SUBMIT_BUDGET, apply)

    def approve_budget(self, budget_id: int, actor: Actor) -> BudgetInfo:
        """SUBMITTED -> APPROVED."""

        def apply(budget: Budget) -> None:
            budget.approved_at = self._clock.now()
            budget.approved_by_id = actor.user_id

        return self._execute(budget_id, actor, Action.APPROVE_BUDGET, apply)

    def reject_budget(self, budget_id: int, actor: Actor, reason: str) -> BudgetInfo:
        """
        SUBMITTED -> REJECTED.

        Appends a dated note carrying ``reason`` to ``observacoes``; any
        existing text is kept above it.
        """

        def apply(budget: Budget) -> None:
            now = self._clock.now()
            note = self._settings.rejection_note_template.format(
                date=now.strftime(self._settings.rejection_date_format),
                reason=reason.strip(),
            )
            existing = budget.observacoes
            budget.observacoes = f"{existing}\n\n{note}" if existing and existing.strip() else note
            budget.rejected_at = now
            budget.rejected_by_id = actor.user_id

        return self._execute(
            budget_id, actor, Action.REJECT_BUDGET, apply, reason=reason
        )

    def convert_budget_to_order(self, budget_id: int, actor: Actor) -> OrderInfo:
        """APPROVED -> CONVERTED, creating the order.  See ConversionOrchestrator."""
        return self._conversion.convert(budget_id, actor)

    def available_actions(self, budget_id: int, actor: Actor) -> tuple[str, ...]:
        """
        Transitions ``actor`` may request on the budget right now.

        Role and state only; field guards are not evaluated, so a listed
        action can still fail with ValidationFailedError.

        Raises:
            BudgetNotFoundError: If the budget does not exist.
            UnauthorizedError: If the actor may not read budgets.
        """
        session = self._session_factory()
        try:
            budget = BudgetService(session, self._clock).load(budget_id)
            require_authorization(actor, Action.READ_BUDGET)
            state = budget.status
        except SQLAlchemyError as exc:
            raise ConflictDetectedError("Budget", budget_id, details=str(exc)) from exc
        finally:
            session.rollback()
            session.close()
        return tuple(
            action
            for action in allowed_actions(self._workflow, state)
            if can_perform(actor.role, action)
        )

    # ------------------------------------------------------------------
    # Draft management
    # ------------------------------------------------------------------

    def create_budget(
        self,
        actor: Actor,
        *,
        allocate_number: bool = False,
        **fields: Any,
    ) -> BudgetInfo:
        """
        Create a DRAFT budget.

        Args:
            allocate_number: Draw a BUDGET number now instead of leaving
                numero_pedido empty until conversion.
        """
        require_authorization(actor, Action.CREATE_BUDGET)
        numero_pedido = None
        if allocate_number:
            numero_pedido = self._allocator.next(SequenceAllocator.BUDGET).text

        session = self._session_factory()
        try:
            budgets = BudgetService(session, self._clock)
            budget = budgets.create(fields, numero_pedido=numero_pedido)
            info = budgets.to_info(budget)
            session.commit()
            return info
        except SQLAlchemyError as exc:
            session.rollback()
            raise ConflictDetectedError("Budget", numero_pedido or "new", details=str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def update_budget(self, budget_id: int, actor: Actor, **fields: Any) -> BudgetInfo:
        """Edit quoted fields of a DRAFT or REJECTED budget."""
        session = self._session_factory()
        try:
            budgets = BudgetService(session, self._clock)
            budget = budgets.load(budget_id, for_update=True)
            require_authorization(actor, Action.UPDATE_BUDGET)
            budgets.apply_update(budget, fields)
            info = budgets.to_info(budget)
            session.commit()
            return info
        except SQLAlchemyError as exc:
            session.rollback()
            raise ConflictDetectedError("Budget", budget_id, details=str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_budget(self, budget_id: int, actor: Actor) -> BudgetInfo:
        session = self._session_factory()
        try:
            budgets = BudgetService(session, self._clock)
            budget = budgets.load(budget_id)
            require_authorization(actor, Action.READ_BUDGET)
            return budgets.to_info(budget)
        except SQLAlchemyError as exc:
            raise ConflictDetectedError("Budget", budget_id, details=str(exc)) from exc
        finally:
            session.rollback()
            session.close()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(
        self,
        budget_id: int,
        actor: Actor,
        action: Action,
        apply: Callable[[Budget], None],
        reason: str | None = None,
    ) -> BudgetInfo:
        started = time.monotonic()
        correlation_id = LogContext.get_all().get("correlation_id") or uuid4().hex
        with LogContext.bind(
            correlation_id=correlation_id,
            entity_type="Budget",
            entity_id=str(budget_id),
            **actor.log_fields,
        ):
            session = self._session_factory()
            from_state = None
            try:
                budgets = BudgetService(session, self._clock)
                budget = budgets.load(budget_id, for_update=True)
                from_state = budget.status
                require_authorization(actor, action)
                transition = resolve_transition(
                    session, self._workflow, budget, action.value
                )
                self._guards.check(
                    transition, build_guard_context(session, budget, reason=reason)
                )

                apply(budget)
                budget.status = transition.to_state
                session.flush()

                info = budgets.to_info(budget)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                conflict = ConflictDetectedError("Budget", budget_id, details=str(exc))
                self._trace_failure(action, budget_id, from_state, conflict, started)
                raise conflict from exc
            except PrintShopError as exc:
                session.rollback()
                self._trace_failure(action, budget_id, from_state, exc, started)
                raise
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

            self._trace_success(transition, budget_id, started)
            return info

    def _trace_success(self, transition: Transition, budget_id: int, started: float) -> None:
        emit_workflow_trace(
            self._workflow.name,
            transition.action,
            "Budget",
            budget_id,
            transition.from_state,
            OUTCOME_SUCCESS,
            "",
            elapsed_ms(started),
            to_state=transition.to_state,
            outcome_sink=self._outcome_sink,
        )

    def _trace_failure(
        self,
        action: Action,
        budget_id: int,
        from_state: str | None,
        exc: PrintShopError,
        started: float,
    ) -> None:
        emit_workflow_trace(
            self._workflow.name,
            action.value,
            "Budget",
            budget_id,
            from_state,
            outcome_for(exc),
            exc.message,
            elapsed_ms(started),
            outcome_sink=self._outcome_sink,
        )
