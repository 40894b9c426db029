"""
printshop_services.transitions -- shared transition machinery.

Responsibility:
    Resolves a requested action against a workflow definition, evaluates
    the transition's guards, and emits the structured ``workflow_transition``
    trace record.  Used by ``BudgetWorkflowService`` and
    ``ConversionOrchestrator``; neither re-implements these checks.

Architecture position:
    Services layer.  Reads guard inputs through the caller's session; never
    commits.

Invariants enforced:
    - A transition fires only from its declared source state.
    - Every declared guard is evaluated; the failures of all guards are
      reported together in one ValidationFailedError.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop_kernel.domain.budget_workflow import (
    CLIENT_AND_CENTER_ACTIVE,
    CLIENT_AND_CENTER_SET,
    NO_EXISTING_ORDER,
    REJECTION_REASON_PROVIDED,
)
from printshop_kernel.domain.roles import Action
from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.domain.workflow import Guard, Transition, Workflow
from printshop_kernel.exceptions import (
    AllocationFailedError,
    BudgetAlreadyConvertedError,
    ConflictDetectedError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from printshop_kernel.logging_config import LogContext, get_logger
from printshop_kernel.models.budget import Budget
from printshop_kernel.models.order import Order
from printshop_kernel.models.party import Client, ProductionCenter

logger = get_logger("services.workflow_executor")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_UNAUTHORIZED = "unauthorized"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_CONFLICT = "conflict"
OUTCOME_ALLOCATION_FAILED = "allocation_failed"

_OUTCOME_BY_ERROR: tuple[tuple[type[Exception], str], ...] = (
    (NotFoundError, OUTCOME_NOT_FOUND),
    (UnauthorizedError, OUTCOME_UNAUTHORIZED),
    (InvalidTransitionError, OUTCOME_NO_TRANSITION),
    (ValidationFailedError, OUTCOME_GUARD_FAILED),
    (ConflictDetectedError, OUTCOME_CONFLICT),
    (AllocationFailedError, OUTCOME_ALLOCATION_FAILED),
)


def outcome_for(exc: Exception) -> str:
    for error_type, outcome in _OUTCOME_BY_ERROR:
        if isinstance(exc, error_type):
            return outcome
    return "error"


def emit_workflow_trace(
    workflow_name: str,
    action: str,
    entity_type: str,
    entity_id: Any,
    from_state: str | None,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_state: str | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit a structured workflow transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "ts": datetime.now(UTC).isoformat(),
        "workflow": workflow_name,
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_state is not None:
        record["to_state"] = to_state
    record.update(LogContext.get_all())
    if outcome == OUTCOME_SUCCESS:
        logger.info("workflow_transition", extra=record)
    else:
        logger.warning("workflow_transition", extra=record)
    if outcome_sink is not None:
        outcome_sink(dict(record, message="workflow_transition"))


def elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GuardContext:
    """Everything a budget guard may look at, read in the same transaction."""

    budget_id: int
    client_id: int | None
    center_id: int | None
    client_active: bool | None
    center_active: bool | None
    has_order: bool
    reason: str | None = None


def build_guard_context(
    session: Session,
    budget: Budget,
    reason: str | None = None,
) -> GuardContext:
    client_active = None
    if budget.client_id is not None:
        client_active = session.execute(
            select(Client.active).where(Client.id == budget.client_id)
        ).scalar_one_or_none()
    center_active = None
    if budget.center_id is not None:
        center_active = session.execute(
            select(ProductionCenter.active).where(ProductionCenter.id == budget.center_id)
        ).scalar_one_or_none()
    has_order = session.execute(
        select(Order.id).where(Order.budget_id == budget.id)
    ).first() is not None
    return GuardContext(
        budget_id=budget.id,
        client_id=budget.client_id,
        center_id=budget.center_id,
        client_active=client_active,
        center_active=center_active,
        has_order=has_order,
        reason=reason,
    )


def _client_and_center_set(ctx: GuardContext) -> dict[str, str]:
    errors = {}
    if ctx.client_id is None:
        errors["client_id"] = "a client must be associated"
    if ctx.center_id is None:
        errors["center_id"] = "a production center must be associated"
    return errors


def _rejection_reason_provided(ctx: GuardContext) -> dict[str, str]:
    if ctx.reason is None or not ctx.reason.strip():
        return {"reason": "a rejection reason is required"}
    return {}


def _no_existing_order(ctx: GuardContext) -> dict[str, str]:
    if ctx.has_order:
        return {"order": "budget already has an order"}
    return {}


def _client_and_center_active(ctx: GuardContext) -> dict[str, str]:
    errors = {}
    if ctx.client_id is not None and ctx.client_active is False:
        errors["client_id"] = "client is inactive"
    if ctx.center_id is not None and ctx.center_active is False:
        errors["center_id"] = "production center is inactive"
    return errors


class GuardExecutor:
    """Evaluates workflow guards against a GuardContext.

    Guards are declared on transitions (name + description).  This executor
    holds the evaluation logic per guard name.  An evaluator returns the
    field errors it found; an empty dict means the guard passes.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[GuardContext], dict[str, str]]] = {}

    def register(
        self,
        guard_name: str,
        evaluator: Callable[[GuardContext], dict[str, str]],
    ) -> None:
        """Register an evaluator for a guard by name."""
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: GuardContext) -> dict[str, str]:
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return {guard.name: "no evaluator registered"}
        return fn(context)

    def check(self, transition: Transition, context: GuardContext) -> None:
        """
        Evaluate every guard on ``transition``.

        Raises:
            ValidationFailedError: naming every failing field.
        """
        errors: dict[str, str] = {}
        failed: list[Guard] = []
        for guard in transition.guards:
            found = self.evaluate(guard, context)
            if found:
                failed.append(guard)
                for name, message in found.items():
                    errors.setdefault(name, message)
        if failed:
            raise ValidationFailedError(
                f"Cannot {transition.action} budget {context.budget_id}: "
                + "; ".join(g.description for g in failed),
                errors,
            )


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with the budget guards registered."""
    ex = GuardExecutor()
    ex.register(CLIENT_AND_CENTER_SET.name, _client_and_center_set)
    ex.register(REJECTION_REASON_PROVIDED.name, _rejection_reason_provided)
    ex.register(NO_EXISTING_ORDER.name, _no_existing_order)
    ex.register(CLIENT_AND_CENTER_ACTIVE.name, _client_and_center_active)
    return ex


# ---------------------------------------------------------------------------
# Transition resolution
# ---------------------------------------------------------------------------


def resolve_transition(
    session: Session,
    workflow: Workflow,
    budget: Budget,
    action: str,
) -> Transition:
    """
    Find the transition for ``action`` from the budget's current state.

    Raises:
        BudgetAlreadyConvertedError: conversion requested on a CONVERTED budget.
        InvalidTransitionError: no such transition from the current state.
    """
    transition = workflow.find_transition(budget.status, action)
    if transition is not None:
        return transition

    if (
        budget.status == BudgetStatus.CONVERTED.value
        and action == Action.CONVERT_BUDGET_TO_ORDER.value
    ):
        order_id = session.execute(
            select(Order.id).where(Order.budget_id == budget.id)
        ).scalar_one_or_none()
        raise BudgetAlreadyConvertedError(budget.id, budget.status, order_id)

    edges = [t for t in workflow.transitions if t.action == action]
    message = None
    if edges:
        sources = " or ".join(sorted({t.from_state for t in edges}))
        targets = "/".join(sorted({t.to_state for t in edges}))
        message = (
            f"Cannot {action} budget {budget.id}: current state is "
            f"{budget.status}; moving to {targets} requires {sources}"
        )
    raise InvalidTransitionError("Budget", budget.id, budget.status, action, message=message)


def allowed_actions(workflow: Workflow, state: str) -> tuple[str, ...]:
    return tuple(t.action for t in workflow.transitions_from(state))
