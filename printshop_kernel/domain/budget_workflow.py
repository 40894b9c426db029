"""
Budget lifecycle definition.

    DRAFT     --submit_budget-->            SUBMITTED
    SUBMITTED --approve_budget-->           APPROVED
    SUBMITTED --reject_budget-->            REJECTED
    APPROVED  --convert_budget_to_order-->  CONVERTED

CONVERTED is terminal.  REJECTED has no outgoing transition; a rejected
budget can still be edited, but re-entering the workflow is not modelled.

Guards are evaluated by ``printshop_services.workflow_executor`` after the
state check, so a field-completeness failure is only ever reported for a
budget that is in the right state.
"""

from printshop_kernel.domain.roles import Action
from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.domain.workflow import Guard, Transition, Workflow

CLIENT_AND_CENTER_SET = Guard(
    name="client_and_center_set",
    description="Budget must be associated with a client and a production center",
)

REJECTION_REASON_PROVIDED = Guard(
    name="rejection_reason_provided",
    description="A non-blank rejection reason is required",
)

NO_EXISTING_ORDER = Guard(
    name="no_existing_order",
    description="Budget must not already have an order",
)

CLIENT_AND_CENTER_ACTIVE = Guard(
    name="client_and_center_active",
    description="Associated client and production center must still be active",
)

_TRANSITIONS = (
    Transition(
        from_state=BudgetStatus.DRAFT.value,
        to_state=BudgetStatus.SUBMITTED.value,
        action=Action.SUBMIT_BUDGET.value,
        guards=(CLIENT_AND_CENTER_SET,),
    ),
    Transition(
        from_state=BudgetStatus.SUBMITTED.value,
        to_state=BudgetStatus.APPROVED.value,
        action=Action.APPROVE_BUDGET.value,
    ),
    Transition(
        from_state=BudgetStatus.SUBMITTED.value,
        to_state=BudgetStatus.REJECTED.value,
        action=Action.REJECT_BUDGET.value,
        guards=(REJECTION_REASON_PROVIDED,),
    ),
    Transition(
        from_state=BudgetStatus.APPROVED.value,
        to_state=BudgetStatus.CONVERTED.value,
        action=Action.CONVERT_BUDGET_TO_ORDER.value,
        guards=(NO_EXISTING_ORDER, CLIENT_AND_CENTER_SET, CLIENT_AND_CENTER_ACTIVE),
    ),
)

BUDGET_WORKFLOW = Workflow(
    name="budget",
    description="Budget approval and conversion lifecycle",
    initial_state=BudgetStatus.DRAFT.value,
    states=tuple(s.value for s in BudgetStatus),
    transitions=_TRANSITIONS,
    terminal_states=(BudgetStatus.CONVERTED.value,),
)

# Quoted fields may be edited only while the budget is in one of these states
EDITABLE_STATES = frozenset({BudgetStatus.DRAFT.value, BudgetStatus.REJECTED.value})
