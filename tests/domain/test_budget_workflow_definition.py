"""Tests for the declarative budget workflow and the Workflow validator."""

import pytest

from printshop_kernel.domain.budget_workflow import (
    BUDGET_WORKFLOW,
    CLIENT_AND_CENTER_ACTIVE,
    CLIENT_AND_CENTER_SET,
    EDITABLE_STATES,
    NO_EXISTING_ORDER,
    REJECTION_REASON_PROVIDED,
)
from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.domain.workflow import Transition, Workflow
from printshop_services.transitions import allowed_actions


class TestBudgetWorkflow:
    def test_exactly_four_transitions(self):
        edges = {(t.from_state, t.action, t.to_state) for t in BUDGET_WORKFLOW.transitions}
        assert edges == {
            ("DRAFT", "submit_budget", "SUBMITTED"),
            ("SUBMITTED", "approve_budget", "APPROVED"),
            ("SUBMITTED", "reject_budget", "REJECTED"),
            ("APPROVED", "convert_budget_to_order", "CONVERTED"),
        }

    def test_initial_and_terminal_states(self):
        assert BUDGET_WORKFLOW.initial_state == BudgetStatus.DRAFT.value
        assert BUDGET_WORKFLOW.terminal_states == (BudgetStatus.CONVERTED.value,)
        assert BUDGET_WORKFLOW.transitions_from(BudgetStatus.CONVERTED.value) == ()

    def test_guards_per_transition(self):
        submit = BUDGET_WORKFLOW.find_transition("DRAFT", "submit_budget")
        reject = BUDGET_WORKFLOW.find_transition("SUBMITTED", "reject_budget")
        convert = BUDGET_WORKFLOW.find_transition("APPROVED", "convert_budget_to_order")

        assert submit.guards == (CLIENT_AND_CENTER_SET,)
        assert reject.guards == (REJECTION_REASON_PROVIDED,)
        assert NO_EXISTING_ORDER in convert.guards
        assert CLIENT_AND_CENTER_SET in convert.guards
        assert CLIENT_AND_CENTER_ACTIVE in convert.guards

    def test_approve_from_draft_is_not_declared(self):
        assert BUDGET_WORKFLOW.find_transition("DRAFT", "approve_budget") is None

    @pytest.mark.parametrize(
        "state, expected",
        [
            ("DRAFT", ("submit_budget",)),
            ("SUBMITTED", ("approve_budget", "reject_budget")),
            ("APPROVED", ("convert_budget_to_order",)),
            ("REJECTED", ()),
            ("CONVERTED", ()),
        ],
    )
    def test_allowed_actions(self, state, expected):
        assert allowed_actions(BUDGET_WORKFLOW, state) == expected

    def test_editable_states(self):
        assert EDITABLE_STATES == {"DRAFT", "REJECTED"}


class TestWorkflowValidation:
    def _wf(self, **overrides):
        params = dict(
            name="t",
            description="test",
            initial_state="A",
            states=("A", "B"),
            transitions=(Transition("A", "B", "go"),),
        )
        params.update(overrides)
        return Workflow(**params)

    def test_valid(self):
        wf = self._wf()
        assert wf.actions() == ("go",)

    def test_initial_state_must_be_declared(self):
        with pytest.raises(ValueError, match="initial state"):
            self._wf(initial_state="Z")

    def test_unknown_state_in_transition(self):
        with pytest.raises(ValueError, match="unknown state"):
            self._wf(transitions=(Transition("A", "C", "go"),))

    def test_duplicate_transition(self):
        with pytest.raises(ValueError, match="duplicate"):
            self._wf(transitions=(Transition("A", "B", "go"), Transition("A", "A", "go")))

    def test_terminal_state_without_outgoing_edges(self):
        with pytest.raises(ValueError, match="terminal"):
            self._wf(terminal_states=("A",))
