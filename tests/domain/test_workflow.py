"""Tests for the workflow types and the declared module workflows."""

import pytest

from wholesale_kernel.domain.workflow import Guard, Transition, Workflow
from wholesale_modules.purchasing.workflows import (
    FINALIZED,
    OPEN,
    SUPPLIER_TRANSACTION_WORKFLOW,
)
from wholesale_modules.sales.workflows import (
    CUSTOMER_CREDIT_WORKFLOW,
    ORDER_COMPLETION_WORKFLOW,
    ORDER_PICKING_WORKFLOW,
    PENDING,
    PICKED,
    PICKING,
)


class TestWorkflowDefinition:

    def test_initial_state_must_be_declared(self):
        with pytest.raises(ValueError, match="initial_state"):
            Workflow(
                name="bad",
                description="",
                initial_state="nowhere",
                states=("a",),
                transitions=(),
            )

    def test_transition_states_must_be_declared(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", action="go"),),
            )

    def test_terminal_state_must_be_declared(self):
        with pytest.raises(ValueError, match="terminal state 'z'"):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("a", "b", action="close"),),
                terminal_states=("z",),
            )

    def test_terminal_state_only_left_by_reversal(self):
        with pytest.raises(ValueError, match="without reverts=True"):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(
                    Transition("a", "b", action="close"),
                    Transition("b", "a", action="reopen"),
                ),
                terminal_states=("b",),
            )

    def test_terminal_state_left_by_declared_reversal(self):
        workflow = Workflow(
            name="ok",
            description="",
            initial_state="a",
            states=("a", "b"),
            transitions=(
                Transition("a", "b", action="close"),
                Transition("b", "a", action="reopen", reverts=True),
            ),
            terminal_states=("b",),
        )
        assert workflow.permits("b", "a", "reopen")

    def test_module_terminal_states(self):
        assert SUPPLIER_TRANSACTION_WORKFLOW.terminal_states == (FINALIZED,)
        assert ORDER_COMPLETION_WORKFLOW.terminal_states
        assert all(
            t.reverts
            for wf in (SUPPLIER_TRANSACTION_WORKFLOW, ORDER_COMPLETION_WORKFLOW)
            for t in wf.transitions
            if t.from_state in wf.terminal_states
        )

    def test_guard_is_descriptive(self):
        g = Guard(name="g", description="d")
        t = Transition("a", "b", action="go", guard=g)
        assert t.guard.name == "g"
        assert not t.reverts


class TestSupplierTransactionWorkflow:

    def test_states(self):
        assert SUPPLIER_TRANSACTION_WORKFLOW.initial_state == OPEN
        assert set(SUPPLIER_TRANSACTION_WORKFLOW.states) == {OPEN, FINALIZED}

    def test_finalize_only_from_open(self):
        assert SUPPLIER_TRANSACTION_WORKFLOW.find_transition(OPEN, "finalize") is not None
        assert SUPPLIER_TRANSACTION_WORKFLOW.find_transition(FINALIZED, "finalize") is None

    def test_unfinalize_is_a_reversal(self):
        t = SUPPLIER_TRANSACTION_WORKFLOW.find_transition(FINALIZED, "unfinalize")
        assert t is not None and t.reverts


class TestOrderPickingWorkflow:

    @pytest.mark.parametrize(
        "from_state, to_state",
        [(PENDING, PICKING), (PENDING, PICKED), (PICKING, PICKED)],
    )
    def test_record_pick_moves_forward(self, from_state, to_state):
        assert ORDER_PICKING_WORKFLOW.permits(from_state, to_state, "record_pick")

    @pytest.mark.parametrize(
        "from_state, to_state",
        [(PICKING, PENDING), (PICKED, PICKING), (PICKED, PENDING)],
    )
    def test_only_adjust_pick_moves_backward(self, from_state, to_state):
        assert not ORDER_PICKING_WORKFLOW.permits(from_state, to_state, "record_pick")
        assert not ORDER_PICKING_WORKFLOW.permits(from_state, to_state, "amend_line")
        t = ORDER_PICKING_WORKFLOW.find_transition_to(from_state, to_state, "adjust_pick")
        assert t is not None and t.reverts

    def test_staying_put_is_always_permitted(self):
        assert ORDER_PICKING_WORKFLOW.permits(PICKED, PICKED, "add_line")

    def test_adding_a_line_cannot_reopen_a_picked_order(self):
        assert not ORDER_PICKING_WORKFLOW.permits(PICKED, PICKING, "add_line")

    def test_actions_from_pending(self):
        assert set(ORDER_PICKING_WORKFLOW.actions_from(PENDING)) == {"record_pick", "adjust_pick"}


class TestOtherSalesWorkflows:

    def test_completion_lock(self):
        assert ORDER_COMPLETION_WORKFLOW.find_transition("open", "complete_picking") is not None
        assert ORDER_COMPLETION_WORKFLOW.find_transition("completed", "complete_picking") is None
        assert ORDER_COMPLETION_WORKFLOW.find_transition("completed", "reopen_picking").reverts

    def test_credit_hold(self):
        assert CUSTOMER_CREDIT_WORKFLOW.find_transition("not_on_hold", "place_on_credit_hold")
        assert CUSTOMER_CREDIT_WORKFLOW.find_transition("on_hold", "place_on_credit_hold") is None
        assert CUSTOMER_CREDIT_WORKFLOW.find_transition("not_on_hold", "release_credit_hold") is None
