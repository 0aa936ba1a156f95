"""
Tests for the Order aggregate and its picking workflow.

Covers status derivation from line pick quantities, forward-only moves
through record_pick, explicit backward moves, the completion lock and its
time window, totals over the lines, and the scheduling summaries.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from tests.conftest import FIXED_NOW, TEST_EDITOR_ID, TODAY
from wholesale_kernel.domain.line_financials import LineFinancials
from wholesale_kernel.exceptions import (
    IllegalStateError,
    InvalidArgumentError,
    PickingCompletedError,
)
from wholesale_modules.sales.config import SalesConfig
from wholesale_modules.sales.models import (
    Order,
    OrderLine,
    OrderStatus,
    derive_order_status,
)


@pytest.fixture
def order(make_order):
    """An order with one priced line (10 x 25.50 at 8.25%, cost 20.00)."""
    o = make_order()
    o.add_line(100, "Widget", 7, 10, "25.50", "8.25", TEST_EDITOR_ID, cost_price="20.00")
    return o


@pytest.fixture
def picked_order(order):
    order.assign_picker(4, TEST_EDITOR_ID)
    order.record_pick(1, 10, TEST_EDITOR_ID)
    return order


class TestDeriveOrderStatus:

    @pytest.mark.parametrize(
        "progress, expected",
        [
            ([], OrderStatus.PENDING),
            ([(0, 5), (0, 3)], OrderStatus.PENDING),
            ([(2, 5), (0, 3)], OrderStatus.PICKING),
            ([(5, 5), (0, 3)], OrderStatus.PICKING),
            ([(5, 5), (3, 3)], OrderStatus.PICKED),
        ],
    )
    def test_derivation(self, progress, expected):
        assert derive_order_status(progress) is expected

    def test_label(self):
        assert OrderStatus.PICKING.label == "Picking"


class TestCreation:

    def test_standard_order(self, make_order, captured_logs):
        o = make_order()
        assert o.status is OrderStatus.PENDING
        assert o.lines == ()
        assert o.is_undersupply_backordered
        assert not o.is_backorder
        assert not o.is_picking_completed
        assert any(r["message"] == "order_created" for r in captured_logs())

    def test_backorder(self, clock):
        o = Order.create_backorder(
            55, 10, 2, 3, TODAY, date(2024, 6, 20), TEST_EDITOR_ID, clock=clock
        )
        assert o.is_backorder
        assert o.backorder_order_id == 55

    def test_order_date_in_future(self, make_order):
        assert make_order(order_date=TODAY + timedelta(days=1))
        with pytest.raises(InvalidArgumentError, match="Order date cannot be in the future."):
            make_order(order_date=TODAY + timedelta(days=2), expected_delivery_date=date(2024, 7, 1))

    def test_delivery_before_order_date(self, make_order):
        with pytest.raises(InvalidArgumentError) as exc_info:
            make_order(expected_delivery_date=TODAY - timedelta(days=1))
        assert exc_info.value.parameter == "expected_delivery_date"

    def test_delivery_on_order_date(self, make_order):
        assert make_order(expected_delivery_date=TODAY).days_to_delivery == 0

    def test_purchase_order_number_length(self, clock):
        with pytest.raises(InvalidArgumentError):
            Order.create_standard_order(
                10, 2, 3, TODAY, TODAY, TEST_EDITOR_ID,
                customer_purchase_order_number="P" * 21,
                clock=clock,
            )


class TestLines:

    def test_add_line(self, order, captured_logs):
        line = order.lines[0]
        assert line.line_number == 1
        assert line.extended_price == Decimal("255.00")
        assert line.tax_amount == Decimal("21.04")
        assert line.line_profit == Decimal("55.00")
        assert line.picked_quantity == 0
        assert line.picking_status == "Pending"

    def test_line_numbers_increase(self, order):
        second = order.add_free_item_line(101, "Sample", 7, 5, TEST_EDITOR_ID, cost_price="15.00")
        assert second.line_number == 2
        assert second.is_free_item
        assert order.get_line(2) is second

    def test_missing_line(self, order):
        with pytest.raises(InvalidArgumentError, match="Order has no line 9."):
            order.get_line(9)

    def test_description_required(self, order):
        with pytest.raises(InvalidArgumentError):
            order.add_line(100, "  ", 7, 1, "1.00", 0, TEST_EDITOR_ID)
        assert len(order.lines) == 1

    def test_description_length(self, order):
        order.add_line(100, "D" * 100, 7, 1, "1.00", 0, TEST_EDITOR_ID)
        with pytest.raises(InvalidArgumentError, match="cannot exceed 100 characters"):
            order.add_line(100, "D" * 101, 7, 1, "1.00", 0, TEST_EDITOR_ID)

    def test_update_line_quantity(self, order):
        order.update_line_quantity(1, 4, 9)
        line = order.get_line(1)
        assert line.extended_price == Decimal("102.00")
        assert line.line_profit == Decimal("22.00")
        assert line.last_edited_by == 9
        assert order.last_edited_by == 9

    def test_quantity_cannot_drop_below_picked(self, order):
        order.record_pick(1, 6, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError, match=r"already picked quantity \(6\)"):
            order.update_line_quantity(1, 5, TEST_EDITOR_ID)

    def test_reducing_to_picked_quantity_completes_picking(self, order):
        order.record_pick(1, 6, TEST_EDITOR_ID)
        order.update_line_quantity(1, 6, TEST_EDITOR_ID)
        assert order.status is OrderStatus.PICKED

    def test_update_unit_price_and_tax_rate(self, order):
        order.update_line_unit_price(1, "30.00", TEST_EDITOR_ID)
        order.update_line_tax_rate(1, 10, TEST_EDITOR_ID)
        line = order.get_line(1)
        assert line.extended_price == Decimal("300.00")
        assert line.tax_amount == Decimal("30.00")
        assert line.line_profit == Decimal("100.00")

    def test_update_description(self, order):
        order.update_line_description(1, "  Blue widget  ", TEST_EDITOR_ID)
        assert order.get_line(1).description == "Blue widget"


class TestPicking:

    def test_partial_pick(self, order, captured_logs):
        status = order.record_pick(1, 6, 9)
        line = order.get_line(1)

        assert status is OrderStatus.PICKING
        assert line.picked_quantity == 6
        assert line.outstanding_quantity == 4
        assert line.is_partially_picked
        assert line.status_summary == "Partially Picked | 6/10 picked (60%)"
        assert line.last_edited_by == 9
        messages = [r["message"] for r in captured_logs()]
        assert "order_pick_recorded" in messages
        assert "order_status_changed" in messages

    def test_pending_straight_to_picked(self, order):
        assert order.record_pick(1, 10, TEST_EDITOR_ID) is OrderStatus.PICKED
        assert order.get_line(1).picking_status == "Fully Picked"

    def test_cumulative_picks(self, order):
        order.record_pick(1, 6, TEST_EDITOR_ID)
        assert order.record_pick(1, 4, TEST_EDITOR_ID) is OrderStatus.PICKED

    def test_over_pick_rejected(self, order):
        order.record_pick(1, 6, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError) as exc_info:
            order.record_pick(1, 5, TEST_EDITOR_ID)
        assert str(exc_info.value) == (
            "Cannot pick more than ordered quantity. Ordered: 10, "
            "Already picked: 6, Attempting to pick: 5"
        )
        assert order.get_line(1).picked_quantity == 6

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_pick_rejected(self, order, quantity):
        with pytest.raises(InvalidArgumentError):
            order.record_pick(1, quantity, TEST_EDITOR_ID)

    def test_adding_line_to_picked_order_rejected(self, order):
        order.record_pick(1, 10, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError, match="Cannot move order from Picked to Picking"):
            order.add_line(100, "Extra", 7, 1, "1.00", 0, TEST_EDITOR_ID)
        assert len(order.lines) == 1

    def test_adding_line_while_picking(self, order):
        order.record_pick(1, 3, TEST_EDITOR_ID)
        order.add_line(100, "Extra", 7, 1, "1.00", 0, TEST_EDITOR_ID)
        assert order.status is OrderStatus.PICKING

    def test_increasing_quantity_on_picked_order_rejected(self, order):
        order.record_pick(1, 10, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError):
            order.update_line_quantity(1, 12, TEST_EDITOR_ID)
        assert order.get_line(1).quantity == 10

    def test_adjust_moves_backwards(self, order, captured_logs):
        order.record_pick(1, 10, TEST_EDITOR_ID)
        status = order.adjust_picked_quantity(1, 0, "Miscounted", 9)
        assert status is OrderStatus.PENDING
        assert order.get_line(1).picked_quantity == 0
        assert any(r["message"] == "order_pick_adjusted" for r in captured_logs())

    def test_adjust_requires_reason(self, order):
        order.record_pick(1, 10, TEST_EDITOR_ID)
        with pytest.raises(InvalidArgumentError, match="Adjustment reason cannot be null or empty."):
            order.adjust_picked_quantity(1, 4, "   ", TEST_EDITOR_ID)
        assert order.get_line(1).picked_quantity == 10

    @pytest.mark.parametrize("bad", [-1, 11])
    def test_adjust_range(self, order, bad):
        with pytest.raises(InvalidArgumentError):
            order.adjust_picked_quantity(1, bad, "Recount", TEST_EDITOR_ID)

    def test_picker_assignment(self, order):
        order.assign_picker(4, TEST_EDITOR_ID)
        assert order.is_picker_assigned
        order.unassign_picker(TEST_EDITOR_ID)
        assert order.picked_by_person_id is None
        with pytest.raises(IllegalStateError, match="No picker is currently assigned"):
            order.unassign_picker(TEST_EDITOR_ID)


class TestCompletion:

    def test_complete(self, picked_order, clock, captured_logs):
        picked_order.complete_picking(clock.now_utc(), 9)
        assert picked_order.is_picking_completed
        assert picked_order.picking_completed_when == FIXED_NOW
        assert picked_order.last_edited_by == 9
        assert picked_order.workflow_stage == "Ready for Dispatch"
        assert any(r["message"] == "order_picking_completed" for r in captured_logs())

    def test_needs_picker(self, order):
        order.record_pick(1, 10, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError, match="without an assigned picker"):
            order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)

    def test_needs_every_line_picked(self, order):
        order.assign_picker(4, TEST_EDITOR_ID)
        order.record_pick(1, 9, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError, match="every line is fully picked"):
            order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)

    def test_empty_order_cannot_complete(self, make_order):
        o = make_order()
        o.assign_picker(4, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError):
            o.complete_picking(FIXED_NOW, TEST_EDITOR_ID)

    def test_twice_rejected(self, picked_order):
        picked_order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)
        with pytest.raises(IllegalStateError, match="already been completed"):
            picked_order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)

    def test_backdate_limit(self, picked_order):
        picked_order.complete_picking(FIXED_NOW - timedelta(hours=23), TEST_EDITOR_ID)
        assert picked_order.is_picking_completed

    def test_too_far_in_past(self, picked_order):
        with pytest.raises(InvalidArgumentError, match="more than 1 day"):
            picked_order.complete_picking(FIXED_NOW - timedelta(days=2), TEST_EDITOR_ID)
        assert not picked_order.is_picking_completed

    def test_future_grace(self, picked_order):
        with pytest.raises(InvalidArgumentError, match="cannot be in the future"):
            picked_order.complete_picking(FIXED_NOW + timedelta(minutes=10), TEST_EDITOR_ID)
        picked_order.complete_picking(FIXED_NOW + timedelta(minutes=4), TEST_EDITOR_ID)

    def test_naive_datetime_rejected(self, picked_order):
        with pytest.raises(InvalidArgumentError, match="timezone-aware"):
            picked_order.complete_picking(datetime(2024, 6, 15, 12, 0), TEST_EDITOR_ID)

    def test_configurable_window(self, clock):
        o = Order.create_standard_order(
            10, 2, 3, TODAY, TODAY, TEST_EDITOR_ID,
            clock=clock,
            config=SalesConfig(picking_backdate_limit_days=3),
        )
        o.add_line(100, "Widget", 7, 1, "1.00", 0, TEST_EDITOR_ID)
        o.assign_picker(4, TEST_EDITOR_ID)
        o.record_pick(1, 1, TEST_EDITOR_ID)
        o.complete_picking(FIXED_NOW - timedelta(days=2), TEST_EDITOR_ID)
        assert o.is_picking_completed

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda o: o.add_line(100, "Extra", 7, 1, "1.00", 0, TEST_EDITOR_ID),
            lambda o: o.add_free_item_line(100, "Extra", 7, 1, TEST_EDITOR_ID),
            lambda o: o.update_line_quantity(1, 10, TEST_EDITOR_ID),
            lambda o: o.update_line_unit_price(1, "1.00", TEST_EDITOR_ID),
            lambda o: o.update_line_tax_rate(1, 0, TEST_EDITOR_ID),
            lambda o: o.record_pick(1, 1, TEST_EDITOR_ID),
            lambda o: o.adjust_picked_quantity(1, 0, "Recount", TEST_EDITOR_ID),
            lambda o: o.assign_picker(5, TEST_EDITOR_ID),
            lambda o: o.unassign_picker(TEST_EDITOR_ID),
            lambda o: o.update_salesperson(8, TEST_EDITOR_ID),
            lambda o: o.update_backorder_policy(False, TEST_EDITOR_ID),
        ],
    )
    def test_locked_after_completion(self, picked_order, mutate):
        picked_order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)
        with pytest.raises(PickingCompletedError) as exc_info:
            mutate(picked_order)
        assert isinstance(exc_info.value, IllegalStateError)
        assert picked_order.get_line(1).picked_quantity == 10

    def test_notes_and_description_stay_editable(self, picked_order):
        picked_order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)
        picked_order.update_line_description(1, "Relabelled", TEST_EDITOR_ID)
        picked_order.update_delivery_instructions("Leave at dock 3", TEST_EDITOR_ID)
        picked_order.update_contact_person(12, TEST_EDITOR_ID)
        assert picked_order.get_line(1).description == "Relabelled"
        assert picked_order.delivery_instructions == "Leave at dock 3"

    def test_reopen(self, picked_order, captured_logs):
        picked_order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)
        picked_order.reopen_picking("Customer added items", 9)

        assert not picked_order.is_picking_completed
        assert picked_order.status is OrderStatus.PICKED
        assert picked_order.last_edited_by == 9
        assert any(r["message"] == "order_picking_reopened" for r in captured_logs())
        picked_order.adjust_picked_quantity(1, 8, "Two damaged", TEST_EDITOR_ID)
        assert picked_order.status is OrderStatus.PICKING

    def test_reopen_requires_completion(self, order):
        with pytest.raises(IllegalStateError, match="not completed"):
            order.reopen_picking("why", TEST_EDITOR_ID)

    def test_reopen_requires_reason(self, picked_order):
        picked_order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)
        with pytest.raises(InvalidArgumentError):
            picked_order.reopen_picking("", TEST_EDITOR_ID)
        assert picked_order.is_picking_completed


class TestHeader:

    def test_expected_delivery_date(self, order):
        order.update_expected_delivery_date(date(2024, 6, 25), TEST_EDITOR_ID)
        assert order.expected_delivery_date == date(2024, 6, 25)
        with pytest.raises(InvalidArgumentError):
            order.update_expected_delivery_date(TODAY - timedelta(days=1), TEST_EDITOR_ID)

    def test_comments(self, order):
        order.update_all_comments("Thanks", "Rear door", "VIP", 9)
        assert order.has_customer_communications
        assert order.has_internal_notes
        order.update_comments("", TEST_EDITOR_ID)
        order.update_delivery_instructions(None, TEST_EDITOR_ID)
        order.update_internal_comments("  ", TEST_EDITOR_ID)
        assert not order.has_customer_communications
        assert not order.has_internal_notes

    def test_customer_purchase_order_number(self, order):
        order.update_customer_purchase_order_number(" PO-1 ", TEST_EDITOR_ID)
        assert order.has_customer_purchase_order
        assert order.customer_purchase_order_number == "PO-1"

    def test_backorder_policy_requires_bool(self, order):
        with pytest.raises(InvalidArgumentError):
            order.update_backorder_policy("no", TEST_EDITOR_ID)
        order.update_backorder_policy(False, TEST_EDITOR_ID)
        assert not order.is_undersupply_backordered

    def test_invalid_editor_changes_nothing(self, order):
        stamped = order.last_edited_when
        with pytest.raises(InvalidArgumentError):
            order.update_salesperson(8, 0)
        assert order.salesperson_person_id == 2
        assert order.last_edited_when == stamped


class TestTotals:

    def test_totals_over_lines(self, order):
        order.add_free_item_line(101, "Sample", 7, 5, TEST_EDITOR_ID, cost_price="15.00")

        assert order.total_quantity == 15
        assert order.total_extended_price == Decimal("255.00")
        assert order.total_tax_amount == Decimal("21.04")
        assert order.total_including_tax == Decimal("276.04")
        assert order.total_line_profit == Decimal("-20.00")

    def test_empty_order_totals(self, make_order):
        o = make_order()
        assert o.total_quantity == 0
        assert o.total_including_tax == Decimal("0")

    def test_total_picked_quantity(self, order):
        order.add_line(102, "Gizmo", 7, 3, "2.00", 0, TEST_EDITOR_ID)
        order.record_pick(1, 4, TEST_EDITOR_ID)
        order.record_pick(2, 3, TEST_EDITOR_ID)
        assert order.total_picked_quantity == 7


class TestScheduling:

    @pytest.mark.parametrize(
        "delivery, urgency",
        [
            (TODAY, "Due Today"),
            (TODAY + timedelta(days=1), "Urgent"),
            (TODAY + timedelta(days=3), "Normal"),
            (TODAY + timedelta(days=4), "Low Priority"),
        ],
    )
    def test_delivery_urgency(self, make_order, delivery, urgency):
        assert make_order(expected_delivery_date=delivery).delivery_urgency == urgency

    def test_overdue(self, make_order):
        o = make_order(order_date=date(2024, 6, 1), expected_delivery_date=date(2024, 6, 10))
        assert o.is_delivery_overdue
        assert o.delivery_urgency == "OVERDUE"
        assert o.age_days == 14
        assert o.status_summary == "Pending | Order Processing | OVERDUE (5 days)"

    def test_completed_order_is_not_overdue(self, clock, picked_order):
        picked_order.complete_picking(FIXED_NOW, TEST_EDITOR_ID)
        clock.advance_days(10)
        assert not picked_order.is_delivery_overdue

    def test_due_soon_summary(self, make_order):
        o = make_order(expected_delivery_date=TODAY + timedelta(days=1))
        assert o.status_summary == "Pending | Order Processing | Due in 1 day(s)"

    def test_workflow_stage(self, order):
        assert order.workflow_stage == "Order Processing"
        order.assign_picker(4, TEST_EDITOR_ID)
        assert order.workflow_stage == "Warehouse Fulfillment"

    def test_str(self, order):
        order.set_id(9)
        assert str(order) == "Order 9: Customer 10 - Pending | Order Processing (1 lines, 276.04)"

    def test_backorder_summary(self, clock):
        o = Order.create_backorder(
            55, 10, 2, 3, TODAY, date(2024, 6, 20), TEST_EDITOR_ID, clock=clock
        )
        assert "Backorder from Order 55" in o.status_summary
        assert str(o).startswith("Backorder ")


class TestReconstitute:

    def _line(self, clock, line_id=1, line_number=1, picked=2):
        return OrderLine.reconstitute(
            id=line_id,
            line_number=line_number,
            stock_item_id=100,
            description="Widget",
            package_type_id=7,
            financials=LineFinancials.calculate(2, "5.00", 10),
            cost_price=Decimal("0"),
            picked_quantity=picked,
            last_edited_by=TEST_EDITOR_ID,
            clock=clock,
        )

    def _order(self, clock, **overrides):
        fields = dict(
            id=5,
            customer_id=10,
            salesperson_person_id=2,
            contact_person_id=3,
            order_date=TODAY,
            expected_delivery_date=date(2024, 6, 20),
            last_edited_by=TEST_EDITOR_ID,
            clock=clock,
        )
        fields.update(overrides)
        return Order.reconstitute(**fields)

    def test_completed_order(self, clock):
        o = self._order(
            clock,
            picked_by_person_id=4,
            picking_completed_when=FIXED_NOW,
            lines=[self._line(clock)],
        )
        assert o.id == 5
        assert o.is_picking_completed
        assert o.status is OrderStatus.PICKED
        assert o.get_line(1).id == 1

    def test_completed_without_picker_rejected(self, clock):
        with pytest.raises(InvalidArgumentError):
            self._order(clock, picking_completed_when=FIXED_NOW, lines=[self._line(clock)])

    def test_completed_with_unpicked_line_rejected(self, clock):
        with pytest.raises(InvalidArgumentError):
            self._order(
                clock,
                picked_by_person_id=4,
                picking_completed_when=FIXED_NOW,
                lines=[self._line(clock, picked=1)],
            )

    def test_duplicate_line_numbers_rejected(self, clock):
        with pytest.raises(InvalidArgumentError, match="Duplicate line number 1."):
            self._order(
                clock,
                lines=[self._line(clock), self._line(clock, line_id=2)],
            )

    def test_line_picked_quantity_validated(self, clock):
        with pytest.raises(InvalidArgumentError, match="cannot exceed ordered quantity"):
            self._line(clock, picked=3)
