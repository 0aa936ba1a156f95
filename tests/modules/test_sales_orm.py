"""
Persistence tests for orders (with their lines) and customers.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from tests.conftest import FIXED_NOW, TEST_EDITOR_ID
from wholesale_kernel.exceptions import IllegalStateError
from wholesale_modules.sales.models import OrderStatus
from wholesale_modules.sales.repository import CustomerRepository, OrderRepository


@pytest.fixture
def orders(session, clock):
    return OrderRepository(session, clock=clock)


@pytest.fixture
def customers(session, clock):
    return CustomerRepository(session, clock=clock)


class TestOrderPersistence:

    def test_add_assigns_order_and_line_ids(self, orders, make_order):
        order = make_order()
        line = order.add_line(100, "Widget", 7, 10, "25.50", "8.25", TEST_EDITOR_ID, cost_price="20.00")

        orders.add(order)

        assert order.is_persisted
        assert line.is_persisted
        assert line.id > 0

    def test_round_trip(self, orders, session, make_order):
        order = make_order()
        order.add_line(100, "Widget", 7, 10, "25.50", "8.25", TEST_EDITOR_ID, cost_price="20.00")
        order.add_free_item_line(101, "Sample", 7, 5, TEST_EDITOR_ID, cost_price="15.00")
        order.update_delivery_instructions("Rear door", TEST_EDITOR_ID)
        orders.add(order)
        session.expunge_all()

        loaded = orders.get(order.id)

        assert loaded == order
        assert [line.line_number for line in loaded.lines] == [1, 2]
        assert [line.id for line in loaded.lines] == [line.id for line in order.lines]
        assert loaded.get_line(1).financials == order.get_line(1).financials
        assert loaded.get_line(2).is_free_item
        assert loaded.get_line(2).cost_price == Decimal("15.00")
        assert loaded.total_including_tax == Decimal("276.04")
        assert loaded.delivery_instructions == "Rear door"
        assert loaded.status is OrderStatus.PENDING

    def test_new_lines_get_ids_on_save(self, orders, session, make_order):
        order = make_order()
        order.add_line(100, "Widget", 7, 2, "5.00", 0, TEST_EDITOR_ID)
        orders.add(order)

        added = order.add_line(102, "Gizmo", 7, 1, "9.00", 0, TEST_EDITOR_ID)
        assert not added.is_persisted
        orders.save(order)

        assert added.is_persisted
        session.expunge_all()
        assert len(orders.get(order.id).lines) == 2

    def test_picking_completion_persists(self, orders, session, make_order):
        order = make_order()
        order.add_line(100, "Widget", 7, 2, "5.00", 0, TEST_EDITOR_ID)
        orders.add(order)
        order.assign_picker(4, TEST_EDITOR_ID)
        order.record_pick(1, 2, TEST_EDITOR_ID)
        completed_when = FIXED_NOW - timedelta(hours=2)
        order.complete_picking(completed_when, TEST_EDITOR_ID)
        orders.save(order)
        session.expunge_all()

        loaded = orders.get(order.id)
        assert loaded.is_picking_completed
        assert loaded.picking_completed_when == completed_when
        assert loaded.picked_by_person_id == 4
        assert loaded.status is OrderStatus.PICKED

    def test_add_twice_rejected(self, orders, make_order):
        order = orders.add(make_order())
        with pytest.raises(IllegalStateError):
            orders.add(order)

    def test_list_for_customer(self, orders, make_order):
        orders.add(make_order(customer_id=10))
        orders.add(make_order(customer_id=11))
        orders.add(make_order(customer_id=10))

        assert len(orders.list_for_customer(10)) == 2
        assert orders.list_for_customer(99) == []


class TestCustomerPersistence:

    def test_round_trip(self, customers, session, make_customer):
        customer = make_customer(credit_limit="2500.00", delivery_run="R1", run_position="7")
        customers.add(customer)
        session.expunge_all()

        loaded = customers.get(customer.id)
        assert loaded == customer
        assert loaded.customer_name == customer.customer_name
        assert loaded.credit_limit == Decimal("2500.00")
        assert loaded.standard_discount_percentage == Decimal("0")
        assert loaded.delivery_run == "R1"

    def test_credit_hold_persists(self, customers, session, make_customer):
        held = customers.add(make_customer(customer_name="Wingtip Toys"))
        customers.add(make_customer(customer_name="Tailspin Toys"))
        held.place_on_credit_hold(9)
        customers.save(held)
        session.expunge_all()

        on_hold = customers.list_on_credit_hold()
        assert [c.customer_name for c in on_hold] == ["Wingtip Toys"]
        assert on_hold[0].last_edited_by == 9
