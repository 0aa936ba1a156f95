"""
Sales Domain Models (``wholesale_modules.sales.models``).

Responsibility
--------------
The two sales aggregates:

* ``Order`` -- owns its ``OrderLine`` children (each holding a
  ``LineFinancials`` snapshot) and the picking workflow.  The picking
  status is derived from line pick quantities, never stored.
* ``Customer`` -- account terms and the credit-hold lifecycle that gates
  new sales.

Architecture position
---------------------
**Modules layer** -- domain entities.  Builds on ``wholesale_kernel.domain``.
No I/O; persistence lives in ``orm.py`` / ``repository.py``.

Invariants enforced
-------------------
* Picked quantity of a line is within [0, ordered quantity].
* Picking status only moves forward through ``record_pick`` (and the
  line amendments the workflow allows); backward moves require
  ``adjust_picked_quantity`` or ``reopen_picking`` with a reason.
* Once picking is completed the order's lines, picker, salesperson and
  backorder policy are locked (``PickingCompletedError``).
* Expected delivery date is on or after the order date.
* A customer cannot be placed on hold twice or released twice.

Failure modes
-------------
* ``InvalidArgumentError`` for malformed input.
* ``IllegalStateError`` and its subclasses ``PickingCompletedError`` and
  ``CreditHoldError`` when the current state forbids the operation.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum

from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.domain.entity import Entity, require_editor
from wholesale_kernel.domain.line_financials import LineFinancials
from wholesale_kernel.domain.values import (
    HUNDRED,
    ZERO,
    format_amount,
    normalize_text,
    require_aware_datetime,
    require_bool,
    require_date,
    require_non_negative,
    require_optional_reference,
    require_percentage,
    require_positive_int,
    to_optional_decimal,
)
from wholesale_kernel.exceptions import (
    CreditHoldError,
    IllegalStateError,
    InvalidArgumentError,
    PickingCompletedError,
)
from wholesale_kernel.logging_config import get_logger
from wholesale_modules.sales.config import SalesConfig
from wholesale_modules.sales.workflows import (
    CUSTOMER_CREDIT_WORKFLOW,
    ORDER_COMPLETION_WORKFLOW,
    ORDER_PICKING_WORKFLOW,
    PICKING_COMPLETED,
    PICKING_OPEN,
)

logger = get_logger("modules.sales.models")


class OrderStatus(Enum):
    """Picking progress.  Must align with ``workflows.ORDER_PICKING_WORKFLOW.states``."""
    PENDING = "pending"
    PICKING = "picking"
    PICKED = "picked"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class CreditStatus(Enum):
    """Credit-hold flag.  Must align with ``workflows.CUSTOMER_CREDIT_WORKFLOW.states``."""
    NOT_ON_HOLD = "not_on_hold"
    ON_HOLD = "on_hold"


def derive_order_status(progress: Iterable[tuple[int, int]]) -> OrderStatus:
    """
    Picking status from ``(picked_quantity, ordered_quantity)`` pairs.

    Nothing picked (or no lines) is PENDING; every line fully picked is
    PICKED; anything in between is PICKING.
    """
    progress = list(progress)
    if not progress or all(picked == 0 for picked, _ in progress):
        return OrderStatus.PENDING
    if all(picked >= quantity for picked, quantity in progress):
        return OrderStatus.PICKED
    return OrderStatus.PICKING


def _validate_picked_quantity(picked_quantity, quantity: int, parameter: str) -> int:
    if isinstance(picked_quantity, bool) or not isinstance(picked_quantity, int):
        raise InvalidArgumentError(parameter, "Picked quantity must be a whole number.")
    if picked_quantity < 0:
        raise InvalidArgumentError(parameter, "Picked quantity cannot be negative.")
    if picked_quantity > quantity:
        raise InvalidArgumentError(parameter, "Picked quantity cannot exceed ordered quantity.")
    return picked_quantity


def _require_reason(reason) -> str:
    return normalize_text(
        reason, "reason", None, required=True, label="Adjustment reason"
    )


# -----------------------------------------------------------------------------
# Order lines
# -----------------------------------------------------------------------------


class OrderLine(Entity):
    """
    One line of an order.  Child entity of ``Order``.

    Contract:
        Created and changed only through its owning ``Order``, which checks
        the picking workflow before calling the underscore mutators here.
    """

    entity_type = "OrderLine"

    def __init__(
        self,
        line_number: int,
        stock_item_id: int,
        description: str,
        package_type_id: int,
        financials: LineFinancials,
        last_edited_by: int,
        *,
        cost_price: Decimal | int | str = ZERO,
        picked_quantity: int = 0,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ):
        config = config or SalesConfig()
        line_number = require_positive_int(
            line_number, "line_number", "Line number must be positive."
        )
        stock_item_id = require_positive_int(
            stock_item_id, "stock_item_id", "Stock item ID must be a valid reference."
        )
        description = normalize_text(
            description,
            "description",
            config.line_description_max_length,
            required=True,
            label="Description",
        )
        package_type_id = require_positive_int(
            package_type_id, "package_type_id", "Package type ID must be a valid reference."
        )
        if not isinstance(financials, LineFinancials):
            raise InvalidArgumentError("financials", "Financials are required.")
        cost_price = require_non_negative(cost_price, "cost_price", "Cost price cannot be negative.")
        picked_quantity = _validate_picked_quantity(
            picked_quantity, financials.quantity, "picked_quantity"
        )

        super().__init__(last_edited_by, clock)
        self._line_number = line_number
        self._stock_item_id = stock_item_id
        self._description = description
        self._package_type_id = package_type_id
        self._financials = financials
        self._cost_price = cost_price
        self._picked_quantity = picked_quantity

    @classmethod
    def reconstitute(
        cls,
        *,
        id: int,
        line_number: int,
        stock_item_id: int,
        description: str,
        package_type_id: int,
        financials: LineFinancials,
        cost_price: Decimal,
        picked_quantity: int,
        last_edited_by: int,
        last_edited_when: datetime | None = None,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ) -> OrderLine:
        line = cls(
            line_number,
            stock_item_id,
            description,
            package_type_id,
            financials,
            last_edited_by,
            cost_price=cost_price,
            picked_quantity=picked_quantity,
            clock=clock,
            config=config,
        )
        line.set_id(id)
        line._restore_audit(last_edited_by, last_edited_when)
        return line

    # Mutators for the owning Order; arguments are already validated.

    def _replace_financials(self, financials: LineFinancials, editor: int) -> None:
        self._financials = financials
        self._touch(editor)

    def _set_picked_quantity(self, picked_quantity: int, editor: int) -> None:
        self._picked_quantity = picked_quantity
        self._touch(editor)

    def _set_description(self, description: str, editor: int) -> None:
        self._description = description
        self._touch(editor)

    @property
    def line_number(self) -> int:
        return self._line_number

    @property
    def stock_item_id(self) -> int:
        return self._stock_item_id

    @property
    def description(self) -> str:
        return self._description

    @property
    def package_type_id(self) -> int:
        return self._package_type_id

    @property
    def financials(self) -> LineFinancials:
        return self._financials

    @property
    def cost_price(self) -> Decimal:
        return self._cost_price

    @property
    def picked_quantity(self) -> int:
        return self._picked_quantity

    @property
    def quantity(self) -> int:
        return self._financials.quantity

    @property
    def unit_price(self) -> Decimal | None:
        return self._financials.unit_price

    @property
    def tax_rate(self) -> Decimal:
        return self._financials.tax_rate

    @property
    def extended_price(self) -> Decimal:
        return self._financials.extended_price

    @property
    def tax_amount(self) -> Decimal:
        return self._financials.tax_amount

    @property
    def total_including_tax(self) -> Decimal:
        return self._financials.total_including_tax

    @property
    def line_profit(self) -> Decimal:
        return self._financials.line_profit

    @property
    def is_free_item(self) -> bool:
        return self._financials.is_free_item

    @property
    def is_fully_picked(self) -> bool:
        return self._picked_quantity >= self.quantity

    @property
    def is_partially_picked(self) -> bool:
        return 0 < self._picked_quantity < self.quantity

    @property
    def outstanding_quantity(self) -> int:
        return self.quantity - self._picked_quantity

    @property
    def pick_completion_percentage(self) -> Decimal:
        return Decimal(self._picked_quantity) / Decimal(self.quantity) * HUNDRED

    @property
    def picking_status(self) -> str:
        if self.is_fully_picked:
            return "Fully Picked"
        if self.is_partially_picked:
            return "Partially Picked"
        return "Pending"

    @property
    def status_summary(self) -> str:
        parts = [self.picking_status]
        if self._picked_quantity > 0:
            parts.append(
                f"{self._picked_quantity}/{self.quantity} picked "
                f"({self.pick_completion_percentage:.0f}%)"
            )
        if self.is_free_item:
            parts.append("Promotional")
        return " | ".join(parts)

    def __str__(self) -> str:
        return f"Line {self._line_number}: {self._description} -- {self._financials}"

    def __repr__(self) -> str:
        return (
            f"<OrderLine id={self.id} line={self._line_number} "
            f"picked={self._picked_quantity}/{self.quantity}>"
        )


# -----------------------------------------------------------------------------
# Orders
# -----------------------------------------------------------------------------


class Order(Entity):
    """
    A customer order with a picking workflow.

    Contract:
        Lines are addressed by ``line_number`` (1, 2, ...) and are only
        changed through the order.  ``status`` is derived from the lines.
        ``is_picking_completed`` is the separate completion lock.

    Guarantees:
        - Totals are sums over the lines' ``LineFinancials``.
        - Every successful mutation re-stamps the order (and the touched
          line) with the editor and the clock's time.
    """

    entity_type = "Order"

    def __init__(
        self,
        customer_id: int,
        salesperson_person_id: int,
        contact_person_id: int,
        order_date: date,
        expected_delivery_date: date,
        last_edited_by: int,
        *,
        customer_purchase_order_number: str | None = None,
        is_undersupply_backordered: bool = True,
        comments: str | None = None,
        delivery_instructions: str | None = None,
        internal_comments: str | None = None,
        backorder_order_id: int | None = None,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ):
        clock = clock or SystemClock()
        config = config or SalesConfig()

        customer_id = require_positive_int(
            customer_id, "customer_id", "Customer ID must be a valid customer reference."
        )
        salesperson_person_id = require_positive_int(
            salesperson_person_id,
            "salesperson_person_id",
            "Salesperson person ID must be a valid reference.",
        )
        contact_person_id = require_positive_int(
            contact_person_id, "contact_person_id", "Contact person ID must be a valid reference."
        )
        order_date = require_date(order_date, "order_date", "Order date")
        latest = clock.today() + timedelta(days=config.future_date_tolerance_days)
        if order_date > latest:
            raise InvalidArgumentError("order_date", "Order date cannot be in the future.")
        expected_delivery_date = self._validate_expected_delivery_date(
            expected_delivery_date, order_date
        )
        customer_purchase_order_number = normalize_text(
            customer_purchase_order_number,
            "customer_purchase_order_number",
            config.customer_purchase_order_number_max_length,
            label="Customer purchase order number",
        )
        is_undersupply_backordered = require_bool(
            is_undersupply_backordered, "is_undersupply_backordered"
        )
        backorder_order_id = require_optional_reference(
            backorder_order_id,
            "backorder_order_id",
            "Backorder order ID must be a valid order reference.",
        )

        super().__init__(last_edited_by, clock)
        self._config = config
        self._customer_id = customer_id
        self._salesperson_person_id = salesperson_person_id
        self._contact_person_id = contact_person_id
        self._order_date = order_date
        self._expected_delivery_date = expected_delivery_date
        self._customer_purchase_order_number = customer_purchase_order_number
        self._is_undersupply_backordered = is_undersupply_backordered
        self._comments = normalize_text(comments, "comments", None)
        self._delivery_instructions = normalize_text(
            delivery_instructions, "delivery_instructions", None
        )
        self._internal_comments = normalize_text(internal_comments, "internal_comments", None)
        self._backorder_order_id = backorder_order_id
        self._picked_by_person_id: int | None = None
        self._picking_completed_when: datetime | None = None
        self._lines: dict[int, OrderLine] = {}

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create_standard_order(
        cls,
        customer_id: int,
        salesperson_person_id: int,
        contact_person_id: int,
        order_date: date,
        expected_delivery_date: date,
        last_edited_by: int,
        *,
        customer_purchase_order_number: str | None = None,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ) -> Order:
        order = cls(
            customer_id,
            salesperson_person_id,
            contact_person_id,
            order_date,
            expected_delivery_date,
            last_edited_by,
            customer_purchase_order_number=customer_purchase_order_number,
            is_undersupply_backordered=True,
            clock=clock,
            config=config,
        )
        logger.info(
            "order_created",
            extra={"customer_id": customer_id, "order_date": order_date},
        )
        return order

    @classmethod
    def create_backorder(
        cls,
        original_order_id: int,
        customer_id: int,
        salesperson_person_id: int,
        contact_person_id: int,
        order_date: date,
        expected_delivery_date: date,
        last_edited_by: int,
        *,
        customer_purchase_order_number: str | None = None,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ) -> Order:
        """An order for the undersupplied remainder of ``original_order_id``."""
        order = cls(
            customer_id,
            salesperson_person_id,
            contact_person_id,
            order_date,
            expected_delivery_date,
            last_edited_by,
            customer_purchase_order_number=customer_purchase_order_number,
            is_undersupply_backordered=True,
            backorder_order_id=original_order_id,
            clock=clock,
            config=config,
        )
        logger.info(
            "backorder_created",
            extra={"customer_id": customer_id, "backorder_order_id": original_order_id},
        )
        return order

    @classmethod
    def reconstitute(
        cls,
        *,
        id: int,
        customer_id: int,
        salesperson_person_id: int,
        contact_person_id: int,
        order_date: date,
        expected_delivery_date: date,
        last_edited_by: int,
        last_edited_when: datetime | None = None,
        customer_purchase_order_number: str | None = None,
        is_undersupply_backordered: bool = True,
        comments: str | None = None,
        delivery_instructions: str | None = None,
        internal_comments: str | None = None,
        backorder_order_id: int | None = None,
        picked_by_person_id: int | None = None,
        picking_completed_when: datetime | None = None,
        lines: Iterable[OrderLine] = (),
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ) -> Order:
        """Rebuild a stored order and its lines through the validating constructors."""
        order = cls(
            customer_id,
            salesperson_person_id,
            contact_person_id,
            order_date,
            expected_delivery_date,
            last_edited_by,
            customer_purchase_order_number=customer_purchase_order_number,
            is_undersupply_backordered=is_undersupply_backordered,
            comments=comments,
            delivery_instructions=delivery_instructions,
            internal_comments=internal_comments,
            backorder_order_id=backorder_order_id,
            clock=clock,
            config=config,
        )
        order._picked_by_person_id = require_optional_reference(
            picked_by_person_id,
            "picked_by_person_id",
            "Picker person ID must be a valid reference.",
        )
        for line in lines:
            if line.line_number in order._lines:
                raise InvalidArgumentError(
                    "lines", f"Duplicate line number {line.line_number}."
                )
            order._lines[line.line_number] = line
        if picking_completed_when is not None:
            picking_completed_when = require_aware_datetime(
                picking_completed_when, "picking_completed_when", "Picking completion time"
            )
            if order._picked_by_person_id is None or order.status is not OrderStatus.PICKED:
                raise InvalidArgumentError(
                    "picking_completed_when",
                    "A completed order must have a picker and every line fully picked.",
                )
            order._picking_completed_when = picking_completed_when
        order.set_id(id)
        order._restore_audit(last_edited_by, last_edited_when)
        return order

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_expected_delivery_date(expected_delivery_date, order_date: date) -> date:
        expected_delivery_date = require_date(
            expected_delivery_date, "expected_delivery_date", "Expected delivery date"
        )
        if expected_delivery_date < order_date:
            raise InvalidArgumentError(
                "expected_delivery_date",
                "Expected delivery date cannot be before order date.",
            )
        return expected_delivery_date

    def _require_picking_open(self, operation: str) -> None:
        if self.is_picking_completed:
            logger.warning(
                "order_mutation_rejected",
                extra={"entity_id": self.id, "operation": operation},
            )
            raise PickingCompletedError(operation, self.id)

    def _require_status_move(
        self,
        action: str,
        *,
        line_number: int | None = None,
        picked_quantity: int | None = None,
        quantity: int | None = None,
        new_line_quantity: int | None = None,
    ) -> OrderStatus:
        """
        Check that the status the change would produce is reachable by ``action``.

        Returns the prospective status without changing anything.
        """
        progress = []
        for number, line in self._lines.items():
            picked, ordered = line.picked_quantity, line.quantity
            if number == line_number:
                if picked_quantity is not None:
                    picked = picked_quantity
                if quantity is not None:
                    ordered = quantity
            progress.append((picked, ordered))
        if new_line_quantity is not None:
            progress.append((0, new_line_quantity))

        current = self.status
        target = derive_order_status(progress)
        if not ORDER_PICKING_WORKFLOW.permits(current.value, target.value, action):
            raise IllegalStateError(
                action,
                f"Cannot move order from {current.label} to {target.label} "
                f"by {action.replace('_', ' ')}.",
            )
        return target

    def _log_status_change(self, previous: OrderStatus, action: str) -> None:
        current = self.status
        if current is not previous:
            logger.info(
                "order_status_changed",
                extra={
                    "entity_id": self.id,
                    "from_status": previous.value,
                    "to_status": current.value,
                    "action": action,
                },
            )

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def get_line(self, line_number: int) -> OrderLine:
        line = self._lines.get(line_number)
        if line is None:
            raise InvalidArgumentError("line_number", f"Order has no line {line_number}.")
        return line

    def _next_line_number(self) -> int:
        return max(self._lines, default=0) + 1

    def _attach_new_line(self, line: OrderLine, editor: int) -> OrderLine:
        previous = self.status
        self._lines[line.line_number] = line
        self._touch(editor)
        logger.info(
            "order_line_added",
            extra={
                "entity_id": self.id,
                "line_number": line.line_number,
                "stock_item_id": line.stock_item_id,
                "quantity": line.quantity,
                "extended_price": line.extended_price,
            },
        )
        self._log_status_change(previous, "add_line")
        return line

    def add_line(
        self,
        stock_item_id: int,
        description: str,
        package_type_id: int,
        quantity: int,
        unit_price: Decimal | int | str | None,
        tax_rate: Decimal | int | str,
        edited_by: int,
        *,
        cost_price: Decimal | int | str = ZERO,
    ) -> OrderLine:
        self._require_picking_open("add_line")
        editor = require_editor(edited_by)
        financials = LineFinancials.calculate(quantity, unit_price, tax_rate, cost_price)
        line = OrderLine(
            self._next_line_number(),
            stock_item_id,
            description,
            package_type_id,
            financials,
            editor,
            cost_price=cost_price,
            clock=self.clock,
            config=self._config,
        )
        self._require_status_move("add_line", new_line_quantity=line.quantity)
        return self._attach_new_line(line, editor)

    def add_free_item_line(
        self,
        stock_item_id: int,
        description: str,
        package_type_id: int,
        quantity: int,
        edited_by: int,
        *,
        cost_price: Decimal | int | str = ZERO,
    ) -> OrderLine:
        """Add a promotional line: no price, no tax, cost booked as a loss."""
        self._require_picking_open("add_line")
        editor = require_editor(edited_by)
        financials = LineFinancials.create_free_items(quantity, cost_price)
        line = OrderLine(
            self._next_line_number(),
            stock_item_id,
            description,
            package_type_id,
            financials,
            editor,
            cost_price=cost_price,
            clock=self.clock,
            config=self._config,
        )
        self._require_status_move("add_line", new_line_quantity=line.quantity)
        return self._attach_new_line(line, editor)

    def update_line_quantity(self, line_number: int, new_quantity: int, edited_by: int) -> None:
        """
        Change the ordered quantity of a line.

        Raises:
            IllegalStateError: if the new quantity is below what has already
                been picked, or the change would move the order backwards.
        """
        self._require_picking_open("update_line_quantity")
        line = self.get_line(line_number)
        editor = require_editor(edited_by)
        financials = line.financials.with_quantity(new_quantity, line.cost_price)
        if financials.quantity < line.picked_quantity:
            raise IllegalStateError(
                "update_line_quantity",
                f"Cannot reduce quantity below already picked quantity ({line.picked_quantity}).",
            )
        self._require_status_move(
            "amend_line", line_number=line_number, quantity=financials.quantity
        )

        previous = self.status
        line._replace_financials(financials, editor)
        self._touch(editor)
        self._log_status_change(previous, "amend_line")

    def update_line_unit_price(
        self,
        line_number: int,
        new_unit_price: Decimal | int | str | None,
        edited_by: int,
    ) -> None:
        self._require_picking_open("update_line_unit_price")
        line = self.get_line(line_number)
        editor = require_editor(edited_by)
        financials = line.financials.with_unit_price(new_unit_price, line.cost_price)

        line._replace_financials(financials, editor)
        self._touch(editor)

    def update_line_tax_rate(
        self,
        line_number: int,
        new_tax_rate: Decimal | int | str,
        edited_by: int,
    ) -> None:
        self._require_picking_open("update_line_tax_rate")
        line = self.get_line(line_number)
        editor = require_editor(edited_by)
        financials = line.financials.with_tax_rate(new_tax_rate, line.cost_price)

        line._replace_financials(financials, editor)
        self._touch(editor)

    def update_line_description(
        self, line_number: int, new_description: str, edited_by: int
    ) -> None:
        line = self.get_line(line_number)
        description = normalize_text(
            new_description,
            "new_description",
            self._config.line_description_max_length,
            required=True,
            label="Description",
        )
        editor = require_editor(edited_by)

        line._set_description(description, editor)
        self._touch(editor)

    # ------------------------------------------------------------------
    # Picking workflow
    # ------------------------------------------------------------------

    def record_pick(self, line_number: int, quantity: int, edited_by: int) -> OrderStatus:
        """
        Record ``quantity`` more items picked for a line.

        Returns the order status after the pick.

        Raises:
            PickingCompletedError: if picking has been completed.
            IllegalStateError: if the pick would exceed the ordered quantity.
        """
        self._require_picking_open("record_pick")
        line = self.get_line(line_number)
        quantity = require_positive_int(quantity, "quantity", "Picked quantity must be positive.")
        editor = require_editor(edited_by)
        new_total = line.picked_quantity + quantity
        if new_total > line.quantity:
            raise IllegalStateError(
                "record_pick",
                f"Cannot pick more than ordered quantity. Ordered: {line.quantity}, "
                f"Already picked: {line.picked_quantity}, Attempting to pick: {quantity}",
            )
        self._require_status_move(
            "record_pick", line_number=line_number, picked_quantity=new_total
        )

        previous = self.status
        line._set_picked_quantity(new_total, editor)
        self._touch(editor)
        logger.info(
            "order_pick_recorded",
            extra={
                "entity_id": self.id,
                "line_number": line_number,
                "quantity": quantity,
                "picked_quantity": new_total,
            },
        )
        self._log_status_change(previous, "record_pick")
        return self.status

    def adjust_picked_quantity(
        self,
        line_number: int,
        new_picked_quantity: int,
        reason: str,
        edited_by: int,
    ) -> OrderStatus:
        """
        Set a line's picked quantity outright.  The one way to undo picks.

        Raises:
            InvalidArgumentError: for a blank reason or a quantity outside
                [0, ordered quantity].
        """
        self._require_picking_open("adjust_picked_quantity")
        line = self.get_line(line_number)
        new_picked_quantity = _validate_picked_quantity(
            new_picked_quantity, line.quantity, "new_picked_quantity"
        )
        reason = _require_reason(reason)
        editor = require_editor(edited_by)
        self._require_status_move(
            "adjust_pick", line_number=line_number, picked_quantity=new_picked_quantity
        )

        previous = self.status
        previous_picked = line.picked_quantity
        line._set_picked_quantity(new_picked_quantity, editor)
        self._touch(editor)
        logger.info(
            "order_pick_adjusted",
            extra={
                "entity_id": self.id,
                "line_number": line_number,
                "previous_picked_quantity": previous_picked,
                "picked_quantity": new_picked_quantity,
                "reason": reason,
            },
        )
        self._log_status_change(previous, "adjust_pick")
        return self.status

    def assign_picker(self, picked_by_person_id: int, edited_by: int) -> None:
        self._require_picking_open("assign_picker")
        picked_by_person_id = require_positive_int(
            picked_by_person_id,
            "picked_by_person_id",
            "Picker person ID must be a valid reference.",
        )
        editor = require_editor(edited_by)

        self._picked_by_person_id = picked_by_person_id
        self._touch(editor)

    def unassign_picker(self, edited_by: int) -> None:
        self._require_picking_open("unassign_picker")
        if self._picked_by_person_id is None:
            raise IllegalStateError(
                "unassign_picker", "No picker is currently assigned to this order."
            )
        editor = require_editor(edited_by)

        self._picked_by_person_id = None
        self._touch(editor)

    def complete_picking(self, picking_completed_when: datetime, edited_by: int) -> None:
        """
        Lock the order as picked.

        Preconditions:
            - a picker is assigned and every line is fully picked;
            - ``picking_completed_when`` is timezone-aware, no more than the
              configured backdate limit in the past and no later than the
              future grace period.

        Raises:
            IllegalStateError: if already completed, no picker is assigned,
                or a line is not fully picked.
            InvalidArgumentError: for a completion time outside the window.
        """
        transition = ORDER_COMPLETION_WORKFLOW.find_transition(
            self.completion_state, "complete_picking"
        )
        if transition is None:
            raise IllegalStateError("complete_picking", "Order picking has already been completed.")
        if self._picked_by_person_id is None:
            raise IllegalStateError(
                "complete_picking", "Cannot complete picking without an assigned picker."
            )
        if not self._lines or self.status is not OrderStatus.PICKED:
            raise IllegalStateError(
                "complete_picking",
                "Cannot complete picking until every line is fully picked.",
            )
        picking_completed_when = require_aware_datetime(
            picking_completed_when, "picking_completed_when", "Picking completion time"
        )
        now = self.clock.now_utc()
        earliest = now - timedelta(days=self._config.picking_backdate_limit_days)
        latest = now + timedelta(minutes=self._config.picking_future_grace_minutes)
        if picking_completed_when < earliest:
            raise InvalidArgumentError(
                "picking_completed_when",
                f"Picking completion time cannot be more than "
                f"{self._config.picking_backdate_limit_days} day(s) in the past.",
            )
        if picking_completed_when > latest:
            raise InvalidArgumentError(
                "picking_completed_when", "Picking completion time cannot be in the future."
            )
        editor = require_editor(edited_by)

        self._picking_completed_when = picking_completed_when
        self._touch(editor)
        logger.info(
            "order_picking_completed",
            extra={
                "entity_id": self.id,
                "picked_by_person_id": self._picked_by_person_id,
                "picking_completed_when": picking_completed_when,
            },
        )

    def reopen_picking(self, reason: str, edited_by: int) -> None:
        """Lift the completion lock.  Line pick quantities are unchanged."""
        transition = ORDER_COMPLETION_WORKFLOW.find_transition(
            self.completion_state, "reopen_picking"
        )
        if transition is None:
            raise IllegalStateError(
                "reopen_picking",
                "Cannot reopen picking for an order that is not completed.",
            )
        reason = _require_reason(reason)
        editor = require_editor(edited_by)

        previous = self._picking_completed_when
        self._picking_completed_when = None
        self._touch(editor)
        logger.info(
            "order_picking_reopened",
            extra={
                "entity_id": self.id,
                "previous_picking_completed_when": previous,
                "reason": reason,
            },
        )

    # ------------------------------------------------------------------
    # Header updates
    # ------------------------------------------------------------------

    def update_expected_delivery_date(self, new_expected_delivery_date: date, edited_by: int) -> None:
        expected = self._validate_expected_delivery_date(
            new_expected_delivery_date, self._order_date
        )
        editor = require_editor(edited_by)

        self._expected_delivery_date = expected
        self._touch(editor)

    def update_contact_person(self, new_contact_person_id: int, edited_by: int) -> None:
        contact_person_id = require_positive_int(
            new_contact_person_id,
            "new_contact_person_id",
            "Contact person ID must be a valid reference.",
        )
        editor = require_editor(edited_by)

        self._contact_person_id = contact_person_id
        self._touch(editor)

    def update_salesperson(self, new_salesperson_person_id: int, edited_by: int) -> None:
        self._require_picking_open("update_salesperson")
        salesperson_person_id = require_positive_int(
            new_salesperson_person_id,
            "new_salesperson_person_id",
            "Salesperson person ID must be a valid reference.",
        )
        editor = require_editor(edited_by)

        self._salesperson_person_id = salesperson_person_id
        self._touch(editor)

    def update_customer_purchase_order_number(
        self, new_customer_purchase_order_number: str | None, edited_by: int
    ) -> None:
        number = normalize_text(
            new_customer_purchase_order_number,
            "new_customer_purchase_order_number",
            self._config.customer_purchase_order_number_max_length,
            label="Customer purchase order number",
        )
        editor = require_editor(edited_by)

        self._customer_purchase_order_number = number
        self._touch(editor)

    def update_backorder_policy(self, is_undersupply_backordered: bool, edited_by: int) -> None:
        self._require_picking_open("update_backorder_policy")
        flag = require_bool(is_undersupply_backordered, "is_undersupply_backordered")
        editor = require_editor(edited_by)

        self._is_undersupply_backordered = flag
        self._touch(editor)

    # Free-text notes.  Blank text clears a note.

    def update_comments(self, new_comments: str | None, edited_by: int) -> None:
        comments = normalize_text(new_comments, "new_comments", None)
        editor = require_editor(edited_by)

        self._comments = comments
        self._touch(editor)

    def update_delivery_instructions(
        self, new_delivery_instructions: str | None, edited_by: int
    ) -> None:
        instructions = normalize_text(
            new_delivery_instructions, "new_delivery_instructions", None
        )
        editor = require_editor(edited_by)

        self._delivery_instructions = instructions
        self._touch(editor)

    def update_internal_comments(self, new_internal_comments: str | None, edited_by: int) -> None:
        internal = normalize_text(new_internal_comments, "new_internal_comments", None)
        editor = require_editor(edited_by)

        self._internal_comments = internal
        self._touch(editor)

    def update_all_comments(
        self,
        new_comments: str | None,
        new_delivery_instructions: str | None,
        new_internal_comments: str | None,
        edited_by: int,
    ) -> None:
        comments = normalize_text(new_comments, "new_comments", None)
        instructions = normalize_text(
            new_delivery_instructions, "new_delivery_instructions", None
        )
        internal = normalize_text(new_internal_comments, "new_internal_comments", None)
        editor = require_editor(edited_by)

        self._comments = comments
        self._delivery_instructions = instructions
        self._internal_comments = internal
        self._touch(editor)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def customer_id(self) -> int:
        return self._customer_id

    @property
    def salesperson_person_id(self) -> int:
        return self._salesperson_person_id

    @property
    def contact_person_id(self) -> int:
        return self._contact_person_id

    @property
    def picked_by_person_id(self) -> int | None:
        return self._picked_by_person_id

    @property
    def backorder_order_id(self) -> int | None:
        return self._backorder_order_id

    @property
    def order_date(self) -> date:
        return self._order_date

    @property
    def expected_delivery_date(self) -> date:
        return self._expected_delivery_date

    @property
    def customer_purchase_order_number(self) -> str | None:
        return self._customer_purchase_order_number

    @property
    def is_undersupply_backordered(self) -> bool:
        return self._is_undersupply_backordered

    @property
    def comments(self) -> str | None:
        return self._comments

    @property
    def delivery_instructions(self) -> str | None:
        return self._delivery_instructions

    @property
    def internal_comments(self) -> str | None:
        return self._internal_comments

    @property
    def picking_completed_when(self) -> datetime | None:
        return self._picking_completed_when

    @property
    def config(self) -> SalesConfig:
        return self._config

    @property
    def lines(self) -> tuple[OrderLine, ...]:
        return tuple(self._lines.values())

    @property
    def status(self) -> OrderStatus:
        return derive_order_status(
            (line.picked_quantity, line.quantity) for line in self._lines.values()
        )

    @property
    def completion_state(self) -> str:
        return PICKING_COMPLETED if self._picking_completed_when is not None else PICKING_OPEN

    @property
    def is_picking_completed(self) -> bool:
        return self._picking_completed_when is not None

    @property
    def is_picker_assigned(self) -> bool:
        return self._picked_by_person_id is not None

    @property
    def is_backorder(self) -> bool:
        return self._backorder_order_id is not None

    # Totals

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def total_picked_quantity(self) -> int:
        return sum(line.picked_quantity for line in self._lines.values())

    @property
    def total_extended_price(self) -> Decimal:
        return sum((line.extended_price for line in self._lines.values()), ZERO)

    @property
    def total_tax_amount(self) -> Decimal:
        return sum((line.tax_amount for line in self._lines.values()), ZERO)

    @property
    def total_including_tax(self) -> Decimal:
        return self.total_extended_price + self.total_tax_amount

    @property
    def total_line_profit(self) -> Decimal:
        return sum((line.line_profit for line in self._lines.values()), ZERO)

    # Scheduling

    @property
    def age_days(self) -> int:
        return (self.clock.today() - self._order_date).days

    @property
    def days_to_delivery(self) -> int:
        return (self._expected_delivery_date - self.clock.today()).days

    @property
    def is_delivery_overdue(self) -> bool:
        return self.days_to_delivery < 0 and not self.is_picking_completed

    @property
    def delivery_urgency(self) -> str:
        days = self.days_to_delivery
        if days < 0:
            return "OVERDUE"
        if days == 0:
            return "Due Today"
        if days == 1:
            return "Urgent"
        if days <= 3:
            return "Normal"
        return "Low Priority"

    @property
    def workflow_stage(self) -> str:
        if self.is_picking_completed:
            return "Ready for Dispatch"
        if self.is_picker_assigned or self.status is not OrderStatus.PENDING:
            return "Warehouse Fulfillment"
        return "Order Processing"

    @property
    def has_customer_purchase_order(self) -> bool:
        return self._customer_purchase_order_number is not None

    @property
    def has_customer_communications(self) -> bool:
        return self._comments is not None or self._delivery_instructions is not None

    @property
    def has_internal_notes(self) -> bool:
        return self._internal_comments is not None

    @property
    def status_summary(self) -> str:
        parts = [self.status.label, self.workflow_stage]
        if self.is_backorder:
            parts.append(f"Backorder from Order {self._backorder_order_id}")
        if self.is_delivery_overdue:
            parts.append(f"OVERDUE ({abs(self.days_to_delivery)} days)")
        elif not self.is_picking_completed and self.days_to_delivery <= 1:
            parts.append(f"Due in {self.days_to_delivery} day(s)")
        return " | ".join(parts)

    def __str__(self) -> str:
        kind = "Backorder" if self.is_backorder else "Order"
        return (
            f"{kind} {self.id}: Customer {self._customer_id} - {self.status_summary} "
            f"({len(self._lines)} lines, {format_amount(self.total_including_tax)})"
        )

    def __repr__(self) -> str:
        return f"<Order id={self.id} customer={self._customer_id} status={self.status.value}>"


# -----------------------------------------------------------------------------
# Customers
# -----------------------------------------------------------------------------


class Customer(Entity):
    """
    A customer account with a credit-hold lifecycle.

    Contract:
        ``ensure_can_accept_orders`` is the guard sales code calls before
        taking an order for this customer.
    """

    entity_type = "Customer"

    def __init__(
        self,
        customer_name: str,
        bill_to_customer_id: int,
        customer_category_id: int,
        primary_contact_person_id: int,
        delivery_method_id: int,
        account_opened_date: date,
        standard_discount_percentage: Decimal | int | str,
        payment_days: int,
        last_edited_by: int,
        *,
        buying_group_id: int | None = None,
        alternate_contact_person_id: int | None = None,
        credit_limit: Decimal | int | str | None = None,
        is_statement_sent: bool = True,
        is_on_credit_hold: bool = False,
        delivery_run: str | None = None,
        run_position: str | None = None,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ):
        clock = clock or SystemClock()
        config = config or SalesConfig()

        customer_name = self._validate_name(customer_name, "customer_name", config)
        bill_to_customer_id = require_positive_int(
            bill_to_customer_id,
            "bill_to_customer_id",
            "Bill to customer ID must be a valid customer reference.",
        )
        customer_category_id = require_positive_int(
            customer_category_id,
            "customer_category_id",
            "Customer category ID must be a valid reference.",
        )
        primary_contact_person_id = require_positive_int(
            primary_contact_person_id,
            "primary_contact_person_id",
            "Primary contact person ID must be a valid reference.",
        )
        delivery_method_id = require_positive_int(
            delivery_method_id, "delivery_method_id", "Delivery method ID must be a valid reference."
        )
        account_opened_date = require_date(
            account_opened_date, "account_opened_date", "Account opened date"
        )
        if account_opened_date > clock.today() + timedelta(days=config.future_date_tolerance_days):
            raise InvalidArgumentError(
                "account_opened_date", "Account opened date cannot be in the future."
            )
        standard_discount_percentage = require_percentage(
            standard_discount_percentage,
            "standard_discount_percentage",
            label="Discount percentage",
        )
        payment_days = self._validate_payment_days(payment_days, "payment_days")
        buying_group_id = require_optional_reference(
            buying_group_id, "buying_group_id", "Buying group ID must be a valid reference."
        )
        alternate_contact_person_id = require_optional_reference(
            alternate_contact_person_id,
            "alternate_contact_person_id",
            "Alternate contact person ID must be a valid reference.",
        )
        credit_limit = self._validate_credit_limit(credit_limit, "credit_limit")
        is_statement_sent = require_bool(is_statement_sent, "is_statement_sent")
        is_on_credit_hold = require_bool(is_on_credit_hold, "is_on_credit_hold")
        delivery_run, run_position = self._validate_run(delivery_run, run_position, config)

        super().__init__(last_edited_by, clock)
        self._config = config
        self._customer_name = customer_name
        self._bill_to_customer_id = bill_to_customer_id
        self._customer_category_id = customer_category_id
        self._buying_group_id = buying_group_id
        self._primary_contact_person_id = primary_contact_person_id
        self._alternate_contact_person_id = alternate_contact_person_id
        self._delivery_method_id = delivery_method_id
        self._account_opened_date = account_opened_date
        self._standard_discount_percentage = standard_discount_percentage
        self._payment_days = payment_days
        self._credit_limit = credit_limit
        self._is_statement_sent = is_statement_sent
        self._is_on_credit_hold = is_on_credit_hold
        self._delivery_run = delivery_run
        self._run_position = run_position

    @classmethod
    def reconstitute(
        cls,
        *,
        id: int,
        last_edited_when: datetime | None = None,
        **fields,
    ) -> Customer:
        """Rebuild a stored customer; ``fields`` are the constructor arguments."""
        last_edited_by = fields.pop("last_edited_by")
        positional = [
            fields.pop(name)
            for name in (
                "customer_name",
                "bill_to_customer_id",
                "customer_category_id",
                "primary_contact_person_id",
                "delivery_method_id",
                "account_opened_date",
                "standard_discount_percentage",
                "payment_days",
            )
        ]
        customer = cls(*positional, last_edited_by, **fields)
        customer.set_id(id)
        customer._restore_audit(last_edited_by, last_edited_when)
        return customer

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_name(name, parameter: str, config: SalesConfig) -> str:
        return normalize_text(
            name,
            parameter,
            config.customer_name_max_length,
            required=True,
            label="Customer name",
        )

    @staticmethod
    def _validate_payment_days(payment_days, parameter: str) -> int:
        if isinstance(payment_days, bool) or not isinstance(payment_days, int):
            raise InvalidArgumentError(parameter, "Payment days must be a whole number.")
        if payment_days < 0:
            raise InvalidArgumentError(parameter, "Payment days cannot be negative.")
        return payment_days

    @staticmethod
    def _validate_credit_limit(credit_limit, parameter: str) -> Decimal | None:
        limit = to_optional_decimal(credit_limit, parameter)
        if limit is not None and limit < ZERO:
            raise InvalidArgumentError(parameter, "Credit limit cannot be negative.")
        return limit

    @staticmethod
    def _validate_run(delivery_run, run_position, config: SalesConfig) -> tuple[str | None, str | None]:
        return (
            normalize_text(
                delivery_run, "delivery_run", config.delivery_run_max_length, label="Delivery run"
            ),
            normalize_text(
                run_position, "run_position", config.run_position_max_length, label="Run position"
            ),
        )

    # ------------------------------------------------------------------
    # Credit hold
    # ------------------------------------------------------------------

    def _require_credit_transition(self, action: str, reason: str) -> None:
        if CUSTOMER_CREDIT_WORKFLOW.find_transition(self.credit_status.value, action) is None:
            logger.warning(
                "customer_credit_transition_rejected",
                extra={"entity_id": self.id, "action": action},
            )
            raise CreditHoldError(action, self.id, reason)

    def place_on_credit_hold(self, edited_by: int) -> None:
        """Raises CreditHoldError if the customer is already on hold."""
        editor = require_editor(edited_by)
        self._require_credit_transition(
            "place_on_credit_hold", "Customer is already on credit hold."
        )

        self._is_on_credit_hold = True
        self._touch(editor)
        logger.info("customer_placed_on_credit_hold", extra={"entity_id": self.id})

    def release_credit_hold(self, edited_by: int) -> None:
        """Raises CreditHoldError if the customer is not on hold."""
        editor = require_editor(edited_by)
        self._require_credit_transition(
            "release_credit_hold", "Customer is not on credit hold."
        )

        self._is_on_credit_hold = False
        self._touch(editor)
        logger.info("customer_released_from_credit_hold", extra={"entity_id": self.id})

    def ensure_can_accept_orders(self) -> None:
        if self._is_on_credit_hold:
            raise CreditHoldError(
                "accept_order",
                self.id,
                "Customer is on credit hold and cannot accept new orders.",
            )

    # ------------------------------------------------------------------
    # Account updates
    # ------------------------------------------------------------------

    def update_customer_name(self, new_customer_name: str, edited_by: int) -> None:
        name = self._validate_name(new_customer_name, "new_customer_name", self._config)
        editor = require_editor(edited_by)

        self._customer_name = name
        self._touch(editor)

    def set_credit_limit(self, credit_limit: Decimal | int | str | None, edited_by: int) -> None:
        """None removes the limit."""
        limit = self._validate_credit_limit(credit_limit, "credit_limit")
        editor = require_editor(edited_by)

        self._credit_limit = limit
        self._touch(editor)

    def update_standard_discount(
        self, discount_percentage: Decimal | int | str, edited_by: int
    ) -> None:
        discount = require_percentage(
            discount_percentage, "discount_percentage", label="Discount percentage"
        )
        editor = require_editor(edited_by)

        self._standard_discount_percentage = discount
        self._touch(editor)

    def update_payment_terms(self, payment_days: int, edited_by: int) -> None:
        payment_days = self._validate_payment_days(payment_days, "payment_days")
        editor = require_editor(edited_by)

        self._payment_days = payment_days
        self._touch(editor)

    def update_delivery_logistics(
        self,
        delivery_method_id: int,
        delivery_run: str | None,
        run_position: str | None,
        edited_by: int,
    ) -> None:
        delivery_method_id = require_positive_int(
            delivery_method_id, "delivery_method_id", "Delivery method ID must be a valid reference."
        )
        delivery_run, run_position = self._validate_run(delivery_run, run_position, self._config)
        editor = require_editor(edited_by)

        self._delivery_method_id = delivery_method_id
        self._delivery_run = delivery_run
        self._run_position = run_position
        self._touch(editor)

    def update_statement_preference(self, is_statement_sent: bool, edited_by: int) -> None:
        flag = require_bool(is_statement_sent, "is_statement_sent")
        editor = require_editor(edited_by)

        self._is_statement_sent = flag
        self._touch(editor)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def customer_name(self) -> str:
        return self._customer_name

    @property
    def bill_to_customer_id(self) -> int:
        return self._bill_to_customer_id

    @property
    def customer_category_id(self) -> int:
        return self._customer_category_id

    @property
    def buying_group_id(self) -> int | None:
        return self._buying_group_id

    @property
    def primary_contact_person_id(self) -> int:
        return self._primary_contact_person_id

    @property
    def alternate_contact_person_id(self) -> int | None:
        return self._alternate_contact_person_id

    @property
    def delivery_method_id(self) -> int:
        return self._delivery_method_id

    @property
    def account_opened_date(self) -> date:
        return self._account_opened_date

    @property
    def standard_discount_percentage(self) -> Decimal:
        return self._standard_discount_percentage

    @property
    def payment_days(self) -> int:
        return self._payment_days

    @property
    def credit_limit(self) -> Decimal | None:
        return self._credit_limit

    @property
    def is_statement_sent(self) -> bool:
        return self._is_statement_sent

    @property
    def is_on_credit_hold(self) -> bool:
        return self._is_on_credit_hold

    @property
    def delivery_run(self) -> str | None:
        return self._delivery_run

    @property
    def run_position(self) -> str | None:
        return self._run_position

    @property
    def config(self) -> SalesConfig:
        return self._config

    @property
    def credit_status(self) -> CreditStatus:
        return CreditStatus.ON_HOLD if self._is_on_credit_hold else CreditStatus.NOT_ON_HOLD

    @property
    def can_accept_orders(self) -> bool:
        return not self._is_on_credit_hold

    @property
    def has_credit_limit(self) -> bool:
        return self._credit_limit is not None

    @property
    def is_in_buying_group(self) -> bool:
        return self._buying_group_id is not None

    def __str__(self) -> str:
        return f"Customer: {self._customer_name} (ID: {self.id})"

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self._customer_name!r} credit={self.credit_status.value}>"
