"""
Sales ORM Models (``wholesale_modules.sales.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the sales aggregates:

* ``OrderModel`` / ``OrderLineModel`` -- an order and its lines.  Lines
  are owned by the order row (``delete-orphan`` cascade) and are matched
  to domain lines by ``line_number``.
* ``CustomerModel`` -- customer accounts.

Holds no business rules.  Loaded rows are rebuilt through the entities'
``reconstitute`` classmethods; a line's ``LineFinancials`` is rebuilt
through its validating constructor.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``wholesale_kernel.db.base``.
MUST NOT be imported by ``wholesale_kernel``.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wholesale_kernel.db.base import AuditedBase
from wholesale_kernel.domain.clock import Clock
from wholesale_kernel.domain.line_financials import LineFinancials


class OrderModel(AuditedBase):
    """
    ORM model for orders.

    Guarantees:
        - picking_completed_when NULL means picking is open.
        - Status is not stored; it is derived from the line rows.
    """

    __tablename__ = "sales_orders"

    __table_args__ = (
        Index("idx_sales_orders_customer_id", "customer_id"),
        Index("idx_sales_orders_order_date", "order_date"),
    )

    customer_id: Mapped[int] = mapped_column(nullable=False)
    salesperson_person_id: Mapped[int] = mapped_column(nullable=False)
    picked_by_person_id: Mapped[int | None] = mapped_column(nullable=True)
    contact_person_id: Mapped[int] = mapped_column(nullable=False)
    backorder_order_id: Mapped[int | None] = mapped_column(nullable=True)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    customer_purchase_order_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_undersupply_backordered: Mapped[bool] = mapped_column(Boolean, nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivery_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    picking_completed_when: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["OrderLineModel"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineModel.line_number",
    )

    def to_entity(self, clock: Clock | None = None, config=None):
        from wholesale_modules.sales.models import Order

        return Order.reconstitute(
            id=self.id,
            customer_id=self.customer_id,
            salesperson_person_id=self.salesperson_person_id,
            contact_person_id=self.contact_person_id,
            order_date=self.order_date,
            expected_delivery_date=self.expected_delivery_date,
            last_edited_by=self.last_edited_by,
            last_edited_when=self.last_edited_when,
            customer_purchase_order_number=self.customer_purchase_order_number,
            is_undersupply_backordered=self.is_undersupply_backordered,
            comments=self.comments,
            delivery_instructions=self.delivery_instructions,
            internal_comments=self.internal_comments,
            backorder_order_id=self.backorder_order_id,
            picked_by_person_id=self.picked_by_person_id,
            picking_completed_when=self.picking_completed_when,
            lines=[line.to_entity(clock, config) for line in self.lines],
            clock=clock,
            config=config,
        )

    @classmethod
    def from_entity(cls, order) -> "OrderModel":
        row = cls(lines=[])
        row.update_from_entity(order)
        return row

    def update_from_entity(self, order) -> None:
        self.customer_id = order.customer_id
        self.salesperson_person_id = order.salesperson_person_id
        self.picked_by_person_id = order.picked_by_person_id
        self.contact_person_id = order.contact_person_id
        self.backorder_order_id = order.backorder_order_id
        self.order_date = order.order_date
        self.expected_delivery_date = order.expected_delivery_date
        self.customer_purchase_order_number = order.customer_purchase_order_number
        self.is_undersupply_backordered = order.is_undersupply_backordered
        self.comments = order.comments
        self.delivery_instructions = order.delivery_instructions
        self.internal_comments = order.internal_comments
        self.picking_completed_when = order.picking_completed_when
        self.last_edited_by = order.last_edited_by
        self.last_edited_when = order.last_edited_when

        existing = {row.line_number: row for row in self.lines}
        for line in order.lines:
            row = existing.get(line.line_number)
            if row is None:
                self.lines.append(OrderLineModel.from_entity(line))
            else:
                row.update_from_entity(line)

    def line_row(self, line_number: int) -> "OrderLineModel | None":
        for row in self.lines:
            if row.line_number == line_number:
                return row
        return None

    def __repr__(self) -> str:
        return f"<OrderModel {self.id}: customer {self.customer_id} ({len(self.lines)} lines)>"


class OrderLineModel(AuditedBase):
    """ORM model for order lines.  ``line_number`` is unique within an order."""

    __tablename__ = "sales_order_lines"

    __table_args__ = (
        UniqueConstraint("order_id", "line_number", name="uq_sales_order_lines_number"),
        Index("idx_sales_order_lines_stock_item_id", "stock_item_id"),
    )

    order_id: Mapped[int] = mapped_column(ForeignKey("sales_orders.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(nullable=False)
    stock_item_id: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(100), nullable=False)
    package_type_id: Mapped[int] = mapped_column(nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    tax_rate: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    line_profit: Mapped[Decimal] = mapped_column(nullable=False)
    extended_price: Mapped[Decimal] = mapped_column(nullable=False)
    cost_price: Mapped[Decimal] = mapped_column(nullable=False)
    picked_quantity: Mapped[int] = mapped_column(nullable=False)

    order: Mapped[OrderModel] = relationship(back_populates="lines")

    def to_entity(self, clock: Clock | None = None, config=None):
        from wholesale_modules.sales.models import OrderLine

        return OrderLine.reconstitute(
            id=self.id,
            line_number=self.line_number,
            stock_item_id=self.stock_item_id,
            description=self.description,
            package_type_id=self.package_type_id,
            financials=LineFinancials(
                quantity=self.quantity,
                unit_price=self.unit_price,
                tax_rate=self.tax_rate,
                tax_amount=self.tax_amount,
                line_profit=self.line_profit,
                extended_price=self.extended_price,
            ),
            cost_price=self.cost_price,
            picked_quantity=self.picked_quantity,
            last_edited_by=self.last_edited_by,
            last_edited_when=self.last_edited_when,
            clock=clock,
            config=config,
        )

    @classmethod
    def from_entity(cls, line) -> "OrderLineModel":
        row = cls()
        row.update_from_entity(line)
        return row

    def update_from_entity(self, line) -> None:
        financials = line.financials
        self.line_number = line.line_number
        self.stock_item_id = line.stock_item_id
        self.description = line.description
        self.package_type_id = line.package_type_id
        self.quantity = financials.quantity
        self.unit_price = financials.unit_price
        self.tax_rate = financials.tax_rate
        self.tax_amount = financials.tax_amount
        self.line_profit = financials.line_profit
        self.extended_price = financials.extended_price
        self.cost_price = line.cost_price
        self.picked_quantity = line.picked_quantity
        self.last_edited_by = line.last_edited_by
        self.last_edited_when = line.last_edited_when

    def __repr__(self) -> str:
        return f"<OrderLineModel {self.id}: order {self.order_id} line {self.line_number}>"


class CustomerModel(AuditedBase):
    """ORM model for customers."""

    __tablename__ = "sales_customers"

    __table_args__ = (
        Index("idx_sales_customers_name", "customer_name"),
        Index("idx_sales_customers_bill_to", "bill_to_customer_id"),
    )

    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    bill_to_customer_id: Mapped[int] = mapped_column(nullable=False)
    customer_category_id: Mapped[int] = mapped_column(nullable=False)
    buying_group_id: Mapped[int | None] = mapped_column(nullable=True)
    primary_contact_person_id: Mapped[int] = mapped_column(nullable=False)
    alternate_contact_person_id: Mapped[int | None] = mapped_column(nullable=True)
    delivery_method_id: Mapped[int] = mapped_column(nullable=False)
    account_opened_date: Mapped[date] = mapped_column(Date, nullable=False)
    standard_discount_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    payment_days: Mapped[int] = mapped_column(nullable=False)
    credit_limit: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_statement_sent: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_on_credit_hold: Mapped[bool] = mapped_column(Boolean, nullable=False)
    delivery_run: Mapped[str | None] = mapped_column(String(5), nullable=True)
    run_position: Mapped[str | None] = mapped_column(String(5), nullable=True)

    def to_entity(self, clock: Clock | None = None, config=None):
        from wholesale_modules.sales.models import Customer

        return Customer.reconstitute(
            id=self.id,
            last_edited_when=self.last_edited_when,
            last_edited_by=self.last_edited_by,
            customer_name=self.customer_name,
            bill_to_customer_id=self.bill_to_customer_id,
            customer_category_id=self.customer_category_id,
            primary_contact_person_id=self.primary_contact_person_id,
            delivery_method_id=self.delivery_method_id,
            account_opened_date=self.account_opened_date,
            standard_discount_percentage=self.standard_discount_percentage,
            payment_days=self.payment_days,
            buying_group_id=self.buying_group_id,
            alternate_contact_person_id=self.alternate_contact_person_id,
            credit_limit=self.credit_limit,
            is_statement_sent=self.is_statement_sent,
            is_on_credit_hold=self.is_on_credit_hold,
            delivery_run=self.delivery_run,
            run_position=self.run_position,
            clock=clock,
            config=config,
        )

    @classmethod
    def from_entity(cls, customer) -> "CustomerModel":
        row = cls()
        row.update_from_entity(customer)
        return row

    def update_from_entity(self, customer) -> None:
        self.customer_name = customer.customer_name
        self.bill_to_customer_id = customer.bill_to_customer_id
        self.customer_category_id = customer.customer_category_id
        self.buying_group_id = customer.buying_group_id
        self.primary_contact_person_id = customer.primary_contact_person_id
        self.alternate_contact_person_id = customer.alternate_contact_person_id
        self.delivery_method_id = customer.delivery_method_id
        self.account_opened_date = customer.account_opened_date
        self.standard_discount_percentage = customer.standard_discount_percentage
        self.payment_days = customer.payment_days
        self.credit_limit = customer.credit_limit
        self.is_statement_sent = customer.is_statement_sent
        self.is_on_credit_hold = customer.is_on_credit_hold
        self.delivery_run = customer.delivery_run
        self.run_position = customer.run_position
        self.last_edited_by = customer.last_edited_by
        self.last_edited_when = customer.last_edited_when

    def __repr__(self) -> str:
        return f"<CustomerModel {self.id}: {self.customer_name}>"
