"""
Sales Repositories (``wholesale_modules.sales.repository``).

Stores ``Order`` aggregates (with their lines) and ``Customer`` accounts.
New order lines receive their identity after the flush that inserts them.
The caller owns the session.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from wholesale_kernel.db.repository import BaseRepository
from wholesale_kernel.domain.clock import Clock
from wholesale_kernel.logging_config import get_logger
from wholesale_modules.sales.config import SalesConfig
from wholesale_modules.sales.models import Customer, Order
from wholesale_modules.sales.orm import CustomerModel, OrderModel

logger = get_logger("modules.sales.repository")


class OrderRepository(BaseRepository[Order, OrderModel]):
    model = OrderModel

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ):
        super().__init__(session, clock)
        self.config = config or SalesConfig()

    def _new_row(self, entity: Order) -> OrderModel:
        return OrderModel.from_entity(entity)

    def _update_row(self, row: OrderModel, entity: Order) -> None:
        row.update_from_entity(entity)

    def _to_entity(self, row: OrderModel) -> Order:
        return row.to_entity(clock=self.clock, config=self.config)

    def _sync_child_ids(self, entity: Order, row: OrderModel) -> None:
        for line in entity.lines:
            if line.is_persisted:
                continue
            line_row = row.line_row(line.line_number)
            line.set_id(line_row.id)
            logger.debug(
                "order_line_stored",
                extra={
                    "entity_id": entity.id,
                    "line_number": line.line_number,
                    "line_id": line.id,
                },
            )

    def list_for_customer(self, customer_id: int) -> list[Order]:
        """All orders of one customer, oldest first."""
        rows = self.session.scalars(
            select(OrderModel)
            .where(OrderModel.customer_id == customer_id)
            .order_by(OrderModel.order_date, OrderModel.id)
        )
        return [self._to_entity(row) for row in rows]


class CustomerRepository(BaseRepository[Customer, CustomerModel]):
    model = CustomerModel

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
    ):
        super().__init__(session, clock)
        self.config = config or SalesConfig()

    def _new_row(self, entity: Customer) -> CustomerModel:
        return CustomerModel.from_entity(entity)

    def _update_row(self, row: CustomerModel, entity: Customer) -> None:
        row.update_from_entity(entity)

    def _to_entity(self, row: CustomerModel) -> Customer:
        return row.to_entity(clock=self.clock, config=self.config)

    def list_on_credit_hold(self) -> list[Customer]:
        rows = self.session.scalars(
            select(CustomerModel)
            .where(CustomerModel.is_on_credit_hold.is_(True))
            .order_by(CustomerModel.customer_name)
        )
        return [self._to_entity(row) for row in rows]
