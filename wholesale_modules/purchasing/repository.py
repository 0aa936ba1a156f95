"""
Purchasing Repository (``wholesale_modules.purchasing.repository``).

Stores ``SupplierTransaction`` aggregates and reconstitutes them through
the validating constructor.  The caller owns the session.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from wholesale_kernel.db.repository import BaseRepository
from wholesale_kernel.domain.clock import Clock
from wholesale_modules.purchasing.config import PurchasingConfig
from wholesale_modules.purchasing.models import SupplierTransaction
from wholesale_modules.purchasing.orm import SupplierTransactionModel


class SupplierTransactionRepository(
    BaseRepository[SupplierTransaction, SupplierTransactionModel]
):
    model = SupplierTransactionModel

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
    ):
        super().__init__(session, clock)
        self.config = config or PurchasingConfig()

    def _new_row(self, entity: SupplierTransaction) -> SupplierTransactionModel:
        return SupplierTransactionModel.from_entity(entity)

    def _update_row(self, row: SupplierTransactionModel, entity: SupplierTransaction) -> None:
        row.update_from_entity(entity)

    def _to_entity(self, row: SupplierTransactionModel) -> SupplierTransaction:
        return row.to_entity(clock=self.clock, config=self.config)

    def list_for_supplier(self, supplier_id: int) -> list[SupplierTransaction]:
        """All entries for one supplier, oldest first."""
        rows = self.session.scalars(
            select(SupplierTransactionModel)
            .where(SupplierTransactionModel.supplier_id == supplier_id)
            .order_by(SupplierTransactionModel.transaction_date, SupplierTransactionModel.id)
        )
        return [self._to_entity(row) for row in rows]
