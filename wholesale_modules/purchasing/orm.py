"""
Purchasing ORM Models (``wholesale_modules.purchasing.orm``).

Responsibility
--------------
SQLAlchemy persistence model for supplier ledger entries.  Maps the
``SupplierTransaction`` entity to the ``purchasing_supplier_transactions``
table.  Holds no business rules: every loaded row is rebuilt through
``SupplierTransaction.reconstitute``.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``wholesale_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``wholesale_kernel``.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wholesale_kernel.db.base import AuditedBase
from wholesale_kernel.domain.clock import Clock
from wholesale_kernel.domain.transaction_financials import TransactionFinancials


class SupplierTransactionModel(AuditedBase):
    """
    ORM model for supplier transactions.

    Guarantees:
        - Monetary fields are exact (DecimalString via type_annotation_map).
        - finalization_date NULL means the transaction is open.
    """

    __tablename__ = "purchasing_supplier_transactions"

    __table_args__ = (
        Index("idx_purchasing_supplier_transactions_supplier_id", "supplier_id"),
        Index("idx_purchasing_supplier_transactions_po_id", "purchase_order_id"),
        Index("idx_purchasing_supplier_transactions_date", "transaction_date"),
    )

    supplier_id: Mapped[int] = mapped_column(nullable=False)
    transaction_type_id: Mapped[int] = mapped_column(nullable=False)
    purchase_order_id: Mapped[int | None] = mapped_column(nullable=True)
    payment_method_id: Mapped[int | None] = mapped_column(nullable=True)
    supplier_invoice_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount_excluding_tax: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    transaction_amount: Mapped[Decimal] = mapped_column(nullable=False)
    outstanding_balance: Mapped[Decimal] = mapped_column(nullable=False)
    finalization_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_entity(self, clock: Clock | None = None, config=None):
        """Rebuild the entity through its validating constructor."""
        from wholesale_modules.purchasing.models import SupplierTransaction

        return SupplierTransaction.reconstitute(
            id=self.id,
            supplier_id=self.supplier_id,
            transaction_type_id=self.transaction_type_id,
            transaction_date=self.transaction_date,
            financials=TransactionFinancials(
                amount_excluding_tax=self.amount_excluding_tax,
                tax_amount=self.tax_amount,
                transaction_amount=self.transaction_amount,
                outstanding_balance=self.outstanding_balance,
            ),
            last_edited_by=self.last_edited_by,
            last_edited_when=self.last_edited_when,
            purchase_order_id=self.purchase_order_id,
            payment_method_id=self.payment_method_id,
            supplier_invoice_number=self.supplier_invoice_number,
            finalization_date=self.finalization_date,
            clock=clock,
            config=config,
        )

    @classmethod
    def from_entity(cls, txn) -> "SupplierTransactionModel":
        row = cls()
        row.update_from_entity(txn)
        return row

    def update_from_entity(self, txn) -> None:
        financials = txn.financials
        self.supplier_id = txn.supplier_id
        self.transaction_type_id = txn.transaction_type_id
        self.purchase_order_id = txn.purchase_order_id
        self.payment_method_id = txn.payment_method_id
        self.supplier_invoice_number = txn.supplier_invoice_number
        self.transaction_date = txn.transaction_date
        self.amount_excluding_tax = financials.amount_excluding_tax
        self.tax_amount = financials.tax_amount
        self.transaction_amount = financials.transaction_amount
        self.outstanding_balance = financials.outstanding_balance
        self.finalization_date = txn.finalization_date
        self.last_edited_by = txn.last_edited_by
        self.last_edited_when = txn.last_edited_when

    def __repr__(self) -> str:
        return f"<SupplierTransactionModel {self.id}: supplier {self.supplier_id} {self.transaction_amount}>"
