"""
Purchasing Domain Models (``wholesale_modules.purchasing.models``).

Responsibility
--------------
The ``SupplierTransaction`` aggregate: one entry in a supplier's ledger
(invoice, payment or credit note) owning a ``TransactionFinancials``
snapshot, with an open/finalized lifecycle and the payment-application
operations that move its outstanding balance.

Architecture position
---------------------
**Modules layer** -- domain entity.  Builds on ``wholesale_kernel.domain``
(Entity, TransactionFinancials, Workflow).  Persistence lives in
``orm.py`` / ``repository.py``; nothing here performs I/O.

Invariants enforced
-------------------
* Payment-shaped financials always carry a payment method.
* Transaction and finalization dates are not in the future beyond the
  configured tolerance; the finalization date is on or after the
  transaction date.
* Business mutations are rejected with ``TransactionFinalizedError`` once
  finalized.
* Every mutation validates all inputs before changing any field, then
  re-stamps the audit pair.

Failure modes
-------------
* ``InvalidArgumentError`` for malformed input.
* ``TransactionFinalizedError`` / ``IllegalStateError`` for operations the
  current lifecycle state forbids.
* ``NoOutstandingBalanceError`` when paying a settled entry.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.domain.entity import Entity, require_editor
from wholesale_kernel.domain.transaction_financials import (
    PaymentApplication,
    TransactionFinancials,
)
from wholesale_kernel.domain.values import (
    format_amount,
    normalize_text,
    require_date,
    require_optional_reference,
    require_positive_int,
)
from wholesale_kernel.exceptions import (
    IllegalStateError,
    InvalidArgumentError,
    TransactionFinalizedError,
)
from wholesale_kernel.logging_config import get_logger
from wholesale_modules.purchasing.config import PurchasingConfig
from wholesale_modules.purchasing.workflows import (
    FINALIZED,
    OPEN,
    OPEN_ONLY_OPERATIONS,
    SUPPLIER_TRANSACTION_WORKFLOW,
)

logger = get_logger("modules.purchasing.models")


class SupplierTransaction(Entity):
    """
    A supplier ledger entry with a finalize/unfinalize lifecycle.

    Contract:
        Ordinary callers use the three factories.  The constructor is the
        single validation point and is also the path ``reconstitute``
        takes for stored rows.

    Guarantees:
        - ``financials`` is replaced wholesale on every balance change.
        - ``status`` is derived from ``finalization_date``.
    """

    entity_type = "SupplierTransaction"

    def __init__(
        self,
        supplier_id: int,
        transaction_type_id: int,
        transaction_date: date,
        financials: TransactionFinancials,
        last_edited_by: int,
        *,
        purchase_order_id: int | None = None,
        payment_method_id: int | None = None,
        supplier_invoice_number: str | None = None,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
    ):
        clock = clock or SystemClock()
        config = config or PurchasingConfig()

        supplier_id = require_positive_int(
            supplier_id, "supplier_id", "Supplier ID must be a valid supplier reference."
        )
        transaction_type_id = require_positive_int(
            transaction_type_id,
            "transaction_type_id",
            "Transaction type ID must be a valid reference.",
        )
        transaction_date = require_date(transaction_date, "transaction_date", "Transaction date")
        self._require_not_future(transaction_date, "transaction_date", "Transaction date", clock, config)
        if not isinstance(financials, TransactionFinancials):
            raise InvalidArgumentError("financials", "Financials are required.")
        purchase_order_id = require_optional_reference(
            purchase_order_id, "purchase_order_id", "Purchase order ID must be a valid reference."
        )
        payment_method_id = require_optional_reference(
            payment_method_id, "payment_method_id", "Payment method ID must be a valid reference."
        )
        supplier_invoice_number = normalize_text(
            supplier_invoice_number,
            "supplier_invoice_number",
            config.supplier_invoice_number_max_length,
            label="Supplier invoice number",
        )
        self._require_payment_method(financials, payment_method_id)

        super().__init__(last_edited_by, clock)
        self._config = config
        self._supplier_id = supplier_id
        self._transaction_type_id = transaction_type_id
        self._transaction_date = transaction_date
        self._financials = financials
        self._purchase_order_id = purchase_order_id
        self._payment_method_id = payment_method_id
        self._supplier_invoice_number = supplier_invoice_number
        self._finalization_date: date | None = None

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create_invoice_transaction(
        cls,
        supplier_id: int,
        transaction_type_id: int,
        supplier_invoice_number: str,
        transaction_date: date,
        amount_excluding_tax: Decimal | int | str,
        tax_amount: Decimal | int | str,
        last_edited_by: int,
        *,
        purchase_order_id: int | None = None,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
    ) -> SupplierTransaction:
        """Record a supplier invoice.  The invoice number is mandatory."""
        if supplier_invoice_number is None or not str(supplier_invoice_number).strip():
            raise InvalidArgumentError(
                "supplier_invoice_number",
                "Supplier invoice number is required for invoice transactions.",
            )
        financials = TransactionFinancials.create_invoice(amount_excluding_tax, tax_amount)
        txn = cls(
            supplier_id,
            transaction_type_id,
            transaction_date,
            financials,
            last_edited_by,
            purchase_order_id=purchase_order_id,
            supplier_invoice_number=supplier_invoice_number,
            clock=clock,
            config=config,
        )
        txn._log_created()
        return txn

    @classmethod
    def create_payment_transaction(
        cls,
        supplier_id: int,
        transaction_type_id: int,
        payment_method_id: int,
        transaction_date: date,
        payment_amount: Decimal | int | str,
        last_edited_by: int,
        *,
        purchase_order_id: int | None = None,
        supplier_invoice_number: str | None = None,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
    ) -> SupplierTransaction:
        """Record a payment made to a supplier.  Settled on creation."""
        financials = TransactionFinancials.create_payment(payment_amount)
        txn = cls(
            supplier_id,
            transaction_type_id,
            transaction_date,
            financials,
            last_edited_by,
            purchase_order_id=purchase_order_id,
            payment_method_id=payment_method_id,
            supplier_invoice_number=supplier_invoice_number,
            clock=clock,
            config=config,
        )
        txn._log_created()
        return txn

    @classmethod
    def create_credit_transaction(
        cls,
        supplier_id: int,
        transaction_type_id: int,
        transaction_date: date,
        credit_amount: Decimal | int | str,
        tax_rate: Decimal | int | str,
        last_edited_by: int,
        *,
        supplier_invoice_number: str | None = None,
        purchase_order_id: int | None = None,
        payment_method_id: int | None = None,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
    ) -> SupplierTransaction:
        """
        Record a supplier credit note.

        A credit at a 0% tax rate has payment-shaped financials and so
        needs ``payment_method_id`` like any payment.
        """
        financials = TransactionFinancials.create_credit(credit_amount, tax_rate)
        txn = cls(
            supplier_id,
            transaction_type_id,
            transaction_date,
            financials,
            last_edited_by,
            purchase_order_id=purchase_order_id,
            payment_method_id=payment_method_id,
            supplier_invoice_number=supplier_invoice_number,
            clock=clock,
            config=config,
        )
        txn._log_created()
        return txn

    @classmethod
    def reconstitute(
        cls,
        *,
        id: int,
        supplier_id: int,
        transaction_type_id: int,
        transaction_date: date,
        financials: TransactionFinancials,
        last_edited_by: int,
        last_edited_when: datetime | None = None,
        purchase_order_id: int | None = None,
        payment_method_id: int | None = None,
        supplier_invoice_number: str | None = None,
        finalization_date: date | None = None,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
    ) -> SupplierTransaction:
        """Rebuild a stored transaction through the validating constructor."""
        txn = cls(
            supplier_id,
            transaction_type_id,
            transaction_date,
            financials,
            last_edited_by,
            purchase_order_id=purchase_order_id,
            payment_method_id=payment_method_id,
            supplier_invoice_number=supplier_invoice_number,
            clock=clock,
            config=config,
        )
        if finalization_date is not None:
            txn._finalization_date = txn._validate_finalization_date(finalization_date)
        txn.set_id(id)
        txn._restore_audit(last_edited_by, last_edited_when)
        return txn

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_not_future(
        value: date, parameter: str, label: str, clock: Clock, config: PurchasingConfig
    ) -> None:
        latest = clock.today() + timedelta(days=config.future_date_tolerance_days)
        if value > latest:
            raise InvalidArgumentError(parameter, f"{label} cannot be in the future.")

    @staticmethod
    def _require_payment_method(
        financials: TransactionFinancials, payment_method_id: int | None
    ) -> None:
        if financials.is_payment and payment_method_id is None:
            raise InvalidArgumentError(
                "payment_method_id",
                "Payment transactions must specify a payment method.",
            )

    def _validate_finalization_date(self, finalization_date) -> date:
        finalization_date = require_date(
            finalization_date, "finalization_date", "Finalization date"
        )
        if finalization_date < self._transaction_date:
            raise InvalidArgumentError(
                "finalization_date",
                "Finalization date cannot be before transaction date.",
            )
        self._require_not_future(
            finalization_date, "finalization_date", "Finalization date", self.clock, self._config
        )
        return finalization_date

    def _require_open(self, operation: str) -> None:
        if operation not in OPEN_ONLY_OPERATIONS:
            raise ValueError(f"{operation!r} is not a declared open-only operation")
        if self.is_finalized:
            logger.warning(
                "supplier_transaction_mutation_rejected",
                extra={
                    "entity_id": self.id,
                    "operation": operation,
                    "finalization_date": self._finalization_date,
                },
            )
            raise TransactionFinalizedError(operation, self.id)

    def _require_transition(self, action: str) -> str:
        transition = SUPPLIER_TRANSACTION_WORKFLOW.find_transition(self.status, action)
        if transition is None:
            reason = (
                "Transaction is already finalized."
                if self.is_finalized
                else "Transaction is not finalized."
            )
            raise IllegalStateError(f"{action}_transaction", reason)
        return transition.to_state

    def _log_created(self) -> None:
        logger.info(
            "supplier_transaction_created",
            extra={
                "supplier_id": self._supplier_id,
                "transaction_category": self.transaction_category,
                "transaction_amount": self.transaction_amount,
                "transaction_date": self._transaction_date,
            },
        )

    # ------------------------------------------------------------------
    # Payment ledger
    # ------------------------------------------------------------------

    def apply_payment(
        self, payment_amount: Decimal | int | str, edited_by: int
    ) -> PaymentApplication:
        """
        Reduce the outstanding balance by ``payment_amount``.

        Returns the ``PaymentApplication``; a non-zero ``unapplied_amount``
        is left for the caller to allocate elsewhere.

        Raises:
            TransactionFinalizedError: if finalized.
            NoOutstandingBalanceError: if nothing is outstanding.
            InvalidArgumentError: for a non-positive amount or bad editor.
        """
        self._require_open("apply_payment")
        editor = require_editor(edited_by)
        application = self._financials.apply_payment(payment_amount)

        self._financials = application.financials
        self._touch(editor)
        logger.info(
            "supplier_transaction_payment_applied",
            extra={
                "entity_id": self.id,
                "applied_amount": application.applied_amount,
                "unapplied_amount": application.unapplied_amount,
                "outstanding_balance": self.outstanding_balance,
            },
        )
        return application

    def update_outstanding_balance(
        self, new_outstanding_balance: Decimal | int | str, edited_by: int
    ) -> None:
        """Reconciliation override of the outstanding balance."""
        self._require_open("update_outstanding_balance")
        editor = require_editor(edited_by)
        financials = self._financials.with_outstanding_balance(new_outstanding_balance)

        previous = self.outstanding_balance
        self._financials = financials
        self._touch(editor)
        logger.info(
            "supplier_transaction_balance_updated",
            extra={
                "entity_id": self.id,
                "previous_balance": previous,
                "outstanding_balance": self.outstanding_balance,
            },
        )

    # ------------------------------------------------------------------
    # Links and references
    # ------------------------------------------------------------------

    def link_to_purchase_order(self, purchase_order_id: int, edited_by: int) -> None:
        self._require_open("link_to_purchase_order")
        purchase_order_id = require_positive_int(
            purchase_order_id,
            "purchase_order_id",
            "Purchase order ID must be a valid reference.",
        )
        editor = require_editor(edited_by)

        self._purchase_order_id = purchase_order_id
        self._touch(editor)

    def unlink_from_purchase_order(self, edited_by: int) -> None:
        self._require_open("unlink_from_purchase_order")
        editor = require_editor(edited_by)

        self._purchase_order_id = None
        self._touch(editor)

    def update_payment_method(self, new_payment_method_id: int | None, edited_by: int) -> None:
        """Change or clear the payment method; payments cannot lose theirs."""
        self._require_open("update_payment_method")
        payment_method_id = require_optional_reference(
            new_payment_method_id,
            "new_payment_method_id",
            "Payment method ID must be a valid reference.",
        )
        self._require_payment_method(self._financials, payment_method_id)
        editor = require_editor(edited_by)

        self._payment_method_id = payment_method_id
        self._touch(editor)

    def update_supplier_invoice_number(
        self, new_supplier_invoice_number: str | None, edited_by: int
    ) -> None:
        self._require_open("update_supplier_invoice_number")
        invoice_number = normalize_text(
            new_supplier_invoice_number,
            "new_supplier_invoice_number",
            self._config.supplier_invoice_number_max_length,
            label="Supplier invoice number",
        )
        editor = require_editor(edited_by)

        self._supplier_invoice_number = invoice_number
        self._touch(editor)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def finalize_transaction(self, finalization_date: date, edited_by: int) -> None:
        """
        Close the entry to business mutation.

        Raises:
            IllegalStateError: if already finalized.
            InvalidArgumentError: if the date precedes the transaction date,
                lies in the future, or the editor is invalid.
        """
        self._require_transition("finalize")
        finalization_date = self._validate_finalization_date(finalization_date)
        editor = require_editor(edited_by)

        self._finalization_date = finalization_date
        self._touch(editor)
        logger.info(
            "supplier_transaction_finalized",
            extra={
                "entity_id": self.id,
                "finalization_date": finalization_date,
                "outstanding_balance": self.outstanding_balance,
            },
        )

    def unfinalize_transaction(self, edited_by: int) -> None:
        """Reopen a finalized entry.  Raises IllegalStateError when open."""
        self._require_transition("unfinalize")
        editor = require_editor(edited_by)

        previous = self._finalization_date
        self._finalization_date = None
        self._touch(editor)
        logger.info(
            "supplier_transaction_unfinalized",
            extra={"entity_id": self.id, "previous_finalization_date": previous},
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def supplier_id(self) -> int:
        return self._supplier_id

    @property
    def transaction_type_id(self) -> int:
        return self._transaction_type_id

    @property
    def transaction_date(self) -> date:
        return self._transaction_date

    @property
    def financials(self) -> TransactionFinancials:
        return self._financials

    @property
    def purchase_order_id(self) -> int | None:
        return self._purchase_order_id

    @property
    def payment_method_id(self) -> int | None:
        return self._payment_method_id

    @property
    def supplier_invoice_number(self) -> str | None:
        return self._supplier_invoice_number

    @property
    def finalization_date(self) -> date | None:
        return self._finalization_date

    @property
    def config(self) -> PurchasingConfig:
        return self._config

    @property
    def status(self) -> str:
        return FINALIZED if self._finalization_date is not None else OPEN

    @property
    def is_finalized(self) -> bool:
        return self._finalization_date is not None

    # Financials pass-through

    @property
    def amount_excluding_tax(self) -> Decimal:
        return self._financials.amount_excluding_tax

    @property
    def tax_amount(self) -> Decimal:
        return self._financials.tax_amount

    @property
    def transaction_amount(self) -> Decimal:
        return self._financials.transaction_amount

    @property
    def outstanding_balance(self) -> Decimal:
        return self._financials.outstanding_balance

    @property
    def absolute_transaction_amount(self) -> Decimal:
        return self._financials.absolute_transaction_amount

    @property
    def is_fully_paid(self) -> bool:
        return self._financials.is_fully_paid

    @property
    def has_outstanding_balance(self) -> bool:
        return self._financials.has_outstanding_balance

    @property
    def is_payment(self) -> bool:
        return self._financials.is_payment

    @property
    def is_credit(self) -> bool:
        return self._financials.is_credit

    @property
    def is_invoice(self) -> bool:
        return self._financials.is_invoice

    @property
    def transaction_category(self) -> str:
        return self._financials.transaction_category

    @property
    def payment_status(self) -> str:
        return self._financials.payment_status

    # Derived reporting

    @property
    def age_days(self) -> int:
        return (self.clock.today() - self._transaction_date).days

    @property
    def is_overdue(self) -> bool:
        return self.has_outstanding_balance and self.age_days > self._config.overdue_after_days

    @property
    def is_linked_to_purchase_order(self) -> bool:
        return self._purchase_order_id is not None

    @property
    def has_payment_method(self) -> bool:
        return self._payment_method_id is not None

    @property
    def has_supplier_invoice_number(self) -> bool:
        return self._supplier_invoice_number is not None

    @property
    def finalization_status(self) -> str:
        if self._finalization_date is None:
            return "Open"
        return f"Finalized on {self._finalization_date.isoformat()}"

    @property
    def status_summary(self) -> str:
        parts = [self.transaction_category]
        if self.payment_status != "N/A":
            parts.append(self.payment_status)
        parts.append(self.finalization_status)
        if self.is_overdue:
            parts.append(f"OVERDUE ({self.age_days} days)")
        return " | ".join(parts)

    def __str__(self) -> str:
        invoice_ref = (
            f" (Invoice: {self._supplier_invoice_number})"
            if self.has_supplier_invoice_number
            else ""
        )
        return (
            f"SupplierTransaction {self.id}: {self.transaction_category} "
            f"{format_amount(self.transaction_amount)} for Supplier {self._supplier_id}"
            f"{invoice_ref} ({self.status_summary})"
        )

    def __repr__(self) -> str:
        return (
            f"<SupplierTransaction id={self.id} supplier={self._supplier_id} "
            f"amount={self.transaction_amount} status={self.status}>"
        )
