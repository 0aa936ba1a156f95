"""
TransactionFinancials -- Per supplier-ledger-entry financial snapshot.

Responsibility:
    Holds the amounts of one ledger entry (amount excluding tax, tax,
    transaction amount, outstanding balance) for invoices, payments and
    credit notes, and performs balance arithmetic by returning new
    instances.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.  Owned by
    ``wholesale_modules.purchasing.models.SupplierTransaction``.

Sign convention:
    Invoices are positive (money owed to the supplier).  Payments and
    credits are negative (they reduce what is owed).  The outstanding
    balance carries the sign of the transaction amount, never exceeds it
    in magnitude, and is zero once settled.  Payments settle immediately.

Classification (derived from shape, never stored):
    - payment: negative amount, zero tax
    - credit:  negative amount, non-zero tax
    - invoice: positive amount
    A credit raised at a 0% tax rate has the shape of a payment and is
    classified as one.

Invariants enforced:
    - |transaction_amount - (amount_excluding_tax + tax_amount)| <= 0.01
    - outstanding balance sign/magnitude rule above

Failure modes:
    - InvalidArgumentError / InconsistentFinancialsError at construction.
    - NoOutstandingBalanceError from ``apply_payment`` on a settled entry.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from wholesale_kernel.domain.values import (
    HUNDRED,
    ZERO,
    format_amount,
    require_percentage,
    round_money,
    to_decimal,
    within_tolerance,
)
from wholesale_kernel.exceptions import (
    InconsistentFinancialsError,
    InvalidArgumentError,
    NoOutstandingBalanceError,
)
from wholesale_kernel.logging_config import get_logger

logger = get_logger("domain.transaction_financials")

CATEGORY_PAYMENT = "Payment"
CATEGORY_CREDIT = "Credit Note"
CATEGORY_INVOICE = "Invoice"
CATEGORY_OTHER = "Other"


def _require_positive_amount(value, parameter: str, label: str) -> Decimal:
    amount = to_decimal(value, parameter)
    if amount <= ZERO:
        raise InvalidArgumentError(parameter, f"{label} must be positive.")
    return amount


def _validate_outstanding_balance(outstanding: Decimal, transaction_amount: Decimal) -> None:
    if transaction_amount > ZERO:
        if outstanding < ZERO:
            raise InvalidArgumentError(
                "outstanding_balance",
                "Outstanding balance cannot be negative for invoices.",
            )
        if outstanding > transaction_amount:
            raise InvalidArgumentError(
                "outstanding_balance",
                "Outstanding balance cannot exceed transaction amount for invoices.",
            )
    elif transaction_amount < ZERO:
        if outstanding > ZERO:
            raise InvalidArgumentError(
                "outstanding_balance",
                "Outstanding balance cannot be positive for payments and credits.",
            )
        if outstanding < transaction_amount:
            raise InvalidArgumentError(
                "outstanding_balance",
                "Outstanding balance cannot exceed the credit amount.",
            )
    elif outstanding != ZERO:
        raise InvalidArgumentError(
            "outstanding_balance",
            "Outstanding balance must be zero for a zero-value transaction.",
        )


@dataclass(frozen=True, slots=True)
class PaymentApplication:
    """
    Outcome of applying a payment to a ledger entry.

    ``unapplied_amount`` is the part of the payment the balance could not
    absorb.  Callers must route it somewhere explicitly (another invoice, a
    refund); it is never silently dropped.
    """

    financials: TransactionFinancials
    applied_amount: Decimal
    unapplied_amount: Decimal

    @property
    def is_overpayment(self) -> bool:
        return self.unapplied_amount > ZERO


@dataclass(frozen=True, slots=True)
class TransactionFinancials:
    """
    Immutable amounts for one supplier ledger entry.

    Contract:
        Built by ``create_invoice`` / ``create_payment`` / ``create_credit``
        / ``calculate``, or reconstituted through the constructor, which
        re-checks every invariant.

    Guarantees:
        - Immutable and hashable; equality over all four fields.
        - ``apply_payment`` and ``with_outstanding_balance`` return new
          instances.
    """

    amount_excluding_tax: Decimal
    tax_amount: Decimal
    transaction_amount: Decimal
    outstanding_balance: Decimal

    def __post_init__(self) -> None:
        for name in (
            "amount_excluding_tax",
            "tax_amount",
            "transaction_amount",
            "outstanding_balance",
        ):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))

        # INVARIANT: total = net + tax within 0.01
        expected = self.amount_excluding_tax + self.tax_amount
        if not within_tolerance(self.transaction_amount, expected):
            logger.warning(
                "transaction_financials_total_inconsistent",
                extra={
                    "amount_excluding_tax": self.amount_excluding_tax,
                    "tax_amount": self.tax_amount,
                    "transaction_amount": self.transaction_amount,
                },
            )
            raise InconsistentFinancialsError(
                "transaction_amount",
                expected,
                self.transaction_amount,
                "Transaction amount is inconsistent with amount excluding tax and tax amount.",
            )

        _validate_outstanding_balance(self.outstanding_balance, self.transaction_amount)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create_invoice(
        cls,
        amount_excluding_tax: Decimal | int | str,
        tax_amount: Decimal | int | str,
    ) -> TransactionFinancials:
        """An unpaid invoice: total = net + tax, fully outstanding."""
        net = _require_positive_amount(
            amount_excluding_tax, "amount_excluding_tax", "Amount excluding tax"
        )
        tax = to_decimal(tax_amount, "tax_amount")
        if tax < ZERO:
            raise InvalidArgumentError("tax_amount", "Tax amount cannot be negative.")
        total = net + tax
        return cls(net, tax, total, total)

    @classmethod
    def calculate(
        cls,
        amount_excluding_tax: Decimal | int | str,
        tax_rate: Decimal | int | str,
        outstanding_balance: Decimal | int | str | None = None,
    ) -> TransactionFinancials:
        """
        Derive tax from a rate.

        Postconditions:
            - tax_amount = round(amount_excluding_tax * tax_rate / 100, 2)
            - outstanding_balance defaults to the full transaction amount.
        """
        net = to_decimal(amount_excluding_tax, "amount_excluding_tax")
        rate = require_percentage(tax_rate, "tax_rate")
        tax = round_money(net * rate / HUNDRED, "amount_excluding_tax")
        total = net + tax
        outstanding = (
            total
            if outstanding_balance is None
            else to_decimal(outstanding_balance, "outstanding_balance")
        )
        return cls(net, tax, total, outstanding)

    @classmethod
    def create_payment(cls, payment_amount: Decimal | int | str) -> TransactionFinancials:
        """A payment made: negative amount, no tax, settled on creation."""
        amount = _require_positive_amount(payment_amount, "payment_amount", "Payment amount")
        return cls(-amount, ZERO, -amount, ZERO)

    @classmethod
    def create_credit(
        cls,
        credit_amount: Decimal | int | str,
        tax_rate: Decimal | int | str,
    ) -> TransactionFinancials:
        """A credit note: negated amount and tax, fully outstanding until applied."""
        amount = _require_positive_amount(credit_amount, "credit_amount", "Credit amount")
        rate = require_percentage(tax_rate, "tax_rate")
        net = -amount
        tax = round_money(net * rate / HUNDRED, "credit_amount")
        total = net + tax
        return cls(net, tax, total, total)

    # ------------------------------------------------------------------
    # Balance arithmetic
    # ------------------------------------------------------------------

    def with_outstanding_balance(
        self, new_outstanding_balance: Decimal | int | str
    ) -> TransactionFinancials:
        """Direct override used for reconciliation."""
        return replace(
            self,
            outstanding_balance=to_decimal(new_outstanding_balance, "new_outstanding_balance"),
        )

    def apply_payment(self, payment_amount: Decimal | int | str) -> PaymentApplication:
        """
        Move the outstanding balance toward zero by ``payment_amount``.

        Preconditions:
            - payment_amount > 0
            - the entry has an outstanding balance

        Postconditions:
            - The balance never crosses zero.  Any excess is returned as
              ``unapplied_amount``.

        Raises:
            InvalidArgumentError: if payment_amount is not positive.
            NoOutstandingBalanceError: if the entry is already settled.
        """
        amount = _require_positive_amount(payment_amount, "payment_amount", "Payment amount")
        if self.is_fully_paid:
            raise NoOutstandingBalanceError(self.transaction_amount)

        remaining = abs(self.outstanding_balance)
        applied = min(amount, remaining)
        sign = Decimal(1) if self.outstanding_balance > ZERO else Decimal(-1)
        new_balance = sign * (remaining - applied)
        unapplied = amount - applied

        if unapplied > ZERO:
            logger.info(
                "payment_exceeds_outstanding_balance",
                extra={
                    "payment_amount": amount,
                    "outstanding_balance": self.outstanding_balance,
                    "unapplied_amount": unapplied,
                },
            )

        return PaymentApplication(
            financials=self.with_outstanding_balance(new_balance),
            applied_amount=applied,
            unapplied_amount=unapplied,
        )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_fully_paid(self) -> bool:
        return self.outstanding_balance == ZERO

    @property
    def has_outstanding_balance(self) -> bool:
        return not self.is_fully_paid

    @property
    def absolute_transaction_amount(self) -> Decimal:
        return abs(self.transaction_amount)

    @property
    def paid_amount(self) -> Decimal:
        """Portion of the transaction already settled (same sign as the amount)."""
        return self.transaction_amount - self.outstanding_balance

    @property
    def payment_percentage(self) -> Decimal:
        if self.transaction_amount == ZERO:
            return ZERO
        return self.paid_amount / self.transaction_amount * HUNDRED

    @property
    def effective_tax_rate(self) -> Decimal:
        if self.amount_excluding_tax == ZERO:
            return ZERO
        return self.tax_amount / self.amount_excluding_tax * HUNDRED

    @property
    def is_payment(self) -> bool:
        return self.transaction_amount < ZERO and self.tax_amount == ZERO

    @property
    def is_credit(self) -> bool:
        return self.transaction_amount < ZERO and self.tax_amount != ZERO

    @property
    def is_invoice(self) -> bool:
        return self.transaction_amount > ZERO

    @property
    def transaction_category(self) -> str:
        if self.is_payment:
            return CATEGORY_PAYMENT
        if self.is_credit:
            return CATEGORY_CREDIT
        if self.is_invoice:
            return CATEGORY_INVOICE
        return CATEGORY_OTHER

    @property
    def payment_status(self) -> str:
        """
        Settlement progress.  Payments settle on creation and report N/A;
        credits carry a live balance and report progress like invoices.
        """
        if self.is_payment or self.transaction_amount == ZERO:
            return "N/A"
        if self.is_fully_paid:
            return "Paid in Full"
        if self.payment_percentage > ZERO:
            return f"Partially Paid ({self.payment_percentage:.1f}%)"
        return "Unpaid"

    def __str__(self) -> str:
        status = self.payment_status
        status_text = f" ({status})" if status != "N/A" else ""
        return f"{self.transaction_category}: {format_amount(self.transaction_amount)}{status_text}"
