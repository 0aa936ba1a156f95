"""
LineFinancials -- Per order-line financial snapshot.

Responsibility:
    Captures the money side of one order line: quantity, unit price, tax
    rate, tax amount, line profit and extended price, and guarantees that
    the derived amounts agree with the inputs they derive from.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.  Owned by
    ``wholesale_modules.sales.models.OrderLine``, which replaces it wholesale
    on every change and never mutates it.

Invariants enforced:
    - quantity > 0; unit_price is None (free item) or >= 0
    - 0 <= tax_rate <= 100; tax_amount >= 0; extended_price >= 0
    - |extended_price - (unit_price or 0) * quantity| <= 0.01
    - |tax_amount - expected_extended_price * tax_rate / 100| <= 0.01

Failure modes:
    - InvalidArgumentError for out-of-range inputs.
    - InconsistentFinancialsError when a directly supplied (e.g. stored)
      combination violates one of the consistency rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from wholesale_kernel.domain.values import (
    HUNDRED,
    ZERO,
    format_amount,
    require_non_negative,
    require_percentage,
    require_positive_int,
    round_money,
    to_decimal,
    to_optional_decimal,
    within_tolerance,
)
from wholesale_kernel.exceptions import InconsistentFinancialsError, InvalidArgumentError
from wholesale_kernel.logging_config import get_logger

logger = get_logger("domain.line_financials")

_VALUE_BANDS: tuple[tuple[Decimal, str], ...] = (
    (Decimal("100"), "Low Value"),
    (Decimal("1000"), "Medium Value"),
    (Decimal("10000"), "High Value"),
)


def _validate_unit_price(unit_price: Any) -> Decimal | None:
    price = to_optional_decimal(unit_price, "unit_price")
    if price is not None and price < ZERO:
        raise InvalidArgumentError("unit_price", "Unit price cannot be negative.")
    return price


def _validate_quantity(quantity: Any) -> int:
    return require_positive_int(quantity, "quantity", "Quantity must be positive.")


@dataclass(frozen=True, slots=True)
class LineFinancials:
    """
    Immutable financial snapshot for a single order line.

    Contract:
        Either computed by ``calculate`` / ``create_free_items`` or
        reconstituted through the constructor, which re-checks every
        invariant so that a stored row cannot smuggle in an inconsistent
        combination.

    Guarantees:
        - Immutable and hashable; equality over all six fields.
        - All amounts are Decimal.
        - ``with_*`` methods return new instances; the original is untouched.

    Non-goals:
        - Does NOT look up tax rates or cost prices (caller-supplied).
    """

    quantity: int
    unit_price: Decimal | None
    tax_rate: Decimal
    tax_amount: Decimal
    line_profit: Decimal
    extended_price: Decimal

    def __post_init__(self) -> None:
        _validate_quantity(self.quantity)
        object.__setattr__(self, "unit_price", _validate_unit_price(self.unit_price))
        object.__setattr__(self, "tax_rate", require_percentage(self.tax_rate, "tax_rate"))
        object.__setattr__(
            self,
            "tax_amount",
            require_non_negative(self.tax_amount, "tax_amount", "Tax amount cannot be negative."),
        )
        object.__setattr__(
            self,
            "extended_price",
            require_non_negative(
                self.extended_price, "extended_price", "Extended price cannot be negative."
            ),
        )
        # Line profit may be negative (a loss)
        object.__setattr__(self, "line_profit", to_decimal(self.line_profit, "line_profit"))

        # INVARIANT: derived amounts agree with their inputs within 0.01
        expected_extended = (self.unit_price or ZERO) * self.quantity
        if not within_tolerance(self.extended_price, expected_extended):
            logger.warning(
                "line_financials_extended_price_inconsistent",
                extra={
                    "quantity": self.quantity,
                    "unit_price": self.unit_price,
                    "extended_price": self.extended_price,
                    "expected_extended_price": expected_extended,
                },
            )
            raise InconsistentFinancialsError(
                "extended_price",
                expected_extended,
                self.extended_price,
                "Extended price is inconsistent with unit price and quantity.",
            )

        expected_tax = expected_extended * self.tax_rate / HUNDRED
        if not within_tolerance(self.tax_amount, expected_tax):
            logger.warning(
                "line_financials_tax_amount_inconsistent",
                extra={
                    "tax_rate": self.tax_rate,
                    "tax_amount": self.tax_amount,
                    "expected_tax_amount": expected_tax,
                },
            )
            raise InconsistentFinancialsError(
                "tax_amount",
                expected_tax,
                self.tax_amount,
                "Tax amount is inconsistent with extended price and tax rate.",
            )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def calculate(
        cls,
        quantity: int,
        unit_price: Decimal | int | str | None,
        tax_rate: Decimal | int | str,
        cost_price: Decimal | int | str = ZERO,
    ) -> LineFinancials:
        """
        Compute a line's financials from its inputs.

        Preconditions:
            - quantity > 0, unit_price None or >= 0, 0 <= tax_rate <= 100,
              cost_price >= 0.

        Postconditions:
            - extended_price = round(quantity * (unit_price or 0), 2)
            - tax_amount = round(extended_price * tax_rate / 100, 2)
            - line_profit = round(extended_price - quantity * cost_price, 2)

        Raises:
            InvalidArgumentError: if any input is out of range.
        """
        quantity = _validate_quantity(quantity)
        price = _validate_unit_price(unit_price)
        rate = require_percentage(tax_rate, "tax_rate")
        cost = require_non_negative(cost_price, "cost_price", "Cost price cannot be negative.")

        extended_price = round_money((price or ZERO) * quantity, "quantity")
        tax_amount = round_money(extended_price * rate / HUNDRED, "tax_rate")
        line_profit = round_money(extended_price - cost * quantity, "quantity")

        return cls(
            quantity=quantity,
            unit_price=price,
            tax_rate=rate,
            tax_amount=tax_amount,
            line_profit=line_profit,
            extended_price=extended_price,
        )

    @classmethod
    def create_free_items(
        cls,
        quantity: int,
        cost_price: Decimal | int | str = ZERO,
    ) -> LineFinancials:
        """Financials for free/promotional items: no price, no tax, cost as loss."""
        return cls.calculate(quantity, None, ZERO, cost_price)

    # ------------------------------------------------------------------
    # With-update copies
    # ------------------------------------------------------------------

    def with_quantity(
        self, new_quantity: int, cost_price: Decimal | int | str = ZERO
    ) -> LineFinancials:
        return LineFinancials.calculate(new_quantity, self.unit_price, self.tax_rate, cost_price)

    def with_unit_price(
        self,
        new_unit_price: Decimal | int | str | None,
        cost_price: Decimal | int | str = ZERO,
    ) -> LineFinancials:
        return LineFinancials.calculate(self.quantity, new_unit_price, self.tax_rate, cost_price)

    def with_tax_rate(
        self, new_tax_rate: Decimal | int | str, cost_price: Decimal | int | str = ZERO
    ) -> LineFinancials:
        return LineFinancials.calculate(self.quantity, self.unit_price, new_tax_rate, cost_price)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def total_including_tax(self) -> Decimal:
        return self.extended_price + self.tax_amount

    @property
    def effective_unit_price(self) -> Decimal:
        return self.unit_price if self.unit_price is not None else ZERO

    @property
    def is_free_item(self) -> bool:
        return self.unit_price is None or self.unit_price == ZERO

    @property
    def is_profitable(self) -> bool:
        return self.line_profit > ZERO

    @property
    def has_loss(self) -> bool:
        return self.line_profit < ZERO

    @property
    def is_taxable(self) -> bool:
        return self.tax_rate > ZERO and self.extended_price > ZERO

    @property
    def profit_margin_percentage(self) -> Decimal | None:
        """Profit as a percentage of extended price; None for zero-value lines."""
        if self.extended_price == ZERO:
            return None
        return self.line_profit / self.extended_price * HUNDRED

    @property
    def profit_per_item(self) -> Decimal:
        return self.line_profit / self.quantity

    @property
    def effective_tax_rate(self) -> Decimal:
        if self.extended_price == ZERO:
            return ZERO
        return self.tax_amount / self.extended_price * HUNDRED

    @property
    def value_category(self) -> str:
        """Reporting band based on total including tax."""
        if self.is_free_item:
            return "Free"
        total = self.total_including_tax
        for ceiling, label in _VALUE_BANDS:
            if total < ceiling:
                return label
        return "Premium"

    def __str__(self) -> str:
        price_text = "FREE" if self.unit_price is None else format_amount(self.unit_price)
        if self.is_profitable:
            profit_text = f"+{format_amount(self.line_profit)}"
        elif self.has_loss:
            profit_text = f"({format_amount(-self.line_profit)})"
        else:
            profit_text = format_amount(self.line_profit)
        return (
            f"{self.quantity} x {price_text} = {format_amount(self.extended_price)} "
            f"(Tax: {format_amount(self.tax_amount)}, Profit: {profit_text})"
        )
