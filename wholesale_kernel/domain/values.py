"""
Values -- Shared validation and arithmetic for self-validating value objects.

Responsibility:
    Provides the building blocks every value object and entity uses to
    enforce its invariants at construction time: Decimal coercion, money
    rounding, the consistency tolerance, and the small family of argument
    validators that raise ``InvalidArgumentError`` naming the offending
    parameter.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module.

Invariants enforced:
    - Monetary arithmetic is Decimal-only.  Floats are accepted at the
      boundary only through ``str()`` so that 25.5 becomes Decimal("25.5"),
      never its binary expansion.
    - Derived-value checks use the fixed absolute tolerance
      ``CONSISTENCY_TOLERANCE`` (0.01).  It is part of the value-object
      contract: a stored combination that is off by more than one cent is
      rejected, one that is off by a rounding cent is accepted.

Failure modes:
    - InvalidArgumentError for bools, NaN, infinities, unparseable strings,
      out-of-range numbers and over-long text.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from wholesale_kernel.exceptions import InvalidArgumentError

CONSISTENCY_TOLERANCE = Decimal("0.01")
MONEY_DECIMAL_PLACES = 2
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_MONEY_QUANTUM = Decimal("0.01")

# Largest magnitude accepted from callers.  Keeps every stored amount
# (sign, 15 integer digits, point, 2 places) inside DecimalString's
# String(40) and products of two inputs inside the 28-digit context.
MAX_AMOUNT = Decimal("999999999999999.99")


def to_decimal(value: Any, parameter: str) -> Decimal:
    """
    Coerce a caller-supplied number to Decimal.

    Preconditions:
        - value is a Decimal, int, str, or float (floats via ``str``).
    Postconditions:
        - Returns a finite Decimal.
    Raises:
        InvalidArgumentError: for None, bools, unparseable or non-finite input,
            or a magnitude above ``MAX_AMOUNT``.
    """
    if value is None:
        raise InvalidArgumentError(parameter, "Value is required.")
    if isinstance(value, bool):
        raise InvalidArgumentError(parameter, "Boolean is not a valid amount.")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidArgumentError(parameter, f"Invalid amount: {value!r}.") from e
    else:
        raise InvalidArgumentError(
            parameter, f"Expected a number, got {type(value).__name__}."
        )
    if not result.is_finite():
        raise InvalidArgumentError(parameter, f"Amount must be finite, got {value!r}.")
    if abs(result) > MAX_AMOUNT:
        raise InvalidArgumentError(
            parameter, f"Amount cannot exceed {MAX_AMOUNT} in magnitude."
        )
    return result


def to_optional_decimal(value: Any, parameter: str) -> Decimal | None:
    """Coerce to Decimal, passing None through."""
    if value is None:
        return None
    return to_decimal(value, parameter)


def round_money(amount: Decimal, parameter: str = "amount") -> Decimal:
    """
    Round to two decimal places, half up.

    Raises:
        InvalidArgumentError: naming ``parameter`` when the result has more
            digits than the decimal context can hold.
    """
    try:
        return amount.quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidArgumentError(parameter, "Amount is out of range.") from e


def within_tolerance(actual: Decimal, expected: Decimal) -> bool:
    """True when ``actual`` is within CONSISTENCY_TOLERANCE of ``expected``."""
    return abs(actual - expected) <= CONSISTENCY_TOLERANCE


def require_positive_int(value: Any, parameter: str, reason: str | None = None) -> int:
    """Validate a strictly positive integer (bools rejected)."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgumentError(parameter, reason or f"{parameter} must be a positive integer.")
    return value


def require_optional_reference(value: Any, parameter: str, reason: str) -> int | None:
    """Validate an optional foreign identifier: None or a positive integer."""
    if value is None:
        return None
    return require_positive_int(value, parameter, reason)


def require_non_negative(value: Any, parameter: str, reason: str) -> Decimal:
    amount = to_decimal(value, parameter)
    if amount < ZERO:
        raise InvalidArgumentError(parameter, reason)
    return amount


def require_percentage(value: Any, parameter: str, label: str = "Tax rate") -> Decimal:
    """Validate a percentage in the inclusive range [0, 100]."""
    rate = to_decimal(value, parameter)
    if rate < ZERO:
        raise InvalidArgumentError(parameter, f"{label} cannot be negative.")
    if rate > HUNDRED:
        raise InvalidArgumentError(parameter, f"{label} cannot exceed 100%.")
    return rate


def require_bool(value: Any, parameter: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidArgumentError(parameter, f"{parameter} must be True or False.")
    return value


def require_date(value: Any, parameter: str, label: str) -> date:
    """Validate a calendar date.  A datetime is reduced to its date."""
    if isinstance(value, datetime):
        return value.date()
    if not isinstance(value, date):
        raise InvalidArgumentError(parameter, f"{label} must be a valid date.")
    return value


def require_aware_datetime(value: Any, parameter: str, label: str) -> datetime:
    if not isinstance(value, datetime) or value.tzinfo is None:
        raise InvalidArgumentError(
            parameter, f"{label} must be a timezone-aware datetime."
        )
    return value


def normalize_text(
    value: str | None,
    parameter: str,
    max_length: int | None,
    *,
    required: bool = False,
    label: str | None = None,
) -> str | None:
    """
    Strip surrounding whitespace; blank becomes None.

    Raises:
        InvalidArgumentError: when required and blank, or longer than
            ``max_length`` characters (None means unbounded).
    """
    label = label or parameter
    if value is not None and not isinstance(value, str):
        raise InvalidArgumentError(parameter, f"{label} must be text.")
    text = value.strip() if value else ""
    if not text:
        if required:
            raise InvalidArgumentError(parameter, f"{label} cannot be null or empty.")
        return None
    if max_length is not None and len(text) > max_length:
        raise InvalidArgumentError(
            parameter, f"{label} cannot exceed {max_length} characters."
        )
    return text


def format_amount(amount: Decimal) -> str:
    """Render an amount with thousands separators and two decimals."""
    return f"{round_money(amount):,.2f}"
