"""
Typed Exception Hierarchy for the Wholesale Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the domain objects must be able to tell "you gave me bad input"
apart from "you asked at the wrong time" without parsing message text:

  - InvalidArgumentError: malformed input to a constructor, factory or
    operation.  Always names the offending parameter.
  - IllegalStateError: the input may be fine, but the object is in a state
    that forbids the operation (finalized transaction, double credit hold,
    second identity assignment, payment against a settled balance).

Every exception has a CODE class attribute (machine-readable, API-safe) and
carries its context as attributes, so the structured log formatter can
serialize it without string parsing.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WholesaleKernelError (base)
    |
    +-- InvalidArgumentError
    |   +-- InconsistentFinancialsError
    |
    +-- IllegalStateError
        +-- IdentityAlreadyAssignedError
        +-- TransactionFinalizedError
        +-- NoOutstandingBalanceError
        +-- PickingCompletedError
        +-- CreditHoldError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Argument        | INVALID_ARGUMENT            | Null/blank/out-of-range/too-long input
                | INCONSISTENT_FINANCIALS     | Derived amount off by more than 0.01
----------------|-----------------------------|-----------------------------------------
State           | ILLEGAL_STATE               | Operation forbidden in current state
                | IDENTITY_ALREADY_ASSIGNED   | set_id() called twice
                | TRANSACTION_FINALIZED       | Mutating a finalized supplier transaction
                | NO_OUTSTANDING_BALANCE      | Payment applied to a settled balance
                | PICKING_COMPLETED           | Changing an order after picking completed
                | CREDIT_HOLD                 | Double hold / double release / sale on hold

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        txn.apply_payment(amount, edited_by=user_id)
    except TransactionFinalizedError:
        # Ask the user to unfinalize first
        ...
    except IllegalStateError as e:
        log.warning("payment_rejected", extra={"code": e.code})

None of these errors is retried internally.  The caller must change the
input or the object state before trying again.
"""

from __future__ import annotations

from typing import Any


class WholesaleKernelError(Exception):
    """
    Base exception for all wholesale kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "WHOLESALE_KERNEL_ERROR"


# Argument exceptions


class InvalidArgumentError(WholesaleKernelError):
    """A constructor, factory or operation received malformed input."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, parameter: str, reason: str):
        self.parameter = parameter
        self.reason = reason
        super().__init__(f"{reason} (parameter: {parameter})")


class InconsistentFinancialsError(InvalidArgumentError):
    """
    A supplied derived amount disagrees with the amounts it derives from.

    Raised when a value object is reconstituted with a combination that is
    off by more than the consistency tolerance.
    """

    code: str = "INCONSISTENT_FINANCIALS"

    def __init__(self, parameter: str, expected: Any, actual: Any, reason: str):
        self.expected = str(expected)
        self.actual = str(actual)
        super().__init__(
            parameter,
            f"{reason} Expected {expected}, got {actual}.",
        )


# State exceptions


class IllegalStateError(WholesaleKernelError):
    """An operation was attempted in a state that forbids it."""

    code: str = "ILLEGAL_STATE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(reason)


class IdentityAlreadyAssignedError(IllegalStateError):
    """An entity identifier can only be assigned once."""

    code: str = "IDENTITY_ALREADY_ASSIGNED"

    def __init__(self, entity_type: str, current_id: int, attempted_id: int):
        self.entity_type = entity_type
        self.current_id = current_id
        self.attempted_id = attempted_id
        super().__init__(
            "set_id",
            f"{entity_type} already has ID {current_id}; "
            f"cannot reassign to {attempted_id}. ID can only be set once.",
        )


class TransactionFinalizedError(IllegalStateError):
    """Business mutation attempted on a finalized supplier transaction."""

    code: str = "TRANSACTION_FINALIZED"

    def __init__(self, operation: str, transaction_id: int):
        self.transaction_id = transaction_id
        super().__init__(
            operation,
            f"Cannot {operation.replace('_', ' ')} for a finalized transaction.",
        )


class NoOutstandingBalanceError(IllegalStateError):
    """A payment was applied to a balance that is already settled."""

    code: str = "NO_OUTSTANDING_BALANCE"

    def __init__(self, transaction_amount: Any):
        self.transaction_amount = str(transaction_amount)
        super().__init__(
            "apply_payment",
            "Transaction has no outstanding balance to apply payment to.",
        )


class PickingCompletedError(IllegalStateError):
    """An order change was attempted after picking was completed."""

    code: str = "PICKING_COMPLETED"

    def __init__(self, operation: str, order_id: int):
        self.order_id = order_id
        super().__init__(
            operation,
            f"Cannot {operation.replace('_', ' ')} for an order that has already been picked.",
        )


class CreditHoldError(IllegalStateError):
    """The customer's credit-hold flag forbids the operation."""

    code: str = "CREDIT_HOLD"

    def __init__(self, operation: str, customer_id: int, reason: str):
        self.customer_id = customer_id
        super().__init__(operation, reason)
