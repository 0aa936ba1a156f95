"""
Pure domain layer.

Value objects, the entity base and workflow definitions with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Time is only read through an injected Clock.
"""

from wholesale_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from wholesale_kernel.domain.entity import UNASSIGNED_ID, Entity, require_editor
from wholesale_kernel.domain.line_financials import LineFinancials
from wholesale_kernel.domain.transaction_financials import (
    PaymentApplication,
    TransactionFinancials,
)
from wholesale_kernel.domain.values import CONSISTENCY_TOLERANCE
from wholesale_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "CONSISTENCY_TOLERANCE",
    "Clock",
    "DeterministicClock",
    "Entity",
    "Guard",
    "LineFinancials",
    "PaymentApplication",
    "SystemClock",
    "TransactionFinancials",
    "UNASSIGNED_ID",
    "Workflow",
    "require_editor",
]
