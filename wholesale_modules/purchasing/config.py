"""
Purchasing Configuration Schema (``wholesale_modules.purchasing.config``).

Responsibility
--------------
Defines the tunable settings of the supplier ledger: clock-skew allowance
for "not in the future" date checks, the ageing threshold after which an
open balance counts as overdue, and the supplier invoice number length.

Architecture position
---------------------
**Modules layer** -- configuration schema only.  Loaded at runtime via
``wholesale_config.get_active_config()``; entities receive it by
constructor injection and fall back to the defaults.

Invariants enforced
-------------------
* ``__post_init__`` validates ranges: tolerances non-negative, lengths
  positive.

Failure modes
-------------
* ``ValueError`` at construction if any constraint is violated or an
  unknown key is passed to ``from_dict``.
"""

from dataclasses import dataclass, fields
from typing import Self

from wholesale_kernel.logging_config import get_logger

logger = get_logger("modules.purchasing.config")


@dataclass
class PurchasingConfig:
    """
    Configuration schema for the purchasing module.

    Field defaults match the WideWorldImporters conventions.  Override
    at instantiation:

        config = PurchasingConfig(overdue_after_days=45)
    """

    # Days a transaction or finalization date may run ahead of today
    future_date_tolerance_days: int = 1

    # Age beyond which an unsettled transaction is overdue
    overdue_after_days: int = 30

    supplier_invoice_number_max_length: int = 20

    def __post_init__(self):
        if self.future_date_tolerance_days < 0:
            raise ValueError("future_date_tolerance_days cannot be negative")
        if self.overdue_after_days < 0:
            raise ValueError("overdue_after_days cannot be negative")
        if self.supplier_invoice_number_max_length <= 0:
            raise ValueError("supplier_invoice_number_max_length must be positive")
        logger.debug(
            "purchasing_config_initialized",
            extra={
                "future_date_tolerance_days": self.future_date_tolerance_days,
                "overdue_after_days": self.overdue_after_days,
                "supplier_invoice_number_max_length": self.supplier_invoice_number_max_length,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g., a YAML section).

        Raises:
            ValueError: on unknown keys or if validation fails.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown purchasing config keys: {unknown}")
        return cls(**data)
