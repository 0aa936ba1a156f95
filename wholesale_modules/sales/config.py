"""
Sales Configuration Schema (``wholesale_modules.sales.config``).

Responsibility
--------------
Defines the tunable settings of orders and customers: text length limits,
the clock-skew allowance for order and account dates, and the time window
within which a picking completion may be recorded.

Architecture position
---------------------
**Modules layer** -- configuration schema only.  Loaded at runtime via
``wholesale_config.get_active_config()``; entities receive it by
constructor injection and fall back to the defaults.

Failure modes
-------------
* ``ValueError`` at construction if any constraint is violated or an
  unknown key is passed to ``from_dict``.
"""

from dataclasses import dataclass, fields
from typing import Self

from wholesale_kernel.logging_config import get_logger

logger = get_logger("modules.sales.config")


@dataclass
class SalesConfig:
    """
    Configuration schema for the sales module.

    Override at instantiation:

        config = SalesConfig(picking_backdate_limit_days=2)
    """

    # Days an order or account-opened date may run ahead of today
    future_date_tolerance_days: int = 1

    # Text limits
    customer_purchase_order_number_max_length: int = 20
    line_description_max_length: int = 100
    customer_name_max_length: int = 100
    delivery_run_max_length: int = 5
    run_position_max_length: int = 5

    # Window for recording a picking completion, relative to now
    picking_backdate_limit_days: int = 1
    picking_future_grace_minutes: int = 5

    def __post_init__(self):
        if self.future_date_tolerance_days < 0:
            raise ValueError("future_date_tolerance_days cannot be negative")
        for name in (
            "customer_purchase_order_number_max_length",
            "line_description_max_length",
            "customer_name_max_length",
            "delivery_run_max_length",
            "run_position_max_length",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.picking_backdate_limit_days < 0:
            raise ValueError("picking_backdate_limit_days cannot be negative")
        if self.picking_future_grace_minutes < 0:
            raise ValueError("picking_future_grace_minutes cannot be negative")
        logger.debug(
            "sales_config_initialized",
            extra={
                "future_date_tolerance_days": self.future_date_tolerance_days,
                "picking_backdate_limit_days": self.picking_backdate_limit_days,
                "picking_future_grace_minutes": self.picking_future_grace_minutes,
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
            raise ValueError(f"Unknown sales config keys: {unknown}")
        return cls(**data)
