"""
Sales Module (``wholesale_modules.sales``).

Responsibility
--------------
Customer orders with their picking workflow, and customer accounts with
their credit-hold lifecycle.

Architecture position
---------------------
**Modules layer** -- entities, workflows and config on top of
``wholesale_kernel.domain``; persistence in ``orm.py`` / ``repository.py``.
"""

from wholesale_modules.sales.config import SalesConfig
from wholesale_modules.sales.models import (
    CreditStatus,
    Customer,
    Order,
    OrderLine,
    OrderStatus,
    derive_order_status,
)
from wholesale_modules.sales.workflows import (
    CUSTOMER_CREDIT_WORKFLOW,
    ORDER_COMPLETION_WORKFLOW,
    ORDER_PICKING_WORKFLOW,
)

__all__ = [
    "SalesConfig",
    "CreditStatus",
    "Customer",
    "Order",
    "OrderLine",
    "OrderStatus",
    "derive_order_status",
    "CUSTOMER_CREDIT_WORKFLOW",
    "ORDER_COMPLETION_WORKFLOW",
    "ORDER_PICKING_WORKFLOW",
]
