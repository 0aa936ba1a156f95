"""
Purchasing Module (``wholesale_modules.purchasing``).

Responsibility
--------------
The supplier ledger: invoices received, payments made and credit notes,
each an open/finalized ``SupplierTransaction`` owning a
``TransactionFinancials`` snapshot.

Architecture position
---------------------
**Modules layer** -- entity, workflow and config on top of
``wholesale_kernel.domain``; persistence in ``orm.py`` / ``repository.py``.
"""

from wholesale_modules.purchasing.config import PurchasingConfig
from wholesale_modules.purchasing.models import SupplierTransaction
from wholesale_modules.purchasing.workflows import SUPPLIER_TRANSACTION_WORKFLOW

__all__ = [
    "PurchasingConfig",
    "SupplierTransaction",
    "SUPPLIER_TRANSACTION_WORKFLOW",
]
