"""
Purchasing Workflows (``wholesale_modules.purchasing.workflows``).

Responsibility
--------------
Declares the lifecycle of a supplier ledger entry.  A transaction is
``open`` until finalized; while open it accepts payments, balance
corrections, link changes and reference updates.  Unfinalizing is the
only way back and is an explicit, audited reversal.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports canonical
Guard, Transition, Workflow from ``wholesale_kernel.domain.workflow``.
Consulted by ``SupplierTransaction`` before every lifecycle move.
"""

from wholesale_kernel.domain.workflow import Guard, Transition, Workflow
from wholesale_kernel.logging_config import get_logger

logger = get_logger("modules.purchasing.workflows")

OPEN = "open"
FINALIZED = "finalized"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

FINALIZATION_DATE_VALID = Guard(
    name="finalization_date_valid",
    description="Finalization date is on or after the transaction date and not in the future",
)


# -----------------------------------------------------------------------------
# Supplier Transaction Workflow
# -----------------------------------------------------------------------------

SUPPLIER_TRANSACTION_WORKFLOW = Workflow(
    name="supplier_transaction",
    description="Supplier ledger entry finalization lifecycle",
    initial_state=OPEN,
    states=(OPEN, FINALIZED),
    terminal_states=(FINALIZED,),
    transitions=(
        Transition(OPEN, FINALIZED, action="finalize", guard=FINALIZATION_DATE_VALID),
        Transition(FINALIZED, OPEN, action="unfinalize", reverts=True),
    ),
)

# Business mutations permitted only while the entry is open
OPEN_ONLY_OPERATIONS = (
    "apply_payment",
    "update_outstanding_balance",
    "link_to_purchase_order",
    "unlink_from_purchase_order",
    "update_payment_method",
    "update_supplier_invoice_number",
)

logger.info(
    "purchasing_workflow_registered",
    extra={
        "workflow": SUPPLIER_TRANSACTION_WORKFLOW.name,
        "states": list(SUPPLIER_TRANSACTION_WORKFLOW.states),
        "transitions": len(SUPPLIER_TRANSACTION_WORKFLOW.transitions),
    },
)
