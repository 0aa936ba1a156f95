"""
Sales Workflows (``wholesale_modules.sales.workflows``).

Responsibility
--------------
Declares the three state machines of the sales module:

* ``ORDER_PICKING_WORKFLOW`` -- pending -> picking -> picked.  The state
  is derived from line pick quantities; the workflow decides which
  operation may move it in which direction.  Only ``adjust_pick`` may move
  it backwards.
* ``ORDER_COMPLETION_WORKFLOW`` -- the picking-completed lock and its
  explicit reopen.
* ``CUSTOMER_CREDIT_WORKFLOW`` -- the credit-hold flag.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports canonical
Guard, Transition, Workflow from ``wholesale_kernel.domain.workflow``.
"""

from wholesale_kernel.domain.workflow import Guard, Transition, Workflow
from wholesale_kernel.logging_config import get_logger

logger = get_logger("modules.sales.workflows")

PENDING = "pending"
PICKING = "picking"
PICKED = "picked"

PICKING_OPEN = "open"
PICKING_COMPLETED = "completed"

NOT_ON_HOLD = "not_on_hold"
ON_HOLD = "on_hold"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

WITHIN_ORDERED_QUANTITY = Guard(
    name="within_ordered_quantity",
    description="Picked quantity never exceeds the ordered quantity of the line",
)

ADJUSTMENT_REASON_GIVEN = Guard(
    name="adjustment_reason_given",
    description="A non-blank reason accompanies every backward move",
)

ALL_LINES_PICKED = Guard(
    name="all_lines_picked",
    description="Every line is fully picked and a picker is assigned",
)

COMPLETION_TIME_IN_WINDOW = Guard(
    name="completion_time_in_window",
    description="Completion time is within the backdate limit and the future grace period",
)


# -----------------------------------------------------------------------------
# Order Picking Workflow
# -----------------------------------------------------------------------------

ORDER_PICKING_WORKFLOW = Workflow(
    name="order_picking",
    description="Derived picking progress of an order",
    initial_state=PENDING,
    states=(PENDING, PICKING, PICKED),
    transitions=(
        Transition(PENDING, PICKING, action="record_pick", guard=WITHIN_ORDERED_QUANTITY),
        Transition(PENDING, PICKED, action="record_pick", guard=WITHIN_ORDERED_QUANTITY),
        Transition(PICKING, PICKED, action="record_pick", guard=WITHIN_ORDERED_QUANTITY),
        # Reducing an ordered quantity to what has been picked completes the line
        Transition(PICKING, PICKED, action="amend_line"),
        Transition(PENDING, PICKING, action="adjust_pick", guard=ADJUSTMENT_REASON_GIVEN),
        Transition(PENDING, PICKED, action="adjust_pick", guard=ADJUSTMENT_REASON_GIVEN),
        Transition(PICKING, PICKED, action="adjust_pick", guard=ADJUSTMENT_REASON_GIVEN),
        Transition(PICKING, PENDING, action="adjust_pick", guard=ADJUSTMENT_REASON_GIVEN, reverts=True),
        Transition(PICKED, PICKING, action="adjust_pick", guard=ADJUSTMENT_REASON_GIVEN, reverts=True),
        Transition(PICKED, PENDING, action="adjust_pick", guard=ADJUSTMENT_REASON_GIVEN, reverts=True),
    ),
)

ORDER_COMPLETION_WORKFLOW = Workflow(
    name="order_completion",
    description="Picking-completed lock on an order",
    initial_state=PICKING_OPEN,
    states=(PICKING_OPEN, PICKING_COMPLETED),
    terminal_states=(PICKING_COMPLETED,),
    transitions=(
        Transition(
            PICKING_OPEN,
            PICKING_COMPLETED,
            action="complete_picking",
            guard=ALL_LINES_PICKED,
        ),
        Transition(
            PICKING_COMPLETED,
            PICKING_OPEN,
            action="reopen_picking",
            guard=ADJUSTMENT_REASON_GIVEN,
            reverts=True,
        ),
    ),
)


# -----------------------------------------------------------------------------
# Customer Credit Workflow
# -----------------------------------------------------------------------------

CUSTOMER_CREDIT_WORKFLOW = Workflow(
    name="customer_credit",
    description="Customer credit-hold flag",
    initial_state=NOT_ON_HOLD,
    states=(NOT_ON_HOLD, ON_HOLD),
    transitions=(
        Transition(NOT_ON_HOLD, ON_HOLD, action="place_on_credit_hold"),
        Transition(ON_HOLD, NOT_ON_HOLD, action="release_credit_hold", reverts=True),
    ),
)

logger.info(
    "sales_workflows_registered",
    extra={
        "workflows": [
            ORDER_PICKING_WORKFLOW.name,
            ORDER_COMPLETION_WORKFLOW.name,
            CUSTOMER_CREDIT_WORKFLOW.name,
        ],
    },
)
