"""
Statement Workflows (``settlement_modules.statements.workflows``).

Responsibility
--------------
State machines for purchase records and supplier statements.  A statement
is reconciled in two steps: the supplier confirms (or disputes) the net
amount, then the buyer confirms, which generates the payable.
"""

from settlement_kernel.domain.workflow import Guard, Transition, Workflow
from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.statements.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

SUPPLIER_CONFIRMED = Guard(
    name="supplier_confirmed",
    description="Supplier has confirmed the statement amount",
)


# -----------------------------------------------------------------------------
# Purchase Record Workflow
# -----------------------------------------------------------------------------

PURCHASE_RECORD_WORKFLOW = Workflow(
    name="purchase_record",
    description="Inbound receipt / return confirmation",
    initial_state="pending",
    states=("pending", "confirmed"),
    terminal_states=("confirmed",),
    transitions=(
        Transition("pending", "confirmed", action="confirm"),
    ),
)


# -----------------------------------------------------------------------------
# Supplier Statement Workflow
# -----------------------------------------------------------------------------

STATEMENT_WORKFLOW = Workflow(
    name="supplier_statement",
    description="Supplier statement reconciliation",
    initial_state="draft",
    states=(
        "draft",
        "pending_supplier_confirm",
        "disputed",
        "pending_buyer_confirm",
        "confirmed",
    ),
    terminal_states=("confirmed",),
    transitions=(
        Transition("draft", "pending_supplier_confirm", action="send"),
        Transition("pending_supplier_confirm", "pending_buyer_confirm", action="supplier_confirm"),
        Transition("pending_supplier_confirm", "disputed", action="dispute"),
        Transition("disputed", "pending_buyer_confirm", action="supplier_confirm"),
        # Changing the records sends the statement back to the supplier.
        Transition("draft", "draft", action="edit_records"),
        Transition("disputed", "draft", action="edit_records"),
        Transition(
            "pending_buyer_confirm",
            "confirmed",
            action="buyer_confirm",
            guard=SUPPLIER_CONFIRMED,
        ),
    ),
)

for _workflow in (PURCHASE_RECORD_WORKFLOW, STATEMENT_WORKFLOW):
    logger.info(
        "statement_workflow_registered",
        extra={
            "workflow_name": _workflow.name,
            "state_count": len(_workflow.states),
            "transition_count": len(_workflow.transitions),
            "initial_state": _workflow.initial_state,
        },
    )
