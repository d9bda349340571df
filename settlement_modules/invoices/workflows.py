"""
Invoice Workflows (``settlement_modules.invoices.workflows``).

Authenticity lifecycle: ``pending`` moves once to ``verified`` or
``failed``.  An unavailable oracle leaves the invoice ``pending``.
"""

from settlement_kernel.domain.workflow import Guard, Transition, Workflow
from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.invoices.workflows")

ORACLE_AVAILABLE = Guard(
    name="oracle_available",
    description="Authenticity service answered the request",
)

INVOICE_AUTHENTICITY_WORKFLOW = Workflow(
    name="invoice_authenticity",
    description="Tax-authority authenticity check",
    initial_state="pending",
    states=("pending", "verified", "failed"),
    terminal_states=("verified", "failed"),
    transitions=(
        Transition("pending", "verified", action="authenticate_pass", guard=ORACLE_AVAILABLE),
        Transition("pending", "failed", action="authenticate_fail", guard=ORACLE_AVAILABLE),
    ),
)

logger.info(
    "invoice_authenticity_workflow_registered",
    extra={
        "workflow_name": INVOICE_AUTHENTICITY_WORKFLOW.name,
        "state_count": len(INVOICE_AUTHENTICITY_WORKFLOW.states),
        "transition_count": len(INVOICE_AUTHENTICITY_WORKFLOW.transitions),
    },
)
