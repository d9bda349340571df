"""
Payment Workflows (``settlement_modules.payments.workflows``).

Payment request lifecycle.  An approved request stays ``approved`` through
partial payments and becomes ``paid`` once nothing is left unpaid.
"""

from settlement_kernel.domain.workflow import Guard, Transition, Workflow
from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.payments.workflows")

FULLY_PAID = Guard(
    name="fully_paid",
    description="Request unpaid amount reached zero",
)

PAYMENT_REQUEST_WORKFLOW = Workflow(
    name="payment_request",
    description="Supplier payment request approval and payment",
    initial_state="draft",
    states=("draft", "pending_approval", "approved", "rejected", "paid"),
    terminal_states=("rejected", "paid"),
    transitions=(
        Transition("draft", "pending_approval", action="submit"),
        Transition("pending_approval", "approved", action="approve", requires_approval=True),
        Transition("pending_approval", "rejected", action="reject", requires_approval=True),
        Transition("approved", "approved", action="pay"),
        Transition("approved", "paid", action="settle", guard=FULLY_PAID),
    ),
)

logger.info(
    "payment_request_workflow_registered",
    extra={
        "workflow_name": PAYMENT_REQUEST_WORKFLOW.name,
        "state_count": len(PAYMENT_REQUEST_WORKFLOW.states),
        "transition_count": len(PAYMENT_REQUEST_WORKFLOW.transitions),
        "initial_state": PAYMENT_REQUEST_WORKFLOW.initial_state,
    },
)
