"""
Verification Workflows (``settlement_modules.verification.workflows``).

Responsibility
--------------
State machine for verification records: ``completed --reverse--> reversed``.
``reversed`` is terminal; a record is never re-opened or deleted.
"""

from settlement_kernel.domain.workflow import Guard, Transition, Workflow
from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.verification.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

REVERSE_REASON_GIVEN = Guard(
    name="reverse_reason_given",
    description="Reason type is allowed and the detail meets the minimum length",
)

CROSS_MONTH_APPROVAL_CONFIRMED = Guard(
    name="cross_month_approval_confirmed",
    description="Caller confirmed approval when the record is from another month",
)


# -----------------------------------------------------------------------------
# Verification Record Workflow
# -----------------------------------------------------------------------------

VERIFICATION_RECORD_WORKFLOW = Workflow(
    name="verification_record",
    description="Three-way verification record lifecycle",
    initial_state="completed",
    states=("completed", "reversed"),
    terminal_states=("reversed",),
    transitions=(
        Transition(
            "completed",
            "reversed",
            action="reverse",
            guard=CROSS_MONTH_APPROVAL_CONFIRMED,
        ),
    ),
)

logger.info(
    "verification_record_workflow_registered",
    extra={
        "workflow_name": VERIFICATION_RECORD_WORKFLOW.name,
        "state_count": len(VERIFICATION_RECORD_WORKFLOW.states),
        "transition_count": len(VERIFICATION_RECORD_WORKFLOW.transitions),
        "initial_state": VERIFICATION_RECORD_WORKFLOW.initial_state,
    },
)
