"""
Verification Module (``settlement_modules.verification``).

Responsibility
--------------
Three-way verification of accounts payable against payment orders and
invoices: manual and batch verification, reversal with cross-month approval
gating, and the auto-verification triggers run by payment execution and
statement settlement.

Architecture position
---------------------
**Modules layer** -- models, ORM, repositories, config, workflows and the
``VerificationService`` facade.  Allocation arithmetic comes from
``settlement_engines.allocation``.

Invariants enforced
-------------------
* Conservation: detail rows are exactly what was added on verification and
  exactly what reversal subtracts.
* Bounds: ``0 <= verified_amount <= total`` on every payable, payment order
  and invoice.
* Transaction boundary owned by ``VerificationService`` unless constructed
  with ``auto_commit=False``.
"""

from settlement_modules.verification.models import (
    AccountsPayable,
    BatchItemResult,
    BatchVerificationResult,
    Invoice,
    InvoiceDetail,
    PaymentOrder,
    PaymentOrderDetail,
    ReverseReasonType,
    VerificationRecord,
    VerificationStatus,
    VerifyRequest,
)
from settlement_modules.verification.workflows import VERIFICATION_RECORD_WORKFLOW
from settlement_modules.verification.config import VerificationConfig

__all__ = [
    "AccountsPayable",
    "BatchItemResult",
    "BatchVerificationResult",
    "Invoice",
    "InvoiceDetail",
    "PaymentOrder",
    "PaymentOrderDetail",
    "ReverseReasonType",
    "VerificationRecord",
    "VerificationStatus",
    "VerifyRequest",
    "VERIFICATION_RECORD_WORKFLOW",
    "VerificationConfig",
]
