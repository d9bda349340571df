"""
Invoices Module (``settlement_modules.invoices``).

Responsibility
--------------
Invoice intake (duplicate detection, payable allocation), the simulated
tax-authority authenticity check, business verification and guarded
deletion.

Architecture position
---------------------
**Modules layer** -- config, authenticity oracle, workflows and the
``InvoiceService`` facade.  Invoice balances are owned by the verification
module's ``InvoiceModel``.
"""

from settlement_modules.invoices.models import (
    AuthenticityOutcome,
    AuthenticityResult,
    InvoicePayableRelation,
    PayableAllocation,
)
from settlement_modules.invoices.workflows import INVOICE_AUTHENTICITY_WORKFLOW
from settlement_modules.invoices.config import InvoiceConfig

__all__ = [
    "AuthenticityOutcome",
    "AuthenticityResult",
    "InvoicePayableRelation",
    "PayableAllocation",
    "INVOICE_AUTHENTICITY_WORKFLOW",
    "InvoiceConfig",
]
