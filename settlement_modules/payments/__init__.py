"""
Payments Module (``settlement_modules.payments``).

Responsibility
--------------
Payment requests backed by invoices or prepaid purchase orders, their
approval, and payment execution with post-payment auto-verification.

Architecture position
---------------------
**Modules layer** -- models, ORM, config, workflows and the
``PaymentService`` facade.  Payment orders are persisted by the
verification module.
"""

from settlement_modules.payments.models import (
    PaymentExecution,
    PaymentRequest,
    PaymentRequestStatus,
)
from settlement_modules.payments.workflows import PAYMENT_REQUEST_WORKFLOW
from settlement_modules.payments.config import PaymentConfig

__all__ = [
    "PaymentExecution",
    "PaymentRequest",
    "PaymentRequestStatus",
    "PAYMENT_REQUEST_WORKFLOW",
    "PaymentConfig",
]
