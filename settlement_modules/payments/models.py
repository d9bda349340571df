"""
Payment Domain Models (``settlement_modules.payments.models``).

Frozen value objects for payment requests and for the outcome of executing
a payment against one.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from settlement_modules.verification.models import PaymentOrder, VerificationRecord

ZERO = Decimal("0")


class PaymentRequestStatus(Enum):
    """Payment request lifecycle.  Must align with ``workflows.PAYMENT_REQUEST_WORKFLOW``."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


@dataclass(frozen=True)
class PaymentRequest:
    """
    A request to pay a supplier, backed by invoices or a prepaid purchase order.

    Guarantees: ``unpaid_amount == request_amount - paid_amount``.
    """
    id: UUID
    request_no: str
    supplier_id: str
    supplier_name: str
    request_amount: Decimal
    request_reason: str
    status: PaymentRequestStatus
    paid_amount: Decimal = ZERO
    unpaid_amount: Decimal = ZERO
    payable_ids: tuple[UUID, ...] = ()
    invoice_ids: tuple[UUID, ...] = ()
    purchase_order_id: UUID | None = None
    submitted_at: datetime | None = None
    submitted_by: str | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    approval_remarks: str | None = None

    @property
    def is_prepaid(self) -> bool:
        return self.purchase_order_id is not None


@dataclass(frozen=True)
class PaymentExecution:
    """Result of ``PaymentService.pay``."""
    request: PaymentRequest
    payment_order: PaymentOrder
    verification: VerificationRecord | None = None

    @property
    def auto_verified(self) -> bool:
        return self.verification is not None
