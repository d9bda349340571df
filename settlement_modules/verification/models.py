"""
Verification Domain Models (``settlement_modules.verification.models``).

Responsibility
--------------
Frozen value objects for the three ledgers that verification reconciles
(accounts payable, payment orders, invoices) and for the verification
records that link them, plus the status enums and the pure status
derivation rules.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.  These
objects flow *out of* ``VerificationService`` as immutable snapshots; the
ORM models in ``orm.py`` convert to them with ``to_dto()``.

Invariants enforced
-------------------
* All monetary fields use ``Decimal``.
* ``derive_verification_status`` is the only place verification status is
  computed: ``unverified`` when nothing is verified, ``verified`` once the
  verified amount reaches the total, ``partial_verified`` otherwise.
* Records are always plural internally (``payment_order_ids``,
  ``invoice_ids``); the singular ``payment_order_id`` / ``invoice_id`` view
  exists only for serialization.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.verification.models")

ZERO = Decimal("0")


class VerificationStatus(Enum):
    """How much of a payable, payment order or invoice has been verified."""
    UNVERIFIED = "unverified"
    PARTIAL_VERIFIED = "partial_verified"
    VERIFIED = "verified"


class PaymentStatus(Enum):
    """How much of a payable or purchase order has been paid."""
    UNPAID = "unpaid"
    PARTIAL_PAID = "partial_paid"
    PAID = "paid"


class RecordStatus(Enum):
    """Verification record lifecycle.  Must align with ``workflows.VERIFICATION_RECORD_WORKFLOW``."""
    COMPLETED = "completed"
    REVERSED = "reversed"


class VerificationType(Enum):
    """Who initiated a verification."""
    MANUAL = "manual"
    AUTO = "auto"


class ReverseReasonType(Enum):
    """Why a verification was reversed."""
    INPUT_ERROR = "input_error"
    BUSINESS_CHANGE = "business_change"
    DUPLICATE_VERIFICATION = "duplicate_verification"
    INVOICE_RETURN = "invoice_return"
    OTHER = "other"


class InvoiceType(Enum):
    VAT_SPECIAL = "vat_special"
    VAT_NORMAL = "vat_normal"
    OTHER = "other"


class InputMethod(Enum):
    MANUAL = "manual"
    OCR = "ocr"
    ELECTRONIC_IMPORT = "electronic_import"


class AuthenticityStatus(Enum):
    """Tax-authority authenticity check outcome."""
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class PaymentMethod(Enum):
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    CASH = "cash"
    OTHER = "other"


class PaymentOrderStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


def derive_verification_status(verified: Decimal, total: Decimal) -> VerificationStatus:
    """Verification status as a pure function of amounts."""
    if verified <= ZERO:
        return VerificationStatus.UNVERIFIED
    if verified >= total:
        return VerificationStatus.VERIFIED
    return VerificationStatus.PARTIAL_VERIFIED


def derive_payment_status(paid: Decimal, total: Decimal) -> PaymentStatus:
    """Payment status as a pure function of amounts."""
    if paid <= ZERO:
        return PaymentStatus.UNPAID
    if paid >= total:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL_PAID


@dataclass(frozen=True)
class AccountsPayable:
    """A payable obligation to one supplier, generated from a confirmed statement.

    Guarantees: ``0 <= verified_amount <= payable_amount``.
    """
    id: UUID
    payable_no: str
    supplier_id: str
    supplier_name: str
    payable_amount: Decimal
    paid_amount: Decimal = ZERO
    unpaid_amount: Decimal = ZERO
    invoiced_amount: Decimal = ZERO
    verified_amount: Decimal = ZERO
    unverified_amount: Decimal = ZERO
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    statement_id: UUID | None = None
    due_date: date | None = None


@dataclass(frozen=True)
class PaymentOrder:
    """One executed payment against a payment request."""
    id: UUID
    order_no: str
    supplier_id: str
    supplier_name: str
    payment_amount: Decimal
    payment_method: PaymentMethod
    payment_date: date
    verified_amount: Decimal = ZERO
    unverified_amount: Decimal = ZERO
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    status: PaymentOrderStatus = PaymentOrderStatus.COMPLETED
    request_id: UUID | None = None
    payable_id: UUID | None = None
    transaction_no: str | None = None
    bank_account: str | None = None
    bank_name: str | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class Invoice:
    """A supplier invoice.

    Guarantees: ``total_amount == amount + tax_amount`` when built by the
    invoice service; an invoice with ``verified_amount > 0`` stays usable.
    """
    id: UUID
    invoice_no: str
    invoice_code: str
    invoice_type: InvoiceType
    supplier_id: str
    supplier_name: str
    amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    invoice_date: date
    received_date: date
    input_method: InputMethod = InputMethod.MANUAL
    seller_name: str | None = None
    seller_tax_no: str | None = None
    authenticity_status: AuthenticityStatus = AuthenticityStatus.PENDING
    usable: bool = True
    unusable_reason: str | None = None
    verified_amount: Decimal = ZERO
    unverified_amount: Decimal = ZERO
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    authenticity_failure_reason: str | None = None
    authenticity_checked_at: datetime | None = None
    business_verified_by: str | None = None
    business_verified_at: datetime | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class PaymentOrderDetail:
    """Amount a verification took from one payment order."""
    payment_order_id: UUID
    amount: Decimal


@dataclass(frozen=True)
class InvoiceDetail:
    """Amount a verification took from one invoice."""
    invoice_id: UUID
    amount: Decimal


@dataclass(frozen=True)
class VerificationRecord:
    """A link event tying one payable to payment orders and invoices.

    Contract: frozen snapshot of a ``VerificationRecordModel`` row.
    Guarantees: detail sums on each side are exactly what was added to the
    items on creation and exactly what is subtracted on reversal.
    """
    id: UUID
    verification_no: str
    payable_id: UUID
    amount: Decimal
    verification_date: date
    verified_by: str
    verified_at: datetime
    status: RecordStatus
    verification_type: VerificationType
    payment_order_ids: tuple[UUID, ...] = ()
    invoice_ids: tuple[UUID, ...] = ()
    payment_order_details: tuple[PaymentOrderDetail, ...] = ()
    invoice_details: tuple[InvoiceDetail, ...] = ()
    remarks: str | None = None
    reversed_at: datetime | None = None
    reversed_by: str | None = None
    reverse_reason_type: ReverseReasonType | None = None
    reverse_reason_detail: str | None = None
    cross_month_approved: bool = False

    @property
    def payment_order_id(self) -> UUID | None:
        """First payment order, for consumers of the single-reference format."""
        return self.payment_order_ids[0] if self.payment_order_ids else None

    @property
    def invoice_id(self) -> UUID | None:
        """First invoice, for consumers of the single-reference format."""
        return self.invoice_ids[0] if self.invoice_ids else None

    @property
    def verification_month(self) -> str:
        return self.verification_date.strftime("%Y-%m")

    @property
    def payment_order_detail_total(self) -> Decimal:
        return sum((d.amount for d in self.payment_order_details), ZERO)

    @property
    def invoice_detail_total(self) -> Decimal:
        return sum((d.amount for d in self.invoice_details), ZERO)

    def to_dict(self) -> dict[str, Any]:
        """Serialize, adding the singular reference fields."""
        return {
            "id": str(self.id),
            "verification_no": self.verification_no,
            "payable_id": str(self.payable_id),
            "payment_order_id": str(self.payment_order_id) if self.payment_order_id else "",
            "payment_order_ids": [str(i) for i in self.payment_order_ids],
            "invoice_id": str(self.invoice_id) if self.invoice_id else "",
            "invoice_ids": [str(i) for i in self.invoice_ids],
            "payment_order_details": [
                {"payment_order_id": str(d.payment_order_id), "amount": str(d.amount)}
                for d in self.payment_order_details
            ],
            "invoice_details": [
                {"invoice_id": str(d.invoice_id), "amount": str(d.amount)}
                for d in self.invoice_details
            ],
            "amount": str(self.amount),
            "verification_date": self.verification_date.isoformat(),
            "verified_by": self.verified_by,
            "verified_at": self.verified_at.isoformat(),
            "status": self.status.value,
            "verification_type": self.verification_type.value,
            "remarks": self.remarks,
            "reversed_at": self.reversed_at.isoformat() if self.reversed_at else None,
            "reversed_by": self.reversed_by,
            "reverse_reason_type": (
                self.reverse_reason_type.value if self.reverse_reason_type else None
            ),
            "reverse_reason_detail": self.reverse_reason_detail,
            "cross_month_approved": self.cross_month_approved,
        }


@dataclass(frozen=True)
class VerifyRequest:
    """Inputs of one manual verification (also one entry of a batch).

    Manual details are used only when both detail tuples are non-empty.
    """
    payable_id: UUID
    payment_order_ids: tuple[UUID, ...]
    invoice_ids: tuple[UUID, ...]
    amount: Decimal
    payment_order_details: tuple[PaymentOrderDetail, ...] = ()
    invoice_details: tuple[InvoiceDetail, ...] = ()
    remarks: str | None = None

    def __post_init__(self):
        # Accept lists from callers; store tuples so the request stays hashable.
        object.__setattr__(self, "payment_order_ids", tuple(self.payment_order_ids))
        object.__setattr__(self, "invoice_ids", tuple(self.invoice_ids))
        object.__setattr__(self, "payment_order_details", tuple(self.payment_order_details))
        object.__setattr__(self, "invoice_details", tuple(self.invoice_details))

    @property
    def uses_manual_allocation(self) -> bool:
        return bool(self.payment_order_details) and bool(self.invoice_details)


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of one entry of a batch verification."""
    payable_id: UUID
    success: bool
    verification_no: str | None = None
    verification_id: UUID | None = None
    error: str | None = None
    error_code: str | None = None


@dataclass(frozen=True)
class BatchVerificationResult:
    """Outcome of a batch verification run."""
    results: tuple[BatchItemResult, ...] = field(default_factory=tuple)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.success)
