"""
Statement Domain Models (``settlement_modules.statements.models``).

Responsibility
--------------
Frozen value objects for purchase orders, purchase records (inbound
receipts and returns) and supplier statements, plus the result of a
buyer confirmation.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from settlement_modules.verification.models import (
    AccountsPayable,
    PaymentStatus,
    VerificationRecord,
)

ZERO = Decimal("0")


class PurchaseOrderType(Enum):
    STANDARD = "standard"
    PREPAID = "prepaid"


class PurchaseOrderStatus(Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InboundStatus(Enum):
    PENDING = "pending"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"


class PurchaseRecordType(Enum):
    INBOUND = "inbound"
    RETURN = "return"


class PurchaseRecordStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class StatementStatus(Enum):
    """Supplier statement lifecycle.  Must align with ``workflows.STATEMENT_WORKFLOW``."""
    DRAFT = "draft"
    PENDING_SUPPLIER_CONFIRM = "pending_supplier_confirm"
    DISPUTED = "disputed"
    PENDING_BUYER_CONFIRM = "pending_buyer_confirm"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class PurchaseLine:
    """One product line on a purchase order or purchase record."""
    product_code: str
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    specification: str = ""
    unit: str = ""

    def __post_init__(self):
        if self.quantity < 0:
            raise ValueError(f"Quantity cannot be negative: {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"Unit price cannot be negative: {self.unit_price}")

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class PurchaseOrder:
    id: UUID
    order_no: str
    supplier_id: str
    supplier_name: str
    order_date: date
    total_amount: Decimal
    order_type: PurchaseOrderType
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    paid_amount: Decimal = ZERO
    unpaid_amount: Decimal = ZERO
    inbound_status: InboundStatus = InboundStatus.PENDING
    status: PurchaseOrderStatus = PurchaseOrderStatus.CONFIRMED
    lines: tuple[PurchaseLine, ...] = ()
    remarks: str | None = None

    @property
    def is_prepaid(self) -> bool:
        return self.order_type is PurchaseOrderType.PREPAID


@dataclass(frozen=True)
class PurchaseRecord:
    """An inbound receipt or a return against a purchase order number."""
    id: UUID
    record_no: str
    record_type: PurchaseRecordType
    supplier_id: str
    supplier_name: str
    po_no: str
    record_date: date
    total_amount: Decimal
    status: PurchaseRecordStatus = PurchaseRecordStatus.PENDING
    lines: tuple[PurchaseLine, ...] = ()


@dataclass(frozen=True)
class SupplierStatement:
    """
    A reconciliation of confirmed purchase records with one supplier.

    ``net_amount = total_inbound_amount - total_return_amount``;
    ``difference_amount = supplier_amount - net_amount``.
    """
    id: UUID
    statement_no: str
    supplier_id: str
    supplier_name: str
    period_start: date
    period_end: date
    purchase_record_ids: tuple[UUID, ...]
    total_inbound_amount: Decimal
    total_return_amount: Decimal
    net_amount: Decimal
    supplier_amount: Decimal
    difference_amount: Decimal
    status: StatementStatus
    supplier_confirmed: bool = False
    supplier_confirmed_at: datetime | None = None
    buyer_confirmed: bool = False
    buyer_confirmed_at: datetime | None = None
    buyer_confirmed_by: str | None = None
    dispute_reason: str | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class StatementSettlement:
    """Outcome of a buyer confirmation."""
    statement: SupplierStatement
    payable: AccountsPayable
    prepaid_verifications: tuple[VerificationRecord, ...] = field(default_factory=tuple)
