"""
Verification ORM Models (``settlement_modules.verification.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the three verified ledgers (accounts
payable, payment orders, invoices) and for verification records with their
per-item detail rows.  Maps to the frozen dataclasses in ``models.py``.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``settlement_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``settlement_kernel``.

Invariants enforced
-------------------
* ``Verifiable.apply_verified`` is the only writer of the
  verified / unverified / status triple; it refuses to leave
  ``[0, total]``.
* Record id lists are stored as JSON text; per-item amounts live in
  ``verification_details`` so that reversal can subtract them exactly.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.db.types import ZERO
from settlement_modules.verification.models import (
    VerificationStatus,
    derive_payment_status,
    derive_verification_status,
)


def _dump_ids(ids) -> str:
    return json.dumps([str(i) for i in ids])


def _load_ids(raw: str | None) -> tuple[UUID, ...]:
    if not raw:
        return ()
    return tuple(UUID(i) for i in json.loads(raw))


class Verifiable:
    """
    Mixin for rows that carry a verified / unverified balance.

    Subclasses expose ``verification_total`` (the fixed amount being
    verified against).
    """

    verified_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    unverified_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    verification_status: Mapped[str] = mapped_column(
        String(30), default=VerificationStatus.UNVERIFIED.value
    )

    @property
    def verification_total(self) -> Decimal:
        raise NotImplementedError

    def apply_verified(self, amount: Decimal) -> None:
        """Add ``amount`` (negative to release) and recompute the derived fields."""
        total = self.verification_total
        new_verified = self.verified_amount + amount
        if new_verified < ZERO or new_verified > total:
            raise ValueError(
                f"{type(self).__name__} {self.id}: verified amount {new_verified} "
                f"outside [0, {total}]"
            )
        self.verified_amount = new_verified
        self.unverified_amount = total - new_verified
        self.verification_status = derive_verification_status(new_verified, total).value

    def release_verified(self, amount: Decimal) -> None:
        self.apply_verified(-amount)


# ---------------------------------------------------------------------------
# 1. AccountsPayableModel
# ---------------------------------------------------------------------------


class AccountsPayableModel(Verifiable, TrackedBase):
    """
    ORM model for accounts payable.

    Guarantees:
        - payable_no is unique (uq_accounts_payable_payable_no).
        - unpaid_amount = payable_amount - paid_amount after record_payment.
    """

    __tablename__ = "accounts_payable"

    __table_args__ = (
        UniqueConstraint("payable_no", name="uq_accounts_payable_payable_no"),
        Index("idx_accounts_payable_supplier_id", "supplier_id"),
        Index("idx_accounts_payable_statement_id", "statement_id"),
    )

    payable_no: Mapped[str] = mapped_column(String(40), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    payable_amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    unpaid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    invoiced_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    payment_status: Mapped[str] = mapped_column(String(30), default="unpaid")
    statement_id: Mapped[UUID | None] = mapped_column(nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    @property
    def verification_total(self) -> Decimal:
        return self.payable_amount

    def record_payment(self, amount: Decimal) -> None:
        self.paid_amount = self.paid_amount + amount
        self.unpaid_amount = self.payable_amount - self.paid_amount
        self.payment_status = derive_payment_status(
            self.paid_amount, self.payable_amount,
        ).value

    def to_dto(self):
        from settlement_modules.verification.models import (
            AccountsPayable,
            PaymentStatus,
        )

        return AccountsPayable(
            id=self.id,
            payable_no=self.payable_no,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            payable_amount=self.payable_amount,
            paid_amount=self.paid_amount,
            unpaid_amount=self.unpaid_amount,
            invoiced_amount=self.invoiced_amount,
            verified_amount=self.verified_amount,
            unverified_amount=self.unverified_amount,
            payment_status=PaymentStatus(self.payment_status),
            verification_status=VerificationStatus(self.verification_status),
            statement_id=self.statement_id,
            due_date=self.due_date,
        )

    def __repr__(self) -> str:
        return f"<AccountsPayableModel {self.payable_no}: {self.payable_amount}>"


# ---------------------------------------------------------------------------
# 2. PaymentOrderModel
# ---------------------------------------------------------------------------


class PaymentOrderModel(Verifiable, TrackedBase):
    """
    ORM model for executed payment orders.

    Guarantees:
        - order_no is unique (uq_payment_orders_order_no).
        - payment_amount never changes after creation.
    """

    __tablename__ = "payment_orders"

    __table_args__ = (
        UniqueConstraint("order_no", name="uq_payment_orders_order_no"),
        Index("idx_payment_orders_request_id", "request_id"),
        Index("idx_payment_orders_payable_id", "payable_id"),
    )

    order_no: Mapped[str] = mapped_column(String(40), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), default="bank_transfer")
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="completed")
    request_id: Mapped[UUID | None] = mapped_column(nullable=True)
    payable_id: Mapped[UUID | None] = mapped_column(nullable=True)
    transaction_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_account: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def verification_total(self) -> Decimal:
        return self.payment_amount

    def to_dto(self):
        from settlement_modules.verification.models import (
            PaymentMethod,
            PaymentOrder,
            PaymentOrderStatus,
        )

        return PaymentOrder(
            id=self.id,
            order_no=self.order_no,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            payment_amount=self.payment_amount,
            payment_method=PaymentMethod(self.payment_method),
            payment_date=self.payment_date,
            verified_amount=self.verified_amount,
            unverified_amount=self.unverified_amount,
            verification_status=VerificationStatus(self.verification_status),
            status=PaymentOrderStatus(self.status),
            request_id=self.request_id,
            payable_id=self.payable_id,
            transaction_no=self.transaction_no,
            bank_account=self.bank_account,
            bank_name=self.bank_name,
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return f"<PaymentOrderModel {self.order_no}: {self.payment_amount}>"


# ---------------------------------------------------------------------------
# 3. InvoiceModel
# ---------------------------------------------------------------------------


class InvoiceModel(Verifiable, TrackedBase):
    """
    ORM model for supplier invoices.

    Guarantees:
        - (invoice_code, invoice_no) is unique (uq_invoices_code_no).
        - total_amount never changes after intake.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_code", "invoice_no", name="uq_invoices_code_no"),
        Index("idx_invoices_supplier_id", "supplier_id"),
        Index("idx_invoices_authenticity_status", "authenticity_status"),
    )

    invoice_no: Mapped[str] = mapped_column(String(40), nullable=False)
    invoice_code: Mapped[str] = mapped_column(String(40), nullable=False)
    invoice_type: Mapped[str] = mapped_column(String(30), default="vat_special")
    supplier_id: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    received_date: Mapped[date] = mapped_column(Date, nullable=False)
    input_method: Mapped[str] = mapped_column(String(30), default="manual")
    seller_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seller_tax_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    authenticity_status: Mapped[str] = mapped_column(String(30), default="pending")
    authenticity_failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    authenticity_checked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    usable: Mapped[bool] = mapped_column(Boolean, default=True)
    unusable_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    business_verified_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    business_verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def verification_total(self) -> Decimal:
        return self.total_amount

    def to_dto(self):
        from settlement_modules.verification.models import (
            AuthenticityStatus,
            InputMethod,
            Invoice,
            InvoiceType,
        )

        return Invoice(
            id=self.id,
            invoice_no=self.invoice_no,
            invoice_code=self.invoice_code,
            invoice_type=InvoiceType(self.invoice_type),
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            amount=self.amount,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            invoice_date=self.invoice_date,
            received_date=self.received_date,
            input_method=InputMethod(self.input_method),
            seller_name=self.seller_name,
            seller_tax_no=self.seller_tax_no,
            authenticity_status=AuthenticityStatus(self.authenticity_status),
            usable=self.usable,
            unusable_reason=self.unusable_reason,
            verified_amount=self.verified_amount,
            unverified_amount=self.unverified_amount,
            verification_status=VerificationStatus(self.verification_status),
            authenticity_failure_reason=self.authenticity_failure_reason,
            authenticity_checked_at=self.authenticity_checked_at,
            business_verified_by=self.business_verified_by,
            business_verified_at=self.business_verified_at,
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_code}/{self.invoice_no}: {self.total_amount}>"


# ---------------------------------------------------------------------------
# 4. VerificationRecordModel + VerificationDetailModel
# ---------------------------------------------------------------------------

PAYMENT_ORDER_SIDE = "payment_order"
INVOICE_SIDE = "invoice"


class VerificationRecordModel(TrackedBase):
    """
    ORM model for verification records.

    Details are stored in the child ``verification_details`` table via the
    ``details`` relationship, ordered by ``position``.

    Guarantees:
        - verification_no is unique (uq_verification_records_no).
        - status transitions completed -> reversed at most once.
    """

    __tablename__ = "verification_records"

    __table_args__ = (
        UniqueConstraint("verification_no", name="uq_verification_records_no"),
        Index("idx_verification_records_payable_id", "payable_id"),
        Index("idx_verification_records_status", "status"),
    )

    verification_no: Mapped[str] = mapped_column(String(40), nullable=False)
    payable_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts_payable.id"), nullable=False,
    )
    payment_order_ids_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    invoice_ids_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    verification_date: Mapped[date] = mapped_column(Date, nullable=False)
    verified_by: Mapped[str] = mapped_column(String(100), nullable=False)
    verified_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="completed")
    verification_type: Mapped[str] = mapped_column(String(30), default="manual")
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    reversed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reversed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reverse_reason_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reverse_reason_detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    cross_month_approved: Mapped[bool] = mapped_column(Boolean, default=False)

    details: Mapped[list["VerificationDetailModel"]] = relationship(
        "VerificationDetailModel",
        back_populates="verification",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="VerificationDetailModel.position",
    )

    @property
    def payment_order_ids(self) -> tuple[UUID, ...]:
        return _load_ids(self.payment_order_ids_json)

    @payment_order_ids.setter
    def payment_order_ids(self, ids) -> None:
        self.payment_order_ids_json = _dump_ids(ids)

    @property
    def invoice_ids(self) -> tuple[UUID, ...]:
        return _load_ids(self.invoice_ids_json)

    @invoice_ids.setter
    def invoice_ids(self, ids) -> None:
        self.invoice_ids_json = _dump_ids(ids)

    def details_for(self, side: str) -> list["VerificationDetailModel"]:
        return [d for d in self.details if d.side == side]

    def add_detail(self, side: str, item_id: UUID, amount: Decimal, created_by: str) -> None:
        self.details.append(
            VerificationDetailModel(
                side=side,
                item_id=item_id,
                amount=amount,
                position=len(self.details),
                created_by=created_by,
            )
        )

    def to_dto(self):
        from settlement_modules.verification.models import (
            InvoiceDetail,
            PaymentOrderDetail,
            RecordStatus,
            ReverseReasonType,
            VerificationRecord,
            VerificationType,
        )

        return VerificationRecord(
            id=self.id,
            verification_no=self.verification_no,
            payable_id=self.payable_id,
            amount=self.amount,
            verification_date=self.verification_date,
            verified_by=self.verified_by,
            verified_at=self.verified_at,
            status=RecordStatus(self.status),
            verification_type=VerificationType(self.verification_type),
            payment_order_ids=self.payment_order_ids,
            invoice_ids=self.invoice_ids,
            payment_order_details=tuple(
                PaymentOrderDetail(payment_order_id=d.item_id, amount=d.amount)
                for d in self.details_for(PAYMENT_ORDER_SIDE)
            ),
            invoice_details=tuple(
                InvoiceDetail(invoice_id=d.item_id, amount=d.amount)
                for d in self.details_for(INVOICE_SIDE)
            ),
            remarks=self.remarks,
            reversed_at=self.reversed_at,
            reversed_by=self.reversed_by,
            reverse_reason_type=(
                ReverseReasonType(self.reverse_reason_type)
                if self.reverse_reason_type else None
            ),
            reverse_reason_detail=self.reverse_reason_detail,
            cross_month_approved=self.cross_month_approved,
        )

    def __repr__(self) -> str:
        return f"<VerificationRecordModel {self.verification_no}: {self.amount} ({self.status})>"


class VerificationDetailModel(TrackedBase):
    """
    One per-item amount of a verification record.

    ``side`` is ``payment_order`` or ``invoice``; ``item_id`` references the
    row on that side.
    """

    __tablename__ = "verification_details"

    __table_args__ = (
        Index("idx_verification_details_verification_id", "verification_id"),
        Index("idx_verification_details_item_id", "item_id"),
    )

    verification_id: Mapped[UUID] = mapped_column(
        ForeignKey("verification_records.id"), nullable=False,
    )
    side: Mapped[str] = mapped_column(String(20), nullable=False)
    item_id: Mapped[UUID] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    position: Mapped[int] = mapped_column(default=0)

    verification: Mapped["VerificationRecordModel"] = relationship(
        "VerificationRecordModel", back_populates="details",
    )

    def __repr__(self) -> str:
        return f"<VerificationDetailModel {self.side} {self.item_id}: {self.amount}>"
