"""
Payment ORM Models (``settlement_modules.payments.orm``).

Persistence for payment requests.  Payment orders are stored by the
verification module (``PaymentOrderModel``) since verification owns their
balance fields.
"""

import json
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.db.types import ZERO


def _load(raw: str | None) -> tuple[UUID, ...]:
    if not raw:
        return ()
    return tuple(UUID(i) for i in json.loads(raw))


class PaymentRequestModel(TrackedBase):
    """
    ORM model for payment requests.

    Guarantees:
        - request_no is unique (uq_payment_requests_request_no).
        - payable and invoice id lists stored as JSON text.
    """

    __tablename__ = "payment_requests"

    __table_args__ = (
        UniqueConstraint("request_no", name="uq_payment_requests_request_no"),
        Index("idx_payment_requests_supplier_id", "supplier_id"),
        Index("idx_payment_requests_purchase_order_id", "purchase_order_id"),
        Index("idx_payment_requests_status", "status"),
    )

    request_no: Mapped[str] = mapped_column(String(40), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    payable_ids_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    invoice_ids_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(nullable=True)
    request_amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    unpaid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    request_reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="draft")
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approval_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def payable_ids(self) -> tuple[UUID, ...]:
        return _load(self.payable_ids_json)

    @payable_ids.setter
    def payable_ids(self, ids) -> None:
        self.payable_ids_json = json.dumps([str(i) for i in ids])

    @property
    def invoice_ids(self) -> tuple[UUID, ...]:
        return _load(self.invoice_ids_json)

    @invoice_ids.setter
    def invoice_ids(self, ids) -> None:
        self.invoice_ids_json = json.dumps([str(i) for i in ids])

    def to_dto(self):
        from settlement_modules.payments.models import PaymentRequest, PaymentRequestStatus

        return PaymentRequest(
            id=self.id,
            request_no=self.request_no,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            request_amount=self.request_amount,
            request_reason=self.request_reason,
            status=PaymentRequestStatus(self.status),
            paid_amount=self.paid_amount,
            unpaid_amount=self.unpaid_amount,
            payable_ids=self.payable_ids,
            invoice_ids=self.invoice_ids,
            purchase_order_id=self.purchase_order_id,
            submitted_at=self.submitted_at,
            submitted_by=self.submitted_by,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            approval_remarks=self.approval_remarks,
        )

    def __repr__(self) -> str:
        return f"<PaymentRequestModel {self.request_no}: {self.request_amount} ({self.status})>"
