"""
Statement ORM Models (``settlement_modules.statements.orm``).

Responsibility
--------------
SQLAlchemy persistence for purchase orders, purchase records and supplier
statements.  Product lines live in one child table per owner
(``purchase_order_lines``, ``purchase_record_lines``).

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``settlement_kernel.db`` and
sibling ``models.py``.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.db.types import ZERO
from settlement_modules.verification.models import PaymentStatus, derive_payment_status


def _line_dtos(lines):
    from settlement_modules.statements.models import PurchaseLine

    return tuple(
        PurchaseLine(
            product_code=line.product_code,
            product_name=line.product_name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            specification=line.specification or "",
            unit=line.unit or "",
        )
        for line in lines
    )


# ---------------------------------------------------------------------------
# 1. PurchaseOrderModel
# ---------------------------------------------------------------------------


class PurchaseOrderModel(TrackedBase):
    """
    ORM model for purchase orders.

    Guarantees:
        - order_no is unique (uq_purchase_orders_order_no).
        - unpaid_amount = total_amount - paid_amount after record_payment.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("order_no", name="uq_purchase_orders_order_no"),
        Index("idx_purchase_orders_supplier_id", "supplier_id"),
        Index("idx_purchase_orders_order_type", "order_type"),
    )

    order_no: Mapped[str] = mapped_column(String(40), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    order_type: Mapped[str] = mapped_column(String(20), default="standard")
    payment_status: Mapped[str] = mapped_column(
        String(30), default=PaymentStatus.UNPAID.value,
    )
    paid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    unpaid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    inbound_status: Mapped[str] = mapped_column(String(30), default="pending")
    status: Mapped[str] = mapped_column(String(30), default="confirmed")
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        "PurchaseOrderLineModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderLineModel.line_number",
    )

    def record_payment(self, amount: Decimal) -> None:
        self.paid_amount = self.paid_amount + amount
        self.unpaid_amount = self.total_amount - self.paid_amount
        self.payment_status = derive_payment_status(self.paid_amount, self.total_amount).value

    def to_dto(self):
        from settlement_modules.statements.models import (
            InboundStatus,
            PurchaseOrder,
            PurchaseOrderStatus,
            PurchaseOrderType,
        )

        return PurchaseOrder(
            id=self.id,
            order_no=self.order_no,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            order_date=self.order_date,
            total_amount=self.total_amount,
            order_type=PurchaseOrderType(self.order_type),
            payment_status=PaymentStatus(self.payment_status),
            paid_amount=self.paid_amount,
            unpaid_amount=self.unpaid_amount,
            inbound_status=InboundStatus(self.inbound_status),
            status=PurchaseOrderStatus(self.status),
            lines=_line_dtos(self.lines),
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.order_no} ({self.order_type}): {self.total_amount}>"


class PurchaseOrderLineModel(TrackedBase):
    """One product line of a purchase order."""

    __tablename__ = "purchase_order_lines"

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False,
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    specification: Mapped[str | None] = mapped_column(String(255), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel", back_populates="lines",
    )


# ---------------------------------------------------------------------------
# 2. PurchaseRecordModel
# ---------------------------------------------------------------------------


class PurchaseRecordModel(TrackedBase):
    """
    ORM model for inbound receipts and returns.

    Guarantees:
        - record_no is unique (uq_purchase_records_record_no).
        - po_no references a purchase order by number, not by key.
    """

    __tablename__ = "purchase_records"

    __table_args__ = (
        UniqueConstraint("record_no", name="uq_purchase_records_record_no"),
        Index("idx_purchase_records_supplier_id", "supplier_id"),
        Index("idx_purchase_records_po_no", "po_no"),
    )

    record_no: Mapped[str] = mapped_column(String(40), nullable=False)
    record_type: Mapped[str] = mapped_column(String(20), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    po_no: Mapped[str] = mapped_column(String(40), nullable=False)
    record_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending")

    lines: Mapped[list["PurchaseRecordLineModel"]] = relationship(
        "PurchaseRecordLineModel",
        back_populates="record",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseRecordLineModel.line_number",
    )

    def to_dto(self):
        from settlement_modules.statements.models import (
            PurchaseRecord,
            PurchaseRecordStatus,
            PurchaseRecordType,
        )

        return PurchaseRecord(
            id=self.id,
            record_no=self.record_no,
            record_type=PurchaseRecordType(self.record_type),
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            po_no=self.po_no,
            record_date=self.record_date,
            total_amount=self.total_amount,
            status=PurchaseRecordStatus(self.status),
            lines=_line_dtos(self.lines),
        )

    def __repr__(self) -> str:
        return f"<PurchaseRecordModel {self.record_no} ({self.record_type}): {self.total_amount}>"


class PurchaseRecordLineModel(TrackedBase):
    """One product line of a purchase record."""

    __tablename__ = "purchase_record_lines"

    purchase_record_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_records.id"), nullable=False,
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    specification: Mapped[str | None] = mapped_column(String(255), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    record: Mapped["PurchaseRecordModel"] = relationship(
        "PurchaseRecordModel", back_populates="lines",
    )


# ---------------------------------------------------------------------------
# 3. SupplierStatementModel
# ---------------------------------------------------------------------------


class SupplierStatementModel(TrackedBase):
    """
    ORM model for supplier statements.

    Guarantees:
        - statement_no is unique (uq_supplier_statements_statement_no).
        - purchase_record_ids stored as JSON text.
    """

    __tablename__ = "supplier_statements"

    __table_args__ = (
        UniqueConstraint("statement_no", name="uq_supplier_statements_statement_no"),
        Index("idx_supplier_statements_supplier_id", "supplier_id"),
        Index("idx_supplier_statements_status", "status"),
    )

    statement_no: Mapped[str] = mapped_column(String(40), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    purchase_record_ids_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_inbound_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    total_return_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    net_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    supplier_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    difference_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    status: Mapped[str] = mapped_column(String(30), default="draft")
    supplier_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)
    supplier_confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    buyer_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)
    buyer_confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    buyer_confirmed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def purchase_record_ids(self) -> tuple[UUID, ...]:
        if not self.purchase_record_ids_json:
            return ()
        return tuple(UUID(i) for i in json.loads(self.purchase_record_ids_json))

    @purchase_record_ids.setter
    def purchase_record_ids(self, ids) -> None:
        self.purchase_record_ids_json = json.dumps([str(i) for i in ids])

    def to_dto(self):
        from settlement_modules.statements.models import StatementStatus, SupplierStatement

        return SupplierStatement(
            id=self.id,
            statement_no=self.statement_no,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            period_start=self.period_start,
            period_end=self.period_end,
            purchase_record_ids=self.purchase_record_ids,
            total_inbound_amount=self.total_inbound_amount,
            total_return_amount=self.total_return_amount,
            net_amount=self.net_amount,
            supplier_amount=self.supplier_amount,
            difference_amount=self.difference_amount,
            status=StatementStatus(self.status),
            supplier_confirmed=self.supplier_confirmed,
            supplier_confirmed_at=self.supplier_confirmed_at,
            buyer_confirmed=self.buyer_confirmed,
            buyer_confirmed_at=self.buyer_confirmed_at,
            buyer_confirmed_by=self.buyer_confirmed_by,
            dispute_reason=self.dispute_reason,
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return f"<SupplierStatementModel {self.statement_no}: {self.net_amount} ({self.status})>"
