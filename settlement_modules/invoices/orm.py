"""
Invoice ORM Models (``settlement_modules.invoices.orm``).

Persistence for invoice-to-payable allocation links.  The invoice table
itself is ``settlement_modules.verification.orm.InvoiceModel``.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class InvoicePayableRelationModel(TrackedBase):
    """
    ORM model for invoice / payable allocation links.

    Guarantees:
        - One row per (invoice, payable) pair (uq_invoice_payable_relations_pair).
        - allocated_amount was added to the payable's invoiced_amount.
    """

    __tablename__ = "invoice_payable_relations"

    __table_args__ = (
        UniqueConstraint("invoice_id", "payable_id", name="uq_invoice_payable_relations_pair"),
        Index("idx_invoice_payable_relations_payable_id", "payable_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    payable_id: Mapped[UUID] = mapped_column(ForeignKey("accounts_payable.id"), nullable=False)
    allocated_amount: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self):
        from settlement_modules.invoices.models import InvoicePayableRelation

        return InvoicePayableRelation(
            id=self.id,
            invoice_id=self.invoice_id,
            payable_id=self.payable_id,
            allocated_amount=self.allocated_amount,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<InvoicePayableRelationModel {self.invoice_id} -> {self.payable_id}: {self.allocated_amount}>"
