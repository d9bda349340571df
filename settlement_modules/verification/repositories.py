"""
Verification Repositories (``settlement_modules.verification.repositories``).

Responsibility
--------------
Per-entity record stores (``get``, ``get_many``, ``list``, ``save``) for
payables, payment orders, invoices and verification records, bundled in a
``SettlementUnitOfWork`` that owns commit / rollback.

Architecture position
---------------------
**Modules layer** -- persistence access.  Services receive a unit of work
and never touch ``Session.commit`` directly.

Invariants enforced
-------------------
* Repositories only ``flush``; the unit of work is the single place that
  commits, so every operation's writes land in one transaction.
* With ``auto_commit=False`` the unit of work neither commits nor rolls
  back, leaving the boundary to the enclosing operation.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from settlement_kernel.db.base import Base
from settlement_kernel.exceptions import NotFoundError
from settlement_kernel.logging_config import get_logger
from settlement_modules.verification.orm import (
    AccountsPayableModel,
    InvoiceModel,
    PaymentOrderModel,
    VerificationRecordModel,
)

logger = get_logger("modules.verification.repositories")

ModelType = TypeVar("ModelType", bound=Base)


class Repository(Generic[ModelType]):
    """Record store for one ORM model."""

    model: type[ModelType]
    entity_type: str

    def __init__(self, session: Session):
        self.session = session

    def get(self, entity_id: UUID) -> ModelType | None:
        return self.session.get(self.model, entity_id)

    def require(self, entity_id: UUID, detail: str | None = None) -> ModelType:
        """Get or raise ``NotFoundError``."""
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_type, entity_id, detail)
        return entity

    def get_many(self, entity_ids: Iterable[UUID]) -> dict[UUID, ModelType]:
        """Load several rows in one query, keyed by id.  Missing ids are absent."""
        ids = list(entity_ids)
        if not ids:
            return {}
        stmt = select(self.model).where(self.model.id.in_(ids))
        return {row.id: row for row in self.session.execute(stmt).scalars()}

    def require_many(self, entity_ids: Iterable[UUID]) -> list[ModelType]:
        """Load rows in the given order, raising on the first missing id."""
        ids = list(entity_ids)
        found = self.get_many(ids)
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundError(self.entity_type, missing[0])
        return [found[i] for i in ids]

    def list(self, **filters: Any) -> list[ModelType]:
        stmt = select(self.model).filter_by(**filters).order_by(self.model.created_at)
        return list(self.session.execute(stmt).scalars().all())

    def save(self, entity: ModelType) -> ModelType:
        self.session.add(entity)
        self.session.flush()
        return entity


class PayableRepository(Repository[AccountsPayableModel]):
    model = AccountsPayableModel
    entity_type = "AccountsPayable"

    def by_statement(self, statement_id: UUID) -> AccountsPayableModel | None:
        stmt = select(AccountsPayableModel).where(
            AccountsPayableModel.statement_id == statement_id,
        )
        return self.session.execute(stmt).scalars().first()


class PaymentOrderRepository(Repository[PaymentOrderModel]):
    model = PaymentOrderModel
    entity_type = "PaymentOrder"

    def by_requests(self, request_ids: Iterable[UUID]) -> list[PaymentOrderModel]:
        """Payment orders of the given requests, oldest first."""
        ids = list(request_ids)
        if not ids:
            return []
        stmt = (
            select(PaymentOrderModel)
            .where(PaymentOrderModel.request_id.in_(ids))
            .order_by(PaymentOrderModel.created_at, PaymentOrderModel.order_no)
        )
        return list(self.session.execute(stmt).scalars().all())


class InvoiceRepository(Repository[InvoiceModel]):
    model = InvoiceModel
    entity_type = "Invoice"

    def by_code_and_no(self, invoice_code: str, invoice_no: str) -> InvoiceModel | None:
        stmt = select(InvoiceModel).where(
            InvoiceModel.invoice_code == invoice_code,
            InvoiceModel.invoice_no == invoice_no,
        )
        return self.session.execute(stmt).scalars().first()


class VerificationRepository(Repository[VerificationRecordModel]):
    model = VerificationRecordModel
    entity_type = "VerificationRecord"

    def for_payable(self, payable_id: UUID) -> list[VerificationRecordModel]:
        stmt = (
            select(VerificationRecordModel)
            .where(VerificationRecordModel.payable_id == payable_id)
            .order_by(VerificationRecordModel.verified_at, VerificationRecordModel.verification_no)
        )
        return list(self.session.execute(stmt).scalars().all())


class SettlementUnitOfWork:
    """
    Repositories sharing one session, plus the transaction boundary.

    Usage::

        with uow.transaction("verify"):
            payable = uow.payables.require(payable_id)
            ...
    """

    def __init__(self, session: Session, auto_commit: bool = True):
        self.session = session
        self.auto_commit = auto_commit
        self.payables = PayableRepository(session)
        self.payment_orders = PaymentOrderRepository(session)
        self.invoices = InvoiceRepository(session)
        self.verifications = VerificationRepository(session)

    @contextmanager
    def transaction(self, operation: str) -> Iterator["SettlementUnitOfWork"]:
        try:
            yield self
        except Exception:
            if self.auto_commit:
                self.rollback()
                logger.info("unit_of_work_rolled_back", extra={"operation": operation})
            raise
        else:
            if self.auto_commit:
                self.commit()
            else:
                self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
