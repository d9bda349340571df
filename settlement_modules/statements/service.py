"""
Statement Service (``settlement_modules.statements.service``).

Responsibility
--------------
Purchase orders and purchase records, supplier statement reconciliation
(send, supplier confirm, dispute, record edits, buyer confirm) and payable
generation.  Buyer confirmation also settles any prepaid payments made
against the statement's purchase orders through prepaid auto-verification.

Architecture position
---------------------
**Modules layer** -- service facade.  Prepaid settlement is delegated to a
``VerificationService`` constructed with ``auto_commit=False``, so the
statement, its payable and the prepaid verification records commit
together.

Invariants enforced
-------------------
* Only confirmed purchase records count toward a statement.
* ``net_amount = total_inbound_amount - total_return_amount``.
* A statement generates exactly one payable, on buyer confirmation, and
  only after the supplier confirmed.
"""

from collections.abc import Sequence
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from settlement_kernel.db.types import ZERO, to_money
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import InvalidTransitionError, SupplierNotConfirmedError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.services.sequence_service import DocumentNumberService
from settlement_modules.payments.orm import PaymentRequestModel
from settlement_modules.statements.config import StatementConfig
from settlement_modules.statements.models import (
    InboundStatus,
    PurchaseLine,
    PurchaseOrder,
    PurchaseOrderStatus,
    PurchaseOrderType,
    PurchaseRecord,
    PurchaseRecordStatus,
    PurchaseRecordType,
    StatementSettlement,
    StatementStatus,
    SupplierStatement,
)
from settlement_modules.statements.orm import (
    PurchaseOrderLineModel,
    PurchaseOrderModel,
    PurchaseRecordLineModel,
    PurchaseRecordModel,
    SupplierStatementModel,
)
from settlement_modules.statements.workflows import PURCHASE_RECORD_WORKFLOW, STATEMENT_WORKFLOW
from settlement_modules.verification.config import VerificationConfig
from settlement_modules.verification.models import PaymentStatus, VerificationStatus
from settlement_modules.verification.orm import AccountsPayableModel
from settlement_modules.verification.repositories import Repository, SettlementUnitOfWork
from settlement_modules.verification.service import VerificationService

logger = get_logger("modules.statements.service")


class PurchaseOrderRepository(Repository[PurchaseOrderModel]):
    model = PurchaseOrderModel
    entity_type = "PurchaseOrder"

    def prepaid_by_numbers(self, order_nos: Sequence[str]) -> list[PurchaseOrderModel]:
        if not order_nos:
            return []
        stmt = select(PurchaseOrderModel).where(
            PurchaseOrderModel.order_no.in_(list(order_nos)),
            PurchaseOrderModel.order_type == PurchaseOrderType.PREPAID.value,
        )
        return list(self.session.execute(stmt).scalars().all())


class PurchaseRecordRepository(Repository[PurchaseRecordModel]):
    model = PurchaseRecordModel
    entity_type = "PurchaseRecord"


class StatementRepository(Repository[SupplierStatementModel]):
    model = SupplierStatementModel
    entity_type = "SupplierStatement"


def _lines_total(lines: Sequence[PurchaseLine]) -> Decimal:
    return sum((line.amount for line in lines), ZERO)


class StatementService:
    """
    Purchase documents and supplier statement reconciliation.

    Transaction boundary: every public mutating method commits on success
    and rolls back on failure.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: StatementConfig | None = None,
        verification_config: VerificationConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or StatementConfig.with_defaults()
        self._uow = SettlementUnitOfWork(session)
        self._purchase_orders = PurchaseOrderRepository(session)
        self._purchase_records = PurchaseRecordRepository(session)
        self._statements = StatementRepository(session)
        self._numbers = DocumentNumberService(session, clock=self._clock)
        self._verification = VerificationService(
            session,
            clock=self._clock,
            config=verification_config,
            auto_commit=False,
        )

    # =========================================================================
    # Purchase orders and records
    # =========================================================================

    def create_purchase_order(
        self,
        order_no: str,
        supplier_id: str,
        supplier_name: str,
        order_date: date,
        order_type: PurchaseOrderType = PurchaseOrderType.STANDARD,
        lines: Sequence[PurchaseLine] = (),
        total_amount: Decimal | None = None,
        remarks: str | None = None,
        created_by: str = "system",
    ) -> PurchaseOrder:
        """Create a confirmed purchase order.  ``total_amount`` defaults to the line total."""
        total = to_money(total_amount) if total_amount is not None else _lines_total(lines)
        with self._uow.transaction("create_purchase_order"):
            order = PurchaseOrderModel(
                order_no=order_no,
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                order_date=order_date,
                total_amount=total,
                order_type=order_type.value,
                payment_status=PaymentStatus.UNPAID.value,
                paid_amount=ZERO,
                unpaid_amount=total,
                inbound_status=InboundStatus.PENDING.value,
                status=PurchaseOrderStatus.CONFIRMED.value,
                remarks=remarks,
                created_by=created_by,
            )
            for number, line in enumerate(lines, start=1):
                order.lines.append(PurchaseOrderLineModel(
                    line_number=number,
                    product_code=line.product_code,
                    product_name=line.product_name,
                    specification=line.specification,
                    unit=line.unit,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    amount=line.amount,
                    created_by=created_by,
                ))
            self._purchase_orders.save(order)

        logger.info("purchase_order_created", extra={
            "order_no": order_no,
            "order_type": order_type.value,
            "total_amount": str(total),
        })
        return order.to_dto()

    def create_purchase_record(
        self,
        record_no: str,
        record_type: PurchaseRecordType,
        supplier_id: str,
        supplier_name: str,
        po_no: str,
        record_date: date,
        lines: Sequence[PurchaseLine] = (),
        total_amount: Decimal | None = None,
        created_by: str = "system",
    ) -> PurchaseRecord:
        """Create a pending inbound receipt or return."""
        total = to_money(total_amount) if total_amount is not None else _lines_total(lines)
        with self._uow.transaction("create_purchase_record"):
            record = PurchaseRecordModel(
                record_no=record_no,
                record_type=record_type.value,
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                po_no=po_no,
                record_date=record_date,
                total_amount=total,
                status=PURCHASE_RECORD_WORKFLOW.initial_state,
                created_by=created_by,
            )
            for number, line in enumerate(lines, start=1):
                record.lines.append(PurchaseRecordLineModel(
                    line_number=number,
                    product_code=line.product_code,
                    product_name=line.product_name,
                    specification=line.specification,
                    unit=line.unit,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    amount=line.amount,
                    created_by=created_by,
                ))
            self._purchase_records.save(record)

        logger.info("purchase_record_created", extra={
            "record_no": record_no,
            "record_type": record_type.value,
            "total_amount": str(total),
        })
        return record.to_dto()

    def confirm_purchase_record(self, record_id: UUID, confirmed_by: str = "system") -> PurchaseRecord:
        with self._uow.transaction("confirm_purchase_record"):
            record = self._purchase_records.require(record_id)
            transition = PURCHASE_RECORD_WORKFLOW.require(
                record.status, "confirm", "PurchaseRecord", record_id,
            )
            record.status = transition.to_state
            record.updated_by = confirmed_by

        logger.info("purchase_record_confirmed", extra={"record_no": record.record_no})
        return record.to_dto()

    # =========================================================================
    # Supplier statements
    # =========================================================================

    def create_statement(
        self,
        supplier_id: str,
        supplier_name: str,
        period_start: date,
        period_end: date,
        purchase_record_ids: Sequence[UUID],
        supplier_amount: Decimal | None = None,
        remarks: str | None = None,
        created_by: str = "system",
    ) -> SupplierStatement:
        """
        Draft a statement over the confirmed records among ``purchase_record_ids``.

        Pending records are left out of both the totals and the statement.
        ``supplier_amount`` defaults to the net amount.
        """
        if period_end < period_start:
            raise ValueError(f"period_end {period_end} is before period_start {period_start}")

        with self._uow.transaction("create_statement"):
            confirmed, inbound, returns = self._confirmed_records(purchase_record_ids)
            net = inbound - returns
            agreed = to_money(supplier_amount) if supplier_amount is not None else net

            statement = SupplierStatementModel(
                statement_no=self._numbers.next_number(self._config.statement_prefix),
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                period_start=period_start,
                period_end=period_end,
                total_inbound_amount=inbound,
                total_return_amount=returns,
                net_amount=net,
                supplier_amount=agreed,
                difference_amount=agreed - net,
                status=STATEMENT_WORKFLOW.initial_state,
                supplier_confirmed=False,
                buyer_confirmed=False,
                remarks=remarks,
                created_by=created_by,
            )
            statement.purchase_record_ids = [r.id for r in confirmed]
            self._statements.save(statement)

        logger.info("statement_created", extra={
            "statement_no": statement.statement_no,
            "record_count": len(confirmed),
            "skipped_records": len(purchase_record_ids) - len(confirmed),
            "net_amount": str(net),
        })
        return statement.to_dto()

    def edit_records(
        self,
        statement_id: UUID,
        purchase_record_ids: Sequence[UUID],
        edited_by: str = "system",
    ) -> SupplierStatement:
        """
        Replace the purchase records of a draft or disputed statement.

        Totals are recomputed the same way ``create_statement`` does, the
        difference is taken against the supplier's amount, and the statement
        returns to ``draft`` to be sent again.
        """
        with self._uow.transaction("edit_statement_records"):
            statement = self._statements.require(statement_id)
            transition = STATEMENT_WORKFLOW.require(
                statement.status, "edit_records", "SupplierStatement", statement_id,
            )
            confirmed, inbound, returns = self._confirmed_records(purchase_record_ids)
            net = inbound - returns

            statement.purchase_record_ids = [r.id for r in confirmed]
            statement.total_inbound_amount = inbound
            statement.total_return_amount = returns
            statement.net_amount = net
            statement.difference_amount = statement.supplier_amount - net
            statement.supplier_confirmed = False
            statement.supplier_confirmed_at = None
            statement.status = transition.to_state
            statement.updated_by = edited_by

        logger.info("statement_records_edited", extra={
            "statement_no": statement.statement_no,
            "record_count": len(confirmed),
            "net_amount": str(net),
            "difference_amount": str(statement.difference_amount),
        })
        return statement.to_dto()

    def _confirmed_records(
        self,
        purchase_record_ids: Sequence[UUID],
    ) -> tuple[list[PurchaseRecordModel], Decimal, Decimal]:
        """Confirmed records among the ids, with inbound and return totals."""
        found = self._purchase_records.get_many(purchase_record_ids)
        confirmed = [
            found[i] for i in dict.fromkeys(purchase_record_ids)
            if i in found and found[i].status == PurchaseRecordStatus.CONFIRMED.value
        ]
        inbound = sum(
            (r.total_amount for r in confirmed
             if r.record_type == PurchaseRecordType.INBOUND.value),
            ZERO,
        )
        returns = sum(
            (r.total_amount for r in confirmed
             if r.record_type == PurchaseRecordType.RETURN.value),
            ZERO,
        )
        return confirmed, inbound, returns

    def send_to_supplier(self, statement_id: UUID, sent_by: str = "system") -> SupplierStatement:
        return self._advance(statement_id, "send", sent_by)

    def dispute(self, statement_id: UUID, reason: str, disputed_by: str = "supplier") -> SupplierStatement:
        if not reason or not reason.strip():
            raise ValueError("A dispute reason is required")
        return self._advance(statement_id, "dispute", disputed_by, dispute_reason=reason.strip())

    def supplier_confirm(
        self,
        statement_id: UUID,
        supplier_amount: Decimal | None = None,
        confirmed_by: str = "supplier",
    ) -> SupplierStatement:
        """
        Record the supplier's confirmation and the amount it agrees to.

        ``difference_amount = supplier_amount - net_amount``; the amount
        defaults to the net amount.
        """
        with self._uow.transaction("supplier_confirm_statement"):
            statement = self._statements.require(statement_id)
            transition = STATEMENT_WORKFLOW.require(
                statement.status, "supplier_confirm", "SupplierStatement", statement_id,
            )
            agreed = to_money(supplier_amount) if supplier_amount is not None else statement.net_amount
            statement.supplier_amount = agreed
            statement.difference_amount = agreed - statement.net_amount
            statement.supplier_confirmed = True
            statement.supplier_confirmed_at = self._clock.now()
            statement.status = transition.to_state
            statement.updated_by = confirmed_by

        if statement.difference_amount != ZERO:
            logger.warning("statement_amount_difference", extra={
                "statement_no": statement.statement_no,
                "difference_amount": str(statement.difference_amount),
            })
        logger.info("statement_supplier_confirmed", extra={
            "statement_no": statement.statement_no,
            "supplier_amount": str(statement.supplier_amount),
        })
        return statement.to_dto()

    def buyer_confirm(self, statement_id: UUID, confirmed_by: str) -> StatementSettlement:
        """
        Confirm the statement on the buyer side and generate its payable.

        Prepaid payments made against the statement's purchase orders are
        then settled against the new payable, one verification record per
        payment order.

        Raises:
            InvalidTransitionError: statement already confirmed or not
                awaiting the buyer.
            SupplierNotConfirmedError: supplier has not confirmed yet.
        """
        logger.info("statement_buyer_confirm_started", extra={
            "statement_id": str(statement_id),
            "actor_id": confirmed_by,
        })
        with self._uow.transaction("buyer_confirm_statement"):
            statement = self._statements.require(statement_id)
            if statement.status == StatementStatus.CONFIRMED.value:
                raise InvalidTransitionError(
                    "SupplierStatement", statement_id, statement.status, "buyer_confirm",
                )
            if not statement.supplier_confirmed:
                raise SupplierNotConfirmedError(statement_id)
            transition = STATEMENT_WORKFLOW.require(
                statement.status, "buyer_confirm", "SupplierStatement", statement_id,
            )

            now = self._clock.now()
            statement.buyer_confirmed = True
            statement.buyer_confirmed_at = now
            statement.buyer_confirmed_by = confirmed_by
            statement.status = transition.to_state
            statement.updated_by = confirmed_by

            net = statement.net_amount
            payable = AccountsPayableModel(
                payable_no=self._numbers.next_number(self._config.payable_prefix),
                statement_id=statement.id,
                supplier_id=statement.supplier_id,
                supplier_name=statement.supplier_name,
                payable_amount=net,
                paid_amount=ZERO,
                unpaid_amount=net,
                invoiced_amount=ZERO,
                verified_amount=ZERO,
                unverified_amount=net,
                payment_status=PaymentStatus.UNPAID.value,
                verification_status=VerificationStatus.UNVERIFIED.value,
                due_date=now.date() + timedelta(days=self._config.payment_terms_days),
                created_by=confirmed_by,
            )
            self._uow.payables.save(payable)

            prepaid_order_ids = self._prepaid_payment_orders(statement)
            verifications = []
            if prepaid_order_ids:
                verifications = self._verification.auto_verify_on_prepaid_settlement(
                    payable.id, prepaid_order_ids,
                )

        logger.info("statement_buyer_confirmed", extra={
            "statement_no": statement.statement_no,
            "payable_no": payable.payable_no,
            "payable_amount": str(net),
            "prepaid_verifications": len(verifications),
        })
        return StatementSettlement(
            statement=statement.to_dto(),
            payable=payable.to_dto(),
            prepaid_verifications=tuple(verifications),
        )

    def _prepaid_payment_orders(self, statement: SupplierStatementModel) -> list[UUID]:
        """Unverified payment orders paid on the statement's prepaid purchase orders.

        records -> purchase order numbers -> prepaid orders -> payment
        requests -> payment orders with an unverified amount.
        """
        records = self._purchase_records.get_many(statement.purchase_record_ids)
        po_nos = list(dict.fromkeys(
            records[i].po_no for i in statement.purchase_record_ids
            if i in records and records[i].po_no
        ))
        prepaid_orders = self._purchase_orders.prepaid_by_numbers(po_nos)
        if not prepaid_orders:
            return []

        stmt = (
            select(PaymentRequestModel.id)
            .where(PaymentRequestModel.purchase_order_id.in_([o.id for o in prepaid_orders]))
            .order_by(PaymentRequestModel.request_no)
        )
        request_ids = list(self._session.execute(stmt).scalars().all())
        orders = self._uow.payment_orders.by_requests(request_ids)
        eligible = [o.id for o in orders if o.unverified_amount > ZERO]

        logger.info("prepaid_payments_discovered", extra={
            "statement_no": statement.statement_no,
            "purchase_order_count": len(prepaid_orders),
            "payment_order_count": len(eligible),
        })
        return eligible

    def _advance(self, statement_id: UUID, action: str, actor: str, **changes) -> SupplierStatement:
        with self._uow.transaction(f"{action}_statement"):
            statement = self._statements.require(statement_id)
            transition = STATEMENT_WORKFLOW.require(
                statement.status, action, "SupplierStatement", statement_id,
            )
            for name, value in changes.items():
                setattr(statement, name, value)
            statement.status = transition.to_state
            statement.updated_by = actor

        logger.info("statement_status_changed", extra={
            "statement_no": statement.statement_no,
            "action": action,
            "status": statement.status,
        })
        return statement.to_dto()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_statement(self, statement_id: UUID) -> SupplierStatement:
        return self._statements.require(statement_id).to_dto()

    def get_purchase_order(self, order_id: UUID) -> PurchaseOrder:
        return self._purchase_orders.require(order_id).to_dto()
