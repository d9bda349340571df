"""
Payment Service (``settlement_modules.payments.service``).

Responsibility
--------------
Payment requests (create, submit, approve / reject) and payment execution.
Executing a payment creates a payment order, updates the request, the
prepaid purchase order and the target payable, and then runs post-payment
auto-verification inside the same transaction.

Architecture position
---------------------
**Modules layer** -- service facade.  Auto-verification is delegated to a
``VerificationService`` constructed with ``auto_commit=False`` so that the
payment and its verification commit or roll back together.

Invariants enforced
-------------------
* A request is backed by invoices or by a prepaid purchase order, and never
  asks for more than its backing allows.
* ``paid_amount <= request_amount`` on every request.
* Auto-verification never fails a payment.
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from settlement_kernel.db.types import ZERO, to_money
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import (
    InvalidPaymentAmountError,
    PaymentAmountExceededError,
    PaymentRequestAmountExceededError,
    PaymentRequestSourceRequiredError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.services.sequence_service import DocumentNumberService
from settlement_modules.payments.config import PaymentConfig
from settlement_modules.payments.models import (
    PaymentExecution,
    PaymentRequest,
    PaymentRequestStatus,
)
from settlement_modules.payments.orm import PaymentRequestModel
from settlement_modules.payments.workflows import PAYMENT_REQUEST_WORKFLOW
from settlement_modules.statements.models import PurchaseOrderType
from settlement_modules.statements.service import PurchaseOrderRepository
from settlement_modules.verification.config import VerificationConfig
from settlement_modules.verification.models import (
    PaymentMethod,
    PaymentOrderStatus,
    VerificationStatus,
)
from settlement_modules.verification.orm import PaymentOrderModel
from settlement_modules.verification.repositories import Repository, SettlementUnitOfWork
from settlement_modules.verification.service import VerificationService

logger = get_logger("modules.payments.service")


class PaymentRequestRepository(Repository[PaymentRequestModel]):
    model = PaymentRequestModel
    entity_type = "PaymentRequest"


class PaymentService:
    """
    Payment requests and payment execution.

    Transaction boundary: every public mutating method commits on success
    and rolls back on failure, including the nested auto-verification.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: PaymentConfig | None = None,
        verification_config: VerificationConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or PaymentConfig.with_defaults()
        self._uow = SettlementUnitOfWork(session)
        self._requests = PaymentRequestRepository(session)
        self._purchase_orders = PurchaseOrderRepository(session)
        self._numbers = DocumentNumberService(session, clock=self._clock)
        self._verification = VerificationService(
            session,
            clock=self._clock,
            config=verification_config,
            auto_commit=False,
        )

    # =========================================================================
    # Payment requests
    # =========================================================================

    def create_request(
        self,
        supplier_id: str,
        supplier_name: str,
        request_amount: Decimal,
        request_reason: str,
        invoice_ids: Sequence[UUID] = (),
        payable_ids: Sequence[UUID] = (),
        purchase_order_id: UUID | None = None,
        created_by: str = "system",
    ) -> PaymentRequest:
        """
        Create a draft payment request.

        A prepaid request names a prepaid purchase order and may ask for at
        most its unpaid amount; otherwise the request must link invoices and
        may ask for at most their total.
        """
        amount = to_money(request_amount)
        logger.info("payment_request_creation_started", extra={
            "supplier_id": supplier_id,
            "request_amount": str(amount),
            "invoice_count": len(invoice_ids),
            "prepaid": purchase_order_id is not None,
        })

        with self._uow.transaction("create_payment_request"):
            if not invoice_ids and purchase_order_id is None:
                raise PaymentRequestSourceRequiredError()
            if amount <= ZERO:
                raise InvalidPaymentAmountError(amount)

            if purchase_order_id is not None:
                order = self._purchase_orders.require(purchase_order_id)
                if order.order_type != PurchaseOrderType.PREPAID.value:
                    raise PaymentRequestSourceRequiredError(
                        f"purchase order {order.order_no} is not a prepaid order",
                    )
                if amount > order.unpaid_amount:
                    raise PaymentRequestAmountExceededError(
                        amount, order.unpaid_amount, "purchase order unpaid",
                    )
            else:
                invoices = self._uow.invoices.require_many(dict.fromkeys(invoice_ids))
                invoice_total = sum((i.total_amount for i in invoices), ZERO)
                if amount > invoice_total:
                    raise PaymentRequestAmountExceededError(
                        amount, invoice_total, "linked invoice total",
                    )

            self._uow.payables.require_many(dict.fromkeys(payable_ids))

            request = PaymentRequestModel(
                request_no=self._numbers.next_number(self._config.request_prefix),
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                purchase_order_id=purchase_order_id,
                request_amount=amount,
                paid_amount=ZERO,
                unpaid_amount=amount,
                request_reason=request_reason,
                status=PAYMENT_REQUEST_WORKFLOW.initial_state,
                created_by=created_by,
            )
            request.invoice_ids = list(dict.fromkeys(invoice_ids))
            request.payable_ids = list(dict.fromkeys(payable_ids))
            self._requests.save(request)

        logger.info("payment_request_created", extra={
            "request_no": request.request_no,
            "request_id": str(request.id),
        })
        return request.to_dto()

    def submit_request(self, request_id: UUID, submitted_by: str = "system") -> PaymentRequest:
        with self._uow.transaction("submit_payment_request"):
            request = self._requests.require(request_id)
            transition = PAYMENT_REQUEST_WORKFLOW.require(
                request.status, "submit", "PaymentRequest", request_id,
            )
            request.status = transition.to_state
            request.submitted_at = self._clock.now()
            request.submitted_by = submitted_by
            request.updated_by = submitted_by

        logger.info("payment_request_submitted", extra={"request_no": request.request_no})
        return request.to_dto()

    def approve_request(
        self,
        request_id: UUID,
        approved: bool,
        approved_by: str = "system",
        remarks: str | None = None,
    ) -> PaymentRequest:
        """Approve (``approved=True``) or reject a pending request."""
        action = "approve" if approved else "reject"
        with self._uow.transaction("approve_payment_request"):
            request = self._requests.require(request_id)
            transition = PAYMENT_REQUEST_WORKFLOW.require(
                request.status, action, "PaymentRequest", request_id,
            )
            request.status = transition.to_state
            request.approved_at = self._clock.now()
            request.approved_by = approved_by
            request.approval_remarks = remarks
            request.updated_by = approved_by

        logger.info("payment_request_decided", extra={
            "request_no": request.request_no,
            "decision": request.status,
        })
        return request.to_dto()

    # =========================================================================
    # Payment execution
    # =========================================================================

    def pay(
        self,
        request_id: UUID,
        payment_amount: Decimal,
        payment_method: PaymentMethod | None = None,
        payment_date: date | None = None,
        payable_id: UUID | None = None,
        bank_account: str | None = None,
        bank_name: str | None = None,
        transaction_no: str | None = None,
        remarks: str | None = None,
        paid_by: str = "system",
    ) -> PaymentExecution:
        """
        Pay an approved request.

        The payment is booked against ``payable_id`` or, when omitted, the
        request's first payable.  When the request links invoices and names a
        payable, the new payment order is auto-verified.

        Raises:
            InvalidTransitionError: request not approved.
            InvalidPaymentAmountError: amount <= 0.
            PaymentAmountExceededError: amount above the request's unpaid amount.
            NotFoundError: ``payable_id`` names no payable.
        """
        amount = to_money(payment_amount)

        with LogContext.bind(actor_id=paid_by):
            logger.info("payment_started", extra={
                "request_id": str(request_id),
                "payment_amount": str(amount),
            })
            with self._uow.transaction("pay"):
                request = self._requests.require(request_id)
                PAYMENT_REQUEST_WORKFLOW.require(
                    request.status, "pay", "PaymentRequest", request_id,
                )
                if amount <= ZERO:
                    raise InvalidPaymentAmountError(amount)
                if amount > request.unpaid_amount:
                    raise PaymentAmountExceededError(amount, request.unpaid_amount)

                target_payable_id = payable_id or (
                    request.payable_ids[0] if request.payable_ids else None
                )
                payable = self._uow.payables.require(target_payable_id) if target_payable_id else None

                now = self._clock.now()
                order_no = self._numbers.next_number(self._config.order_prefix)
                method = payment_method.value if payment_method else self._config.default_payment_method
                order = PaymentOrderModel(
                    order_no=order_no,
                    supplier_id=request.supplier_id,
                    supplier_name=request.supplier_name,
                    payment_amount=amount,
                    payment_method=method,
                    payment_date=payment_date or now.date(),
                    status=PaymentOrderStatus.COMPLETED.value,
                    verified_amount=ZERO,
                    unverified_amount=amount,
                    verification_status=VerificationStatus.UNVERIFIED.value,
                    request_id=request.id,
                    payable_id=target_payable_id,
                    transaction_no=transaction_no or (
                        f"{self._config.transaction_prefix}{now:%Y%m%d%H%M%S}{order_no[-4:]}"
                    ),
                    bank_account=bank_account,
                    bank_name=bank_name,
                    remarks=remarks,
                    created_by=paid_by,
                )
                self._uow.payment_orders.save(order)

                request.paid_amount = request.paid_amount + amount
                request.unpaid_amount = request.request_amount - request.paid_amount
                if request.unpaid_amount <= ZERO:
                    request.status = PAYMENT_REQUEST_WORKFLOW.require(
                        request.status, "settle", "PaymentRequest", request_id,
                    ).to_state
                request.updated_by = paid_by

                if request.purchase_order_id is not None:
                    purchase_order = self._purchase_orders.get(request.purchase_order_id)
                    if purchase_order is not None:
                        purchase_order.record_payment(amount)
                        purchase_order.updated_by = paid_by

                if payable is not None:
                    payable.record_payment(amount)
                    payable.updated_by = paid_by

                verification = None
                if request.invoice_ids and payable is not None:
                    verification = self._verification.auto_verify_on_payment(
                        order.id, request.invoice_ids, payable.id,
                    )

            logger.info("payment_committed", extra={
                "order_no": order.order_no,
                "request_no": request.request_no,
                "request_status": request.status,
                "auto_verified": verification is not None,
            })
            return PaymentExecution(
                request=request.to_dto(),
                payment_order=order.to_dto(),
                verification=verification,
            )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_request(self, request_id: UUID) -> PaymentRequest:
        return self._requests.require(request_id).to_dto()

    def list_requests(self, status: PaymentRequestStatus | None = None) -> list[PaymentRequest]:
        if status is None:
            rows = self._requests.list()
        else:
            rows = self._requests.list(status=status.value)
        return [r.to_dto() for r in rows]
