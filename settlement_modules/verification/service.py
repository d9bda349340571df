"""
Verification Service (``settlement_modules.verification.service``).

Responsibility
--------------
Orchestrates three-way verification between accounts payable, payment
orders and invoices: manual verification, batch verification, reversal,
the two auto-verification triggers (post-payment and prepaid settlement)
and the read-side previews used when building a verification.

Architecture position
---------------------
**Modules layer** -- service facade.  Allocation arithmetic is delegated to
the pure ``AllocationCalculator``; all reads and writes go through one
``SettlementUnitOfWork`` so that a verification, its item updates and its
record land in a single transaction.

Invariants enforced
-------------------
* Validate-then-mutate: every error is raised before the first balance
  changes.
* Conservation: each side's detail rows sum to exactly what was added to
  that side's items, and reversal subtracts exactly those rows.
* Bounds: ``Verifiable.apply_verified`` refuses to leave ``[0, total]``.
* A record moves ``completed -> reversed`` once, gated by
  ``VERIFICATION_RECORD_WORKFLOW``.

Failure modes
-------------
* ``EmptySelectionError``, ``NotFoundError``, ``InvalidAmountError``,
  ``AmountExceedsCapError`` from ``verify`` (and per item in batches).
* ``MissingReasonError``, ``ReasonTooShortError``, ``AlreadyReversedError``,
  ``CrossMonthApprovalRequiredError`` from ``reverse``.
* Auto-verification never raises for missing or exhausted inputs; it
  returns ``None`` / ``[]``.

Transaction boundary: with ``auto_commit=True`` (default) every public
mutating method commits on success and rolls back on failure.  Payment and
statement services construct this service with ``auto_commit=False`` so
auto-verification shares their transaction.
"""

from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from settlement_engines.allocation import (
    AllocationCalculator,
    AllocationDetail,
    AllocationResult,
    ManualAllocation,
)
from settlement_kernel.db.types import ZERO, to_money
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import (
    AlreadyReversedError,
    AmountExceedsCapError,
    CrossMonthApprovalRequiredError,
    EmptySelectionError,
    InvalidAmountError,
    MissingReasonError,
    NotFoundError,
    ReasonTooShortError,
    SettlementError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.services.sequence_service import DocumentNumberService
from settlement_modules.verification.config import VerificationConfig
from settlement_modules.verification.models import (
    AccountsPayable,
    BatchItemResult,
    BatchVerificationResult,
    InvoiceDetail,
    PaymentOrderDetail,
    RecordStatus,
    ReverseReasonType,
    VerificationRecord,
    VerificationType,
    VerifyRequest,
)
from settlement_modules.verification.orm import (
    INVOICE_SIDE,
    PAYMENT_ORDER_SIDE,
    AccountsPayableModel,
    VerificationRecordModel,
)
from settlement_modules.verification.repositories import SettlementUnitOfWork
from settlement_modules.verification.workflows import VERIFICATION_RECORD_WORKFLOW

logger = get_logger("modules.verification.service")


def _unique(ids: Sequence[UUID]) -> tuple[UUID, ...]:
    return tuple(dict.fromkeys(ids))


def _finite_amount(value: Any) -> Decimal:
    """Caller-supplied amount as a finite Decimal; anything else is InvalidAmountError."""
    try:
        amount = to_money(value)
    except (TypeError, InvalidOperation):
        raise InvalidAmountError(value) from None
    if not amount.is_finite():
        raise InvalidAmountError(amount)
    return amount


class VerificationService:
    """
    Three-way verification and reversal.

    Contract
    --------
    * ``verify`` / ``batch_verify`` / ``reverse`` return frozen
      ``VerificationRecord`` snapshots (or a ``BatchVerificationResult``).
    * Amounts are ``Decimal``.  Floats, NaN, infinities and non-numeric
      values raise ``InvalidAmountError``, so a batch reports them per item.

    Non-goals
    ---------
    * Does NOT decide *which* payment orders or invoices belong together;
      callers (UI, payment and statement services) choose them.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: VerificationConfig | None = None,
        auto_commit: bool = True,
        calculator: AllocationCalculator | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or VerificationConfig.with_defaults()
        self._calculator = calculator or AllocationCalculator()
        self._uow = SettlementUnitOfWork(session, auto_commit=auto_commit)
        self._numbers = DocumentNumberService(session, clock=self._clock)

    # =========================================================================
    # Manual verification
    # =========================================================================

    def verify(
        self,
        payable_id: UUID,
        payment_order_ids: Sequence[UUID],
        invoice_ids: Sequence[UUID],
        amount: Decimal,
        payment_order_details: Sequence[PaymentOrderDetail] | None = None,
        invoice_details: Sequence[InvoiceDetail] | None = None,
        verified_by: str | None = None,
        remarks: str | None = None,
    ) -> VerificationRecord:
        """
        Verify a payable against selected payment orders and invoices.

        Manual details are used only when both ``payment_order_details`` and
        ``invoice_details`` are non-empty; otherwise ``amount`` is filled
        into the selected items sequentially in the given order.

        With manual details ``amount`` is only checked against the cap.  The
        recorded amount is the smaller of the two detail totals and the
        payable's unverified amount, which may be larger than ``amount``.
        """
        request = VerifyRequest(
            payable_id=payable_id,
            payment_order_ids=tuple(payment_order_ids),
            invoice_ids=tuple(invoice_ids),
            amount=amount,
            payment_order_details=tuple(payment_order_details or ()),
            invoice_details=tuple(invoice_details or ()),
            remarks=remarks,
        )
        actor = verified_by or self._config.default_verifier

        with LogContext.bind(payable_id=payable_id, actor_id=actor):
            logger.info("verification_started", extra={
                "payment_order_count": len(request.payment_order_ids),
                "invoice_count": len(request.invoice_ids),
                "amount": str(amount),
                "manual_details": request.uses_manual_allocation,
            })
            with self._uow.transaction("verify"):
                record = self._apply_verification(request, actor)
            logger.info("verification_committed", extra={
                "verification_no": record.verification_no,
                "amount": str(record.amount),
            })
            return record.to_dto()

    def _apply_verification(
        self,
        request: VerifyRequest,
        actor: str,
    ) -> VerificationRecordModel:
        """Validate one request completely, then apply it.  Never commits."""
        if not request.payment_order_ids:
            raise EmptySelectionError("payment order")
        if not request.invoice_ids:
            raise EmptySelectionError("invoice")

        po_ids = _unique(request.payment_order_ids)
        inv_ids = _unique(request.invoice_ids)
        orders = {o.id: o for o in self._uow.payment_orders.require_many(po_ids)}
        invoices = {i.id: i for i in self._uow.invoices.require_many(inv_ids)}
        payable = self._uow.payables.require(request.payable_id)

        amount = _finite_amount(request.amount)
        if amount <= ZERO:
            raise InvalidAmountError(amount)

        cap = self._calculator.max_verifiable_amount(
            payable.unverified_amount,
            (o.unverified_amount for o in orders.values()),
            (i.unverified_amount for i in invoices.values()),
        )
        if amount > cap:
            raise AmountExceedsCapError(amount, cap)

        po_available = {o.id: o.unverified_amount for o in orders.values()}
        inv_available = {i.id: i.unverified_amount for i in invoices.values()}

        if request.uses_manual_allocation:
            po_result = self._allocate_manual(
                "PaymentOrder",
                [(d.payment_order_id, d.amount) for d in request.payment_order_details],
                po_available,
            )
            inv_result = self._allocate_manual(
                "Invoice",
                [(d.invoice_id, d.amount) for d in request.invoice_details],
                inv_available,
            )
            effective = self._calculator.effective_amount(
                po_result.total_allocated,
                inv_result.total_allocated,
                payable.unverified_amount,
            )
            if effective <= ZERO:
                raise InvalidAmountError(effective)
        else:
            po_result = self._calculator.allocate_sequential(amount, po_ids, po_available)
            inv_result = self._calculator.allocate_sequential(amount, inv_ids, inv_available)
            effective = amount

        # Validation complete; mutate.
        for line in po_result.touched_lines:
            orders[line.item_id].apply_verified(line.allocated)
            orders[line.item_id].updated_by = actor
        for line in inv_result.touched_lines:
            invoices[line.item_id].apply_verified(line.allocated)
            invoices[line.item_id].updated_by = actor
        payable.apply_verified(effective)
        payable.updated_by = actor

        return self._new_record(
            payable=payable,
            amount=effective,
            payment_order_ids=po_ids,
            invoice_ids=inv_ids,
            payment_order_lines=po_result,
            invoice_lines=inv_result,
            verified_by=actor,
            verification_type=VerificationType.MANUAL,
            remarks=request.remarks,
        )

    def _allocate_manual(
        self,
        entity_type: str,
        details: list[tuple[UUID, Decimal]],
        available: dict[UUID, Decimal],
    ) -> AllocationResult:
        for item_id, _ in details:
            if item_id not in available:
                raise NotFoundError(entity_type, item_id, "not among the selected items")
        strategy = ManualAllocation(details=tuple(
            AllocationDetail(item_id=item_id, amount=_finite_amount(amount))
            for item_id, amount in details
        ))
        return self._calculator.allocate(strategy=strategy, available=available)

    def _new_record(
        self,
        payable: AccountsPayableModel,
        amount: Decimal,
        payment_order_ids: Sequence[UUID],
        invoice_ids: Sequence[UUID],
        payment_order_lines: AllocationResult | None,
        invoice_lines: AllocationResult | None,
        verified_by: str,
        verification_type: VerificationType,
        remarks: str | None,
    ) -> VerificationRecordModel:
        now = self._clock.now()
        record = VerificationRecordModel(
            verification_no=self._numbers.next_number(self._config.verification_prefix),
            payable_id=payable.id,
            amount=amount,
            verification_date=now.date(),
            verified_by=verified_by,
            verified_at=now,
            status=RecordStatus.COMPLETED.value,
            verification_type=verification_type.value,
            remarks=remarks,
            cross_month_approved=False,
            created_by=verified_by,
        )
        record.payment_order_ids = payment_order_ids
        record.invoice_ids = invoice_ids
        if payment_order_lines is not None:
            for line in payment_order_lines.touched_lines:
                record.add_detail(PAYMENT_ORDER_SIDE, line.item_id, line.allocated, verified_by)
        if invoice_lines is not None:
            for line in invoice_lines.touched_lines:
                record.add_detail(INVOICE_SIDE, line.item_id, line.allocated, verified_by)
        return self._uow.verifications.save(record)

    # =========================================================================
    # Batch verification
    # =========================================================================

    def batch_verify(
        self,
        requests: Sequence[VerifyRequest],
        verified_by: str | None = None,
    ) -> BatchVerificationResult:
        """
        Apply ``verify`` rules to each request independently.

        A failing request is reported in the result and never stops the
        batch.  All successful verifications are committed together; if
        none succeed nothing is written.
        """
        actor = verified_by or self._config.default_verifier
        results: list[BatchItemResult] = []

        logger.info("batch_verification_started", extra={
            "request_count": len(requests),
            "actor_id": actor,
        })

        try:
            for request in requests:
                with LogContext.bind(payable_id=request.payable_id):
                    try:
                        if request.remarks is None:
                            request = VerifyRequest(
                                payable_id=request.payable_id,
                                payment_order_ids=request.payment_order_ids,
                                invoice_ids=request.invoice_ids,
                                amount=request.amount,
                                payment_order_details=request.payment_order_details,
                                invoice_details=request.invoice_details,
                                remarks=self._config.batch_remark,
                            )
                        record = self._apply_verification(request, actor)
                    except SettlementError as exc:
                        logger.warning("batch_verification_item_failed", extra={
                            "error_code": exc.code,
                            "error": str(exc),
                        })
                        results.append(BatchItemResult(
                            payable_id=request.payable_id,
                            success=False,
                            error=str(exc),
                            error_code=exc.code,
                        ))
                        continue
                    results.append(BatchItemResult(
                        payable_id=request.payable_id,
                        success=True,
                        verification_no=record.verification_no,
                        verification_id=record.id,
                    ))

            outcome = BatchVerificationResult(results=tuple(results))
            if self._uow.auto_commit:
                if outcome.success_count:
                    self._uow.commit()
                else:
                    self._uow.rollback()
            elif outcome.success_count:
                self._session.flush()
        except Exception:
            if self._uow.auto_commit:
                self._uow.rollback()
            raise

        logger.info("batch_verification_completed", extra={
            "success_count": outcome.success_count,
            "fail_count": outcome.fail_count,
        })
        return outcome

    # =========================================================================
    # Reversal
    # =========================================================================

    def reverse(
        self,
        verification_id: UUID,
        payable_id: UUID,
        reason_type: ReverseReasonType | str | None,
        reason_detail: str | None,
        reversed_by: str | None = None,
        approval_confirmed: bool = False,
    ) -> VerificationRecord:
        """
        Undo a completed verification.

        A record verified in a different month than the current one needs
        ``approval_confirmed=True``; the first call without it raises
        ``CrossMonthApprovalRequiredError`` so the caller can obtain
        approval and call again.
        """
        actor = reversed_by or self._config.default_verifier
        reason_value = (
            reason_type.value if isinstance(reason_type, ReverseReasonType) else reason_type
        )

        with LogContext.bind(
            payable_id=payable_id, verification_id=verification_id, actor_id=actor,
        ):
            logger.info("reversal_started", extra={
                "reason_type": reason_value,
                "approval_confirmed": approval_confirmed,
            })
            with self._uow.transaction("reverse"):
                if reason_value not in self._config.reverse_reason_types:
                    raise MissingReasonError(reason_value, self._config.reverse_reason_types)
                detail_length = len(reason_detail or "")
                if detail_length < self._config.min_reverse_reason_length:
                    raise ReasonTooShortError(
                        detail_length, self._config.min_reverse_reason_length,
                    )

                record = self._uow.verifications.get(verification_id)
                if record is None or record.payable_id != payable_id:
                    raise NotFoundError(
                        "VerificationRecord", verification_id,
                        f"no such verification on payable {payable_id}",
                    )
                if record.status == RecordStatus.REVERSED.value:
                    raise AlreadyReversedError(verification_id)
                VERIFICATION_RECORD_WORKFLOW.require(
                    record.status, "reverse", "VerificationRecord", verification_id,
                )

                verification_month = record.verification_date.strftime("%Y-%m")
                current_month = self._clock.current_month()
                cross_month = verification_month != current_month
                if cross_month and not approval_confirmed:
                    logger.warning("reversal_blocked_cross_month", extra={
                        "verification_month": verification_month,
                        "current_month": current_month,
                    })
                    raise CrossMonthApprovalRequiredError(
                        verification_id, verification_month, current_month,
                    )

                self._release(record, actor)

                record.status = RecordStatus.REVERSED.value
                record.reversed_at = self._clock.now()
                record.reversed_by = actor
                record.reverse_reason_type = reason_value
                record.reverse_reason_detail = reason_detail
                record.cross_month_approved = cross_month
                record.updated_by = actor

            logger.info("reversal_committed", extra={
                "verification_no": record.verification_no,
                "amount": str(record.amount),
                "cross_month": cross_month,
            })
            return record.to_dto()

    def _release(self, record: VerificationRecordModel, actor: str) -> None:
        """Subtract a record's amounts from every item it touched.

        Legacy records without detail rows on a side release the whole
        record amount from that side's first referenced item.
        """
        payable = self._uow.payables.require(record.payable_id)

        po_details = record.details_for(PAYMENT_ORDER_SIDE)
        inv_details = record.details_for(INVOICE_SIDE)
        po_releases = (
            [(d.item_id, d.amount) for d in po_details]
            if po_details else self._legacy_release(record.payment_order_ids, record.amount)
        )
        inv_releases = (
            [(d.item_id, d.amount) for d in inv_details]
            if inv_details else self._legacy_release(record.invoice_ids, record.amount)
        )

        # Resolve every item before touching any balance.
        orders = self._uow.payment_orders.require_many(_unique([i for i, _ in po_releases]))
        invoices = self._uow.invoices.require_many(_unique([i for i, _ in inv_releases]))
        orders_by_id = {o.id: o for o in orders}
        invoices_by_id = {i.id: i for i in invoices}

        payable.release_verified(record.amount)
        payable.updated_by = actor
        for item_id, amount in po_releases:
            orders_by_id[item_id].release_verified(amount)
            orders_by_id[item_id].updated_by = actor
        for item_id, amount in inv_releases:
            invoices_by_id[item_id].release_verified(amount)
            invoices_by_id[item_id].updated_by = actor

    @staticmethod
    def _legacy_release(ids: Sequence[UUID], amount: Decimal) -> list[tuple[UUID, Decimal]]:
        return [(ids[0], amount)] if ids else []

    # =========================================================================
    # Auto-verification
    # =========================================================================

    def auto_verify_on_payment(
        self,
        payment_order_id: UUID,
        invoice_ids: Sequence[UUID],
        payable_id: UUID | None,
    ) -> VerificationRecord | None:
        """
        Verify a freshly executed payment order against its request's invoices.

        ``amount = min(order unverified, sum of linked invoices still
        unverified, payable unverified)``.  Returns ``None`` when there is
        nothing to verify or an input is missing.
        """
        with LogContext.bind(payable_id=payable_id, actor_id=self._config.auto_verifier):
            with self._uow.transaction("auto_verify_on_payment"):
                order = self._uow.payment_orders.get(payment_order_id)
                payable = self._uow.payables.get(payable_id) if payable_id else None
                if order is None or payable is None:
                    logger.warning("auto_verification_skipped", extra={
                        "trigger": "payment",
                        "reason": "payment order or payable not found",
                        "payment_order_id": str(payment_order_id),
                    })
                    return None

                found = self._uow.invoices.get_many(invoice_ids)
                invoices = [
                    found[i] for i in _unique(invoice_ids)
                    if i in found and found[i].unverified_amount > ZERO
                ]
                invoice_total = sum((i.unverified_amount for i in invoices), ZERO)
                amount = min(order.unverified_amount, invoice_total, payable.unverified_amount)
                if amount <= ZERO:
                    logger.info("auto_verification_skipped", extra={
                        "trigger": "payment",
                        "reason": "no eligible amount",
                        "payment_order_id": str(payment_order_id),
                    })
                    return None

                actor = self._config.auto_verifier
                inv_result = self._calculator.allocate_sequential(
                    amount,
                    [i.id for i in invoices],
                    {i.id: i.unverified_amount for i in invoices},
                )
                by_id = {i.id: i for i in invoices}
                for line in inv_result.touched_lines:
                    by_id[line.item_id].apply_verified(line.allocated)
                    by_id[line.item_id].updated_by = actor
                order.apply_verified(amount)
                order.updated_by = actor
                payable.apply_verified(amount)
                payable.updated_by = actor

                po_result = self._calculator.allocate_sequential(
                    amount, [order.id], {order.id: amount},
                )
                record = self._new_record(
                    payable=payable,
                    amount=amount,
                    payment_order_ids=[order.id],
                    invoice_ids=[line.item_id for line in inv_result.touched_lines],
                    payment_order_lines=po_result,
                    invoice_lines=inv_result,
                    verified_by=actor,
                    verification_type=VerificationType.AUTO,
                    remarks=f"payment order {order.order_no} auto verified",
                )

            logger.info("auto_verification_committed", extra={
                "trigger": "payment",
                "verification_no": record.verification_no,
                "amount": str(amount),
            })
            return record.to_dto()

    def auto_verify_on_prepaid_settlement(
        self,
        payable_id: UUID,
        payment_order_ids: Sequence[UUID],
    ) -> list[VerificationRecord]:
        """
        Consume prepaid payment orders against a newly generated payable.

        Orders are consumed in the given order, one record per order, until
        the payable is fully verified.  No invoices are attached.
        """
        actor = self._config.prepaid_auto_verifier
        with LogContext.bind(payable_id=payable_id, actor_id=actor):
            with self._uow.transaction("auto_verify_on_prepaid_settlement"):
                payable = self._uow.payables.get(payable_id)
                if payable is None:
                    logger.warning("auto_verification_skipped", extra={
                        "trigger": "prepaid_settlement",
                        "reason": "payable not found",
                    })
                    return []

                found = self._uow.payment_orders.get_many(payment_order_ids)
                orders = [found[i] for i in _unique(payment_order_ids) if i in found]
                allocation = self._calculator.allocate_sequential(
                    max(payable.unverified_amount, ZERO),
                    [o.id for o in orders],
                    {o.id: o.unverified_amount for o in orders},
                )
                by_id = {o.id: o for o in orders}

                records: list[VerificationRecordModel] = []
                for line in allocation.touched_lines:
                    order = by_id[line.item_id]
                    order.apply_verified(line.allocated)
                    order.updated_by = actor
                    payable.apply_verified(line.allocated)
                    payable.updated_by = actor
                    records.append(self._new_record(
                        payable=payable,
                        amount=line.allocated,
                        payment_order_ids=[order.id],
                        invoice_ids=[],
                        payment_order_lines=self._calculator.allocate_sequential(
                            line.allocated, [order.id], {order.id: line.allocated},
                        ),
                        invoice_lines=None,
                        verified_by=actor,
                        verification_type=VerificationType.AUTO,
                        remarks=f"prepaid payment order {order.order_no} settled against "
                                f"payable {payable.payable_no}",
                    ))

            logger.info("auto_verification_committed", extra={
                "trigger": "prepaid_settlement",
                "record_count": len(records),
                "amount": str(allocation.total_allocated),
            })
            return [r.to_dto() for r in records]

    # =========================================================================
    # Queries
    # =========================================================================

    def get_verification(self, verification_id: UUID) -> VerificationRecord:
        return self._uow.verifications.require(verification_id).to_dto()

    def list_verifications(self, payable_id: UUID | None = None) -> list[VerificationRecord]:
        if payable_id is None:
            rows = self._uow.verifications.list()
        else:
            rows = self._uow.verifications.for_payable(payable_id)
        return [r.to_dto() for r in rows]

    def get_payable(self, payable_id: UUID) -> AccountsPayable:
        return self._uow.payables.require(payable_id).to_dto()

    def max_verifiable_amount(
        self,
        payable_id: UUID,
        payment_order_ids: Sequence[UUID],
        invoice_ids: Sequence[UUID],
    ) -> Decimal:
        """The largest amount ``verify`` would accept for this selection."""
        payable = self._uow.payables.require(payable_id)
        orders = self._uow.payment_orders.require_many(_unique(payment_order_ids))
        invoices = self._uow.invoices.require_many(_unique(invoice_ids))
        return self._calculator.max_verifiable_amount(
            payable.unverified_amount,
            (o.unverified_amount for o in orders),
            (i.unverified_amount for i in invoices),
        )

    def preview_sequential_allocation(
        self,
        amount: Decimal,
        payment_order_ids: Sequence[UUID],
        invoice_ids: Sequence[UUID],
    ) -> tuple[AllocationResult, AllocationResult]:
        """Per-item split ``verify`` would apply without manual details."""
        amount = _finite_amount(amount)
        orders = self._uow.payment_orders.require_many(_unique(payment_order_ids))
        invoices = self._uow.invoices.require_many(_unique(invoice_ids))
        return (
            self._calculator.allocate_sequential(
                amount, [o.id for o in orders], {o.id: o.unverified_amount for o in orders},
            ),
            self._calculator.allocate_sequential(
                amount, [i.id for i in invoices], {i.id: i.unverified_amount for i in invoices},
            ),
        )
