"""
Invoice Service (``settlement_modules.invoices.service``).

Responsibility
--------------
Invoice intake with duplicate detection and payable allocation, the
authenticity check, business verification (usable / unusable), the check
of an invoice against the payables it is allocated to, and the guarded
deletion of unusable, unverified invoices.

Architecture position
---------------------
**Modules layer** -- service facade over ``SettlementUnitOfWork``.

Invariants enforced
-------------------
* ``(invoice_code, invoice_no)`` is registered once.
* A payable's ``invoiced_amount`` never exceeds its ``payable_amount``
  through allocation, and deleting an invoice gives its allocations back.
* An invoice with ``verified_amount > 0`` is never marked unusable or
  deleted.

Transaction boundary: each public mutating method commits on success and
rolls back on failure.
"""

from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from settlement_kernel.db.types import ZERO, to_money
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import (
    AuthenticityAlreadyCheckedError,
    AuthenticityNotVerifiedError,
    AuthenticityServiceUnavailableError,
    DuplicateInvoiceError,
    InvoiceAllocationExceededError,
    InvoiceInUseError,
    InvoiceNotAllocatedError,
    UnusableReasonRequiredError,
)
from settlement_kernel.logging_config import get_logger
from settlement_modules.invoices.authenticity import (
    AuthenticityOracle,
    RandomAuthenticityOracle,
)
from settlement_modules.invoices.config import InvoiceConfig
from settlement_modules.invoices.models import (
    AuthenticityResult,
    InvoicePayableRelation,
    PayableAllocation,
    RelationCheck,
)
from settlement_modules.invoices.orm import InvoicePayableRelationModel
from settlement_modules.invoices.workflows import INVOICE_AUTHENTICITY_WORKFLOW
from settlement_modules.verification.models import (
    AuthenticityStatus,
    InputMethod,
    Invoice,
    InvoiceType,
    VerificationStatus,
)
from settlement_modules.verification.orm import InvoiceModel
from settlement_modules.verification.repositories import SettlementUnitOfWork

logger = get_logger("modules.invoices.service")


class InvoiceService:
    """
    Invoice intake and checking.

    The authenticity oracle is injectable; the default simulates the tax
    authority with ``RandomAuthenticityOracle``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: InvoiceConfig | None = None,
        oracle: AuthenticityOracle | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or InvoiceConfig.with_defaults()
        self._oracle = oracle or RandomAuthenticityOracle(config=self._config)
        self._uow = SettlementUnitOfWork(session)

    # =========================================================================
    # Intake
    # =========================================================================

    def register_invoice(
        self,
        invoice_no: str,
        invoice_code: str,
        supplier_id: str,
        supplier_name: str,
        amount: Decimal,
        tax_amount: Decimal = ZERO,
        invoice_date: date | None = None,
        received_date: date | None = None,
        invoice_type: InvoiceType = InvoiceType.VAT_SPECIAL,
        input_method: InputMethod = InputMethod.MANUAL,
        seller_name: str | None = None,
        seller_tax_no: str | None = None,
        total_amount: Decimal | None = None,
        payable_allocations: Sequence[PayableAllocation] = (),
        remarks: str | None = None,
        actor: str = "system",
    ) -> Invoice:
        """
        Register a received invoice.

        ``total_amount`` defaults to ``amount + tax_amount``.  Allocations
        naming an unknown payable are skipped; an allocation above the
        payable's remaining invoiceable amount fails the whole intake.

        Raises:
            DuplicateInvoiceError: code and number already registered.
            InvoiceAllocationExceededError: allocation too large.
        """
        logger.info("invoice_registration_started", extra={
            "invoice_code": invoice_code,
            "invoice_no": invoice_no,
            "supplier_id": supplier_id,
        })
        with self._uow.transaction("register_invoice"):
            existing = self._uow.invoices.by_code_and_no(invoice_code, invoice_no)
            if existing is not None:
                logger.warning("invoice_duplicate_rejected", extra={
                    "invoice_code": invoice_code,
                    "invoice_no": invoice_no,
                    "existing_id": str(existing.id),
                })
                raise DuplicateInvoiceError(
                    invoice_code, invoice_no, existing.created_at.date().isoformat(),
                )

            amount = to_money(amount)
            tax_amount = to_money(tax_amount)
            total = to_money(total_amount) if total_amount is not None else amount + tax_amount
            today = self._clock.today()

            allocations = self._check_allocations(payable_allocations)

            invoice = InvoiceModel(
                invoice_no=invoice_no,
                invoice_code=invoice_code,
                invoice_type=invoice_type.value,
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                amount=amount,
                tax_amount=tax_amount,
                total_amount=total,
                invoice_date=invoice_date or today,
                received_date=received_date or today,
                input_method=input_method.value,
                seller_name=seller_name or supplier_name,
                seller_tax_no=seller_tax_no,
                authenticity_status=AuthenticityStatus.PENDING.value,
                usable=True,
                verified_amount=ZERO,
                unverified_amount=total,
                verification_status=VerificationStatus.UNVERIFIED.value,
                remarks=remarks,
                created_by=actor,
            )
            self._uow.invoices.save(invoice)

            for payable, allocated in allocations:
                payable.invoiced_amount = payable.invoiced_amount + allocated
                payable.updated_by = actor
                self._session.add(InvoicePayableRelationModel(
                    invoice_id=invoice.id,
                    payable_id=payable.id,
                    allocated_amount=allocated,
                    created_by=actor,
                ))
            self._session.flush()

        logger.info("invoice_registered", extra={
            "invoice_id": str(invoice.id),
            "total_amount": str(total),
            "allocation_count": len(allocations),
        })
        return invoice.to_dto()

    def _check_allocations(self, payable_allocations: Sequence[PayableAllocation]):
        """Resolve and bound-check allocations before anything is written."""
        requested: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        payables = {}
        for allocation in payable_allocations:
            payable = self._uow.payables.get(allocation.payable_id)
            if payable is None:
                logger.warning("invoice_allocation_payable_missing", extra={
                    "payable_id": str(allocation.payable_id),
                })
                continue
            allocated = to_money(allocation.amount)
            requested[payable.id] += allocated
            remaining = payable.payable_amount - payable.invoiced_amount
            if requested[payable.id] > remaining:
                raise InvoiceAllocationExceededError(
                    payable.payable_no, requested[payable.id], remaining,
                )
            payables[payable.id] = payable
        # One relation per payable; repeated allocations are merged.
        return [(payables[pid], total) for pid, total in requested.items()]

    # =========================================================================
    # Checking
    # =========================================================================

    def authenticate(self, invoice_id: UUID, actor: str = "system") -> Invoice:
        """
        Run the authenticity check once.

        A failed check marks the invoice unusable with the oracle's reason.

        Raises:
            AuthenticityAlreadyCheckedError: not pending any more.
            AuthenticityServiceUnavailableError: oracle unavailable; the
                invoice stays pending and the check may be retried.
        """
        with self._uow.transaction("authenticate_invoice"):
            invoice = self._uow.invoices.require(invoice_id)
            if invoice.authenticity_status != AuthenticityStatus.PENDING.value:
                raise AuthenticityAlreadyCheckedError(invoice_id, invoice.authenticity_status)

            outcome = self._oracle.check(invoice.to_dto())
            if not outcome.is_available:
                logger.warning("invoice_authenticity_unavailable", extra={
                    "invoice_id": str(invoice_id),
                })
                raise AuthenticityServiceUnavailableError(invoice_id)

            if outcome.result is AuthenticityResult.VERIFIED:
                transition = INVOICE_AUTHENTICITY_WORKFLOW.require(
                    invoice.authenticity_status, "authenticate_pass", "Invoice", invoice_id,
                )
            else:
                transition = INVOICE_AUTHENTICITY_WORKFLOW.require(
                    invoice.authenticity_status, "authenticate_fail", "Invoice", invoice_id,
                )
                invoice.usable = False
                invoice.unusable_reason = outcome.reason
                invoice.authenticity_failure_reason = outcome.reason

            invoice.authenticity_status = transition.to_state
            invoice.authenticity_checked_at = self._clock.now()
            invoice.updated_by = actor

        logger.info("invoice_authenticated", extra={
            "invoice_id": str(invoice_id),
            "authenticity_status": invoice.authenticity_status,
            "reason": outcome.reason,
        })
        return invoice.to_dto()

    def business_verify(
        self,
        invoice_id: UUID,
        usable: bool,
        unusable_reason: str | None = None,
        verified_by: str = "system",
    ) -> Invoice:
        """
        Record the business decision on whether the invoice can be used.

        Raises:
            AuthenticityNotVerifiedError: authenticity not passed.
            UnusableReasonRequiredError: unusable without a proper reason.
            InvoiceInUseError: unusable requested for a verified invoice.
        """
        with self._uow.transaction("business_verify_invoice"):
            invoice = self._uow.invoices.require(invoice_id)
            if invoice.authenticity_status != AuthenticityStatus.VERIFIED.value:
                raise AuthenticityNotVerifiedError(invoice_id, invoice.authenticity_status)

            if not usable:
                reason = (unusable_reason or "").strip()
                if len(reason) < self._config.min_unusable_reason_length:
                    raise UnusableReasonRequiredError(self._config.min_unusable_reason_length)
                if invoice.verified_amount > ZERO:
                    raise InvoiceInUseError(
                        invoice_id, "verified invoices cannot be marked unusable",
                    )
                invoice.usable = False
                invoice.unusable_reason = reason
            else:
                invoice.usable = True
                invoice.unusable_reason = None

            invoice.business_verified_by = verified_by
            invoice.business_verified_at = self._clock.now()
            invoice.updated_by = verified_by

        logger.info("invoice_business_verified", extra={
            "invoice_id": str(invoice_id),
            "usable": usable,
        })
        return invoice.to_dto()

    def check_relations(self, invoice_id: UUID, verified_by: str = "system") -> RelationCheck:
        """
        Check the invoice against the payables it is allocated to.

        Every linked payable must belong to the invoice's supplier, and the
        allocations together may not exceed ``total_amount``.  Problems make
        the invoice unusable with the joined reasons, unless it already
        carries verified amounts.

        Raises:
            InvoiceNotAllocatedError: no payable relation exists.
        """
        with self._uow.transaction("check_invoice_relations"):
            invoice = self._uow.invoices.require(invoice_id)
            relations = self._relations_for(invoice_id)
            if not relations:
                raise InvoiceNotAllocatedError(invoice_id)

            payables = self._uow.payables.get_many(r.payable_id for r in relations)
            problems = [
                f"invoice supplier {invoice.supplier_id} does not match "
                f"payable {payable.payable_no} supplier {payable.supplier_id}"
                for payable in (payables.get(r.payable_id) for r in relations)
                if payable is not None and payable.supplier_id != invoice.supplier_id
            ]
            allocated = sum((r.allocated_amount for r in relations), ZERO)
            if allocated > invoice.total_amount:
                problems.append(
                    f"allocated {allocated} exceeds invoice total {invoice.total_amount}"
                )

            if problems and invoice.verified_amount > ZERO:
                logger.warning("invoice_relation_problems_on_verified_invoice", extra={
                    "invoice_id": str(invoice_id),
                    "problem_count": len(problems),
                })
            elif problems:
                invoice.usable = False
                invoice.unusable_reason = "; ".join(problems)

            invoice.business_verified_by = verified_by
            invoice.business_verified_at = self._clock.now()
            invoice.updated_by = verified_by

        logger.info("invoice_relations_checked", extra={
            "invoice_id": str(invoice_id),
            "relation_count": len(relations),
            "problem_count": len(problems),
        })
        return RelationCheck(invoice=invoice.to_dto(), problems=tuple(problems))

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_invoice(self, invoice_id: UUID, actor: str = "system") -> None:
        """
        Delete an unusable, unverified invoice and release its allocations.

        Raises:
            InvoiceInUseError: the invoice is verified or still usable.
        """
        with self._uow.transaction("delete_invoice"):
            invoice = self._uow.invoices.require(invoice_id)
            if invoice.verified_amount > ZERO:
                raise InvoiceInUseError(invoice_id, "verified invoices cannot be deleted")
            if invoice.usable:
                raise InvoiceInUseError(
                    invoice_id, "usable invoices cannot be deleted; mark it unusable first",
                )

            relations = self._relations_for(invoice_id)
            payables = self._uow.payables.get_many(r.payable_id for r in relations)
            for relation in relations:
                payable = payables.get(relation.payable_id)
                if payable is not None:
                    payable.invoiced_amount = payable.invoiced_amount - relation.allocated_amount
                    payable.updated_by = actor
                self._session.delete(relation)
            self._session.flush()
            self._session.delete(invoice)

        logger.info("invoice_deleted", extra={
            "invoice_id": str(invoice_id),
            "released_relations": len(relations),
        })

    # =========================================================================
    # Queries
    # =========================================================================

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        return self._uow.invoices.require(invoice_id).to_dto()

    def list_relations(self, invoice_id: UUID) -> list[InvoicePayableRelation]:
        return [r.to_dto() for r in self._relations_for(invoice_id)]

    def _relations_for(self, invoice_id: UUID) -> list[InvoicePayableRelationModel]:
        stmt = select(InvoicePayableRelationModel).where(
            InvoicePayableRelationModel.invoice_id == invoice_id,
        )
        return list(self._session.execute(stmt).scalars().all())
