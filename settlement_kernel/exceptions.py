"""
Typed Exception Hierarchy for the Settlement Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Verification and reversal failures are reported back to callers as data:
a batch run collects them per payable, and a cross-month reversal uses its
error as the first half of a two-phase protocol.  Parsing message strings
for that is fragile, so every failure here is:

  1. A TYPED exception class (catch by type, not message)
  2. Tagged with a CODE class attribute (machine-readable, API-safe)
  3. Carrying structured DATA as attributes (cap, month, ids)

Example:
    try:
        service.reverse(...)
    except CrossMonthApprovalRequiredError as e:
        ask_for_approval(e.verification_month)
        service.reverse(..., approval_confirmed=True)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SettlementError (base)
    |
    +-- NotFoundError
    |
    +-- VerificationError
    |   +-- EmptySelectionError
    |   +-- InvalidAmountError
    |   +-- AmountExceedsCapError
    |
    +-- ReversalError
    |   +-- MissingReasonError
    |   +-- ReasonTooShortError
    |   +-- AlreadyReversedError
    |   +-- CrossMonthApprovalRequiredError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |
    +-- InvoiceError
    |   +-- DuplicateInvoiceError
    |   +-- AuthenticityAlreadyCheckedError
    |   +-- AuthenticityServiceUnavailableError
    |   +-- AuthenticityNotVerifiedError
    |   +-- UnusableReasonRequiredError
    |   +-- InvoiceInUseError
    |   +-- InvoiceAllocationExceededError
    |
    +-- PaymentError
    |   +-- PaymentRequestSourceRequiredError
    |   +-- PaymentRequestAmountExceededError
    |   +-- PaymentAmountExceededError
    |   +-- InvalidPaymentAmountError
    |
    +-- StatementError
        +-- SupplierNotConfirmedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                            | When Raised
----------------|---------------------------------|-------------------------------------
Lookup          | NOT_FOUND                       | Entity missing / not on payable
----------------|---------------------------------|-------------------------------------
Verification    | EMPTY_SELECTION                 | No payment orders or no invoices
                | INVALID_AMOUNT                  | Amount <= 0
                | AMOUNT_EXCEEDS_CAP              | Amount above max verifiable
----------------|---------------------------------|-------------------------------------
Reversal        | MISSING_REASON                  | Reason type absent or unknown
                | REASON_TOO_SHORT                | Reason detail below minimum length
                | ALREADY_REVERSED                | Record is not completed
                | CROSS_MONTH_APPROVAL_REQUIRED   | Verified in another month
----------------|---------------------------------|-------------------------------------
Workflow        | INVALID_TRANSITION              | Action not allowed from state
----------------|---------------------------------|-------------------------------------
Invoice         | DUPLICATE_INVOICE               | Same code + number already on file
                | AUTHENTICITY_ALREADY_CHECKED    | Authenticity not pending
                | AUTHENTICITY_UNAVAILABLE        | Oracle unavailable, retry later
                | AUTHENTICITY_NOT_VERIFIED       | Business check before authenticity
                | UNUSABLE_REASON_REQUIRED        | Unusable without adequate reason
                | INVOICE_IN_USE                  | Verified or usable invoice guard
                | INVOICE_ALLOCATION_EXCEEDED     | Allocation above invoiceable amount
----------------|---------------------------------|-------------------------------------
Payment         | PAYMENT_REQUEST_SOURCE_REQUIRED | No invoices and no prepaid PO
                | PAYMENT_REQUEST_AMOUNT_EXCEEDED | Request above its source amount
                | PAYMENT_AMOUNT_EXCEEDED         | Payment above request unpaid
                | INVALID_PAYMENT_AMOUNT          | Request or payment amount <= 0
----------------|---------------------------------|-------------------------------------
Statement       | SUPPLIER_NOT_CONFIRMED          | Buyer confirm before supplier
"""

from decimal import Decimal
from typing import Any


class SettlementError(Exception):
    """
    Base exception for all settlement errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SETTLEMENT_ERROR"

    def to_dict(self) -> dict[str, Any]:
        """Structured form: code, message, and every public attribute."""
        data: dict[str, Any] = {"code": self.code, "message": str(self)}
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            data[key] = str(value) if isinstance(value, Decimal) else value
        return data


class NotFoundError(SettlementError):
    """A referenced entity does not exist (or is not where it was expected)."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any, detail: str | None = None):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        message = f"{entity_type} {entity_id} not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Verification-related exceptions


class VerificationError(SettlementError):
    """Base exception for verification errors."""

    code: str = "VERIFICATION_ERROR"


class EmptySelectionError(VerificationError):
    """No payment orders or no invoices were selected."""

    code: str = "EMPTY_SELECTION"

    def __init__(self, side: str):
        self.side = side
        super().__init__(f"Select at least one {side}")


class InvalidAmountError(VerificationError):
    """Verification amount must be positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(
            f"Verification amount must be a finite number greater than 0, got {amount!s}"
        )


class AmountExceedsCapError(VerificationError):
    """Requested amount is above the maximum verifiable amount."""

    code: str = "AMOUNT_EXCEEDS_CAP"

    def __init__(self, requested: Decimal, cap: Decimal):
        self.requested = requested
        self.cap = cap
        super().__init__(
            f"Verification amount cannot exceed {cap:.2f} "
            f"(the smallest of payable, payment order and invoice unverified "
            f"amounts); requested {requested}"
        )


# Reversal-related exceptions


class ReversalError(SettlementError):
    """Base exception for reversal errors."""

    code: str = "REVERSAL_ERROR"


class MissingReasonError(ReversalError):
    """Reversal reason type is missing or not recognised."""

    code: str = "MISSING_REASON"

    def __init__(self, reason_type: str | None, allowed: tuple[str, ...]):
        self.reason_type = reason_type
        self.allowed = list(allowed)
        super().__init__(
            f"Reversal reason type is required and must be one of "
            f"{', '.join(allowed)}; got {reason_type!r}"
        )


class ReasonTooShortError(ReversalError):
    """Reversal reason detail is shorter than the configured minimum."""

    code: str = "REASON_TOO_SHORT"

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Reversal reason detail needs at least {minimum} characters, got {length}"
        )


class AlreadyReversedError(ReversalError):
    """Verification record has already been reversed."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, verification_id: Any):
        self.verification_id = str(verification_id)
        super().__init__(f"Verification {verification_id} has already been reversed")


class CrossMonthApprovalRequiredError(ReversalError):
    """
    The verification was made in another month and the caller has not
    confirmed approval.  Re-invoke with ``approval_confirmed=True``.
    """

    code: str = "CROSS_MONTH_APPROVAL_REQUIRED"

    def __init__(self, verification_id: Any, verification_month: str, current_month: str):
        self.verification_id = str(verification_id)
        self.verification_month = verification_month
        self.current_month = current_month
        self.require_approval = True
        self.cross_month = True
        super().__init__(
            f"Verification {verification_id} was made in {verification_month}; "
            f"reversing it in {current_month} requires approval"
        )


# Workflow-related exceptions


class WorkflowError(SettlementError):
    """Base exception for document lifecycle errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Action is not allowed from the document's current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id: Any, current_state: str, action: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state {current_state}"
        )


# Invoice-related exceptions


class InvoiceError(SettlementError):
    """Base exception for invoice lifecycle errors."""

    code: str = "INVOICE_ERROR"


class DuplicateInvoiceError(InvoiceError):
    """An invoice with the same code and number is already on file."""

    code: str = "DUPLICATE_INVOICE"

    def __init__(self, invoice_code: str, invoice_no: str, registered_on: str):
        self.invoice_code = invoice_code
        self.invoice_no = invoice_no
        self.registered_on = registered_on
        super().__init__(
            f"Invoice {invoice_code}/{invoice_no} is a duplicate, "
            f"registered on {registered_on}"
        )


class AuthenticityAlreadyCheckedError(InvoiceError):
    """Authenticity check was already performed."""

    code: str = "AUTHENTICITY_ALREADY_CHECKED"

    def __init__(self, invoice_id: Any, status: str):
        self.invoice_id = str(invoice_id)
        self.status = status
        super().__init__(f"Invoice {invoice_id} authenticity already checked: {status}")


class AuthenticityServiceUnavailableError(InvoiceError):
    """The authenticity oracle is unavailable; the check may be retried."""

    code: str = "AUTHENTICITY_UNAVAILABLE"

    def __init__(self, invoice_id: Any):
        self.invoice_id = str(invoice_id)
        super().__init__("Authenticity service is temporarily unavailable, retry later")


class AuthenticityNotVerifiedError(InvoiceError):
    """Business verification requires a verified authenticity check."""

    code: str = "AUTHENTICITY_NOT_VERIFIED"

    def __init__(self, invoice_id: Any, status: str):
        self.invoice_id = str(invoice_id)
        self.status = status
        super().__init__(
            f"Invoice {invoice_id} must pass the authenticity check first (status: {status})"
        )


class UnusableReasonRequiredError(InvoiceError):
    """Marking an invoice unusable needs an adequate reason."""

    code: str = "UNUSABLE_REASON_REQUIRED"

    def __init__(self, minimum: int):
        self.minimum = minimum
        super().__init__(f"An unusable reason of at least {minimum} characters is required")


class InvoiceInUseError(InvoiceError):
    """The invoice is verified or still usable and cannot be changed that way."""

    code: str = "INVOICE_IN_USE"

    def __init__(self, invoice_id: Any, reason: str):
        self.invoice_id = str(invoice_id)
        self.reason = reason
        super().__init__(f"Invoice {invoice_id}: {reason}")


class InvoiceAllocationExceededError(InvoiceError):
    """Allocation to a payable exceeds its remaining invoiceable amount."""

    code: str = "INVOICE_ALLOCATION_EXCEEDED"

    def __init__(self, payable_no: str, requested: Decimal, remaining: Decimal):
        self.payable_no = payable_no
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Allocation {requested} exceeds remaining invoiceable amount "
            f"{remaining:.2f} of payable {payable_no}"
        )


class InvoiceNotAllocatedError(InvoiceError):
    """Relation check requested for an invoice linked to no payable."""

    code: str = "INVOICE_NOT_ALLOCATED"

    def __init__(self, invoice_id: Any):
        self.invoice_id = str(invoice_id)
        super().__init__(f"Invoice {invoice_id} is not allocated to any payable")


# Payment-related exceptions


class PaymentError(SettlementError):
    """Base exception for payment request and execution errors."""

    code: str = "PAYMENT_ERROR"


class PaymentRequestSourceRequiredError(PaymentError):
    """A payment request must link invoices or a prepaid purchase order."""

    code: str = "PAYMENT_REQUEST_SOURCE_REQUIRED"

    def __init__(self, detail: str = "link at least one invoice or a prepaid purchase order"):
        self.detail = detail
        super().__init__(f"Payment request source invalid: {detail}")


class PaymentRequestAmountExceededError(PaymentError):
    """Requested amount exceeds what its source allows."""

    code: str = "PAYMENT_REQUEST_AMOUNT_EXCEEDED"

    def __init__(self, requested: Decimal, limit: Decimal, source: str):
        self.requested = requested
        self.limit = limit
        self.source = source
        super().__init__(
            f"Request amount {requested} exceeds {source} limit {limit:.2f}"
        )


class PaymentAmountExceededError(PaymentError):
    """Payment amount exceeds the request's unpaid amount."""

    code: str = "PAYMENT_AMOUNT_EXCEEDED"

    def __init__(self, requested: Decimal, unpaid: Decimal):
        self.requested = requested
        self.unpaid = unpaid
        super().__init__(f"Payment amount {requested} exceeds unpaid amount {unpaid:.2f}")


class InvalidPaymentAmountError(PaymentError):
    """Request or payment amount must be positive."""

    code: str = "INVALID_PAYMENT_AMOUNT"

    def __init__(self, amount: Decimal):
        self.amount = amount
        super().__init__(f"Payment amount must be greater than 0, got {amount}")


# Statement-related exceptions


class StatementError(SettlementError):
    """Base exception for supplier statement errors."""

    code: str = "STATEMENT_ERROR"


class SupplierNotConfirmedError(StatementError):
    """Buyer confirmation attempted before the supplier confirmed."""

    code: str = "SUPPLIER_NOT_CONFIRMED"

    def __init__(self, statement_id: Any):
        self.statement_id = str(statement_id)
        super().__init__(f"Statement {statement_id} is waiting for supplier confirmation")
