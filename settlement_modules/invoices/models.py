"""
Invoice Domain Models (``settlement_modules.invoices.models``).

Value objects for invoice intake and checking.  The ``Invoice`` snapshot
itself lives in ``settlement_modules.verification.models`` because the
verification ledger owns its balance fields.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from settlement_modules.verification.models import Invoice


@dataclass(frozen=True)
class PayableAllocation:
    """Share of an invoice attributed to one payable at intake."""
    payable_id: UUID
    amount: Decimal

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Allocation amount cannot be negative: {self.amount}")


@dataclass(frozen=True)
class InvoicePayableRelation:
    """Persisted link between an invoice and a payable."""
    id: UUID
    invoice_id: UUID
    payable_id: UUID
    allocated_amount: Decimal
    created_at: datetime | None = None


class AuthenticityResult(Enum):
    UNAVAILABLE = "unavailable"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthenticityOutcome:
    """Answer from an authenticity oracle."""
    result: AuthenticityResult
    reason: str | None = None

    @property
    def is_available(self) -> bool:
        return self.result is not AuthenticityResult.UNAVAILABLE


@dataclass(frozen=True)
class RelationCheck:
    """Outcome of checking an invoice against the payables it is allocated to."""
    invoice: Invoice
    problems: tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.problems
