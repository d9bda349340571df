"""
Module: settlement_engines.allocation
Responsibility:
    Pure allocation arithmetic for three-way verification: the maximum
    verifiable amount across a payable and its selected payment orders and
    invoices, the allocation of an amount across items (manual or
    sequential), and the effective amount when two sides disagree.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Shared by the manual
    verification path, the batch orchestrator and both auto-verification
    triggers so that they all allocate through one code path.

Invariants enforced:
    - Bounds: no line is ever allocated more than the item's unverified
      amount, and no line is negative.
    - Sequential conservation: total allocated == min(target, total available).
    - Manual allocation never redistributes: caller amounts are clamped,
      nothing more.

Failure modes:
    - ValueError on a negative target, or on an allocation that names an
      item the caller did not supply as a candidate.

Usage:
    from settlement_engines.allocation import (
        AllocationCalculator, SequentialAllocation,
    )

    calc = AllocationCalculator()
    result = calc.allocate(
        strategy=SequentialAllocation(ordered_ids=("inv-1", "inv-2")),
        available={"inv-1": Decimal("300"), "inv-2": Decimal("400")},
        amount=Decimal("500"),
    )
    # inv-1 -> 300, inv-2 -> 200
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from settlement_engines.tracer import traced_engine
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")

ZERO = Decimal("0")


class AllocationKind(str, Enum):
    """Which strategy produced an allocation."""

    MANUAL = "manual"
    SEQUENTIAL = "sequential"


@dataclass(frozen=True)
class AllocationDetail:
    """
    An explicit per-item amount supplied by the caller.

    Contract:
        Frozen; ``amount`` may be any Decimal (it is clamped on allocation).
    """

    item_id: Hashable
    amount: Decimal


@dataclass(frozen=True)
class ManualAllocation:
    """Strategy: trust caller-supplied per-item amounts after clamping."""

    details: tuple[AllocationDetail, ...]

    @property
    def kind(self) -> AllocationKind:
        return AllocationKind.MANUAL


@dataclass(frozen=True)
class SequentialAllocation:
    """Strategy: fill items in the given order until the amount runs out."""

    ordered_ids: tuple[Hashable, ...]

    @property
    def kind(self) -> AllocationKind:
        return AllocationKind.SEQUENTIAL


AllocationStrategy = ManualAllocation | SequentialAllocation


@dataclass(frozen=True)
class AllocationLine:
    """
    Result of allocation to a single item.

    Guarantees:
        - ``0 <= allocated <= available``.
        - ``remaining == available - allocated``.
    """

    item_id: Hashable
    available: Decimal
    allocated: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.available - self.allocated

    @property
    def is_fully_allocated(self) -> bool:
        return self.remaining <= ZERO


@dataclass(frozen=True)
class AllocationResult:
    """
    Complete allocation result for one side (payment orders or invoices).

    Guarantees:
        - ``total_allocated`` is the sum of the line amounts.
        - For sequential allocation, lines appear in the requested order and
          items not reached are present with ``allocated == 0``.
    """

    kind: AllocationKind
    lines: tuple[AllocationLine, ...]

    @property
    def total_allocated(self) -> Decimal:
        return sum((line.allocated for line in self.lines), ZERO)

    @property
    def touched_lines(self) -> tuple[AllocationLine, ...]:
        """Lines that actually received an amount."""
        return tuple(line for line in self.lines if line.allocated > ZERO)

    def amount_for(self, item_id: Hashable) -> Decimal:
        """Total allocated to ``item_id`` across all lines."""
        return sum((line.allocated for line in self.lines if line.item_id == item_id), ZERO)


class AllocationCalculator:
    """
    Allocation arithmetic for three-way verification.

    Contract:
        Pure functions.  No I/O, no database access, no clock.
    Non-goals:
        - Does not decide which strategy applies; the verification service
          chooses manual only when both sides carry details.
        - Does not validate that items exist; callers resolve ids first.
    """

    def max_verifiable_amount(
        self,
        payable_unverified: Decimal,
        payment_order_unverified: Iterable[Decimal],
        invoice_unverified: Iterable[Decimal],
    ) -> Decimal:
        """
        The cap on a single verification.

        ``min(payable unverified, sum of payment order unverified, sum of
        invoice unverified)``.
        """
        po_total = sum(payment_order_unverified, ZERO)
        inv_total = sum(invoice_unverified, ZERO)
        cap = min(payable_unverified, po_total, inv_total)
        logger.debug("max_verifiable_amount_computed", extra={
            "payable_unverified": str(payable_unverified),
            "payment_order_unverified": str(po_total),
            "invoice_unverified": str(inv_total),
            "cap": str(cap),
        })
        return cap

    def effective_amount(
        self,
        payment_order_total: Decimal,
        invoice_total: Decimal,
        payable_unverified: Decimal,
    ) -> Decimal:
        """
        Governing amount when both sides carry their own allocations.

        The smaller of the two side totals and the payable's unverified
        amount.  A disagreement between the sides is logged as a warning;
        each side keeps its own detail sum.
        """
        if payment_order_total != invoice_total:
            logger.warning("allocation_side_mismatch", extra={
                "payment_order_total": str(payment_order_total),
                "invoice_total": str(invoice_total),
                "difference": str(payment_order_total - invoice_total),
            })
        return min(payment_order_total, invoice_total, payable_unverified)

    @traced_engine("allocation", "1.0", fingerprint_fields=("strategy", "amount"))
    def allocate(
        self,
        strategy: AllocationStrategy,
        available: Mapping[Hashable, Decimal],
        amount: Decimal | None = None,
    ) -> AllocationResult:
        """
        Allocate across items with the given strategy.

        Args:
            strategy: ``ManualAllocation`` or ``SequentialAllocation``.
            available: Unverified amount per item id.
            amount: Target amount; required for sequential, ignored for
                manual (manual amounts are never redistributed).

        Returns:
            AllocationResult with one line per detail (manual) or per
            ordered id (sequential).
        """
        match strategy:
            case ManualAllocation(details=details):
                return self._allocate_manual(details, available)
            case SequentialAllocation(ordered_ids=ordered_ids):
                if amount is None:
                    raise ValueError("Sequential allocation requires a target amount")
                return self._allocate_sequential(amount, ordered_ids, available)
            case _:
                logger.error("allocation_unknown_strategy", extra={
                    "strategy": type(strategy).__name__,
                })
                raise ValueError(f"Unknown allocation strategy: {strategy!r}")

    def allocate_sequential(
        self,
        amount: Decimal,
        ordered_ids: Sequence[Hashable],
        available: Mapping[Hashable, Decimal],
    ) -> AllocationResult:
        """Convenience method for sequential allocation."""
        return self.allocate(
            strategy=SequentialAllocation(ordered_ids=tuple(ordered_ids)),
            available=available,
            amount=amount,
        )

    def _allocate_manual(
        self,
        details: Sequence[AllocationDetail],
        available: Mapping[Hashable, Decimal],
    ) -> AllocationResult:
        """Clamp each caller amount to ``[0, item unverified]``.

        The same item named twice draws down one shared balance, so the
        item can never be over-allocated.
        """
        remaining = dict(available)
        lines: list[AllocationLine] = []

        for detail in details:
            if detail.item_id not in remaining:
                raise ValueError(f"Allocation names unknown item {detail.item_id}")
            balance = remaining[detail.item_id]
            allocated = min(max(detail.amount, ZERO), max(balance, ZERO))
            remaining[detail.item_id] = balance - allocated
            lines.append(AllocationLine(
                item_id=detail.item_id,
                available=balance,
                allocated=allocated,
            ))

        result = AllocationResult(kind=AllocationKind.MANUAL, lines=tuple(lines))
        logger.info("allocation_manual_completed", extra={
            "line_count": len(lines),
            "total_allocated": str(result.total_allocated),
            "clamped": sum(
                1 for line, d in zip(lines, details) if line.allocated != d.amount
            ),
        })
        return result

    def _allocate_sequential(
        self,
        amount: Decimal,
        ordered_ids: Sequence[Hashable],
        available: Mapping[Hashable, Decimal],
    ) -> AllocationResult:
        """
        Allocate in list order until the amount is exhausted.

        Each item receives ``min(remaining, item unverified)``.
        """
        if amount < ZERO:
            raise ValueError(f"Allocation amount cannot be negative: {amount}")

        remaining_to_allocate = amount
        lines: list[AllocationLine] = []

        for item_id in ordered_ids:
            if item_id not in available:
                raise ValueError(f"Allocation names unknown item {item_id}")
            eligible = max(available[item_id], ZERO)
            allocated = min(remaining_to_allocate, eligible) if remaining_to_allocate > ZERO else ZERO
            remaining_to_allocate -= allocated
            lines.append(AllocationLine(item_id=item_id, available=eligible, allocated=allocated))

        result = AllocationResult(kind=AllocationKind.SEQUENTIAL, lines=tuple(lines))
        logger.info("allocation_sequential_completed", extra={
            "source_amount": str(amount),
            "total_allocated": str(result.total_allocated),
            "unallocated": str(remaining_to_allocate),
            "line_count": len(lines),
        })
        return result
