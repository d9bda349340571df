"""
Module: settlement_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by
    the settlement modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  MUST NOT import
    settlement_modules.

Invariants enforced:
    - Purity: engines never read the clock; callers pass everything in.
    - Decimal-only arithmetic for monetary amounts.
"""

from settlement_engines.allocation import (
    AllocationCalculator,
    AllocationDetail,
    AllocationKind,
    AllocationLine,
    AllocationResult,
    AllocationStrategy,
    ManualAllocation,
    SequentialAllocation,
)
from settlement_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "AllocationCalculator",
    "AllocationDetail",
    "AllocationKind",
    "AllocationLine",
    "AllocationResult",
    "AllocationStrategy",
    "ManualAllocation",
    "SequentialAllocation",
    "compute_input_fingerprint",
    "traced_engine",
]
