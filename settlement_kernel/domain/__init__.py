"""
Pure domain layer.

Clock abstraction and workflow primitives with NO dependencies on the ORM,
the database or I/O (SystemClock is the one sanctioned time boundary).
"""

from settlement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from settlement_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "Guard",
    "Transition",
    "Workflow",
]
