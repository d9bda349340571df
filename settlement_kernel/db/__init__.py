"""Database layer - engine, base classes, types, and transactional scope."""

from settlement_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from settlement_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from settlement_kernel.db.types import Money, round_money, to_money

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "round_money",
    "to_money",
]
