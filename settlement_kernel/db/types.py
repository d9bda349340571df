"""
Module: settlement_kernel.db.types
Responsibility: Annotated type aliases and helpers for monetary columns.
    Centralizes precision and rounding so that every model and service
    handles amounts identically.
Architecture position: Kernel > DB.  May be imported by domain/, services/
    and the settlement modules.

Invariants enforced:
    CRITICAL: No floats.  All monetary amounts use Decimal with explicit
    precision; display rounding is two places, storage keeps nine.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Document numbers such as HX202401150001
DocumentNo = Annotated[str, String(40)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for reasons and remarks
LongText = Annotated[str, String(2000)]

ZERO = Decimal("0")
MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Coerce a caller-supplied amount to Decimal.

    Floats are rejected; they cannot represent cents exactly.

    Raises:
        TypeError: If value is a float.
        decimal.InvalidOperation: If value is not numeric.
    """
    if isinstance(value, float):
        raise TypeError(f"Monetary amounts must not be float: {value!r}")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round a monetary amount for display (ROUND_HALF_UP)."""
    quantizer = Decimal(10) ** -places
    return amount.quantize(quantizer, rounding=DEFAULT_ROUNDING)
