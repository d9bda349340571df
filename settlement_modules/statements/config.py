"""
Statement Configuration Schema (``settlement_modules.statements.config``).

Document prefixes and payment terms used when statements are created and
payables are generated from them.
"""

from dataclasses import dataclass
from typing import Self

from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.statements.config")


@dataclass
class StatementConfig:
    """Configuration schema for the statements module."""

    statement_prefix: str = "DZ"
    payable_prefix: str = "YF"
    payment_terms_days: int = 30

    def __post_init__(self):
        for name in ("statement_prefix", "payable_prefix"):
            value = getattr(self, name)
            if not value or not value.isalpha():
                raise ValueError(f"{name} must be a non-empty alphabetic code")
        if self.payment_terms_days < 0:
            raise ValueError("payment_terms_days cannot be negative")

        logger.info(
            "statement_config_initialized",
            extra={
                "statement_prefix": self.statement_prefix,
                "payable_prefix": self.payable_prefix,
                "payment_terms_days": self.payment_terms_days,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("statement_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "statement_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
