"""
Payment Configuration Schema (``settlement_modules.payments.config``).

Document prefixes for payment requests and payment orders and the payment
method used when the caller names none.
"""

from dataclasses import dataclass
from typing import Self

from settlement_kernel.logging_config import get_logger
from settlement_modules.verification.models import PaymentMethod

logger = get_logger("modules.payments.config")


@dataclass
class PaymentConfig:
    """Configuration schema for the payments module."""

    request_prefix: str = "QK"
    order_prefix: str = "FK"
    default_payment_method: str = PaymentMethod.BANK_TRANSFER.value
    transaction_prefix: str = "TXN"

    def __post_init__(self):
        for name in ("request_prefix", "order_prefix", "transaction_prefix"):
            value = getattr(self, name)
            if not value or not value.isalpha():
                raise ValueError(f"{name} must be a non-empty alphabetic code")
        valid_methods = {m.value for m in PaymentMethod}
        if self.default_payment_method not in valid_methods:
            raise ValueError(
                f"default_payment_method must be one of {sorted(valid_methods)}, "
                f"got '{self.default_payment_method}'"
            )

        logger.info(
            "payment_config_initialized",
            extra={
                "request_prefix": self.request_prefix,
                "order_prefix": self.order_prefix,
                "default_payment_method": self.default_payment_method,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("payment_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "payment_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
