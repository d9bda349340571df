"""
Invoice Configuration Schema (``settlement_modules.invoices.config``).

Responsibility
--------------
Business-verification rules and the outcome bands of the simulated
authenticity check.

A uniform draw ``r`` in ``[0, 1)`` maps to:

* ``r < unavailable_probability`` -- service unavailable, retry later;
* ``r > 1 - authentic_probability`` -- authentic;
* otherwise failed, with "information mismatch" when ``r > mismatch_threshold``
  and "does not exist or voided" below it.
"""

from dataclasses import dataclass
from typing import Self

from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.invoices.config")


@dataclass
class InvoiceConfig:
    """Configuration schema for the invoices module."""

    min_unusable_reason_length: int = 5

    unavailable_probability: float = 0.05
    authentic_probability: float = 0.85
    mismatch_threshold: float = 0.10

    mismatch_reason: str = "invoice information does not match tax records"
    not_found_reason: str = "invoice does not exist or has been voided"

    def __post_init__(self):
        if self.min_unusable_reason_length < 0:
            raise ValueError("min_unusable_reason_length cannot be negative")
        for name in ("unavailable_probability", "authentic_probability", "mismatch_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        failed_upper = 1 - self.authentic_probability
        if self.unavailable_probability > failed_upper:
            raise ValueError(
                "unavailable_probability + authentic_probability cannot exceed 1"
            )
        if not self.unavailable_probability <= self.mismatch_threshold <= failed_upper:
            raise ValueError(
                "mismatch_threshold must lie inside the failed band "
                f"[{self.unavailable_probability}, {failed_upper}]"
            )

        logger.info(
            "invoice_config_initialized",
            extra={
                "min_unusable_reason_length": self.min_unusable_reason_length,
                "unavailable_probability": self.unavailable_probability,
                "authentic_probability": self.authentic_probability,
                "mismatch_threshold": self.mismatch_threshold,
            },
        )

    @property
    def authentic_threshold(self) -> float:
        return 1 - self.authentic_probability

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("invoice_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "invoice_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
