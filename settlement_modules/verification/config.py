"""
Verification Configuration Schema (``settlement_modules.verification.config``).

Responsibility
--------------
Declarative settings for verification and reversal: the allowed reversal
reason types, the minimum reversal reason length, the document number
prefix and the actor names stamped on system-initiated records.

Architecture position
---------------------
**Modules layer** -- configuration schema only.  Loaded via
``settlement_config.load_settlement_config()`` or built with
``with_defaults()``.

Failure modes
-------------
* ``ValueError`` at construction if any constraint is violated.
"""

from dataclasses import dataclass, field
from typing import Self

from settlement_kernel.logging_config import get_logger
from settlement_modules.verification.models import ReverseReasonType

logger = get_logger("modules.verification.config")


@dataclass
class VerificationConfig:
    """
    Configuration schema for the verification module.

    Override at instantiation::

        config = VerificationConfig(min_reverse_reason_length=20)
    """

    reverse_reason_types: tuple[str, ...] = field(
        default_factory=lambda: tuple(r.value for r in ReverseReasonType)
    )
    min_reverse_reason_length: int = 10
    verification_prefix: str = "HX"

    # Actors stamped on records
    auto_verifier: str = "system-auto"
    prepaid_auto_verifier: str = "system-auto-prepaid"
    default_verifier: str = "system"

    batch_remark: str = "batch verification"

    def __post_init__(self):
        self.reverse_reason_types = tuple(self.reverse_reason_types)
        if not self.reverse_reason_types:
            raise ValueError("reverse_reason_types cannot be empty")
        known = {r.value for r in ReverseReasonType}
        unknown = [r for r in self.reverse_reason_types if r not in known]
        if unknown:
            raise ValueError(f"Unknown reverse reason types: {unknown}")
        if self.min_reverse_reason_length < 0:
            raise ValueError("min_reverse_reason_length cannot be negative")
        if not self.verification_prefix or not self.verification_prefix.isalpha():
            raise ValueError("verification_prefix must be a non-empty alphabetic code")
        for name in ("auto_verifier", "prepaid_auto_verifier", "default_verifier"):
            if not getattr(self, name).strip():
                raise ValueError(f"{name} cannot be empty")

        logger.info(
            "verification_config_initialized",
            extra={
                "reverse_reason_types": list(self.reverse_reason_types),
                "min_reverse_reason_length": self.min_reverse_reason_length,
                "verification_prefix": self.verification_prefix,
                "auto_verifier": self.auto_verifier,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("verification_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g. a YAML section).

        Raises:
            ValueError: if validation fails in ``__post_init__``.
        """
        logger.info(
            "verification_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
