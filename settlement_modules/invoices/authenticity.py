"""
Invoice Authenticity Oracles (``settlement_modules.invoices.authenticity``).

Responsibility
--------------
Answers "is this invoice genuine?" for ``InvoiceService.authenticate``.
There is no tax-authority integration: ``RandomAuthenticityOracle``
simulates one with a seedable ``random.Random`` so tests can pin outcomes.
"""

import random
from typing import Protocol

from settlement_kernel.logging_config import get_logger
from settlement_modules.invoices.config import InvoiceConfig
from settlement_modules.invoices.models import AuthenticityOutcome, AuthenticityResult
from settlement_modules.verification.models import Invoice

logger = get_logger("modules.invoices.authenticity")


class AuthenticityOracle(Protocol):
    """Anything that can check an invoice against the tax authority."""

    def check(self, invoice: Invoice) -> AuthenticityOutcome:
        ...


class RandomAuthenticityOracle:
    """
    Simulated authenticity service.

    Outcome bands come from ``InvoiceConfig``; with defaults 5% of checks
    are unavailable, 85% pass and 10% fail.
    """

    def __init__(self, rng: random.Random | None = None, config: InvoiceConfig | None = None):
        self._rng = rng or random.Random()
        self._config = config or InvoiceConfig.with_defaults()

    def check(self, invoice: Invoice) -> AuthenticityOutcome:
        draw = self._rng.random()
        config = self._config

        if draw < config.unavailable_probability:
            outcome = AuthenticityOutcome(AuthenticityResult.UNAVAILABLE)
        elif draw > config.authentic_threshold:
            outcome = AuthenticityOutcome(AuthenticityResult.VERIFIED)
        elif draw > config.mismatch_threshold:
            outcome = AuthenticityOutcome(AuthenticityResult.FAILED, config.mismatch_reason)
        else:
            outcome = AuthenticityOutcome(AuthenticityResult.FAILED, config.not_found_reason)

        logger.debug("authenticity_oracle_answered", extra={
            "invoice_code": invoice.invoice_code,
            "invoice_no": invoice.invoice_no,
            "result": outcome.result.value,
        })
        return outcome
